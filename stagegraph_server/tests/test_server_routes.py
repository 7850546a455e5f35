"""Tests for the stagegraph HTTP service and its sqlite stores."""

import pytest
import yaml
from fastapi.testclient import TestClient

from stagegraph.adapters.policy_saver import DebouncedPolicySaver
from stagegraph.models.notification_policy import default_policy, with_failure_action
from stagegraph.sdk.templates import sample_descriptor_yaml
from stagegraph_server import policy_db
from stagegraph_server.app import app
from stagegraph_server.db import init_all
from stagegraph_server.descriptor_db import SqliteDescriptorStore
from stagegraph_server.policy_db import SqlitePolicySink

ENVIRONMENT_PIPELINE = """
kind: Pipeline
metadata: {name: release-train, deploymentType: Extension}
spec:
  stages:
    - {name: QA, type: node_qa}
    - {name: tickets, type: plan_jira, dependsOn: [QA]}
    - {name: qa-docker, type: release_docker, dependsOn: [QA, nowhere]}
    - {name: build, type: build_jenkins}
"""


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "stagegraph.db"
    monkeypatch.setenv("STAGEGRAPH_DB_PATH", str(path))
    return path


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    def test_root(self, client, db_path):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["db"] == str(db_path)


class TestDescriptorRoutes:
    """Test storing and reading descriptor text."""

    def test_save_and_get(self, client):
        text = sample_descriptor_yaml()
        response = client.post("/api/pipeline-yaml/sample", json={"yaml": text})
        assert response.status_code == 200

        response = client.get("/api/pipeline-yaml/sample")
        assert response.json() == {"templateId": "sample", "yaml": text}

    def test_get_missing_is_null(self, client):
        response = client.get("/api/pipeline-yaml/nothing")
        assert response.status_code == 200
        assert response.json() == {"templateId": "nothing", "yaml": None}

    def test_save_overwrites(self, client):
        sample = sample_descriptor_yaml()
        client.post("/api/pipeline-yaml/p", json={"yaml": ENVIRONMENT_PIPELINE})
        client.post("/api/pipeline-yaml/p", json={"yaml": sample})

        assert client.get("/api/pipeline-yaml").json() == {"p": sample}

    def test_rejects_non_pipeline(self, client):
        response = client.post("/api/pipeline-yaml/p", json={"yaml": "kind: Job\n"})
        assert response.status_code == 422
        assert "Failed to parse pipeline YAML" in response.json()["detail"]
        assert client.get("/api/pipeline-yaml").json() == {}

    def test_delete(self, client):
        client.post("/api/pipeline-yaml/p", json={"yaml": ENVIRONMENT_PIPELINE})

        assert client.delete("/api/pipeline-yaml/p").json() == {"deleted": "p"}
        assert client.delete("/api/pipeline-yaml/p").status_code == 404


class TestGraphRoutes:
    """Test graph conversion and config field endpoints."""

    def test_graph(self, client):
        client.post("/api/pipeline-yaml/p", json={"yaml": ENVIRONMENT_PIPELINE})

        data = client.get("/api/pipeline-yaml/p/graph").json()

        assert data["metadata"]["name"] == "release-train"
        assert data["metadata"]["deploymentType"] == "Extension"
        assert [n["id"] for n in data["graph"]["nodes"]] == ["node-1", "node-2", "node-3", "node-4"]
        assert [(e["source"], e["target"]) for e in data["graph"]["edges"]] == [
            ("node-1", "node-2"),
            ("node-1", "node-3"),
        ]
        assert data["environments"] == {"node-2": "node-1", "node-3": "node-1"}
        assert data["unresolved"] == [{"stage": "qa-docker", "dependency": "nowhere"}]

    def test_graph_missing(self, client):
        assert client.get("/api/pipeline-yaml/none/graph").status_code == 404

    def test_config_fields(self, client):
        client.post("/api/pipeline-yaml/p", json={"yaml": ENVIRONMENT_PIPELINE})

        data = client.get("/api/pipeline-yaml/p/config-fields").json()

        assert [f["key"] for f in data["fields"]] == ["plan_jira", "release_qa_docker"]
        assert data["fields"][1]["label"] == "QA Docker#"
        assert data["values"] == {"plan_jira": "", "release_qa_docker": ""}

    def test_save_graph(self, client):
        graph = {
            "nodes": [
                {"id": "node-1", "type": "code_github", "label": "checkout"},
                {"id": "node-2", "type": "build_jenkins", "label": "compile"},
            ],
            "edges": [{"source": "node-1", "target": "node-2"}],
        }
        response = client.put(
            "/api/pipeline-yaml/edited/graph",
            json={"graph": graph, "metadata": {"name": "edited"}},
        )
        assert response.status_code == 200

        stored = yaml.safe_load(client.get("/api/pipeline-yaml/edited").json()["yaml"])
        assert stored["kind"] == "Pipeline"
        assert stored["spec"]["stages"][1]["dependsOn"] == ["checkout"]

    def test_save_graph_duplicate_labels(self, client):
        """Nodes sharing a label are stored under numbered stage names."""
        graph = {
            "nodes": [
                {"id": "node-1", "type": "code_github", "label": "same"},
                {"id": "node-2", "type": "build_jenkins", "label": "same"},
            ],
            "edges": [{"source": "node-1", "target": "node-2"}],
        }
        response = client.put(
            "/api/pipeline-yaml/edited/graph",
            json={"graph": graph, "metadata": {"name": "edited"}},
        )
        assert response.status_code == 200

        stages = yaml.safe_load(response.json()["yaml"])["spec"]["stages"]
        assert [s["name"] for s in stages] == ["same", "same-2"]
        assert stages[1]["dependsOn"] == ["same"]


class TestPolicyRoutes:
    """Test notification policy persistence over HTTP."""

    def test_empty(self, client):
        response = client.get("/api/pipelines/p/notification-policies")
        assert response.json() == {}

    def test_put_replaces_map(self, client):
        policy = with_failure_action(default_policy(), "rollback", True).model_dump(mode="json")

        response = client.put("/api/pipelines/p/notification-policies", json={"node-1": policy})
        assert response.json() == {"pipelineId": "p", "nodes": 1}

        client.put("/api/pipelines/p/notification-policies", json={"node-2": policy})
        data = client.get("/api/pipelines/p/notification-policies").json()
        assert list(data) == ["node-2"]
        assert data["node-2"]["failure"]["actions"]["rollback"] is True

    def test_invalid_policy(self, client):
        response = client.put(
            "/api/pipelines/p/notification-policies", json={"node-1": {"success": {}}}
        )
        assert response.status_code == 422


class TestSqliteStores:
    """Test the in-process sqlite adapters."""

    def test_descriptor_store(self, db_path):
        init_all()
        store = SqliteDescriptorStore()
        store.put("a", "kind: Pipeline")

        assert store.get("a") == "kind: Pipeline"
        assert store.list_all() == {"a": "kind: Pipeline"}
        store.delete("a")
        assert store.get("a") is None

    def test_policy_sink_with_saver(self, db_path):
        init_all()
        with DebouncedPolicySaver("p", SqlitePolicySink(), delay=30) as saver:
            saver.update("node-1", default_policy())

        assert policy_db.get_policies("p") == {"node-1": default_policy()}
