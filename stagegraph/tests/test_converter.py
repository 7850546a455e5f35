"""Tests for descriptor <-> graph conversion."""

import pytest
import yaml

from stagegraph.analysis.environment import resolve_owning_environment
from stagegraph.errors import FormatError, UnresolvedDependency
from stagegraph.models.descriptor import Position, SpecNotifications, Triggers
from stagegraph.models.notification_policy import (
    ChannelMap,
    FailureActions,
    default_policy,
    with_channel,
)
from stagegraph.models.stage_graph import StageGraph
from stagegraph.sdk.converter import (
    dump_descriptor,
    export_graph,
    find_unresolved_dependencies,
    from_descriptor,
    parse_descriptor,
    to_descriptor,
)

LINEAR_PIPELINE = """
apiVersion: pipeline/v1
kind: Pipeline
metadata:
  name: linear
  deploymentType: Integration
spec:
  stages:
    - name: source-code
      type: code_github
    - name: build-application
      type: build_jenkins
      dependsOn: [source-code]
    - name: run-tests
      type: test_jest
      dependsOn: [build-application]
      config:
        testCommand: npm test
        coverageThreshold: 80
    - name: deploy-staging
      type: deploy_kubernetes
      dependsOn: [run-tests]
"""


def _edge_labels(graph: StageGraph) -> set[tuple[str, str]]:
    labels = {node.id: node.label for node in graph.nodes}
    return {(labels[e.source], labels[e.target]) for e in graph.edges}


class TestFromDescriptor:
    """Test parsing descriptors into graphs."""

    def test_linear_pipeline(self):
        """Four chained stages become four nodes and three edges."""
        graph, metadata = from_descriptor(LINEAR_PIPELINE)

        assert metadata.name == "linear"
        assert [n.id for n in graph.nodes] == ["node-1", "node-2", "node-3", "node-4"]
        assert [n.label for n in graph.nodes] == [
            "source-code",
            "build-application",
            "run-tests",
            "deploy-staging",
        ]
        assert len(graph.edges) == 3
        assert _edge_labels(graph) == {
            ("source-code", "build-application"),
            ("build-application", "run-tests"),
            ("run-tests", "deploy-staging"),
        }

    def test_linear_pipeline_fallback_positions(self):
        """Stages without a position are laid out in one row."""
        graph, _ = from_descriptor(LINEAR_PIPELINE)
        assert [(n.position.x, n.position.y) for n in graph.nodes] == [
            (300, 100),
            (550, 100),
            (800, 100),
            (1050, 100),
        ]

    def test_linear_pipeline_has_no_environment(self):
        """Without environment nodes nothing is attributed."""
        graph, _ = from_descriptor(LINEAR_PIPELINE)
        run_tests = graph.node_by_label("run-tests")
        assert resolve_owning_environment(graph, run_tests.id) is None

    def test_explicit_position_and_config_kept(self):
        text = """
kind: Pipeline
metadata: {name: p}
spec:
  stages:
    - name: only
      type: build_jenkins
      position: {x: 12.5, y: 40}
      config: {nested: {flag: true}, items: [1, 2]}
"""
        graph, _ = from_descriptor(text)
        node = graph.nodes[0]
        assert node.position == Position(x=12.5, y=40)
        assert node.config == {"nested": {"flag": True}, "items": [1, 2]}

    def test_unresolved_dependency_is_dropped(self):
        """A dependsOn typo removes the edge, not the pipeline."""
        text = """
kind: Pipeline
metadata: {name: p}
spec:
  stages:
    - name: build
      type: build_jenkins
    - name: deploy
      type: deploy_helm
      dependsOn: [biuld]
"""
        graph, _ = from_descriptor(text)
        deploy = graph.node_by_label("deploy")

        assert len(graph.nodes) == 2
        assert graph.incoming_edges(deploy.id) == []
        assert find_unresolved_dependencies(parse_descriptor(text)) == [
            UnresolvedDependency(stage="deploy", dependency="biuld")
        ]

    def test_duplicate_dependency_collapses(self):
        text = """
kind: Pipeline
metadata: {name: p}
spec:
  stages:
    - {name: a, type: code_github}
    - {name: b, type: build_jenkins, dependsOn: [a, a]}
"""
        graph, _ = from_descriptor(text)
        assert len(graph.edges) == 1

    @pytest.mark.parametrize("metadata_block", ["", "metadata:\n"])
    def test_missing_metadata(self, metadata_block):
        """A descriptor without metadata still converts."""
        text = f"""
kind: Pipeline
{metadata_block}spec:
  stages:
    - name: build
      type: build_jenkins
      dependsOn: [nope]
"""
        graph, metadata = from_descriptor(text)

        assert metadata.name == ""
        assert metadata.version == "1.0.0"
        assert [n.label for n in graph.nodes] == ["build"]
        assert graph.edges == []

    def test_numeric_stage_names(self):
        """Unquoted numeric names and dependencies are read as text."""
        text = """
kind: Pipeline
metadata: {name: 2024, version: 2}
spec:
  stages:
    - {name: 1, type: code_github}
    - {name: 2, type: build_jenkins, dependsOn: [1]}
"""
        graph, metadata = from_descriptor(text)

        assert metadata.name == "2024"
        assert metadata.version == "2"
        assert [n.label for n in graph.nodes] == ["1", "2"]
        assert _edge_labels(graph) == {("1", "2")}

    def test_environment_attribution(self):
        """A plan stage depending on node_qa is owned by it."""
        text = """
kind: Pipeline
metadata: {name: p}
spec:
  stages:
    - name: qa
      type: node_qa
    - name: tickets
      type: plan_jira
      dependsOn: [qa]
"""
        graph, _ = from_descriptor(text)
        plan = graph.node_by_label("tickets")

        environment = resolve_owning_environment(graph, plan.id)

        assert environment is not None
        assert environment.type == "node_qa"
        assert environment.id == "node-1"

    def test_stage_notifications_expand_to_full_policy(self):
        """The serialized channel pair is shared by all three branches."""
        text = """
kind: Pipeline
metadata: {name: p}
spec:
  stages:
    - name: build
      type: build_jenkins
      notifications: {email: false, slack: true}
    - name: test
      type: test_jest
"""
        graph, _ = from_descriptor(text)
        policy = graph.nodes[0].notification_policy

        shared = ChannelMap(email=False, slack=True)
        assert policy.success.notifications == shared
        assert policy.warning.notifications == shared
        assert policy.failure.notifications == shared
        assert policy.failure.actions == FailureActions(rollback=False, retrigger=True, notify=True)
        assert graph.nodes[1].notification_policy is None


class TestParseErrors:
    """Test rejection of malformed descriptor text."""

    @pytest.mark.parametrize(
        "text",
        [
            "kind: [unterminated",
            "- just\n- a list\n",
            "plain text",
            "kind: Job\nmetadata: {name: p}\n",
            "metadata: {name: p}\n",
        ],
    )
    def test_format_error(self, text):
        """Unparseable, non-mapping or non-Pipeline text is a FormatError."""
        with pytest.raises(FormatError) as exc_info:
            from_descriptor(text)
        assert str(exc_info.value).startswith("Failed to parse pipeline YAML")

    def test_missing_stage_type(self):
        text = "kind: Pipeline\nmetadata: {name: p}\nspec:\n  stages:\n    - name: a\n"
        with pytest.raises(FormatError):
            from_descriptor(text)

    def test_duplicate_stage_names(self):
        text = """
kind: Pipeline
metadata: {name: p}
spec:
  stages:
    - {name: a, type: code_github}
    - {name: a, type: build_jenkins}
"""
        with pytest.raises(FormatError):
            from_descriptor(text)

    def test_format_error_is_value_error(self):
        """Callers catching ValueError also see format errors."""
        with pytest.raises(ValueError):
            parse_descriptor("kind: Job")


class TestToDescriptor:
    """Test serializing graphs to descriptors."""

    def _graph(self) -> StageGraph:
        graph = StageGraph()
        source = graph.add_node("code_github", label="checkout", position=Position(x=1, y=2))
        build = graph.add_node("build_jenkins", label="compile", config={"cmd": "make"})
        test = graph.add_node("test_jest", label="unit")
        graph.connect(source.id, build.id)
        graph.connect(build.id, test.id)
        graph.connect(source.id, test.id)
        return graph

    def test_depends_on_uses_source_labels(self):
        descriptor = to_descriptor(self._graph(), {"name": "p"})
        stages = {s.name: s for s in descriptor.spec.stages}

        assert stages["checkout"].depends_on is None
        assert stages["compile"].depends_on == ["checkout"]
        assert stages["unit"].depends_on == ["compile", "checkout"]

    def test_defaults_for_spec_settings(self):
        descriptor = to_descriptor(self._graph(), {"name": "p"})

        assert descriptor.api_version == "pipeline/v1"
        assert descriptor.kind == "Pipeline"
        assert descriptor.spec.variables == {}
        assert descriptor.spec.notifications == SpecNotifications()
        assert descriptor.spec.triggers == Triggers(push=False, pull_request=False)

    def test_timestamps_refreshed(self):
        descriptor = to_descriptor(
            self._graph(), {"name": "p", "createdAt": "2001-01-01T00:00:00+00:00"}
        )
        metadata = descriptor.metadata
        assert metadata.created_at != "2001-01-01T00:00:00+00:00"
        assert metadata.created_at == metadata.updated_at

    def test_unlabelled_node_named_after_id(self):
        graph = StageGraph()
        graph.add_node("build_jenkins", label="")
        descriptor = to_descriptor(graph, {"name": "p"})
        assert descriptor.stage_names() == ["stage-node-1"]

    def test_same_type_nodes_serialize(self):
        """Two plan_jira nodes added with default labels get distinct stage names."""
        graph = StageGraph()
        env = graph.add_node("node_dev")
        first = graph.add_node("plan_jira")
        second = graph.add_node("plan_jira")
        graph.connect(env.id, first.id)
        graph.connect(first.id, second.id)

        descriptor = to_descriptor(graph, {"name": "p"})

        assert descriptor.stage_names() == ["Development", "Jira", "Jira 2"]
        assert descriptor.spec.stages[2].depends_on == ["Jira"]

    def test_duplicate_labels_get_suffixes(self):
        """Shared labels are numbered and dependsOn follows the new names."""
        graph = StageGraph()
        a = graph.add_node("build_jenkins", label="same")
        b = graph.add_node("test_jest", label="same")
        c = graph.add_node("deploy_helm", label="same-2")
        d = graph.add_node("release_docker", label="same")
        graph.connect(b.id, c.id)
        graph.connect(d.id, a.id)

        descriptor = to_descriptor(graph, {"name": "p"})
        stages = {s.name: s for s in descriptor.spec.stages}

        assert descriptor.stage_names() == ["same", "same-3", "same-2", "same-4"]
        assert stages["same-2"].depends_on == ["same-3"]
        assert stages["same"].depends_on == ["same-4"]

        restored, _ = from_descriptor(dump_descriptor(descriptor))
        assert len(restored.edges) == 2

    def test_only_success_channels_serialized(self):
        """Warning and failure channels do not survive serialization."""
        policy = with_channel(default_policy(), "success", "slack", True)
        policy = with_channel(policy, "failure", "email", False)
        graph = StageGraph()
        graph.add_node("build_jenkins", label="b", notification_policy=policy)

        stage = to_descriptor(graph, {"name": "p"}).spec.stages[0]

        assert stage.notifications.email is True
        assert stage.notifications.slack is True

        reparsed, _ = from_descriptor(export_graph(graph, {"name": "p"}))
        failure = reparsed.nodes[0].notification_policy.failure
        assert failure.notifications == ChannelMap(email=True, slack=True)

    def test_export_yaml_shape(self):
        text = export_graph(
            self._graph(),
            {"name": "p", "description": "demo"},
            variables={"ENV": "qa"},
            triggers=Triggers(push=True),
        )
        document = yaml.safe_load(text)

        assert list(document) == ["apiVersion", "kind", "metadata", "spec"]
        assert document["metadata"]["deploymentType"] == "Integration"
        assert document["spec"]["variables"] == {"ENV": "qa"}
        assert document["spec"]["triggers"] == {"push": True, "pullRequest": False}
        assert document["spec"]["stages"][1]["dependsOn"] == ["checkout"]
        assert document["spec"]["stages"][1]["config"] == {"cmd": "make"}


class TestRoundTrip:
    """Test graph -> descriptor -> graph preservation."""

    def test_round_trip_preserves_nodes_and_dependencies(self):
        graph = StageGraph()
        env = graph.add_node("node_qa", label="QA", position=Position(x=10, y=20))
        plan = graph.add_node(
            "plan_jira", label="tickets", config={"project": "OPS"}, position=Position(x=30, y=40)
        )
        release = graph.add_node("release_argo_cd", label="ship", position=Position(x=50, y=60))
        graph.connect(env.id, plan.id)
        graph.connect(plan.id, release.id)

        restored, metadata = from_descriptor(export_graph(graph, {"name": "rt"}))

        def shape(g):
            return [(n.type, n.label, n.config, n.position) for n in g.nodes]

        assert metadata.name == "rt"
        assert shape(restored) == shape(graph)
        assert _edge_labels(restored) == _edge_labels(graph)

    def test_round_trip_regenerates_ids(self):
        """Ids are positional after a round trip."""
        graph = StageGraph()
        graph.add_node("code_github", label="a")
        b = graph.add_node("build_jenkins", label="b")
        graph.add_node("test_jest", label="c")
        graph.remove_node("node-1")

        restored, _ = from_descriptor(export_graph(graph, {"name": "rt"}))

        assert b.id == "node-2"
        assert [n.id for n in restored.nodes] == ["node-1", "node-2"]
        assert [n.label for n in restored.nodes] == ["b", "c"]
