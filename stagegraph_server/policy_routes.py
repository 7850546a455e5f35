"""API routes for pipeline-wide notification policies."""

from fastapi import APIRouter

from stagegraph.models.notification_policy import POLICY_MAP_ADAPTER, NotificationPolicy
from stagegraph_server.policy_db import get_policies as db_get_policies
from stagegraph_server.policy_db import put_policies as db_put_policies

router = APIRouter()


@router.get("/pipelines/{pipeline_id}/notification-policies")
def get_notification_policies(pipeline_id: str) -> dict:
    """node id -> policy map of a pipeline (empty when none saved)."""
    return POLICY_MAP_ADAPTER.dump_python(db_get_policies(pipeline_id), mode="json")


@router.put("/pipelines/{pipeline_id}/notification-policies")
def put_notification_policies(
    pipeline_id: str, policies: dict[str, NotificationPolicy]
) -> dict:
    """replace the pipeline's policy map.

    Debounced savers send the whole map on every flush, so PUT replaces.
    """
    db_put_policies(pipeline_id, policies)
    return {"pipelineId": pipeline_id, "nodes": len(policies)}
