"""Core data models for stagegraph."""

from stagegraph.models.category import (
    ENVIRONMENT_TYPES,
    STAGE_TYPE_LABELS,
    Category,
    classify,
    default_label,
)
from stagegraph.models.descriptor import (
    API_VERSION,
    PIPELINE_KIND,
    DeploymentType,
    Descriptor,
    PipelineMetadata,
    PipelineSpec,
    Position,
    SpecNotifications,
    Stage,
    StageNotifications,
    StageStatus,
    Triggers,
)
from stagegraph.models.notification_policy import (
    POLICY_MAP_ADAPTER,
    Channel,
    ChannelMap,
    FailureAction,
    FailureActions,
    FailureBranch,
    NotificationPolicy,
    Outcome,
    OutcomeBranch,
    PolicyMap,
    default_policy,
    merge_policy,
    policy_from_stage_notifications,
    resolve_policy,
    with_channel,
    with_enabled,
    with_failure_action,
    with_message,
)
from stagegraph.models.stage_graph import GraphEdge, GraphNode, StageGraph

__all__ = [
    # categories
    "Category",
    "classify",
    "default_label",
    "ENVIRONMENT_TYPES",
    "STAGE_TYPE_LABELS",
    # descriptor
    "API_VERSION",
    "PIPELINE_KIND",
    "DeploymentType",
    "Descriptor",
    "PipelineMetadata",
    "PipelineSpec",
    "Position",
    "SpecNotifications",
    "Stage",
    "StageNotifications",
    "StageStatus",
    "Triggers",
    # notification policy
    "POLICY_MAP_ADAPTER",
    "Channel",
    "ChannelMap",
    "FailureAction",
    "FailureActions",
    "FailureBranch",
    "NotificationPolicy",
    "Outcome",
    "OutcomeBranch",
    "PolicyMap",
    "default_policy",
    "merge_policy",
    "policy_from_stage_notifications",
    "resolve_policy",
    "with_channel",
    "with_enabled",
    "with_failure_action",
    "with_message",
    # graph
    "GraphEdge",
    "GraphNode",
    "StageGraph",
]
