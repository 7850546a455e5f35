"""stagegraph - pipeline descriptor graph engine.

Converts serialized pipeline descriptors into editable stage graphs and back,
attributes stages to their owning deployment environment, and derives the
operator-facing configuration fields a pipeline needs.
"""

from stagegraph.analysis.config_fields import ConfigurationField, derive_fields, initial_values
from stagegraph.analysis.environment import group_by_environment, resolve_owning_environment
from stagegraph.errors import FormatError, StageGraphError, UnresolvedDependency
from stagegraph.models.descriptor import Descriptor, PipelineMetadata, Stage
from stagegraph.models.notification_policy import NotificationPolicy, default_policy
from stagegraph.models.stage_graph import GraphEdge, GraphNode, StageGraph
from stagegraph.sdk.converter import (
    dump_descriptor,
    export_graph,
    from_descriptor,
    parse_descriptor,
    to_descriptor,
)

__all__ = [
    # models
    "Descriptor",
    "PipelineMetadata",
    "Stage",
    "GraphEdge",
    "GraphNode",
    "StageGraph",
    "NotificationPolicy",
    "default_policy",
    # conversion
    "to_descriptor",
    "from_descriptor",
    "parse_descriptor",
    "dump_descriptor",
    "export_graph",
    # queries
    "resolve_owning_environment",
    "group_by_environment",
    "ConfigurationField",
    "derive_fields",
    "initial_values",
    # errors
    "StageGraphError",
    "FormatError",
    "UnresolvedDependency",
]
