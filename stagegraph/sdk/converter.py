"""Bidirectional conversion between pipeline descriptors and stage graphs.

Descriptors reference dependencies by stage name; graphs connect nodes by id.
Going to the graph, each stage gets the positional id `node-<index+1>` and
every resolvable `dependsOn` name becomes an edge. Going back, edges are
grouped by target and their sources' labels become `dependsOn`.

For graphs with unique labels, round trips keep node type, label, config,
position and the dependency relation (by label). Node and edge ids are
regenerated and are not stable across a round trip.
"""

from collections import defaultdict
from collections.abc import Mapping
from typing import Any

import yaml
from pydantic import ValidationError

from stagegraph.errors import FormatError, UnresolvedDependency
from stagegraph.logging import get_logger
from stagegraph.models.descriptor import (
    API_VERSION,
    PIPELINE_KIND,
    Descriptor,
    PipelineMetadata,
    PipelineSpec,
    Position,
    SpecNotifications,
    Stage,
    StageNotifications,
    Triggers,
)
from stagegraph.models.notification_policy import policy_from_stage_notifications
from stagegraph.models.stage_graph import GraphNode, StageGraph
from stagegraph.utils.identifiers import positional_node_id, utc_timestamp

logger = get_logger(__name__)

# fallback layout for stages without a position: one row, left to right
FALLBACK_X_START = 300
FALLBACK_X_STEP = 250
FALLBACK_Y = 100

_PARSE_ERROR_PREFIX = "Failed to parse pipeline YAML"


def fallback_position(index: int) -> Position:
    """Deterministic, non-overlapping position for the stage at `index`."""
    return Position(x=FALLBACK_X_START + FALLBACK_X_STEP * index, y=FALLBACK_Y)


def stage_name(node: GraphNode) -> str:
    """Stage name a node serializes under, before disambiguation."""
    return node.label or f"stage-{node.id}"


def assign_stage_names(nodes: list[GraphNode]) -> dict[str, str]:
    """Node id -> unique stage name.

    The first node with a given name keeps it; later ones get `<name>-2`,
    `<name>-3`, ... skipping any name another node already serializes under.
    """
    reserved = {stage_name(node) for node in nodes}
    used: set[str] = set()
    names: dict[str, str] = {}
    for node in nodes:
        base = stage_name(node)
        name, number = base, 1
        while name in used or (name != base and name in reserved):
            number += 1
            name = f"{base}-{number}"
        if name != base:
            logger.warning("stage_renamed", node=node.id, label=base, name=name)
        used.add(name)
        names[node.id] = name
    return names


# ---------------------------------------------------------------------------
# graph -> descriptor
# ---------------------------------------------------------------------------


def to_descriptor(
    graph: StageGraph,
    metadata: PipelineMetadata | Mapping[str, Any],
    variables: Mapping[str, str] | None = None,
    notifications: SpecNotifications | None = None,
    triggers: Triggers | None = None,
) -> Descriptor:
    """Build a descriptor from a graph and pipeline metadata.

    Args:
        graph: The stage graph to serialize
        metadata: Pipeline metadata; timestamps are replaced with fresh ones
        variables: Pipeline variables (default empty)
        notifications: Pipeline-wide recipients (default empty channel lists)
        triggers: Run triggers (default push and pullRequest off)

    Nodes sharing a label are written under distinct names (see
    `assign_stage_names`) and `dependsOn` refers to those names.
    """
    if not isinstance(metadata, PipelineMetadata):
        metadata = PipelineMetadata.model_validate(metadata)

    # target id -> source ids, in edge insertion order
    dependencies: dict[str, list[str]] = defaultdict(list)
    for edge in graph.edges:
        dependencies[edge.target].append(edge.source)

    names = assign_stage_names(graph.nodes)
    stages: list[Stage] = []

    for node in graph.nodes:
        depends_on: list[str] = []
        for source_id in dependencies.get(node.id, ()):
            source_name = names.get(source_id)
            if source_name is None:
                logger.warning("edge_source_missing", target=node.id, source=source_id)
                continue
            depends_on.append(source_name)

        stage_notifications = None
        if node.notification_policy is not None:
            # only the success branch is represented in the serialized form
            channels = node.notification_policy.success.notifications
            stage_notifications = StageNotifications(email=channels.email, slack=channels.slack)

        stages.append(
            Stage(
                name=names[node.id],
                type=node.type,
                description=node.description,
                depends_on=depends_on or None,
                config=node.config,
                position=node.position,
                notifications=stage_notifications,
                status=node.status,
                duration=node.duration,
            )
        )

    now = utc_timestamp()
    return Descriptor(
        api_version=API_VERSION,
        kind=PIPELINE_KIND,
        metadata=metadata.model_copy(update={"created_at": now, "updated_at": now}),
        spec=PipelineSpec(
            stages=stages,
            variables=dict(variables or {}),
            notifications=notifications or SpecNotifications(),
            triggers=triggers or Triggers(push=False, pull_request=False),
        ),
    )


def dump_descriptor(descriptor: Descriptor) -> str:
    """Serialize a descriptor to YAML text."""
    return yaml.safe_dump(
        descriptor.to_wire(),
        sort_keys=False,
        indent=2,
        width=120,
        allow_unicode=True,
    )


def export_graph(
    graph: StageGraph,
    metadata: PipelineMetadata | Mapping[str, Any],
    **spec_settings: Any,
) -> str:
    """Graph straight to descriptor YAML text."""
    return dump_descriptor(to_descriptor(graph, metadata, **spec_settings))


# ---------------------------------------------------------------------------
# descriptor -> graph
# ---------------------------------------------------------------------------


def parse_descriptor(text: str) -> Descriptor:
    """Parse descriptor text (YAML, or JSON as a YAML subset).

    Raises:
        FormatError: text is not parseable, is not a mapping, does not
            validate, or its kind is not "Pipeline"
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise FormatError(f"{_PARSE_ERROR_PREFIX}: {e}") from e

    if not isinstance(document, dict) or document.get("kind") != PIPELINE_KIND:
        raise FormatError(f"{_PARSE_ERROR_PREFIX}: Invalid pipeline YAML format")

    try:
        return Descriptor.model_validate(document)
    except ValidationError as e:
        raise FormatError(f"{_PARSE_ERROR_PREFIX}: {e}") from e


def graph_from_descriptor(descriptor: Descriptor) -> StageGraph:
    """Build the stage graph for an already parsed descriptor.

    Dependencies naming no stage are dropped (logged, never fatal), so a typo
    degrades the pipeline to fewer constraints instead of failing it.
    """
    stages = descriptor.spec.stages
    name_to_id: dict[str, str] = {}
    graph = StageGraph()

    for index, stage in enumerate(stages):
        node_id = positional_node_id(index)
        name_to_id[stage.name] = node_id

        policy = None
        if stage.notifications is not None:
            policy = policy_from_stage_notifications(stage.notifications)

        graph.nodes.append(
            GraphNode(
                id=node_id,
                type=stage.type,
                label=stage.name,
                description=stage.description,
                config=stage.config,
                position=stage.position or fallback_position(index),
                status=stage.status,
                duration=stage.duration,
                notification_policy=policy,
            )
        )

    for stage in stages:
        target_id = name_to_id[stage.name]
        for dependency in stage.depends_on or ():
            source_id = name_to_id.get(dependency)
            if source_id is None:
                logger.warning("unresolved_dependency", stage=stage.name, dependency=dependency)
                continue
            graph.connect(source_id, target_id)

    return graph


def from_descriptor(text: str) -> tuple[StageGraph, PipelineMetadata]:
    """Parse descriptor text into a stage graph and its metadata.

    Raises:
        FormatError: see parse_descriptor
    """
    descriptor = parse_descriptor(text)
    return graph_from_descriptor(descriptor), descriptor.metadata


def find_unresolved_dependencies(descriptor: Descriptor) -> list[UnresolvedDependency]:
    """Every `dependsOn` reference that names no stage, in descriptor order."""
    names = set(descriptor.stage_names())
    return [
        UnresolvedDependency(stage=stage.name, dependency=dependency)
        for stage in descriptor.spec.stages
        for dependency in stage.depends_on or ()
        if dependency not in names
    ]
