"""Attribute stages to the environment that owns them.

Environment ownership is not stored on a stage. It is found by walking
dependency edges backwards from the stage until an environment node
(`node_dev`, `node_qa`, `node_prod`) is reached.
"""

from stagegraph.logging import get_logger
from stagegraph.models.stage_graph import GraphNode, StageGraph

logger = get_logger(__name__)


def resolve_owning_environment(graph: StageGraph, stage_node_id: str) -> GraphNode | None:
    """Find the environment node that causally precedes a stage.

    Depth-first over incoming edges in edge order: the first environment
    source reached wins. Each node is expanded at most once, so cyclic edge
    sets terminate; a node seen again counts as "not found via this path" and
    the search moves on to the next edge.

    Returns:
        The owning environment node, or None when the stage is not reachable
        from any environment.
    """
    incoming = graph.incoming_index()
    nodes_by_id = {node.id: node for node in graph.nodes}

    visited = {stage_node_id}
    # one iterator over incoming edges per node on the current path
    stack = [iter(incoming.get(stage_node_id, ()))]
    while stack:
        edge = next(stack[-1], None)
        if edge is None:
            stack.pop()
            continue

        source = nodes_by_id.get(edge.source)
        if source is None:
            continue
        if source.category.is_environment:
            return source
        if source.id in visited:
            continue

        visited.add(source.id)
        stack.append(iter(incoming.get(source.id, ())))

    return None


def participates_in_attribution(node: GraphNode) -> bool:
    """Only plan, approval and release stages are grouped by environment.

    Environment nodes themselves and code/build/test/deploy stages carry no
    operator-facing configuration and are left out.
    """
    return node.category.carries_operator_fields


def environment_name(environment: GraphNode) -> str:
    return environment.display_name


def group_by_environment(graph: StageGraph) -> dict[str, list[GraphNode]]:
    """Qualifying stages bucketed by owning environment name.

    Buckets appear in the order their first stage appears in the graph.
    Stages without an owning environment are left out.
    """
    groups: dict[str, list[GraphNode]] = {}
    for node in graph.nodes:
        if not participates_in_attribution(node):
            continue

        environment = resolve_owning_environment(graph, node.id)
        if environment is None:
            logger.debug("stage_unattributed", stage=node.display_name, type=node.type)
            continue

        groups.setdefault(environment_name(environment), []).append(node)
    return groups
