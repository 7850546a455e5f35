"""In-memory stage graph: id-keyed nodes and dependency edges.

An edge `source -> target` means the target depends on the source (the source
must complete first). Node ids are stable for the lifetime of a graph and are
never reused by `add_node`.
"""

from collections import defaultdict

from pydantic import BaseModel, ConfigDict, Field, JsonValue, PrivateAttr, model_validator

from stagegraph.errors import UnknownNodeError
from stagegraph.models.category import Category, classify, default_label
from stagegraph.models.descriptor import Position, StageStatus
from stagegraph.models.notification_policy import NotificationPolicy
from stagegraph.utils.identifiers import edge_id, next_node_id, node_number


class GraphNode(BaseModel):
    """A stage on the canvas."""

    id: str = Field(frozen=True)
    type: str
    label: str = ""
    description: str | None = None
    config: dict[str, JsonValue] = Field(default_factory=dict)
    position: Position = Field(default_factory=lambda: Position(x=0, y=0))
    status: StageStatus | None = None
    duration: str | None = None
    notification_policy: NotificationPolicy | None = None

    @property
    def category(self) -> Category:
        return classify(self.type)

    @property
    def display_name(self) -> str:
        """Label, falling back to the stage type."""
        return self.label or self.type


class GraphEdge(BaseModel):
    """A dependency: `target` runs after `source`."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    target: str

    @model_validator(mode="before")
    @classmethod
    def _derive_id(cls, data):
        if isinstance(data, dict) and not data.get("id") and "source" in data and "target" in data:
            data = {**data, "id": edge_id(data["source"], data["target"])}
        return data


class StageGraph(BaseModel):
    """Ordered nodes and edges of one pipeline."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    # highest node number ever allocated, so removed ids are not handed out again
    _last_node_number: int = PrivateAttr(default=0)

    # --- queries ---

    def get_node(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def require_node(self, node_id: str) -> GraphNode:
        node = self.get_node(node_id)
        if node is None:
            raise UnknownNodeError(f"Node not found: {node_id}")
        return node

    def node_by_label(self, label: str) -> GraphNode | None:
        for node in self.nodes:
            if node.label == label:
                return node
        return None

    def incoming_edges(self, node_id: str) -> list[GraphEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    def outgoing_edges(self, node_id: str) -> list[GraphEdge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def incoming_index(self) -> dict[str, list[GraphEdge]]:
        """Edges grouped by target, each group in edge insertion order."""
        index: dict[str, list[GraphEdge]] = defaultdict(list)
        for edge in self.edges:
            index[edge.target].append(edge)
        return index

    # --- editing ---

    def add_node(
        self,
        stage_type: str,
        label: str | None = None,
        position: Position | None = None,
        **fields,
    ) -> GraphNode:
        """Append a node with the next free id.

        The label defaults to the catalog label, numbered ("Jira 2") when
        another node already uses it, so stage names stay unique.
        """
        new_id = next_node_id((existing.id for existing in self.nodes), floor=self._last_node_number)
        node = GraphNode(
            id=new_id,
            type=stage_type,
            label=self._free_label(default_label(stage_type)) if label is None else label,
            position=position or Position(x=0, y=0),
            **fields,
        )
        self.nodes.append(node)
        self._last_node_number = node_number(new_id)
        return node

    def _free_label(self, base: str) -> str:
        taken = {node.label for node in self.nodes}
        label, number = base, 1
        while label in taken:
            number += 1
            label = f"{base} {number}"
        return label

    def connect(self, source: str, target: str) -> GraphEdge:
        """Add a `source -> target` dependency; connecting the same pair twice is a no-op."""
        self.require_node(source)
        self.require_node(target)
        new_id = edge_id(source, target)
        for edge in self.edges:
            if edge.id == new_id:
                return edge
        edge = GraphEdge(id=new_id, source=source, target=target)
        self.edges.append(edge)
        return edge

    def disconnect(self, source: str, target: str) -> bool:
        """Remove the `source -> target` edge; returns whether one was removed."""
        before = len(self.edges)
        self.edges = [e for e in self.edges if not (e.source == source and e.target == target)]
        return len(self.edges) != before

    def remove_node(self, node_id: str) -> GraphNode:
        """Remove a node and every edge touching it."""
        node = self.require_node(node_id)
        self._last_node_number = max(self._last_node_number, node_number(node_id) or 0)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [e for e in self.edges if node_id not in (e.source, e.target)]
        return node
