"""ID generation and timestamp utilities."""

import re
from collections.abc import Iterable
from datetime import datetime, timezone

NODE_ID_PREFIX = "node-"

_NODE_ID_RE = re.compile(r"^node-(\d+)$")


def positional_node_id(index: int) -> str:
    """Node id for the stage at a zero-based descriptor position."""
    return f"{NODE_ID_PREFIX}{index + 1}"


def node_number(node_id: str) -> int | None:
    """Numeric suffix of a `node-<n>` id, None for other ids."""
    match = _NODE_ID_RE.match(node_id)
    return int(match.group(1)) if match else None


def next_node_id(existing_ids: Iterable[str], floor: int = 0) -> str:
    """Next free `node-<n>` id, one past the highest numbered id in use (or `floor`)."""
    highest = floor
    for node_id in existing_ids:
        number = node_number(node_id)
        if number is not None:
            highest = max(highest, number)
    return f"{NODE_ID_PREFIX}{highest + 1}"


def edge_id(source: str, target: str) -> str:
    """Deterministic edge id for a source -> target dependency."""
    return f"edge-{source}-{target}"


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
