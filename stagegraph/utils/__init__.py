"""Utility functions for stagegraph."""

from stagegraph.utils.identifiers import (
    edge_id,
    next_node_id,
    positional_node_id,
    utc_timestamp,
)

__all__ = [
    "edge_id",
    "next_node_id",
    "positional_node_id",
    "utc_timestamp",
]
