"""database initialization helpers."""

from stagegraph_server.descriptor_db import init_db as init_descriptor_db
from stagegraph_server.policy_db import init_db as init_policy_db


def init_all() -> None:
    """initialize all sqlite tables."""
    init_descriptor_db()
    init_policy_db()
