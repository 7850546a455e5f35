"""SQLite storage for pipeline-wide notification policy maps."""

import sqlite3

from stagegraph.config import get_settings
from stagegraph.models.notification_policy import POLICY_MAP_ADAPTER, PolicyMap
from stagegraph.utils.identifiers import utc_timestamp


def _connect() -> sqlite3.Connection:
    db_path = get_settings().db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.execute(
            """
            create table if not exists notification_policies (
                pipeline_id text primary key,
                policies_json text not null,
                updated_at text not null
            )
            """
        )
        conn.commit()


def put_policies(pipeline_id: str, policies: PolicyMap) -> None:
    """replace the whole policy map of a pipeline."""
    with _connect() as conn:
        conn.execute(
            """
            insert into notification_policies (pipeline_id, policies_json, updated_at)
            values (?, ?, ?)
            on conflict(pipeline_id) do update set
                policies_json = excluded.policies_json,
                updated_at = excluded.updated_at
            """,
            (
                pipeline_id,
                POLICY_MAP_ADAPTER.dump_json(policies).decode("utf-8"),
                utc_timestamp(),
            ),
        )
        conn.commit()


def get_policies(pipeline_id: str) -> PolicyMap:
    with _connect() as conn:
        row = conn.execute(
            "select policies_json from notification_policies where pipeline_id = ?",
            (pipeline_id,),
        ).fetchone()
    if not row:
        return {}
    return POLICY_MAP_ADAPTER.validate_json(row["policies_json"])


class SqlitePolicySink:
    """PolicySink writing straight to this module's table."""

    def save(self, pipeline_id: str, policies: PolicyMap) -> None:
        put_policies(pipeline_id, policies)
