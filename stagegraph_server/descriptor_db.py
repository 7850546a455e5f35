"""SQLite storage for pipeline descriptor text."""

import sqlite3

from stagegraph.config import get_settings
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
            create table if not exists pipeline_yaml (
                template_id text primary key,
                yaml text not null,
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.commit()


def put_yaml(template_id: str, yaml_text: str) -> None:
    """insert or update a pipeline descriptor."""
    now = utc_timestamp()
    with _connect() as conn:
        conn.execute(
            """
            insert into pipeline_yaml (template_id, yaml, created_at, updated_at)
            values (?, ?, ?, ?)
            on conflict(template_id) do update set
                yaml = excluded.yaml,
                updated_at = excluded.updated_at
            """,
            (template_id, yaml_text, now, now),
        )
        conn.commit()


def get_yaml(template_id: str) -> str | None:
    with _connect() as conn:
        row = conn.execute(
            "select yaml from pipeline_yaml where template_id = ?",
            (template_id,),
        ).fetchone()
    if not row:
        return None
    return row["yaml"]


def list_yaml() -> dict[str, str]:
    with _connect() as conn:
        rows = conn.execute(
            "select template_id, yaml from pipeline_yaml order by updated_at desc"
        ).fetchall()
    return {row["template_id"]: row["yaml"] for row in rows}


def delete_yaml(template_id: str) -> None:
    with _connect() as conn:
        conn.execute("delete from pipeline_yaml where template_id = ?", (template_id,))
        conn.commit()


class SqliteDescriptorStore:
    """DescriptorStore over this module's table, for in-process callers."""

    def get(self, pipeline_id: str) -> str | None:
        return get_yaml(pipeline_id)

    def put(self, pipeline_id: str, text: str) -> None:
        put_yaml(pipeline_id, text)

    def delete(self, pipeline_id: str) -> None:
        delete_yaml(pipeline_id)

    def list_all(self) -> dict[str, str]:
        return list_yaml()
