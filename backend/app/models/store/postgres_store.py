# backend/app/models/store/postgres_store.py
from __future__ import annotations
from typing import Dict, List
import logging

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from app.core.entities import OwnerSummary, SearchHit
from app.core.ports.store import (
    DocumentStoreError,
    IDocumentStore,
    validate_filters,
    validate_scope,
)
from app.db.session import DatabasePool

logger = logging.getLogger("app.store.postgres")

_COLUMNS = (
    "device_id", "subdirectory", "full_path", "file_name",
    "extracted_text", "html_content", "folder_hash", "timestamp",
)

# -----------------------------
# DDL
# -----------------------------
_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS {table} (
        id              BIGSERIAL PRIMARY KEY,
        device_id       TEXT NOT NULL,
        subdirectory    TEXT NOT NULL DEFAULT '',
        full_path       TEXT NOT NULL,
        file_name       TEXT NOT NULL,
        extracted_text  TEXT NOT NULL DEFAULT '',
        html_content    TEXT,
        folder_hash     TEXT NOT NULL DEFAULT '',
        "timestamp"     TIMESTAMPTZ NOT NULL DEFAULT now(),
        tsv             TSVECTOR GENERATED ALWAYS AS (
            to_tsvector('simple', coalesce(file_name, '') || ' ' || coalesce(extracted_text, ''))
        ) STORED
    );
"""
_CREATE_OWNER_IDX = "CREATE INDEX IF NOT EXISTS {name} ON {table} (device_id, folder_hash);"
_CREATE_TSV_IDX = "CREATE INDEX IF NOT EXISTS {name} ON {table} USING GIN (tsv);"


def _where(filters: Dict[str, str]) -> tuple[sql.Composable, list]:
    if not filters:
        return sql.SQL("TRUE"), []
    parts = [sql.SQL("{} = %s").format(sql.Identifier(k)) for k in filters]
    return sql.SQL(" AND ").join(parts), list(filters.values())


def clean_value(value):
    # TEXT columns reject NUL characters
    return value.replace("\x00", "") if isinstance(value, str) else value


def _row_to_source(row: dict) -> dict:
    out = {k: row.get(k) for k in _COLUMNS}
    ts = out.get("timestamp")
    if ts is not None and not isinstance(ts, str):
        out["timestamp"] = ts.isoformat()
    out["_id"] = str(row["id"])
    return out


class PostgresDocumentStore(IDocumentStore):
    """
    Full-text document store on Postgres. Each scope is one table inside a
    dedicated schema; text search runs on a generated tsvector column.
    """

    def __init__(self, schema: str = "ingest"):
        self.schema = schema

    def _table(self, scope: str) -> sql.Identifier:
        return sql.Identifier(self.schema, validate_scope(scope))

    def _run(self, stmt: sql.Composable, params: list | tuple = (), *, fetch: str = "none"):
        if not DatabasePool.pool:
            DatabasePool.init()
        try:
            with DatabasePool.pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(stmt, params)
                    if fetch == "all":
                        return cur.fetchall()
                    if fetch == "one":
                        return cur.fetchone()
                    return cur.rowcount
        except psycopg.Error as e:
            raise DocumentStoreError(f"Postgres request failed: {e}") from e
        except Exception as e:
            # pool timeouts and connection setup failures
            raise DocumentStoreError(f"Document store unavailable: {e}") from e

    # ----------------------------------------------------------
    # 📁 Scopes
    # ----------------------------------------------------------
    def exists(self, scope: str) -> bool:
        row = self._run(
            sql.SQL("SELECT to_regclass(%s) IS NOT NULL AS present;"),
            (f'"{self.schema}"."{validate_scope(scope)}"',),
            fetch="one",
        )
        return bool(row and row["present"])

    def create(self, scope: str) -> None:
        table = self._table(scope)
        self._run(sql.SQL("CREATE SCHEMA IF NOT EXISTS {};").format(sql.Identifier(self.schema)))
        self._run(sql.SQL(_CREATE_TABLE).format(table=table))
        self._run(sql.SQL(_CREATE_OWNER_IDX).format(
            name=sql.Identifier(f"{scope}_owner_fp_idx"), table=table))
        self._run(sql.SQL(_CREATE_TSV_IDX).format(
            name=sql.Identifier(f"{scope}_tsv_idx"), table=table))
        logger.info(f"✅ Created scope table {self.schema}.{scope}")

    def delete(self, scope: str) -> None:
        self._run(sql.SQL("DROP TABLE {};").format(self._table(scope)))
        logger.info(f"🗑️ Dropped scope table {self.schema}.{scope}")

    def list_scopes(self) -> List[str]:
        rows = self._run(
            sql.SQL("SELECT table_name FROM information_schema.tables "
                    "WHERE table_schema = %s ORDER BY table_name;"),
            (self.schema,),
            fetch="all",
        )
        return [r["table_name"] for r in rows]

    # ----------------------------------------------------------
    # 📄 Documents
    # ----------------------------------------------------------
    def index_document(self, scope: str, doc: dict) -> str:
        cols = [c for c in _COLUMNS if doc.get(c) is not None]
        stmt = sql.SQL("INSERT INTO {table} ({cols}) VALUES ({vals}) RETURNING id;").format(
            table=self._table(scope),
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
            vals=sql.SQL(", ").join(sql.Placeholder() for _ in cols),
        )
        row = self._run(stmt, [clean_value(doc[c]) for c in cols], fetch="one")
        return str(row["id"])

    def query(self, scope: str, filters: Dict[str, str], size: int = 1000) -> List[dict]:
        where, params = _where(validate_filters(filters))
        stmt = sql.SQL('SELECT * FROM {table} WHERE {where} ORDER BY "timestamp" DESC LIMIT %s;').format(
            table=self._table(scope), where=where)
        rows = self._run(stmt, params + [size], fetch="all")
        return [_row_to_source(r) for r in rows]

    def count(self, scope: str, filters: Dict[str, str]) -> int:
        where, params = _where(validate_filters(filters))
        stmt = sql.SQL("SELECT count(*) AS n FROM {table} WHERE {where};").format(
            table=self._table(scope), where=where)
        row = self._run(stmt, params, fetch="one")
        return int(row["n"])

    def delete_by_filter(self, scope: str, filters: Dict[str, str]) -> int:
        where, params = _where(validate_filters(filters))
        stmt = sql.SQL("DELETE FROM {table} WHERE {where};").format(
            table=self._table(scope), where=where)
        deleted = int(self._run(stmt, params))
        logger.info(f"🗑️ Deleted {deleted} document(s) from {scope} where {filters}")
        return deleted

    def search(self, scope: str, text: str, phrase: bool = False, size: int = 50) -> List[SearchHit]:
        fn = "phraseto_tsquery" if phrase else "plainto_tsquery"
        stmt = sql.SQL("""
            SELECT *, ts_rank(tsv, q) AS score,
                   ts_headline('simple', extracted_text, q) AS headline
            FROM {table}, {fn}('simple', %s) AS q
            WHERE tsv @@ q
            ORDER BY score DESC
            LIMIT %s;
        """).format(table=self._table(scope), fn=sql.SQL(fn))
        rows = self._run(stmt, (text, size), fetch="all")
        return [
            SearchHit(doc_id=str(r["id"]), score=float(r["score"]),
                      source={k: v for k, v in _row_to_source(r).items() if k != "_id"},
                      highlight=[r["headline"]] if r.get("headline") else [])
            for r in rows
        ]

    def summarize_owners(self, scope: str) -> List[OwnerSummary]:
        stmt = sql.SQL("""
            SELECT device_id,
                   count(*) AS file_count,
                   min("timestamp") AS first_indexed,
                   max("timestamp") AS last_indexed,
                   min(folder_hash) AS folder_hash
            FROM {table}
            GROUP BY device_id
            ORDER BY file_count DESC;
        """).format(table=self._table(scope))
        rows = self._run(stmt, fetch="all")
        return [
            OwnerSummary(
                owner=r["device_id"],
                file_count=int(r["file_count"]),
                first_indexed=r["first_indexed"].isoformat() if r["first_indexed"] else None,
                last_indexed=r["last_indexed"].isoformat() if r["last_indexed"] else None,
                fingerprint=r["folder_hash"] or None,
            )
            for r in rows
        ]

    def sample(self, scope: str, size: int = 10) -> List[dict]:
        stmt = sql.SQL("SELECT * FROM {table} ORDER BY id LIMIT %s;").format(table=self._table(scope))
        return [_row_to_source(r) for r in self._run(stmt, (size,), fetch="all")]
