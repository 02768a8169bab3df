"""PostgreSQL-backed list store."""
import psycopg2
from typing import Optional
from contextlib import contextmanager

from wa_webhook.errors import QueueStoreError
from wa_webhook.logging_conf import logger
from wa_webhook.queue.store import ListStore


class PostgresListStore(ListStore):
    """Lists kept as rows of one table, ordered by a bigserial id."""

    TABLE = "webhook_queue_entries"

    def __init__(self, dsn: str):
        self.dsn = dsn
        self._conn = None
        self._schema_ready = False

    @property
    def conn(self):
        """Get or create database connection."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.dsn)
            self._schema_ready = False
        return self._conn

    def close(self):
        """Close database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()
            self._conn = None

    @contextmanager
    def cursor(self):
        """Cursor with auto-commit/rollback; psycopg2 errors become QueueStoreError."""
        try:
            conn = self.conn
            self._ensure_schema(conn)
            cur = conn.cursor()
        except psycopg2.Error as e:
            raise QueueStoreError(f"Database unavailable: {e}") from e
        try:
            yield cur
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise QueueStoreError(f"Queue query failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()

    def push(self, key: str, value: str) -> None:
        with self.cursor() as cur:
            cur.execute(
                f"INSERT INTO {self.TABLE} (list_key, body) VALUES (%s, %s)",
                (key, value),
            )

    def pop(self, key: str) -> Optional[str]:
        # SKIP LOCKED lets concurrent workers each take a different head row
        with self.cursor() as cur:
            cur.execute(f"""
                DELETE FROM {self.TABLE}
                WHERE id = (
                    SELECT id FROM {self.TABLE}
                    WHERE list_key = %s
                    ORDER BY id ASC
                    FOR UPDATE SKIP LOCKED
                    LIMIT 1
                )
                RETURNING body
            """, (key,))
            row = cur.fetchone()
        return row[0] if row else None

    def length(self, key: str) -> int:
        with self.cursor() as cur:
            cur.execute(f"SELECT COUNT(*) FROM {self.TABLE} WHERE list_key = %s", (key,))
            return int(cur.fetchone()[0])

    def _ensure_schema(self, conn) -> None:
        if self._schema_ready:
            return
        with conn.cursor() as cur:
            cur.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.TABLE} (
                    id BIGSERIAL PRIMARY KEY,
                    list_key TEXT NOT NULL,
                    body TEXT NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS {self.TABLE}_list_key_id_idx "
                f"ON {self.TABLE} (list_key, id)"
            )
        conn.commit()
        self._schema_ready = True
        logger.debug(f"Ensured queue table {self.TABLE}")
