"""
Persistence contract

The pipeline only needs a store that can:
- hand out write batches (`set(doc_id, record)` + `commit()`)
- report signatures of transactions already stored
- merge newly created categories into the user's category list

Writes are keyed by deterministic document ids, so writing the same id twice
overwrites instead of duplicating.
"""
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from psycopg2.extras import Json, execute_batch

from .models import Category
from .signature import transaction_signature

logger = logging.getLogger(__name__)

# Backend batch-size ceiling (Firestore-style stores cap at 500)
MAX_BATCH_WRITES = 450


class WriteBatch(Protocol):
    def set(self, doc_id: str, record: Dict) -> None: ...

    def commit(self) -> None: ...


class TransactionStore(Protocol):
    def batch(self) -> WriteBatch: ...

    def existing_signatures(self) -> Set[str]: ...

    def load_categories(self) -> List[Category]: ...

    def merge_categories(self, categories: Iterable[Category]) -> None: ...


class BatchWriter:
    """
    Buffers writes and commits every `limit` writes

    Usage:
        writer = BatchWriter(store)
        writer.set('SMS_1', record)
        writer.flush()
    """

    def __init__(self, store: TransactionStore, limit: int = MAX_BATCH_WRITES):
        self.store = store
        self.limit = limit
        self.batch = store.batch()
        self.pending = 0
        self.written = 0
        self.commits = 0

    def set(self, doc_id: str, record: Dict) -> None:
        self.batch.set(doc_id, record)
        self.pending += 1
        if self.pending >= self.limit:
            self.flush()

    def flush(self) -> None:
        if self.pending == 0:
            return
        self.batch.commit()
        self.commits += 1
        self.written += self.pending
        logger.debug("Committed batch of %d writes", self.pending)
        self.batch = self.store.batch()
        self.pending = 0


class _InMemoryBatch:
    def __init__(self, store: 'InMemoryTransactionStore'):
        self.store = store
        self.writes: List[Tuple[str, Dict]] = []

    def set(self, doc_id: str, record: Dict) -> None:
        self.writes.append((doc_id, record))

    def commit(self) -> None:
        for doc_id, record in self.writes:
            self.store.documents[doc_id] = record
        self.store.commit_sizes.append(len(self.writes))
        self.writes = []


class InMemoryTransactionStore:
    """Dict-backed store for tests and dry runs"""

    def __init__(self, categories: Optional[Iterable[Category]] = None):
        self.documents: Dict[str, Dict] = {}
        self.categories: List[Category] = list(categories or [])
        self.commit_sizes: List[int] = []

    def batch(self) -> _InMemoryBatch:
        return _InMemoryBatch(self)

    def existing_signatures(self) -> Set[str]:
        return {transaction_signature(r) for r in self.documents.values()}

    def load_categories(self) -> List[Category]:
        return list(self.categories)

    def merge_categories(self, categories: Iterable[Category]) -> None:
        for cat in categories:
            if not any(existing.matches(cat.label) for existing in self.categories):
                self.categories.append(cat)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS transactions (
    doc_id      TEXT PRIMARY KEY,
    signature   TEXT NOT NULL,
    record      JSONB NOT NULL,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_transactions_signature ON transactions (signature);

CREATE TABLE IF NOT EXISTS categories (
    id          TEXT PRIMARY KEY,
    label       TEXT NOT NULL,
    record      JSONB NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_categories_label ON categories (LOWER(label));

CREATE TABLE IF NOT EXISTS rate_limits (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL
);
"""


def init_schema(conn) -> None:
    """Create the pipeline's tables"""
    cursor = conn.cursor()
    try:
        cursor.execute(SCHEMA_SQL)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()


class _PostgresBatch:
    def __init__(self, conn):
        self.conn = conn
        self.rows: List[Tuple[str, str, Json]] = []

    def set(self, doc_id: str, record: Dict) -> None:
        self.rows.append((doc_id, transaction_signature(record), Json(record)))

    def commit(self) -> None:
        cursor = self.conn.cursor()
        try:
            execute_batch(cursor, """
                INSERT INTO transactions (doc_id, signature, record)
                VALUES (%s, %s, %s)
                ON CONFLICT (doc_id) DO UPDATE
                SET signature = EXCLUDED.signature,
                    record = EXCLUDED.record,
                    updated_at = NOW()
            """, self.rows)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()
        self.rows = []


class PostgresTransactionStore:
    """
    PostgreSQL store: one JSONB record per document id
    """

    def __init__(self, conn):
        """
        Args:
            conn: psycopg2 connection (see utils.db_connection)
        """
        self.conn = conn

    def batch(self) -> _PostgresBatch:
        return _PostgresBatch(self.conn)

    def existing_signatures(self) -> Set[str]:
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT signature FROM transactions")
            return {row[0] for row in cursor.fetchall()}
        finally:
            cursor.close()

    def load_categories(self) -> List[Category]:
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT record FROM categories ORDER BY label")
            return [Category.from_dict(row[0]) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def merge_categories(self, categories: Iterable[Category]) -> None:
        rows = [(c.id, c.label, Json(c.to_dict())) for c in categories]
        if not rows:
            return

        cursor = self.conn.cursor()
        try:
            # Labels already present (any casing) are left untouched
            execute_batch(cursor, """
                INSERT INTO categories (id, label, record)
                VALUES (%s, %s, %s)
                ON CONFLICT DO NOTHING
            """, rows)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        finally:
            cursor.close()
