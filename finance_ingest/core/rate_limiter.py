"""
Rate Limiter

Sliding-window throttling per action type. Each action type keeps a JSON list
of request timestamps (epoch ms) under a namespaced key in a pluggable
counter store.

Check-and-record is a plain read-modify-write: two processes sharing a store
can both pass the same window.
"""
import json
import logging
import math
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from ..exceptions import RateLimitExceeded, RateLimiterStorageError

logger = logging.getLogger(__name__)

STORAGE_PREFIX = 'RATE_LIMIT_'

AI_REQUEST = 'AI_REQUEST'
PDF_UPLOAD = 'PDF_UPLOAD'
TRANSACTION_ADD = 'TRANSACTION_ADD'


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_ms: int
    error_message: str


DEFAULT_LIMITS: Dict[str, RateLimitConfig] = {
    AI_REQUEST: RateLimitConfig(
        max_requests=7,
        window_ms=60 * 1000,
        error_message="You're sending AI requests too fast. Please wait a moment.",
    ),
    PDF_UPLOAD: RateLimitConfig(
        max_requests=1,
        window_ms=3 * 60 * 1000,
        error_message="Please wait 3 minutes before uploading another bank statement.",
    ),
    TRANSACTION_ADD: RateLimitConfig(
        max_requests=30,
        window_ms=60 * 1000,
        error_message="Transaction limit reached. Please slow down.",
    ),
}


class CounterStore(Protocol):
    """Key/value string storage backing the limiter"""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryCounterStore:
    """Process-local store, mainly for tests"""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileCounterStore:
    """All keys in a single JSON document on disk"""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        tmp.replace(self.path)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


class PostgresCounterStore:
    """
    Counter store in a `rate_limits(key TEXT PRIMARY KEY, value TEXT)` table
    """

    def __init__(self, conn):
        """
        Args:
            conn: psycopg2 connection
        """
        self.conn = conn

    def get_item(self, key: str) -> Optional[str]:
        with self.conn.cursor() as cursor:
            cursor.execute("SELECT value FROM rate_limits WHERE key = %s", (key,))
            row = cursor.fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self.conn.cursor() as cursor:
            cursor.execute("""
                INSERT INTO rate_limits (key, value) VALUES (%s, %s)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
            """, (key, value))
        self.conn.commit()

    def remove_item(self, key: str) -> None:
        with self.conn.cursor() as cursor:
            cursor.execute("DELETE FROM rate_limits WHERE key = %s", (key,))
        self.conn.commit()


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """
    Sliding-window limiter over a CounterStore
    """

    def __init__(self,
                 storage: CounterStore,
                 limits: Optional[Dict[str, RateLimitConfig]] = None,
                 fail_open: bool = True,
                 clock: Optional[Callable[[], int]] = None):
        """
        Args:
            storage: Counter store
            limits: Action type -> config (default: DEFAULT_LIMITS)
            fail_open: Allow the action when the store fails (False re-raises)
            clock: Returns current epoch ms (default: wall clock)
        """
        self.storage = storage
        self.limits = limits if limits is not None else DEFAULT_LIMITS
        self.fail_open = fail_open
        self.clock = clock or _now_ms

    @staticmethod
    def key_for(action_type: str) -> str:
        return f"{STORAGE_PREFIX}{action_type}"

    def check_limit(self, action_type: str) -> None:
        """
        Record one request for action_type, or refuse it

        Raises:
            KeyError: Unknown action type
            RateLimitExceeded: Window already holds max_requests timestamps
            RateLimiterStorageError: Store failed and fail_open is False
        """
        config = self.limits[action_type]
        key = self.key_for(action_type)
        now = self.clock()

        try:
            raw = self.storage.get_item(key)
            timestamps = json.loads(raw) if raw else []
            if not isinstance(timestamps, list) or not all(
                    isinstance(ts, (int, float)) and not isinstance(ts, bool) for ts in timestamps):
                raise ValueError(f"Malformed rate limit window under {key}")
        except Exception as e:
            self._storage_failed(action_type, e)
            return

        timestamps = [ts for ts in timestamps if now - ts < config.window_ms]

        if len(timestamps) >= config.max_requests:
            oldest = min(timestamps)
            wait_seconds = max(1, math.ceil((config.window_ms - (now - oldest)) / 1000))
            raise RateLimitExceeded(action_type, wait_seconds, config.error_message)

        timestamps.append(now)

        try:
            self.storage.set_item(key, json.dumps(timestamps))
        except Exception as e:
            self._storage_failed(action_type, e)

    def _storage_failed(self, action_type: str, error: Exception) -> None:
        if not self.fail_open:
            raise RateLimiterStorageError(f"Rate limiter store failed for {action_type}: {error}") from error
        logger.warning("⚠️  Rate limiter store failed for %s, allowing request: %s", action_type, error)

    def reset_limit(self, action_type: str) -> None:
        """Clear the stored window for action_type"""
        self.storage.remove_item(self.key_for(action_type))
