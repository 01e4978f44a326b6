"""ClickHouse event log for sign-in attempts.

Every state change of a sign-in attempt can be recorded as one row, with
the failure kind (`transport`, `http_status`, `decode`, ...) kept in its
own column so rejected requests and malformed responses stay separable.
If `clickhouse_driver` is unavailable or no host is configured this module
hands out a no-op logger.

Usage:
  from twitchauth.event_log import get_event_logger
  events = get_event_logger()
  events.log_sign_in_event("sign_in_started", attempt=1, state="awaiting_redirect")

Configuration via env:
  CLICKHOUSE_HOST, CLICKHOUSE_PORT, CLICKHOUSE_USER, CLICKHOUSE_PASSWORD, CLICKHOUSE_DB
"""

from __future__ import annotations

import json
import os
import queue
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

try:
    from clickhouse_driver import Client as CHClient
except Exception:  # pragma: no cover - optional dependency
    CHClient = None


CLICKHOUSE_DDL = [
    """
    CREATE TABLE IF NOT EXISTS twitchauth_events (
        ts DateTime64(3),
        event_type String,
        attempt UInt32,
        state String,
        error_kind Nullable(String),
        details String
    )
    ENGINE = MergeTree()
    PARTITION BY toYYYYMMDD(ts)
    ORDER BY (attempt, ts)
    TTL ts + INTERVAL 30 DAY
    """
]

_INSERT = (
    "INSERT INTO twitchauth_events (ts, event_type, attempt, state, error_kind, details) VALUES"
)


def _to_tuple(row: Dict[str, Any]) -> tuple:
    return (
        row.get("ts"),
        row.get("event_type"),
        int(row.get("attempt") or 0),
        row.get("state") or "",
        row.get("error_kind"),
        json.dumps(row.get("details") or {}),
    )


@dataclass
class EventLogger:
    client: Any | None
    database: Optional[str] = None

    def _insert(self, row: Dict[str, Any]) -> None:
        if not self.client:
            return
        try:
            self.client.execute(_INSERT, [_to_tuple(row)])
        except Exception:
            # the event log must never break a sign-in
            return

    def log_sign_in_event(
        self,
        event_type: str,
        attempt: int,
        state: str,
        error_kind: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        ts: Optional[datetime] = None,
    ) -> None:
        self._insert(
            {
                "ts": ts or datetime.now(timezone.utc),
                "event_type": event_type,
                "attempt": attempt,
                "state": state,
                "error_kind": error_kind,
                "details": extra or {},
            }
        )

    def close(self, timeout: Optional[float] = None) -> None:
        return


class BatchedEventLogger(EventLogger):
    """Event logger that batches inserts in a background thread.

    Flush policy: flush when the buffer reaches `batch_size` rows or when
    the oldest buffered row is `batch_time` seconds old, and once more on
    `close`.
    """

    def __init__(
        self,
        client: Any,
        database: Optional[str] = None,
        batch_size: int = 50,
        batch_time: int = 60,
    ) -> None:
        super().__init__(client=client, database=database)
        self.batch_size = int(batch_size)
        self.batch_time = int(batch_time)
        self._q: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        buf: List[Dict[str, Any]] = []
        first_ts: Optional[float] = None
        while not self._stop.is_set():
            if first_ts is None:
                timeout = 1.0
            else:
                remaining = self.batch_time - (time.time() - first_ts)
                timeout = min(1.0, max(0.0, remaining))
            try:
                item = self._q.get(timeout=timeout)
            except queue.Empty:
                if buf and first_ts is not None and (
                    time.time() - first_ts >= self.batch_time
                ):
                    self._flush(buf)
                    buf = []
                    first_ts = None
                continue
            buf.append(item)
            if first_ts is None:
                first_ts = time.time()
            if len(buf) >= self.batch_size:
                self._flush(buf)
                buf = []
                first_ts = None
        # drain remaining
        while True:
            try:
                buf.append(self._q.get_nowait())
            except queue.Empty:
                break
        if buf:
            self._flush(buf)

    def _flush(self, buf: List[Dict[str, Any]]) -> None:
        if not self.client:
            return
        try:
            self.client.execute(_INSERT, [_to_tuple(item) for item in buf])
        except Exception:
            return

    def _insert(self, row: Dict[str, Any]) -> None:
        self._q.put_nowait(row)

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop the worker and flush whatever is still buffered."""
        self._stop.set()
        self._thread.join(timeout=timeout)


def get_event_logger() -> EventLogger:
    """Return a batched logger bound to the configured ClickHouse host.

    Without `CLICKHOUSE_HOST` or the driver, return a no-op logger.
    """
    host = os.environ.get("CLICKHOUSE_HOST")
    if not host or CHClient is None:
        return EventLogger(client=None)

    port = int(os.environ.get("CLICKHOUSE_PORT", "9000"))
    user = os.environ.get("CLICKHOUSE_USER") or "default"
    password = os.environ.get("CLICKHOUSE_PASSWORD") or ""
    database = os.environ.get("CLICKHOUSE_DB")

    try:
        client = CHClient(
            host=host, port=port, user=user, password=password, database=database
        )
        for ddl in CLICKHOUSE_DDL:
            client.execute(ddl)
        return BatchedEventLogger(client=client, database=database)
    except Exception:
        return EventLogger(client=None)
