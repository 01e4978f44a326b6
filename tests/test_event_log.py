from datetime import datetime, timezone

from twitchauth.event_log import BatchedEventLogger, EventLogger, get_event_logger


class FakeClient:
    def __init__(self):
        self.rows = []

    def execute(self, query, rows=None):
        if rows is not None:
            self.rows.extend(rows)


class BrokenClient:
    def execute(self, query, rows=None):
        raise RuntimeError("clickhouse down")


def test_noop_logger_without_host(monkeypatch):
    monkeypatch.delenv("CLICKHOUSE_HOST", raising=False)
    logger = get_event_logger()
    assert logger.client is None
    logger.log_sign_in_event("sign_in_started", 1, "awaiting_redirect")


def test_direct_insert_row_shape():
    fake = FakeClient()
    logger = EventLogger(client=fake)
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    logger.log_sign_in_event(
        "sign_in_failed", 3, "errored", error_kind="decode", extra={"message": "x"}, ts=ts
    )
    assert fake.rows == [(ts, "sign_in_failed", 3, "errored", "decode", '{"message": "x"}')]


def test_insert_errors_are_swallowed():
    EventLogger(client=BrokenClient()).log_sign_in_event("sign_in_started", 1, "idle")


def test_batched_logger_flushes_on_size_and_close():
    fake = FakeClient()
    logger = BatchedEventLogger(client=fake, batch_size=2, batch_time=60)

    for i in range(3):
        logger.log_sign_in_event("sign_in_started", i + 1, "awaiting_redirect")

    logger.close(timeout=5)
    assert [row[2] for row in fake.rows] == [1, 2, 3]
