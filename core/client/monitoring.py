"""Per-request observability records."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestRecord:
    """One outbound attempt to the authority."""

    method: str
    endpoint: str
    duration_ms: float
    status: int  # 0 when no response was received
    attempt: int = 1
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.status == 0 or self.status >= 400

    def __str__(self) -> str:
        return f"{self.method} {self.endpoint} - {self.status} ({self.duration_ms:.1f}ms)"


RequestObserver = Callable[[RequestRecord], None]


def log_request(record: RequestRecord) -> None:
    """Default observer: successful calls at DEBUG, failed ones at WARNING."""
    if record.failed:
        logger.warning("API call failed: %s (attempt %d)", record, record.attempt)
    else:
        logger.debug("API call: %s", record)


class RequestRecorder:
    """Observer that keeps every record in memory."""

    def __init__(self) -> None:
        self.records: list[RequestRecord] = []

    def __call__(self, record: RequestRecord) -> None:
        self.records.append(record)

    def for_endpoint(self, endpoint: str) -> list[RequestRecord]:
        return [r for r in self.records if r.endpoint == endpoint]

    def clear(self) -> None:
        self.records.clear()


def notify(observer: RequestObserver, record: RequestRecord) -> None:
    """Hand a record to an observer; observer failures never reach the caller."""
    try:
        observer(record)
    except Exception:
        logger.exception("Request observer failed for %s %s", record.method, record.endpoint)
