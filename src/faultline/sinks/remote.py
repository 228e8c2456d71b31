from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from faultline.events import FailureEvent, SeverityClass
from faultline.memory import raise_memory_ceiling

from .base import Sink

logger = logging.getLogger(__name__)

Notification = Dict[str, Any]


class Notifier(Protocol):
    """Remote crash-report transport: delivers one batch per call."""

    def deliver(self, batch: Sequence[Notification]) -> None:
        ...


class HttpNotifier:
    """
    POST batches as JSON to a crash-report endpoint.

    Usage example
    -------------
        notifier = HttpNotifier("https://errors.example.com/v1/events", api_key="...")
    """

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str = "",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def deliver(self, batch: Sequence[Notification]) -> None:
        response = self.session.post(
            self.endpoint,
            json={"apiKey": self.api_key, "events": list(batch)},
            timeout=self.timeout,
        )
        response.raise_for_status()


def severity_tag(event: FailureEvent, fatal: bool) -> str:
    if fatal:
        return "error"
    cls = event.severity_class
    if cls in (SeverityClass.FATAL, SeverityClass.RECOVERABLE_ERROR):
        return "error"
    if cls == SeverityClass.WARNING:
        return "warning"
    return "info"


def _frames(event: FailureEvent) -> List[Dict[str, Any]]:
    # Crash trackers expect the innermost frame first.
    return [
        {"file": f.file, "lineNumber": f.line, "method": f.function, "code": f.source}
        for f in reversed(event.stack)
    ]


def build_notification(event: FailureEvent, fatal: bool) -> Notification:
    """Flatten an event into the JSON-ready shape sent to the crash tracker."""
    return {
        "errorClass": event.code,
        "message": event.message,
        "severity": severity_tag(event, fatal),
        "unhandled": fatal,
        "kind": event.kind.value,
        "file": event.location.file,
        "line": event.location.line,
        "stacktrace": _frames(event),
        "causes": [
            {"errorClass": c.code, "message": c.message, "file": c.location.file, "line": c.location.line}
            for c in event.causes()
        ],
        "context": {k: repr(v) for k, v in event.context.items()},
        "metadata": dict(event.metadata),
    }


class RemoteCrashReport(Sink):
    """
    Buffer one notification per event; deliver them all in one batch on ``flush``.

    The buffer is swapped out before delivery, so a second flush never sends
    the same notification twice, including when delivery fails.
    """

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self._pending: List[Notification] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _buffer(self, event: FailureEvent, fatal: bool) -> None:
        raise_memory_ceiling()
        self._pending.append(build_notification(event, fatal))

    def on_condition(self, event: FailureEvent) -> None:
        self._buffer(event, event.is_fatal)

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        self._buffer(event, fatal)

    def flush(self) -> None:
        if not self._pending:
            return
        batch, self._pending = self._pending, []
        try:
            self.notifier.deliver(batch)
        except Exception:
            logger.exception("Crash report delivery failed (%d notifications dropped)", len(batch))
