from __future__ import annotations

from typing import Any, Callable, Dict, List, Sequence, Tuple

import pytest

from faultline.events import FailureEvent, Severity
from faultline.sinks import Sink


class RecordingSink(Sink):
    """Keeps every call it receives, in order."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any]] = []

    def on_condition(self, event: FailureEvent) -> None:
        self.calls.append(("condition", event))

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        self.calls.append(("raised", (event, fatal)))

    def flush(self) -> None:
        self.calls.append(("flush", None))

    def events(self) -> List[FailureEvent]:
        out: List[FailureEvent] = []
        for kind, payload in self.calls:
            if kind == "condition":
                out.append(payload)
            elif kind == "raised":
                out.append(payload[0])
        return out

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)


class FakeNotifier:
    """Crash-report transport that keeps every batch; optionally fails after recording."""

    def __init__(self, *, fail: bool = False) -> None:
        self.batches: List[List[Dict[str, Any]]] = []
        self.fail = fail

    def deliver(self, batch: Sequence[Dict[str, Any]]) -> None:
        self.batches.append(list(batch))
        if self.fail:
            raise ConnectionError("tracker unreachable")


@pytest.fixture
def recorder() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_condition() -> Callable[..., FailureEvent]:
    def _make(
        severity: int = Severity.USER_NOTICE,
        message: str = "something odd",
        file: str = "app.py",
        line: int = 10,
    ) -> FailureEvent:
        return FailureEvent.condition(severity, message, file, line)

    return _make


@pytest.fixture
def raised_event() -> FailureEvent:
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        return FailureEvent.from_exception(exc, fatal_at_origin=True)
