from __future__ import annotations

from abc import ABC, abstractmethod

from faultline.events import FailureEvent


class Sink(ABC):
    """
    Capability implemented by every member of a handler chain.

    A sink receives conditions (recoverable runtime signals) and raised
    events (exception objects), and is flushed once at end of life.
    ``flush`` must tolerate being called more than once without re-delivering
    anything it already delivered.
    """

    @abstractmethod
    def on_condition(self, event: FailureEvent) -> None:
        ...

    @abstractmethod
    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        ...

    def flush(self) -> None:
        pass


class SinkDecorator(Sink):
    """A sink owning exactly one inner sink; forwards everything unless overridden."""

    def __init__(self, inner: Sink) -> None:
        self.inner = inner

    def on_condition(self, event: FailureEvent) -> None:
        self.inner.on_condition(event)

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        self.inner.on_raised(event, fatal)

    def flush(self) -> None:
        self.inner.flush()
