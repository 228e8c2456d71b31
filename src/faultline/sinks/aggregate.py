from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from faultline.events import FailureEvent

from .base import Sink


class NullSink(Sink):
    """Discards everything."""

    def on_condition(self, event: FailureEvent) -> None:
        pass

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        pass


class AggregateSink(Sink):
    """
    Ordered fan-out to several sinks.

    Every call is forwarded to every child, in registration order.

    Usage example
    -------------
        agg = AggregateSink([log_sink, remote_sink])
        agg.prepend(crash_page)
        agg.on_condition(event)   # crash_page, log_sink, remote_sink
    """

    def __init__(self, sinks: Optional[Iterable[Sink]] = None) -> None:
        self._sinks: List[Sink] = list(sinks or [])

    def append(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def prepend(self, sink: Sink) -> None:
        self._sinks.insert(0, sink)

    def __len__(self) -> int:
        return len(self._sinks)

    def __iter__(self) -> Iterator[Sink]:
        return iter(list(self._sinks))

    def on_condition(self, event: FailureEvent) -> None:
        for sink in list(self._sinks):
            sink.on_condition(event)

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        for sink in list(self._sinks):
            sink.on_raised(event, fatal)

    def flush(self) -> None:
        for sink in list(self._sinks):
            sink.flush()
