"""Decorators that decide whether an event reaches the inner sink.

None of these ever suppresses a fatal event.
"""

from __future__ import annotations

from typing import Callable, Optional, Set

import numpy as np

from faultline.events import FailureEvent, Severity

from .base import Sink, SinkDecorator

UniformSource = Callable[[], float]


class FilterBySeverityMask(SinkDecorator):
    """
    Forward a condition only if its severity intersects ``mask``.

    Usage example
    -------------
        sink = FilterBySeverityMask(inner, Severity.ALL & ~Severity.DEPRECATED)
    """

    def __init__(self, inner: Sink, mask: int = Severity.ALL) -> None:
        super().__init__(inner)
        self.mask = int(mask)

    def on_condition(self, event: FailureEvent) -> None:
        if event.is_fatal or (event.severity & self.mask):
            self.inner.on_condition(event)


class FilterByProbability(SinkDecorator):
    """
    Forward each non-fatal condition independently with ``probability``.

    Parameters
    ----------
    inner
        Sink receiving sampled events.
    probability
        Chance in ``[0, 1]`` that a non-fatal condition is forwarded.
    rng
        Zero-argument callable returning uniform floats in ``[0, 1)``.
        Defaults to a fresh ``numpy.random.Generator``.
    """

    def __init__(self, inner: Sink, probability: float, rng: Optional[UniformSource] = None) -> None:
        super().__init__(inner)
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be within [0, 1], got {probability!r}")
        self.probability = float(probability)
        self._rng: UniformSource = rng if rng is not None else np.random.default_rng().random

    def on_condition(self, event: FailureEvent) -> None:
        if event.is_fatal or self._rng() < self.probability:
            self.inner.on_condition(event)


class DeduplicateRepeated(SinkDecorator):
    """
    Suppress non-fatal events already seen during this process's lifetime.

    Events are identified by ``FailureEvent.fingerprint`` (kind, severity,
    code, message, file, line). Fatal events always pass and are not recorded.
    """

    def __init__(self, inner: Sink) -> None:
        super().__init__(inner)
        self._seen: Set[str] = set()

    def _first_time(self, event: FailureEvent, fatal: bool) -> bool:
        if fatal:
            return True
        fingerprint = event.fingerprint
        if fingerprint in self._seen:
            return False
        self._seen.add(fingerprint)
        return True

    def on_condition(self, event: FailureEvent) -> None:
        if self._first_time(event, event.is_fatal):
            self.inner.on_condition(event)

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        if self._first_time(event, fatal):
            self.inner.on_raised(event, fatal)

    def seen_count(self) -> int:
        return len(self._seen)
