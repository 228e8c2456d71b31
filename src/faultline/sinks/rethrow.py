from __future__ import annotations

import logging
import os
from typing import Callable

from faultline.events import ConditionRaised, FailureEvent, Severity

from .base import Sink, SinkDecorator

logger = logging.getLogger(__name__)

# Exit status used when rethrowing is unsafe and the process must stop.
UNSAFE_RETHROW_EXIT_CODE = 255


class RethrowAsException(SinkDecorator):
    """
    Turn non-fatal conditions into a raised ``ConditionRaised``.

    Parameters
    ----------
    inner
        Sink receiving everything that is not rethrown.
    rethrow_unsafe
        Set when the hosting runtime cannot unwind safely out of its own
        condition handler. Runtime-originated conditions are then reported as
        fatal, the inner sink is flushed and the process terminates instead
        of raising. User-originated conditions are still raised.
    only_enabled
        If True, conditions whose severity is not in ``reporting_mask()`` are
        forwarded instead of raised.
    reporting_mask
        Returns the currently enabled severity bits.
    terminate
        Process exit function, ``os._exit`` by default.

    Notes
    -----
    Fatal conditions are always forwarded: the process is already going down.

    Usage example
    -------------
        sink = RethrowAsException(inner)
        sink.on_condition(notice)   # raises ConditionRaised(notice)
    """

    def __init__(
        self,
        inner: Sink,
        *,
        rethrow_unsafe: bool = False,
        only_enabled: bool = False,
        reporting_mask: Callable[[], int] = lambda: int(Severity.ALL),
        terminate: Callable[[int], object] = os._exit,
    ) -> None:
        super().__init__(inner)
        self.rethrow_unsafe = rethrow_unsafe
        self.only_enabled = only_enabled
        self._reporting_mask = reporting_mask
        self._terminate = terminate

    def on_condition(self, event: FailureEvent) -> None:
        if event.is_fatal:
            self.inner.on_condition(event)
            return

        if self.only_enabled and not (event.severity & self._reporting_mask()):
            self.inner.on_condition(event)
            return

        if self.rethrow_unsafe and not event.is_user_originated:
            logger.debug("Cannot raise %s from the condition handler; terminating", event.code)
            self.inner.on_raised(event, True)
            self.inner.flush()
            self._terminate(UNSAFE_RETHROW_EXIT_CODE)
            return

        raise ConditionRaised(event)
