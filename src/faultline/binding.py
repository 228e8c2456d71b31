"""
Process-level interception: warnings, uncaught exceptions and interpreter exit.

One ``HostBinding`` owns the hooks the interpreter offers for reporting
failures and turns each signal into a ``FailureEvent`` for a single root sink:

- ``warnings.showwarning`` receives every warning that passes the warnings
  filters; it becomes a condition.
- ``sys.excepthook`` receives exceptions that reached the top level; they
  become fatal raised events.
- an ``atexit`` hook delivers anything fatal that did not go through the
  hooks above and then flushes the root sink, exactly once.

Usage example
-------------
    binding = bind(build_chain(cfg, logger=logger))
    binding.trigger("cache is cold", Severity.USER_NOTICE)
"""

from __future__ import annotations

import atexit
import logging
import sys
import warnings
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Callable, List, Optional, TextIO, Type

from faultline.events import (
    ConditionRaised,
    FailureEvent,
    Frame,
    Severity,
    capture_stack,
    is_user_originated,
    severity_for_warning,
    severity_name,
)
from faultline.memory import raise_memory_ceiling
from faultline.sinks.base import Sink

logger = logging.getLogger(__name__)

ShowWarning = Callable[..., None]
ExceptHook = Callable[[Type[BaseException], BaseException, Optional[TracebackType]], Any]

_PLATFORM_SHOWWARNING: ShowWarning = warnings.showwarning
_WARNINGS_FILE = warnings.__file__


@dataclass
class HostBindingState:
    """
    Mutable state of one binding.

    ``exit_hook_registered`` and ``flushed`` only ever go from False to True:
    the exit hook is registered once per state and the root sink is flushed
    at most once, however many times ``bind`` is called.
    ``roots`` keeps every sink ever bound, in bind order; each is flushed at
    exit so a replaced root does not lose what it buffered.
    """

    root: Optional[Sink] = None
    roots: List[Sink] = field(default_factory=list)
    bound: bool = False
    exit_hook_registered: bool = False
    flushed: bool = False
    handling: bool = False
    reporting_mask: int = int(Severity.ALL)

    last_condition: Optional[FailureEvent] = None
    last_condition_delivered: bool = False
    last_delivered: Optional[BaseException] = None

    previous_showwarning: Optional[ShowWarning] = None
    previous_excepthook: Optional[ExceptHook] = None


def _trim_warning_frames(stack: tuple[Frame, ...]) -> tuple[Frame, ...]:
    frames = list(stack)
    while frames and frames[-1].file == _WARNINGS_FILE:
        frames.pop()
    return tuple(frames)


class HostBinding:
    """
    Installs the interceptors and owns the exit-time flush.

    Parameters
    ----------
    state
        State to operate on; a fresh one by default.
    register_exit
        Registers the exit hook (``atexit.register`` by default).
    capture_locals
        Snapshot frame locals of uncaught exceptions for diagnostics.
    """

    def __init__(
        self,
        state: Optional[HostBindingState] = None,
        *,
        register_exit: Callable[[Callable[[], None]], Any] = atexit.register,
        capture_locals: bool = False,
    ) -> None:
        self.state = state if state is not None else HostBindingState()
        self._register_exit = register_exit
        self.capture_locals = capture_locals

    # -- lifecycle --

    def bind(self, root: Sink) -> "HostBinding":
        """
        Route all interceptable failures to ``root``.

        Calling again rebinds the interceptors to the new root; the exit hook
        stays registered only once and flushes every root bound so far.
        """
        st = self.state
        st.root = root
        if not any(bound is root for bound in st.roots):
            st.roots.append(root)

        if warnings.showwarning != self._showwarning:
            st.previous_showwarning = warnings.showwarning
            warnings.showwarning = self._showwarning
        if sys.excepthook != self._excepthook:
            st.previous_excepthook = sys.excepthook
            sys.excepthook = self._excepthook
        st.bound = True

        if not st.exit_hook_registered:
            self._register_exit(self._on_exit)
            st.exit_hook_registered = True
        logger.debug("Bound root sink %s", type(root).__name__)
        return self

    def unbind(self) -> None:
        """Restore the hooks that were installed before ``bind``."""
        st = self.state
        if warnings.showwarning == self._showwarning:
            warnings.showwarning = st.previous_showwarning or _PLATFORM_SHOWWARNING
        if sys.excepthook == self._excepthook:
            sys.excepthook = st.previous_excepthook or sys.__excepthook__
        st.bound = False

    @property
    def installed(self) -> bool:
        """True while our condition interceptor is the active ``showwarning``."""
        return warnings.showwarning == self._showwarning

    def set_reporting_mask(self, mask: int) -> int:
        """Set the enabled severities; returns the previous mask."""
        previous = self.state.reporting_mask
        self.state.reporting_mask = int(mask)
        return previous

    # -- conditions --

    def trigger(self, message: str, severity: int = Severity.USER_NOTICE, *, stacklevel: int = 1) -> None:
        """
        Raise a user-level condition from the calling line.

        Only user-originated severities may be triggered. ``stacklevel`` works
        as in ``warnings.warn``: 1 attributes the condition to the caller.
        """
        if not is_user_originated(severity):
            raise ValueError(f"Only user severities can be triggered, got {severity_name(severity)}")
        stack = capture_stack(skip=stacklevel)
        file, line = (stack[-1].file, stack[-1].line) if stack else ("<unknown>", 0)
        if not self._dispatch_condition(severity, message, file, line, stack):
            logger.warning("%s: %s in %s on line %d", severity_name(severity), message, file, line)

    def notify_condition(
        self,
        severity: int,
        message: str,
        file: str,
        line: int,
        *,
        stack: tuple[Frame, ...] = (),
    ) -> bool:
        """
        Report a condition observed by the embedding runtime.

        Returns True if the root sink accepted it. Fatal conditions that
        could not be dispatched are picked up again by the exit hook.
        """
        return self._dispatch_condition(severity, message, file, line, stack)

    def _dispatch_condition(
        self,
        severity: int,
        message: str,
        file: str,
        line: int,
        stack: tuple[Frame, ...],
    ) -> bool:
        st = self.state
        event = FailureEvent.condition(severity, message, file, line, stack=stack)
        st.last_condition = event
        st.last_condition_delivered = False

        if st.handling or not st.bound or st.root is None:
            return False

        st.handling = True
        try:
            st.root.on_condition(event)
        except ConditionRaised:
            st.last_condition_delivered = True
            raise
        except Exception:
            logger.exception("Root sink failed on condition %s", event.code)
            return False
        finally:
            st.handling = False
        st.last_condition_delivered = True
        return True

    def _showwarning(
        self,
        message: Warning | str,
        category: Type[Warning],
        filename: str,
        lineno: int,
        file: Optional[TextIO] = None,
        line: Optional[str] = None,
    ) -> None:
        stack = _trim_warning_frames(capture_stack(skip=1))
        handled = self._dispatch_condition(
            severity_for_warning(category), str(message), filename, lineno, stack
        )
        if not handled:
            fallback = self.state.previous_showwarning or _PLATFORM_SHOWWARNING
            fallback(message, category, filename, lineno, file, line)

    # -- uncaught exceptions --

    def _fallback_excepthook(
        self,
        exc_type: Type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        hook = self.state.previous_excepthook or sys.__excepthook__
        hook(exc_type, exc, tb)

    def _excepthook(
        self,
        exc_type: Type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        st = self.state
        # KeyboardInterrupt and friends are not application failures.
        if not isinstance(exc, Exception) or st.handling or not st.bound or st.root is None:
            self._fallback_excepthook(exc_type, exc, tb)
            return

        if exc.__traceback__ is None and tb is not None:
            exc = exc.with_traceback(tb)
        st.last_delivered = exc

        st.handling = True
        try:
            event = FailureEvent.from_exception(exc, fatal_at_origin=True, capture_locals=self.capture_locals)
            st.root.on_raised(event, True)
        except Exception:
            logger.exception("Root sink failed on uncaught %s", exc_type.__name__)
            self._fallback_excepthook(exc_type, exc, tb)
        finally:
            st.handling = False

    # -- exit --

    def _deliver_pending_fatal(self, root: Sink) -> None:
        st = self.state
        last = st.last_condition
        if last is not None and last.is_fatal and not st.last_condition_delivered:
            st.last_condition_delivered = True
            root.on_condition(last)
            return

        exc = getattr(sys, "last_exc", None)
        if isinstance(exc, Exception) and exc is not st.last_delivered:
            st.last_delivered = exc
            root.on_raised(FailureEvent.from_exception(exc, fatal_at_origin=True), True)

    def _on_exit(self) -> None:
        st = self.state
        if st.flushed or st.root is None:
            return
        st.flushed = True
        st.handling = True
        raise_memory_ceiling()

        try:
            if self.installed:
                self._deliver_pending_fatal(st.root)
        except Exception:
            logger.exception("Root sink failed on exit-time delivery")
        try:
            for root in list(st.roots):
                try:
                    root.flush()
                except Exception:
                    logger.exception("%s failed to flush at exit", type(root).__name__)
        finally:
            st.handling = False


_default_binding: Optional[HostBinding] = None


def default_binding() -> HostBinding:
    """Return the process-wide binding, creating it on first use."""
    global _default_binding
    if _default_binding is None:
        _default_binding = HostBinding()
    return _default_binding


def bind(root: Sink) -> HostBinding:
    return default_binding().bind(root)


def unbind() -> None:
    default_binding().unbind()


def trigger(message: str, severity: int = Severity.USER_NOTICE) -> None:
    default_binding().trigger(message, severity, stacklevel=2)
