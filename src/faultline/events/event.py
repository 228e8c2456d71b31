from __future__ import annotations

import dataclasses
import hashlib
import json
import linecache
import traceback
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Set

from .severity import (
    Severity,
    SeverityClass,
    classify,
    is_fatal as _is_fatal_code,
    is_user_originated,
    severity_constant,
)


class EventKind(str, Enum):
    """Discriminates how a failure reached the host."""
    CONDITION = "condition"
    RAISED = "raised"


@dataclass(frozen=True)
class Location:
    file: str
    line: int


@dataclass(frozen=True)
class Frame:
    """One stack frame. ``locals`` is a snapshot, populated only when captured."""
    file: str
    line: int
    function: str
    source: str = ""
    locals: Optional[Mapping[str, Any]] = field(default=None, hash=False)


@dataclass(frozen=True)
class FailureEvent:
    """
    Normalized representation of a single failure.

    Parameters
    ----------
    kind
        ``EventKind.CONDITION`` for a recoverable runtime signal,
        ``EventKind.RAISED`` for an unhandled exception object.
    severity
        Native severity code (see ``Severity``).
    message
        Human-readable message.
    location
        Originating file and line.
    stack
        Frames, oldest call first. For conditions the interceptor's own frames
        are never included.
    cause
        Optional prior event this one was caused by.
    fatal_at_origin
        True if the failure reached the top level uncaught.
    context
        Free-form diagnostic values (e.g. a locals snapshot).
    exception
        The raised object, for ``RAISED`` events.
    metadata
        Values attached by decorators on the way through the chain.

    Usage example
    -------------
        ev = FailureEvent.condition(Severity.USER_WARNING, "disk almost full", "app.py", 12)
        ev.severity_class   # SeverityClass.WARNING
        ev.is_fatal         # False
    """

    kind: EventKind
    severity: int
    message: str
    location: Location
    stack: tuple[Frame, ...] = ()
    cause: Optional["FailureEvent"] = None
    fatal_at_origin: bool = False
    context: Mapping[str, Any] = field(default_factory=dict, hash=False)
    exception: Optional[BaseException] = field(default=None, compare=False)
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def condition(
        cls,
        severity: int,
        message: str,
        file: str,
        line: int,
        *,
        stack: tuple[Frame, ...] = (),
        context: Optional[Mapping[str, Any]] = None,
        fatal_at_origin: bool = False,
    ) -> "FailureEvent":
        return cls(
            kind=EventKind.CONDITION,
            severity=int(severity),
            message=message,
            location=Location(file=file, line=int(line)),
            stack=tuple(stack),
            fatal_at_origin=fatal_at_origin,
            context=MappingProxyType(dict(context or {})),
        )

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        fatal_at_origin: bool = False,
        capture_locals: bool = False,
        context: Optional[Mapping[str, Any]] = None,
    ) -> "FailureEvent":
        """
        Build a ``RAISED`` event from an exception object.

        The cause chain follows ``__cause__`` (or ``__context__`` unless
        suppressed). Python allows exception chains to loop back on
        themselves; each exception is visited at most once, so the
        resulting chain is always finite.
        """
        return _from_exception(
            exc,
            fatal_at_origin=fatal_at_origin,
            capture_locals=capture_locals,
            context=context,
            seen=set(),
        )

    @property
    def severity_class(self) -> SeverityClass:
        return classify(self.severity)

    @property
    def is_fatal(self) -> bool:
        if self.kind == EventKind.RAISED:
            return self.fatal_at_origin
        return _is_fatal_code(self.severity)

    @property
    def is_user_originated(self) -> bool:
        return self.kind == EventKind.CONDITION and is_user_originated(self.severity)

    @property
    def code(self) -> str:
        """Constant name for conditions, exception class name for raised events."""
        if self.kind == EventKind.RAISED and self.exception is not None:
            return type(self.exception).__name__
        return severity_constant(self.severity)

    @property
    def fingerprint(self) -> str:
        """Stable digest identifying repeats of the same failure."""
        parts = [
            self.kind.value,
            int(self.severity),
            self.code,
            self.message,
            self.location.file,
            self.location.line,
        ]
        serialized = json.dumps(parts, separators=(",", ":"))
        return hashlib.sha1(serialized.encode("utf-8")).hexdigest()

    def causes(self) -> list["FailureEvent"]:
        """Return the cause chain, nearest cause first."""
        out: list[FailureEvent] = []
        cur = self.cause
        while cur is not None:
            out.append(cur)
            cur = cur.cause
        return out

    def with_metadata(self, **items: Any) -> "FailureEvent":
        merged = dict(self.metadata)
        merged.update(items)
        return dataclasses.replace(self, metadata=MappingProxyType(merged))


class ConditionRaised(Exception):
    """Control transfer raised in place of forwarding a condition."""

    def __init__(self, event: FailureEvent) -> None:
        super().__init__(event.message)
        self.event = event

    @property
    def severity(self) -> int:
        return self.event.severity


def capture_stack(skip: int = 0) -> tuple[Frame, ...]:
    """
    Snapshot the current call stack, oldest call first.

    The frame of ``capture_stack`` itself is always dropped, plus ``skip``
    further innermost frames (the interceptor calling it).
    """
    summary = traceback.extract_stack()[: -(1 + skip)]
    return tuple(
        Frame(file=fs.filename, line=fs.lineno or 0, function=fs.name, source=(fs.line or "").strip())
        for fs in summary
    )


def _frames_from_traceback(exc: BaseException, *, capture_locals: bool) -> tuple[Frame, ...]:
    frames: list[Frame] = []
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        filename = frame.f_code.co_filename
        frames.append(
            Frame(
                file=filename,
                line=lineno,
                function=frame.f_code.co_name,
                source=linecache.getline(filename, lineno).strip(),
                locals=MappingProxyType(dict(frame.f_locals)) if capture_locals else None,
            )
        )
    return tuple(frames)


def _from_exception(
    exc: BaseException,
    *,
    fatal_at_origin: bool,
    capture_locals: bool,
    context: Optional[Mapping[str, Any]],
    seen: Set[int],
) -> FailureEvent:
    seen.add(id(exc))

    prior = exc.__cause__
    if prior is None and not exc.__suppress_context__:
        prior = exc.__context__
    cause = None
    if prior is not None and id(prior) not in seen:
        cause = _from_exception(prior, fatal_at_origin=False, capture_locals=capture_locals, context=None, seen=seen)

    stack = _frames_from_traceback(exc, capture_locals=capture_locals)
    if stack:
        location = Location(file=stack[-1].file, line=stack[-1].line)
    else:
        location = Location(file="<unknown>", line=0)

    return FailureEvent(
        kind=EventKind.RAISED,
        severity=int(Severity.ERROR if fatal_at_origin else Severity.RECOVERABLE_ERROR),
        message=str(exc),
        location=location,
        stack=stack,
        cause=cause,
        fatal_at_origin=fatal_at_origin,
        context=MappingProxyType(dict(context or {})),
        exception=exc,
    )
