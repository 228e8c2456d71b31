"""Failure event model: severity codes, classification and the normalized event."""

from faultline.events.severity import (
    Severity,
    SeverityClass,
    classify,
    is_fatal,
    is_user_originated,
    severity_constant,
    severity_for_warning,
    severity_name,
)
from faultline.events.event import (
    ConditionRaised,
    EventKind,
    FailureEvent,
    Frame,
    Location,
    capture_stack,
)

__all__ = [
    "Severity",
    "SeverityClass",
    "classify",
    "is_fatal",
    "is_user_originated",
    "severity_constant",
    "severity_for_warning",
    "severity_name",
    "ConditionRaised",
    "EventKind",
    "FailureEvent",
    "Frame",
    "Location",
    "capture_stack",
]
