from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from faultline.events import FailureEvent, SeverityClass
from faultline.logging import NOTICE, JsonlEventLogger

from .base import Sink

logger = logging.getLogger(__name__)

MAX_SUMMARY_LENGTH = 100

_LEVELS: Dict[SeverityClass, int] = {
    SeverityClass.FATAL: logging.CRITICAL,
    SeverityClass.RECOVERABLE_ERROR: logging.ERROR,
    SeverityClass.WARNING: logging.WARNING,
    SeverityClass.NOTICE: NOTICE,
    SeverityClass.DEPRECATION: NOTICE,
    SeverityClass.UNKNOWN: NOTICE,
}


def level_for(event: FailureEvent, fatal: Optional[bool] = None) -> int:
    """Log level for an event; raised events map on ``fatal`` alone."""
    if fatal is not None:
        return logging.CRITICAL if fatal else logging.ERROR
    return _LEVELS[event.severity_class]


def summarize(event: FailureEvent, limit: int = MAX_SUMMARY_LENGTH) -> str:
    """``"<code>: <message>"`` cut down to ``limit`` characters."""
    text = f"{event.code}: {event.message}"
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def structured_fields(event: FailureEvent) -> Dict[str, Any]:
    return {
        "code": event.code,
        "message": event.message,
        "file": event.location.file,
        "line": event.location.line,
    }


class LogToStructuredSink(Sink):
    """
    Terminal sink writing each event as one structured log record.

    The record message is the truncated summary; the full
    ``{code, message, file, line}`` mapping travels as ``extra["fields"]``
    and, when an event logger is given, as one JSON line.

    Usage example
    -------------
        logger, event_logger = configure_logging(cfg=cfg)
        sink = LogToStructuredSink(logger, event_logger=event_logger)
    """

    def __init__(self, logger: logging.Logger, *, event_logger: Optional[JsonlEventLogger] = None) -> None:
        self.logger = logger
        self.event_logger = event_logger

    def _emit(self, event: FailureEvent, level: int) -> None:
        fields = structured_fields(event)
        summary = summarize(event)
        self.logger.log(level, summary, extra={"code": fields["code"], "fields": fields})
        if self.event_logger is None:
            return
        try:
            self.event_logger.write(
                event=event.kind.value,
                level=logging.getLevelName(level),
                fields=fields,
                message=summary,
                metadata=event.metadata,
            )
        except OSError:
            logger.exception("Could not mirror %s to %s", fields["code"], self.event_logger.path)

    def on_condition(self, event: FailureEvent) -> None:
        self._emit(event, level_for(event))

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        self._emit(event, level_for(event, fatal))

    def flush(self) -> None:
        for handler in self.logger.handlers:
            handler.flush()
