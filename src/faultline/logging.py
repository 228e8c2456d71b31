from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from rich.logging import RichHandler

from .config import InterceptConfig

# Between WARNING and INFO; the stdlib has no notice level of its own.
NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

LOGGER_NAME = "faultline"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JsonlEventLogger:
    """
    Writes failure events as JSON lines.

    Each line is a dict that includes at least:
    - time_utc
    - run_id
    - event ("condition" or "raised")
    - level
    - fields (code, message, file, line)

    Usage example
    -------------
        ev = JsonlEventLogger(path=Path("logs/events_abc.jsonl"), run_id="abc")
        ev.write(event="condition", level="WARNING", fields={"code": "E_WARNING", "line": 3})
    """
    path: Path
    run_id: str

    def write(
        self,
        *,
        event: str,
        level: str,
        fields: Optional[Mapping[str, Any]] = None,
        message: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "time_utc": _utc_now_iso(),
            "run_id": self.run_id,
            "event": event,
            "level": level,
        }
        if message:
            payload["message"] = message
        if fields:
            payload["fields"] = dict(fields)
        if metadata:
            payload["metadata"] = dict(metadata)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")


class _RunContextFilter(logging.Filter):
    def __init__(self, *, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not hasattr(record, "run_id"):
            setattr(record, "run_id", self._run_id)
        if not hasattr(record, "code"):
            setattr(record, "code", "-")
        return True


def configure_logging(*, cfg: InterceptConfig) -> tuple[logging.Logger, Optional[JsonlEventLogger]]:
    """
    Configure console + file logging, plus optional JSONL event logger.

    Returns
    -------
    logger
        A configured logger named "faultline".
    event_logger
        JsonlEventLogger if cfg.write_jsonl else None.

    Usage example
    -------------
        logger, event_logger = configure_logging(cfg=cfg)
        sink = LogToStructuredSink(logger, event_logger=event_logger)
    """
    run_id = cfg.resolved_run_id()
    log_dir = cfg.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.filters.clear()
    logger.propagate = False

    # Handler-level: records from child loggers (faultline.sinks.*) need the defaults too.
    context_filter = _RunContextFilter(run_id=run_id)

    console_handler = RichHandler(rich_tracebacks=False, show_path=False)
    console_handler.setLevel(cfg.console_level)
    console_handler.addFilter(context_filter)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    # File handler (always plain)
    file_path = log_dir / f"run_{run_id}.log"
    file_handler = logging.FileHandler(file_path, encoding="utf-8")
    file_handler.setLevel(cfg.file_level)
    file_handler.addFilter(context_filter)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)sZ | run=%(run_id)s | code=%(code)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    event_logger = None
    if cfg.write_jsonl:
        event_logger = JsonlEventLogger(path=log_dir / f"events_{run_id}.jsonl", run_id=run_id)

    logger.debug("Logging configured (run_id=%s, log_dir=%s)", run_id, str(log_dir))
    return logger, event_logger
