from __future__ import annotations

import json
import logging
from pathlib import Path

from faultline.config import InterceptConfig
from faultline.logging import NOTICE, JsonlEventLogger, configure_logging


def test_notice_level_is_registered() -> None:
    assert logging.getLevelName(NOTICE) == "NOTICE"
    assert logging.INFO < NOTICE < logging.WARNING


def test_jsonl_event_logger_writes_valid_lines(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "events_abc.jsonl"
    ev = JsonlEventLogger(path=path, run_id="abc")

    ev.write(event="condition", level="NOTICE", fields={"code": "E_USER_NOTICE", "line": 4})
    ev.write(event="raised", level="CRITICAL", message="ValueError: nope", metadata={"link": "file:///x.html"})

    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2

    a = json.loads(lines[0])
    assert a["run_id"] == "abc"
    assert a["event"] == "condition"
    assert a["level"] == "NOTICE"
    assert a["fields"] == {"code": "E_USER_NOTICE", "line": 4}
    assert "time_utc" in a
    assert "metadata" not in a

    b = json.loads(lines[1])
    assert b["message"] == "ValueError: nope"
    assert b["metadata"] == {"link": "file:///x.html"}


def test_configure_logging_creates_log_file_and_writes(tmp_path: Path) -> None:
    cfg = InterceptConfig(
        log_dir=tmp_path / "logs",
        run_id="testrun",
        write_jsonl=False,
        console_level=logging.CRITICAL,  # keep test output quiet
        file_level=logging.DEBUG,
    )

    logger, event_logger = configure_logging(cfg=cfg)
    assert event_logger is None

    log_path = cfg.log_dir / "run_testrun.log"
    assert log_path.exists()

    logger.info("hello world")
    logging.getLogger("faultline.sinks.remote").warning("from a child logger")

    text = log_path.read_text(encoding="utf-8")
    assert "hello world" in text
    assert "from a child logger" in text
    assert "run=testrun" in text
    assert "code=-" in text


def test_configure_logging_code_extra_is_used_in_file(tmp_path: Path) -> None:
    cfg = InterceptConfig(
        log_dir=tmp_path / "logs",
        run_id="testrun",
        write_jsonl=True,
        console_level=logging.CRITICAL,
    )

    logger, event_logger = configure_logging(cfg=cfg)
    logger.log(NOTICE, "odd", extra={"code": "E_USER_NOTICE"})

    text = (cfg.log_dir / "run_testrun.log").read_text(encoding="utf-8")
    assert "code=E_USER_NOTICE | NOTICE | odd" in text
    assert event_logger is not None
    assert event_logger.path == cfg.log_dir / "events_testrun.jsonl"


def test_configure_logging_twice_replaces_handlers(tmp_path: Path) -> None:
    cfg = InterceptConfig(log_dir=tmp_path / "logs", run_id="again", write_jsonl=False)

    logger, _ = configure_logging(cfg=cfg)
    logger, _ = configure_logging(cfg=cfg)

    assert len(logger.handlers) == 2
