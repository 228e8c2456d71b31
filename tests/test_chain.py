from __future__ import annotations

import io
import logging
import sys
import warnings
from pathlib import Path
from typing import Callable, List

import pytest

from faultline.binding import HostBinding
from faultline.chain import build_chain, install
from faultline.config import InterceptConfig
from faultline.events import ConditionRaised, FailureEvent, Severity
from faultline.sinks import (
    AggregateSink,
    ArtifactDumpDecorator,
    BufferedPage,
    CrashPageRender,
    DeduplicateRepeated,
    FilterByProbability,
    FilterBySeverityMask,
    LogToStructuredSink,
    RemoteCrashReport,
    RethrowAsException,
)

from conftest import FakeNotifier


@pytest.fixture
def quiet_logger() -> logging.Logger:
    logger = logging.getLogger("faultline.test.chain")
    logger.handlers = [logging.NullHandler()]
    logger.propagate = False
    return logger


def _layers(sink) -> List[type]:
    out = []
    while True:
        out.append(type(sink))
        if not hasattr(sink, "inner"):
            return out
        sink = sink.inner


def test_default_chain_only_deduplicates(quiet_logger) -> None:
    root = build_chain(InterceptConfig(), logger=quiet_logger)

    assert _layers(root) == [DeduplicateRepeated, AggregateSink]
    assert [type(s) for s in root.inner] == [LogToStructuredSink, CrashPageRender]


def test_full_chain_order(quiet_logger) -> None:
    cfg = InterceptConfig(
        severity_mask=int(Severity.USER_WARNING),
        sample_rate=0.5,
        deduplicate=True,
        rethrow=True,
    )

    root = build_chain(cfg, logger=quiet_logger, notifier=FakeNotifier())

    assert _layers(root) == [
        FilterBySeverityMask,
        DeduplicateRepeated,
        FilterByProbability,
        RethrowAsException,
        AggregateSink,
    ]


def test_artifact_dir_wraps_remote_report(tmp_path: Path, quiet_logger) -> None:
    cfg = InterceptConfig(artifact_dir=tmp_path / "artifacts", deduplicate=False)

    root = build_chain(cfg, logger=quiet_logger, notifier=FakeNotifier())

    remote = list(root)[1]
    assert isinstance(remote, ArtifactDumpDecorator)
    assert isinstance(remote.inner, RemoteCrashReport)


def test_fatal_condition_reaches_every_terminal(tmp_path: Path, quiet_logger) -> None:
    notifier = FakeNotifier()
    page = BufferedPage()
    cfg = InterceptConfig(artifact_dir=tmp_path / "artifacts", severity_mask=int(Severity.USER_WARNING))
    root = build_chain(cfg, logger=quiet_logger, notifier=notifier, page=page)

    root.on_condition(FailureEvent.condition(Severity.NOTICE, "masked", "a.py", 1))
    root.on_condition(FailureEvent.condition(Severity.ERROR, "out of memory", "a.py", 2))
    root.flush()

    assert page.status == 500
    (batch,) = notifier.batches
    assert [n["message"] for n in batch] == ["out of memory"]
    assert batch[0]["metadata"]["link"].startswith("file://")
    assert len(list((tmp_path / "artifacts").iterdir())) == 1


def test_rethrow_follows_live_reporting_mask(quiet_logger) -> None:
    mask = {"value": int(Severity.ALL)}
    cfg = InterceptConfig(rethrow=True, only_enabled=True, deduplicate=False)
    root = build_chain(cfg, logger=quiet_logger, stream=io.StringIO(), reporting_mask=lambda: mask["value"])
    event = FailureEvent.condition(Severity.USER_NOTICE, "hmm", "a.py", 1)

    with pytest.raises(ConditionRaised):
        root.on_condition(event)

    mask["value"] = int(Severity.USER_WARNING)
    root.on_condition(event)


@pytest.fixture
def exit_hooks(monkeypatch) -> List[Callable[[], None]]:
    monkeypatch.setattr(warnings, "showwarning", warnings.showwarning)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(sys, "last_exc", None, raising=False)
    return []


def test_install_wires_logging_chain_and_hooks(tmp_path: Path, exit_hooks) -> None:
    cfg = InterceptConfig(
        log_dir=tmp_path / "logs",
        run_id="inst",
        console_level=logging.CRITICAL,
        severity_mask=int(Severity.USER_WARNING | Severity.USER_ERROR),
    )
    notifier = FakeNotifier()
    binding = HostBinding(register_exit=exit_hooks.append)

    returned = install(cfg, binding=binding, notifier=notifier, stream=io.StringIO())

    assert returned is binding
    assert binding.installed
    assert binding.state.reporting_mask == cfg.severity_mask

    with warnings.catch_warnings():
        warnings.simplefilter("always")
        warnings.warn("reported", UserWarning)
        warnings.warn("masked out", DeprecationWarning)
    exit_hooks[0]()
    binding.unbind()

    text = (cfg.log_dir / "run_inst.log").read_text(encoding="utf-8")
    assert "code=E_USER_WARNING" in text
    assert "reported" in text
    assert "masked out" not in text
    assert [n["message"] for n in notifier.batches[0]] == ["reported"]
    assert (cfg.log_dir / "events_inst.jsonl").exists()
