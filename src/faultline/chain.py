from __future__ import annotations

import logging
from typing import Callable, Optional, TextIO

from faultline.binding import HostBinding, default_binding
from faultline.config import InterceptConfig
from faultline.events import Severity
from faultline.logging import JsonlEventLogger, configure_logging
from faultline.render import Renderer, RichRenderer
from faultline.sinks import (
    AggregateSink,
    ArtifactDumpDecorator,
    BlobStore,
    CrashPageRender,
    DeduplicateRepeated,
    DirectoryBlobStore,
    FilterByProbability,
    FilterBySeverityMask,
    LogToStructuredSink,
    Notifier,
    PageOutput,
    RemoteCrashReport,
    RethrowAsException,
    Sink,
)


def build_chain(
    cfg: InterceptConfig,
    *,
    logger: logging.Logger,
    event_logger: Optional[JsonlEventLogger] = None,
    notifier: Optional[Notifier] = None,
    blob_store: Optional[BlobStore] = None,
    page: Optional[PageOutput] = None,
    stream: Optional[TextIO] = None,
    renderer: Optional[Renderer] = None,
    rng: Optional[Callable[[], float]] = None,
    reporting_mask: Optional[Callable[[], int]] = None,
) -> Sink:
    """
    Compose the standard chain described by ``cfg``.

    Order, outermost first:
    severity mask -> dedupe -> sampling -> rethrow -> fan-out to
    [structured log, artifact dump + remote report, crash page].
    Decorators that ``cfg`` switches off are left out entirely.

    Usage example
    -------------
        logger, event_logger = configure_logging(cfg=cfg)
        root = build_chain(cfg, logger=logger, event_logger=event_logger, notifier=HttpNotifier(url))
    """
    if renderer is None:
        renderer = RichRenderer(project_root=cfg.project_root, max_items=cfg.max_items, max_string=cfg.max_string)

    terminals = AggregateSink([LogToStructuredSink(logger, event_logger=event_logger)])

    if notifier is not None:
        remote: Sink = RemoteCrashReport(notifier)
        local_dir = cfg.artifact_dir
        if blob_store is None and cfg.artifact_dir is not None:
            blob_store, local_dir = DirectoryBlobStore(cfg.artifact_dir), None
        if blob_store is not None:
            remote = ArtifactDumpDecorator(remote, blob_store=blob_store, renderer=renderer, local_dir=local_dir)
        terminals.append(remote)

    terminals.append(CrashPageRender(page=page, stream=stream, renderer=renderer, diagnostic=cfg.diagnostic_page))

    sink: Sink = terminals
    if cfg.rethrow:
        sink = RethrowAsException(
            sink,
            rethrow_unsafe=cfg.rethrow_unsafe,
            only_enabled=cfg.only_enabled,
            reporting_mask=reporting_mask if reporting_mask is not None else (lambda: cfg.severity_mask),
        )
    if cfg.sample_rate < 1.0:
        sink = FilterByProbability(sink, cfg.sample_rate, rng=rng)
    if cfg.deduplicate:
        sink = DeduplicateRepeated(sink)
    if cfg.severity_mask != int(Severity.ALL):
        sink = FilterBySeverityMask(sink, cfg.severity_mask)
    return sink


def install(
    cfg: Optional[InterceptConfig] = None,
    *,
    binding: Optional[HostBinding] = None,
    **collaborators: object,
) -> HostBinding:
    """
    Configure logging, build the standard chain and bind it.

    ``collaborators`` are passed through to ``build_chain`` (``notifier``,
    ``blob_store``, ``page``, ``stream``, ``renderer``, ``rng``).

    Usage example
    -------------
        binding = install(InterceptConfig.from_env(default=InterceptConfig(env_prefix="FAULTLINE_")))
    """
    cfg = cfg if cfg is not None else InterceptConfig.from_env()
    binding = binding if binding is not None else default_binding()

    logger, event_logger = configure_logging(cfg=cfg)
    binding.set_reporting_mask(cfg.severity_mask)
    state = binding.state
    root = build_chain(
        cfg,
        logger=logger,
        event_logger=event_logger,
        reporting_mask=lambda: state.reporting_mask,
        **collaborators,  # type: ignore[arg-type]
    )
    return binding.bind(root)
