from __future__ import annotations

import logging
import secrets
import string
from pathlib import Path
from typing import Optional, Protocol

from faultline.events import FailureEvent
from faultline.render import Renderer, RichRenderer

from .base import Sink, SinkDecorator

logger = logging.getLogger(__name__)

KEY_LENGTH = 20
KEY_EXTENSION = ".html"
_KEY_ALPHABET = string.ascii_letters + string.digits


class BlobStore(Protocol):
    def put(self, key: str, body: bytes, content_type: str) -> str:
        """Store ``body`` under ``key`` and return a URL for it."""
        ...


class DirectoryBlobStore:
    """``BlobStore`` backed by a directory; URLs are ``file://`` URIs."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def put(self, key: str, body: bytes, content_type: str) -> str:
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
        return path.resolve().as_uri()


def random_key() -> str:
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(KEY_LENGTH)) + KEY_EXTENSION


class ArtifactDumpDecorator(SinkDecorator):
    """
    Attach a rendered diagnostic artifact to fatal events.

    Before a fatal event is forwarded, it is rendered to HTML (stack, bounded
    locals and context, paths relative to the project root), written to
    ``local_dir`` if given, and uploaded to ``blob_store`` under a random
    key. The forwarded event carries ``metadata["link"]``: the upload URL, or
    the reason the upload failed. Non-fatal events pass through unchanged.

    Persistence never raises out of this decorator.

    Usage example
    -------------
        sink = ArtifactDumpDecorator(
            RemoteCrashReport(notifier),
            blob_store=DirectoryBlobStore(Path("crash-dumps")),
            renderer=RichRenderer(project_root=Path.cwd()),
        )
    """

    def __init__(
        self,
        inner: Sink,
        *,
        blob_store: BlobStore,
        renderer: Optional[Renderer] = None,
        local_dir: Optional[Path] = None,
    ) -> None:
        super().__init__(inner)
        self.blob_store = blob_store
        self.renderer: Renderer = renderer if renderer is not None else RichRenderer()
        self.local_dir = local_dir

    def _save_local(self, key: str, body: bytes) -> None:
        if self.local_dir is None:
            return
        try:
            self.local_dir.mkdir(parents=True, exist_ok=True)
            (self.local_dir / key).write_bytes(body)
        except OSError as error:
            logger.warning("Could not write local crash artifact %s: %s", key, error)

    def _dump(self, event: FailureEvent) -> FailureEvent:
        try:
            body = self.renderer.render_html(event).encode("utf-8")
            key = random_key()
            self._save_local(key, body)
            link = self.blob_store.put(key, body, "text/html")
        except Exception as error:
            logger.warning("Could not persist crash artifact: %s", error)
            link = f"{type(error).__name__}: {error}"
        return event.with_metadata(link=link)

    def on_condition(self, event: FailureEvent) -> None:
        if event.is_fatal:
            event = self._dump(event)
        self.inner.on_condition(event)

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        if fatal:
            event = self._dump(event)
        self.inner.on_raised(event, fatal)
