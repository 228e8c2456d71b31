from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, TextIO

from faultline.events import FailureEvent
from faultline.render import Renderer, RichRenderer

from .base import Sink

logger = logging.getLogger(__name__)

GENERIC_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Error</title></head>
<body>
<h1>An error occurred</h1>
<p>Sorry, something went wrong while handling your request. Please try again later.</p>
</body>
</html>
"""


class PageOutput(Protocol):
    """Response the host is currently serving."""

    def clear(self) -> None:
        ...

    def set_status(self, status: int) -> None:
        ...

    def write(self, text: str) -> None:
        ...


@dataclass
class BufferedPage:
    """In-memory ``PageOutput``; the host sends ``body`` once the request ends."""

    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    chunks: List[str] = field(default_factory=list)
    headers_sent: bool = False

    @property
    def body(self) -> str:
        return "".join(self.chunks)

    def clear(self) -> None:
        self.chunks.clear()

    def send_headers(self) -> None:
        self.headers_sent = True

    def set_status(self, status: int) -> None:
        # Status and headers are frozen once they went out.
        if self.headers_sent:
            return
        self.status = status
        self.headers["Content-Type"] = "text/html; charset=utf-8"

    def write(self, text: str) -> None:
        self.chunks.append(text)


class CrashPageRender(Sink):
    """
    Show the user that the process failed, for fatal events only.

    Served context (``page`` given): discard buffered output, set a 500
    status and write the generic page, or the full rendered event when
    ``diagnostic`` is set. Headless context: write the plain-text rendering
    to ``stream`` (stderr by default).

    Never raises.
    """

    def __init__(
        self,
        *,
        page: Optional[PageOutput] = None,
        stream: Optional[TextIO] = None,
        renderer: Optional[Renderer] = None,
        diagnostic: bool = False,
    ) -> None:
        self.page = page
        self.stream = stream
        self.renderer: Renderer = renderer if renderer is not None else RichRenderer()
        self.diagnostic = diagnostic

    def _show(self, event: FailureEvent) -> None:
        try:
            if self.page is not None:
                body = self.renderer.render_html(event) if self.diagnostic else GENERIC_PAGE
                self.page.clear()
                self.page.set_status(500)
                self.page.write(body)
            else:
                stream = self.stream if self.stream is not None else sys.stderr
                stream.write(self.renderer.render_plain_text(event))
                stream.flush()
        except Exception:
            logger.exception("Failed to render crash page for %s", event.code)

    def on_condition(self, event: FailureEvent) -> None:
        if event.is_fatal:
            self._show(event)

    def on_raised(self, event: FailureEvent, fatal: bool) -> None:
        if fatal:
            self._show(event)
