"""Step that downloads a resource and hands its text to a handler."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from ..environment.base import PageEnvironment
from ..errors import DownloadReadError, PageFlowError
from ..flow import Directive, Failure, StepFlowResult
from ..model import Model
from .base import Step, apply_directive

log = logging.getLogger(__name__)

DownloadStepHandler = Callable[[str, Model], Directive]


class DownloadStep(Step):
    """Fetch ``url`` through the page and call ``handler(text, model)``.

    The downloaded file is decoded as UTF-8 and removed afterwards, whether or
    not it could be read.
    """

    def __init__(self, url: str, handler: DownloadStepHandler, *, encoding: str = "utf-8") -> None:
        self.url = url
        self.handler = handler
        self.encoding = encoding

    async def run(self, environment: PageEnvironment, model: Model) -> StepFlowResult:
        try:
            path = await environment.download(self.url)
        except PageFlowError as exc:
            return Failure(exc, model)

        try:
            text = _read_text(path, self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Could not read download of %s from %s: %s", self.url, path, exc)
            return Failure(DownloadReadError(), model)

        directive = self.handler(text, model)
        return apply_directive(directive, model, source=f"{self.name} handler for {self.url}")

    def __repr__(self) -> str:
        return f"<DownloadStep {self.url}>"


def _read_text(path: Path, encoding: str) -> str:
    try:
        return path.read_text(encoding=encoding)
    finally:
        path.unlink(missing_ok=True)
