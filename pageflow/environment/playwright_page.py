"""Page environment backed by a Playwright page.

The page gets two init scripts: the bundled ``pageflow.js`` core, which
defines ``PageFlow.respond(value)``, and the caller's module script
``<script_dir>/<module_name>.js`` whose functions the steps call by name.
Asynchronous scripts report back through ``PageFlow.respond``, which calls the
``pageflowResponseHandler`` binding exposed by :meth:`PlaywrightPage.prepare`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Sequence

from playwright.async_api import Error as PlaywrightError, Page, async_playwright

from ..config import RunnerConfig, load_config
from ..errors import (
    CommonScriptNotFoundError,
    DownloadError,
    NavigationError,
    ScriptError,
    ScriptNotFoundError,
)
from .scripts import generate_script

log = logging.getLogger(__name__)

RESPONSE_BINDING = "pageflowResponseHandler"
CORE_SCRIPT = Path(__file__).resolve().parents[1] / "js" / "pageflow.js"

_DOWNLOAD_TRIGGER = """
    (url) => {
        const link = document.createElement('a');
        link.href = url;
        link.download = '';
        link.style.display = 'none';
        (document.body || document.documentElement).appendChild(link);
        link.click();
        link.remove();
    }
"""


class PlaywrightPage:
    """:class:`~pageflow.environment.base.PageEnvironment` over Playwright."""

    def __init__(
        self,
        page: Page,
        module_name: str,
        *,
        script_dir: Optional[Path | str] = None,
        config: Optional[RunnerConfig] = None,
    ) -> None:
        self.page = page
        self.module_name = module_name
        self.config = config or RunnerConfig()
        self.script_dir = Path(script_dir) if script_dir is not None else self.config.script_dir
        self._pending_response: Optional[asyncio.Future[Any]] = None
        self._prepared = False

    @classmethod
    @asynccontextmanager
    async def launch(
        cls,
        module_name: str,
        *,
        script_dir: Optional[Path | str] = None,
        config: Optional[RunnerConfig] = None,
    ) -> AsyncIterator["PlaywrightPage"]:
        """Start Chromium, open a page and yield a prepared environment."""

        config = config or load_config()
        async with async_playwright() as playwright:
            chromium = playwright.chromium
            cdp_endpoint = os.getenv("CDP_URL")
            if cdp_endpoint:
                try:
                    browser = await chromium.connect_over_cdp(cdp_endpoint)
                except PlaywrightError as exc:  # pragma: no cover - requires CDP target
                    log.warning("Failed to connect over CDP (%s), launching instead", exc)
                    browser = await chromium.launch(headless=config.headless)
            else:
                browser = await chromium.launch(headless=config.headless)
            context = await browser.new_context(accept_downloads=True)
            try:
                page = await context.new_page()
                environment = cls(page, module_name, script_dir=script_dir, config=config)
                await environment.prepare()
                yield environment
            finally:
                await context.close()
                await browser.close()

    async def prepare(self) -> None:
        """Install the response binding and the init scripts."""

        if self._prepared:
            return
        if not CORE_SCRIPT.is_file():
            raise CommonScriptNotFoundError()
        module_script = self.script_dir / f"{self.module_name}.js"
        if not module_script.is_file():
            raise ScriptNotFoundError(self.module_name)

        await self.page.expose_function(RESPONSE_BINDING, self._on_response)
        await self.page.add_init_script(path=str(CORE_SCRIPT))
        await self.page.add_init_script(path=str(module_script))
        self._prepared = True

    # ------------------------------------------------------------------
    # PageEnvironment
    # ------------------------------------------------------------------
    async def navigate(self, path: str) -> None:
        await self.prepare()
        try:
            await self.page.goto(path, wait_until="load", timeout=self.config.navigation_timeout_ms)
        except PlaywrightError as exc:
            log.warning("Navigation to %s failed: %s", path, exc.message)
            raise NavigationError(exc.message) from exc

    async def run_script(self, function_name: str, params: Sequence[Any] = ()) -> Any:
        await self.prepare()
        script = generate_script(self.module_name, function_name, params)
        log.debug("script to run: %s", script)
        timeout = self.config.script_timeout_ms / 1000
        try:
            response = await asyncio.wait_for(self.page.evaluate(script), timeout=timeout)
        except PlaywrightError as exc:
            log.warning("Script %s failed: %s", function_name, exc.message)
            raise ScriptError(exc.message) from exc
        except asyncio.TimeoutError as exc:
            log.warning("Script %s did not return within %.1fs", function_name, timeout)
            raise ScriptError(f"{function_name} did not return within {timeout:g}s") from exc
        log.debug("script response: %r", response)
        return response

    async def run_page_change_script(self, function_name: str, params: Sequence[Any] = ()) -> None:
        await self.prepare()
        try:
            async with self.page.expect_navigation(
                wait_until="load", timeout=self.config.navigation_timeout_ms
            ):
                await self.run_script(function_name, params)
        except PlaywrightError as exc:
            log.warning("Navigation triggered by %s failed: %s", function_name, exc.message)
            raise NavigationError(exc.message) from exc

    async def run_async_script(self, function_name: str, params: Sequence[Any] = ()) -> Any:
        await self.prepare()
        previous = self._pending_response
        if previous is not None and not previous.done():
            previous.set_exception(ScriptError(f"superseded by {function_name}"))
        waiter: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending_response = waiter
        try:
            await self.run_script(function_name, params)
            return await waiter
        finally:
            if self._pending_response is waiter:
                self._pending_response = None

    async def download(self, url: str) -> Path:
        await self.prepare()
        try:
            async with self.page.expect_download(timeout=self.config.download_timeout_ms) as download_info:
                await self.page.evaluate(_DOWNLOAD_TRIGGER, url)
            download = await download_info.value
            failure = await download.failure()
            if failure:
                raise DownloadError(failure)
            destination = Path(tempfile.gettempdir()) / f"{download.suggested_filename}{uuid.uuid4().hex}"
            try:
                await download.save_as(destination)
            except BaseException:
                destination.unlink(missing_ok=True)
                raise
        except PlaywrightError as exc:
            log.warning("Download of %s failed: %s", url, exc.message)
            raise DownloadError(exc.message) from exc
        log.debug("downloaded %s to %s", url, destination)
        return destination

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _on_response(self, value: Any) -> None:
        waiter = self._pending_response
        if waiter is None or waiter.done():
            log.info("Ignoring page response with no pending async script")
            return
        waiter.set_result(value)
