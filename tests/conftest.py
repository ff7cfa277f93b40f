"""Pytest configuration and an in-memory page environment for the step tests."""

from __future__ import annotations

import asyncio
import inspect
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple

import pytest

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from pageflow.errors import DownloadError, NavigationError, ScriptError  # noqa: E402
from pageflow.runner import StepRunner  # noqa: E402
from pageflow.state import StepRunnerState  # noqa: E402

UNREACHABLE_MESSAGE = "A server with the specified hostname could not be found."


class FakePage:
    """Deterministic stand-in for a browser page.

    ``functions`` maps page function names to Python callables receiving the
    script params; a missing name behaves like calling an undefined function.
    Page state lives in ``dom`` and survives across runner runs.
    """

    module_name = "StepRunnerTests"

    def __init__(self, download_dir: Path) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.url = "about:blank"
        self.dom: Dict[str, Any] = {}
        self.functions: Dict[str, Callable[..., Any]] = {}
        self.async_functions: Dict[str, Callable[..., Any]] = {}
        self.unreachable: set[str] = set()
        self.downloads: Dict[str, bytes] = {}
        self.download_dir = download_dir
        self.async_delay = 0.01
        self._install_defaults()

    def _install_defaults(self) -> None:
        self.functions["getInnerText"] = lambda selector: self.dom.get(selector)
        self.functions["setInnerText"] = self._set_inner_text
        self.functions["assertPage1Title"] = lambda: self.dom.get("title") == "Page 1"
        self.functions["assertPage2Title"] = lambda: self.dom.get("title") == "Page 2"

    def _set_inner_text(self, selector: str, text: str) -> None:
        self.dom[selector] = text

    def script_calls(self, function_name: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in {"script", "async_script"} and call[1] == function_name]

    async def navigate(self, path: str) -> None:
        self.calls.append(("navigate", path))
        await asyncio.sleep(0)
        if path in self.unreachable:
            raise NavigationError(UNREACHABLE_MESSAGE)
        self.url = path
        self.dom = {"title": path.rsplit("/", 1)[-1].replace(".html", "").replace("page", "Page ")}
        if self.dom["title"] == "Page 1":
            self.dom["h1"] = "Hello world!"

    async def run_script(self, function_name: str, params: Sequence[Any] = ()) -> Any:
        self.calls.append(("script", function_name, tuple(params)))
        await asyncio.sleep(0)
        function = self.functions.get(function_name)
        if function is None:
            raise ScriptError(
                f"TypeError: {self.module_name}.{function_name} is not a function"
            )
        result = function(*params)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def run_page_change_script(self, function_name: str, params: Sequence[Any] = ()) -> None:
        target = await self.run_script(function_name, params)
        await self.navigate(str(target))

    async def run_async_script(self, function_name: str, params: Sequence[Any] = ()) -> Any:
        self.calls.append(("async_script", function_name, tuple(params)))
        function = self.async_functions.get(function_name)
        if function is None:
            raise ScriptError(
                f"TypeError: {self.module_name}.{function_name} is not a function"
            )
        loop = asyncio.get_running_loop()
        response: asyncio.Future[Any] = loop.create_future()
        loop.call_later(self.async_delay, response.set_result, function(*params))
        return await response

    async def download(self, url: str) -> Path:
        self.calls.append(("download", url))
        await asyncio.sleep(0)
        if url not in self.downloads:
            raise DownloadError(f"404 for {url}")
        path = self.download_dir / f"download-{uuid.uuid4().hex}"
        path.write_bytes(self.downloads[url])
        return path


@pytest.fixture
def fake_page(tmp_path: Path) -> FakePage:
    return FakePage(tmp_path)


@pytest.fixture
def make_runner(fake_page: FakePage):
    """Build a runner over ``fake_page`` that records every published state."""

    def factory(steps, **kwargs) -> Tuple[StepRunner, List[StepRunnerState]]:
        runner = StepRunner(fake_page, steps, **kwargs)
        states: List[StepRunnerState] = []
        runner.add_observer(states.append)
        return runner, states

    return factory


def in_progress(*indexes: int) -> List[StepRunnerState]:
    return [StepRunnerState.in_progress(index) for index in indexes]


SUCCESS = StepRunnerState.success()
FAILED = StepRunnerState.failure(None)
NOT_STARTED = StepRunnerState.not_started()
