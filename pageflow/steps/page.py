"""Steps that load a new document and optionally assert on its contents."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..environment.base import PageEnvironment
from ..errors import ContentUnexpectedError, PageFlowError
from ..flow import Failure, Proceed, StepFlowResult
from ..model import Model, resolve_params
from .base import Step

log = logging.getLogger(__name__)


class _LoadPageStep(Step):
    def __init__(self, assertion_name: Optional[str] = None) -> None:
        self.assertion_name = assertion_name

    async def _load(self, environment: PageEnvironment, model: Model) -> None:
        raise NotImplementedError

    async def run(self, environment: PageEnvironment, model: Model) -> StepFlowResult:
        try:
            await self._load(environment, model)
            if self.assertion_name is None:
                return Proceed(model)
            passed = await environment.run_script(self.assertion_name)
        except PageFlowError as exc:
            return Failure(exc, model)
        if passed is True:
            return Proceed(model)
        log.info("%s: assertion %s returned %r", self.name, self.assertion_name, passed)
        return Failure(ContentUnexpectedError(), model)


class OpenPageStep(_LoadPageStep):
    """Navigate to ``path``; when ``assertion_name`` is set it must return ``true``."""

    def __init__(self, path: str, assertion_name: Optional[str] = None) -> None:
        super().__init__(assertion_name)
        self.path = path

    async def _load(self, environment: PageEnvironment, model: Model) -> None:
        await environment.navigate(self.path)

    def __repr__(self) -> str:
        return f"<OpenPageStep {self.path}>"


class PageChangeStep(_LoadPageStep):
    """Run a page function that navigates, then check the new page."""

    def __init__(
        self,
        function_name: str,
        params: Sequence[Any] = (),
        *,
        params_keys: Optional[Sequence[str]] = None,
        assertion_name: Optional[str] = None,
    ) -> None:
        super().__init__(assertion_name)
        self.function_name = function_name
        self.params = list(params)
        self.params_keys = list(params_keys) if params_keys is not None else None

    async def _load(self, environment: PageEnvironment, model: Model) -> None:
        params = resolve_params(self.params, self.params_keys, model)
        await environment.run_page_change_script(self.function_name, params)

    def __repr__(self) -> str:
        return f"<PageChangeStep {self.function_name}>"
