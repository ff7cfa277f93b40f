"""Steps that call a page function and hand its response to a handler."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from ..environment.base import PageEnvironment
from ..errors import PageFlowError
from ..flow import PROCEED, Directive, Failure, StepFlowResult
from ..model import Model, resolve_params
from .base import Step, apply_directive

ScriptStepHandler = Callable[[Any, Model], Directive]


class ScriptStep(Step):
    """Call ``function_name`` in the page module.

    ``handler(response, model)`` may update ``model`` in place and returns the
    flow directive; without a handler the step proceeds.  Arguments come from
    ``params`` or, when ``params_keys`` is given, from those model keys.
    """

    def __init__(
        self,
        function_name: str,
        params: Sequence[Any] = (),
        handler: Optional[ScriptStepHandler] = None,
        *,
        params_keys: Optional[Sequence[str]] = None,
    ) -> None:
        self.function_name = function_name
        self.params = list(params)
        self.params_keys = list(params_keys) if params_keys is not None else None
        self.handler = handler

    async def _call(self, environment: PageEnvironment, params: Sequence[Any]) -> Any:
        return await environment.run_script(self.function_name, params)

    async def run(self, environment: PageEnvironment, model: Model) -> StepFlowResult:
        params = resolve_params(self.params, self.params_keys, model)
        try:
            response = await self._call(environment, params)
        except PageFlowError as exc:
            return Failure(exc, model)
        if self.handler is None:
            return PROCEED.with_model(model)
        directive = self.handler(response, model)
        return apply_directive(directive, model, source=f"{self.name} handler for {self.function_name}")

    def __repr__(self) -> str:
        return f"<{self.name} {self.function_name}>"


class AsyncScriptStep(ScriptStep):
    """Like :class:`ScriptStep`, but the response is the value the page posts
    back through ``PageFlow.respond`` rather than the function's return value."""

    async def _call(self, environment: PageEnvironment, params: Sequence[Any]) -> Any:
        return await environment.run_async_script(self.function_name, params)
