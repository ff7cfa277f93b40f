"""Steps that only transform the model, without touching the page."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Tuple, Union

from ..environment.base import PageEnvironment
from ..flow import Directive, StepFlowResult
from ..model import Model
from .base import OneShot, Step, apply_directive

ProcessStepHandler = Callable[[Model], Directive]
ProcessCompletion = Callable[[Model, Directive], None]
AsyncProcessStepHandler = Union[
    Callable[[Model, ProcessCompletion], None],
    Callable[[Model], Awaitable[Tuple[Model, Directive]]],
]


class ProcessStep(Step):
    """``handler(model)`` updates the model in place and returns the directive."""

    def __init__(self, handler: ProcessStepHandler) -> None:
        self.handler = handler

    async def run(self, environment: PageEnvironment, model: Model) -> StepFlowResult:
        directive = self.handler(model)
        return apply_directive(directive, model, source=f"{self.name} handler")


class AsyncProcessStep(Step):
    """Adapter for handlers that finish later.

    A plain callable is invoked as ``handler(model, completion)`` and must call
    ``completion(new_model, directive)`` exactly once, from any later loop
    callback or task; a second call raises
    :class:`~pageflow.errors.StepContractError`.  A coroutine function is
    awaited as ``handler(model)`` and returns ``(new_model, directive)``; this
    includes ``functools.partial`` wrappers and objects with ``async __call__``.
    """

    def __init__(self, handler: AsyncProcessStepHandler) -> None:
        self.handler = handler

    async def run(self, environment: PageEnvironment, model: Model) -> StepFlowResult:
        if _is_coroutine_handler(self.handler):
            new_model, directive = await self.handler(model)  # type: ignore[misc]
            return apply_directive(directive, new_model, source=f"{self.name} handler")

        token: OneShot[Tuple[Model, Any]] = OneShot(label=f"{self.name} handler")

        def completion(new_model: Model, directive: Directive) -> None:
            token.resolve((new_model, directive))

        self.handler(model, completion)  # type: ignore[call-arg]
        new_model, directive = await token.wait()
        return apply_directive(directive, new_model, source=f"{self.name} handler")


def _is_coroutine_handler(handler: Any) -> bool:
    if inspect.iscoroutinefunction(handler):
        return True
    return inspect.iscoroutinefunction(getattr(type(handler), "__call__", None))
