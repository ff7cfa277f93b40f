"""Step capability interface and helpers shared by the concrete steps."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..errors import StepContractError
from ..flow import Directive, StepFlowResult
from ..model import Model

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..environment.base import PageEnvironment

T = TypeVar("T")


class Step(ABC):
    """One pipeline stage.

    ``run`` receives the page environment for this call only and a private
    copy of the model, and returns exactly one verdict.  Steps must not keep a
    reference to the runner.
    """

    @abstractmethod
    async def run(self, environment: "PageEnvironment", model: Model) -> StepFlowResult:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        return f"<{self.name}>"


class OneShot(Generic[T]):
    """Completion token that can be resolved a single time.

    Wraps an :class:`asyncio.Future` bound to the running loop.  The first
    :meth:`resolve` wins; any later call raises :class:`StepContractError`.
    """

    def __init__(self, label: str = "step") -> None:
        self._label = label
        self._future: asyncio.Future[T] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: T) -> None:
        if self._future.done():
            raise StepContractError(f"{self._label} completed more than once")
        self._future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if self._future.done():
            raise StepContractError(f"{self._label} completed more than once")
        self._future.set_exception(error)

    async def wait(self) -> T:
        return await self._future


def apply_directive(directive: Any, model: Model, *, source: str) -> StepFlowResult:
    """Attach ``model`` to a handler's directive, rejecting anything else."""

    if not isinstance(directive, Directive):
        raise StepContractError(
            f"{source} returned {type(directive).__name__}, expected a flow directive"
        )
    return directive.with_model(model)
