"""Step that polls a page assertion until it holds or a timeout expires."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from ..config import DEFAULTS
from ..environment.base import PageEnvironment
from ..errors import PageFlowError, StepContractError, StepTimeoutError
from ..flow import Failure, Proceed, StepFlowResult
from ..model import Model, resolve_params
from .base import Step

log = logging.getLogger(__name__)


class WaitPhase(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SATISFIED = "satisfied"
    TIMED_OUT = "timed_out"
    ERRORED_OUT = "errored_out"


@dataclass(slots=True)
class _PollContext:
    started_at: float
    environment: PageEnvironment
    model: Model


class WaitForConditionStep(Step):
    """Wait for ``assertion_name`` to return exactly ``true``.

    The assertion is called every ``poll_interval`` seconds on the running
    loop.  A ``true`` result proceeds, any other result retries until more
    than ``timeout`` seconds have passed since the step started (then fails
    with :class:`~pageflow.errors.StepTimeoutError`), and a script error fails
    immediately without retrying.
    """

    def __init__(
        self,
        assertion_name: str,
        timeout: float,
        params: Sequence[Any] = (),
        *,
        params_keys: Optional[Sequence[str]] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        if timeout < 0:
            raise ValueError("timeout must be >= 0")
        self.assertion_name = assertion_name
        self.timeout = float(timeout)
        self.params = list(params)
        self.params_keys = list(params_keys) if params_keys is not None else None
        self.poll_interval = float(poll_interval if poll_interval is not None else DEFAULTS["poll_interval"])
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self.phase = WaitPhase.IDLE
        self.polls = 0
        self._context: Optional[_PollContext] = None

    async def run(self, environment: PageEnvironment, model: Model) -> StepFlowResult:
        loop = asyncio.get_running_loop()
        context = _PollContext(started_at=loop.time(), environment=environment, model=model)
        self._context = context
        self.phase = WaitPhase.POLLING
        self.polls = 0
        try:
            while True:
                self._check_alive(context)
                params = resolve_params(self.params, self.params_keys, context.model)
                try:
                    response = await context.environment.run_script(self.assertion_name, params)
                except PageFlowError as exc:
                    self._check_alive(context)
                    return self._terminate(WaitPhase.ERRORED_OUT, Failure(exc, context.model))
                self._check_alive(context)
                self.polls += 1

                if response is True:
                    return self._terminate(WaitPhase.SATISFIED, Proceed(context.model))
                elapsed = loop.time() - context.started_at
                if elapsed > self.timeout:
                    log.info("%s timed out after %.2fs (%d polls)", self.assertion_name, elapsed, self.polls)
                    return self._terminate(WaitPhase.TIMED_OUT, Failure(StepTimeoutError(), context.model))
                await asyncio.sleep(self.poll_interval)
        finally:
            if self._context is context:
                self._context = None
                self.phase = WaitPhase.IDLE

    def _check_alive(self, context: _PollContext) -> None:
        # A later run of this same instance replaces the context; the older
        # poll loop must not complete on its behalf.
        if self._context is not context:
            raise StepContractError(f"{self.assertion_name} poll resumed after its run was superseded")

    def _terminate(self, phase: WaitPhase, result: StepFlowResult) -> StepFlowResult:
        self.phase = phase
        self._context = None
        return result

    def __repr__(self) -> str:
        return f"<WaitForConditionStep {self.assertion_name} timeout={self.timeout:g}s>"
