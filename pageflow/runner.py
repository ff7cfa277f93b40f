"""Sequential step driver.

The runner owns the page environment, the current step list, the model and
the run state.  :meth:`StepRunner.run` schedules the pipeline on the running
event loop and returns the :class:`asyncio.Task` immediately; progress is
reported to the registered state observers and to the optional completion
callback.  Only one step is ever in flight, and the next step is invoked only
after the previous verdict has been applied and published.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .environment.base import PageEnvironment
from .errors import IncorrectStepError, RunnerBusyError, StepContractError
from .flow import Failure, Finish, JumpToStep, Proceed, StepFlowResult, is_step_flow_result
from .model import Model, copy_model, validate_model
from .state import RunStatus, StepRunnerState
from .steps.base import Step

log = logging.getLogger(__name__)

StateObserver = Callable[[StepRunnerState], None]
CompletionCallback = Callable[[StepRunnerState], None]


class StepRunner:
    """Drive a list of steps against one page environment."""

    def __init__(
        self,
        environment: PageEnvironment,
        steps: Sequence[Step] = (),
        *,
        model: Optional[Mapping[str, object]] = None,
        name: str = "pageflow",
    ) -> None:
        self.environment = environment
        self.name = name
        self.state_observers: List[StateObserver] = []
        self._steps: List[Step] = list(steps)
        self._model: Model = validate_model(model or {})
        self._index = 0
        self._state = StepRunnerState.not_started()
        self._task: Optional[asyncio.Task[StepRunnerState]] = None

    # ------------------------------------------------------------------
    # read-only views
    # ------------------------------------------------------------------
    @property
    def state(self) -> StepRunnerState:
        return self._state

    @property
    def model(self) -> Model:
        """Snapshot of the current model; mutating it does not affect the run."""

        return copy_model(self._model)

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_observer(self, observer: StateObserver) -> StateObserver:
        self.state_observers.append(observer)
        return observer

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def run(
        self,
        on_complete: Optional[CompletionCallback] = None,
        *,
        steps: Optional[Sequence[Step]] = None,
    ) -> "asyncio.Task[StepRunnerState]":
        """Start the pipeline and return the task driving it.

        With ``steps`` the step list is replaced, the index reset and
        ``not_started`` published before running; the model carries over from
        the previous run.  ``on_complete`` receives the terminal state once it
        has been delivered to every observer, and may itself call ``run``.
        """

        if self.is_running:
            raise RunnerBusyError()
        loop = asyncio.get_running_loop()
        if steps is not None:
            self._steps = list(steps)
            self._index = 0
            self._set_state(StepRunnerState.not_started())
        self._task = loop.create_task(self._drive(on_complete), name=f"{self.name}-runner")
        return self._task

    # ------------------------------------------------------------------
    # state machine
    # ------------------------------------------------------------------
    async def _drive(self, on_complete: Optional[CompletionCallback]) -> StepRunnerState:
        if not self._steps:
            self._set_state(StepRunnerState.success())
        else:
            self._index = 0
            self._set_state(StepRunnerState.in_progress(0))
            while not self._state.is_terminal:
                step = self._steps[self._index]
                result = await self._invoke(step)
                self._apply(result)

        final_state = self._state
        # Observers have seen the terminal state; the completion callback may
        # start the next run.
        if self._task is asyncio.current_task():
            self._task = None
        if on_complete is not None:
            try:
                on_complete(final_state)
            except Exception:
                log.exception("%s: completion callback failed", self.name)
        return final_state

    async def _invoke(self, step: Step) -> StepFlowResult:
        index = self._index
        try:
            result = await step.run(self.environment, copy_model(self._model))
        except asyncio.CancelledError:
            log.info("%s: step %d (%s) cancelled", self.name, index, step.name)
            raise
        except Exception as exc:
            log.warning("%s: step %d (%s) raised %s: %s", self.name, index, step.name, type(exc).__name__, exc)
            return Failure(exc, copy_model(self._model))
        if not is_step_flow_result(result):
            error = StepContractError(
                f"Step {index} ({step.name}) returned {type(result).__name__}, expected a step flow result"
            )
            return Failure(error, copy_model(self._model))
        return result

    def _apply(self, result: StepFlowResult) -> None:
        try:
            self._model = validate_model(result.model)
        except ValidationError as exc:
            log.warning("%s: step %d produced a model that is not JSON-like: %s", self.name, self._index, exc)
            self._set_state(StepRunnerState.failure(StepContractError(f"Step {self._index} produced an invalid model")))
            return

        if isinstance(result, Proceed):
            if self._index + 1 >= len(self._steps):
                self._set_state(StepRunnerState.success())
            else:
                self._index += 1
                self._set_state(StepRunnerState.in_progress(self._index))
        elif isinstance(result, Finish):
            self._set_state(StepRunnerState.success())
        elif isinstance(result, JumpToStep):
            target = result.target
            if isinstance(target, int) and not isinstance(target, bool) and 0 <= target < len(self._steps):
                self._index = target
                self._set_state(StepRunnerState.in_progress(self._index))
            else:
                log.warning(
                    "%s: step %d jumped to %r, outside 0..%d",
                    self.name,
                    self._index,
                    result.target,
                    len(self._steps) - 1,
                )
                self._set_state(StepRunnerState.failure(IncorrectStepError(result.target)))
        elif isinstance(result, Failure):
            self._set_state(StepRunnerState.failure(result.error))

    def _set_state(self, state: StepRunnerState) -> None:
        self._state = state
        if state.status is RunStatus.FAILURE:
            log.warning("%s: failed at step %d: %s", self.name, self._index, state.error)
        else:
            log.debug("%s: %r", self.name, state)
        for observer in list(self.state_observers):
            try:
                observer(state)
            except Exception:
                log.exception("%s: state observer %r failed", self.name, observer)
