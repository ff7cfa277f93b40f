"""Observable state of a :class:`~pageflow.runner.StepRunner`."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class StepRunnerState:
    """One runner state.

    ``index`` is set only for ``in_progress``.  ``error`` is set only for
    ``failure`` and is left out of equality, so any two failure states compare
    equal; inspect ``error`` directly to tell failures apart.
    """

    status: RunStatus
    index: Optional[int] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def not_started(cls) -> "StepRunnerState":
        return cls(RunStatus.NOT_STARTED)

    @classmethod
    def in_progress(cls, index: int) -> "StepRunnerState":
        if index < 0:
            raise ValueError("index must be >= 0")
        return cls(RunStatus.IN_PROGRESS, index=index)

    @classmethod
    def success(cls) -> "StepRunnerState":
        return cls(RunStatus.SUCCESS)

    @classmethod
    def failure(cls, error: Optional[BaseException]) -> "StepRunnerState":
        return cls(RunStatus.FAILURE, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.SUCCESS, RunStatus.FAILURE)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status.value}
        if self.index is not None:
            payload["index"] = self.index
        if self.error is not None:
            payload["error"] = str(self.error)
            payload["error_type"] = type(self.error).__name__
        return payload

    def __repr__(self) -> str:
        if self.status is RunStatus.IN_PROGRESS:
            return f"StepRunnerState.in_progress({self.index})"
        if self.status is RunStatus.FAILURE:
            return f"StepRunnerState.failure({self.error!r})"
        return f"StepRunnerState.{self.status.value}()"
