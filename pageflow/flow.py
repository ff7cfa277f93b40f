"""Control-flow verdicts produced by steps.

A step finishes with exactly one :data:`StepFlowResult`: one of
:class:`Proceed`, :class:`Finish`, :class:`JumpToStep` or :class:`Failure`,
each carrying the model the runner installs going forward.  Step handlers
written by callers return a :class:`Directive` instead, which has the same
four choices but no model; the step attaches the model with
:meth:`Directive.with_model`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from .model import Model


@dataclass(frozen=True, slots=True)
class Proceed:
    model: Model


@dataclass(frozen=True, slots=True)
class Finish:
    model: Model


@dataclass(frozen=True, slots=True)
class JumpToStep:
    target: int
    model: Model


@dataclass(frozen=True, slots=True)
class Failure:
    error: BaseException
    model: Model


StepFlowResult = Union[Proceed, Finish, JumpToStep, Failure]

STEP_FLOW_RESULT_TYPES = (Proceed, Finish, JumpToStep, Failure)

DirectiveKind = Literal["proceed", "finish", "jump", "failure"]


@dataclass(frozen=True, slots=True)
class Directive:
    """Caller-facing flow choice returned by step handlers."""

    kind: DirectiveKind
    target: Optional[int] = None
    error: Optional[BaseException] = None

    def with_model(self, model: Model) -> StepFlowResult:
        if self.kind == "proceed":
            return Proceed(model)
        if self.kind == "finish":
            return Finish(model)
        if self.kind == "jump":
            if self.target is None:
                raise ValueError("jump directive requires a target index")
            return JumpToStep(self.target, model)
        if self.kind == "failure":
            if self.error is None:
                raise ValueError("failure directive requires an error")
            return Failure(self.error, model)
        raise ValueError(f"Unknown directive kind {self.kind!r}")


PROCEED = Directive("proceed")
FINISH = Directive("finish")


def jump_to_step(index: int) -> Directive:
    return Directive("jump", target=int(index))


def fail(error: BaseException) -> Directive:
    return Directive("failure", error=error)


def is_step_flow_result(value: object) -> bool:
    return isinstance(value, STEP_FLOW_RESULT_TYPES)
