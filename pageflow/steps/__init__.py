"""Step implementations."""

from .base import OneShot, Step
from .download import DownloadStep
from .page import OpenPageStep, PageChangeStep
from .process import AsyncProcessStep, ProcessStep
from .script import AsyncScriptStep, ScriptStep
from .wait_for_condition import WaitForConditionStep, WaitPhase

__all__ = [
    "AsyncProcessStep",
    "AsyncScriptStep",
    "DownloadStep",
    "OneShot",
    "OpenPageStep",
    "PageChangeStep",
    "ProcessStep",
    "ScriptStep",
    "Step",
    "WaitForConditionStep",
    "WaitPhase",
]
