"""Drive a sequence of steps against a scriptable page."""

from .config import RunnerConfig, load_config
from .environment import PageEnvironment, PlaywrightPage
from .errors import (
    CommonScriptNotFoundError,
    ContentUnexpectedError,
    DownloadError,
    DownloadReadError,
    IncorrectStepError,
    NavigationError,
    PageFlowError,
    ParameterSerializationError,
    RunnerBusyError,
    ScriptError,
    ScriptNotFoundError,
    StepContractError,
    StepTimeoutError,
)
from .flow import FINISH, PROCEED, Directive, Failure, Finish, JumpToStep, Proceed, StepFlowResult, fail, jump_to_step
from .model import Model
from .recording import StateRecorder
from .runner import StepRunner
from .state import RunStatus, StepRunnerState
from .steps import (
    AsyncProcessStep,
    AsyncScriptStep,
    DownloadStep,
    OpenPageStep,
    PageChangeStep,
    ProcessStep,
    ScriptStep,
    Step,
    WaitForConditionStep,
)

__all__ = [
    "AsyncProcessStep",
    "AsyncScriptStep",
    "CommonScriptNotFoundError",
    "ContentUnexpectedError",
    "Directive",
    "DownloadError",
    "DownloadReadError",
    "DownloadStep",
    "FINISH",
    "Failure",
    "Finish",
    "IncorrectStepError",
    "JumpToStep",
    "Model",
    "NavigationError",
    "OpenPageStep",
    "PROCEED",
    "PageChangeStep",
    "PageEnvironment",
    "PageFlowError",
    "ParameterSerializationError",
    "PlaywrightPage",
    "Proceed",
    "ProcessStep",
    "RunStatus",
    "RunnerBusyError",
    "RunnerConfig",
    "ScriptError",
    "ScriptNotFoundError",
    "ScriptStep",
    "StateRecorder",
    "Step",
    "StepContractError",
    "StepFlowResult",
    "StepRunner",
    "StepRunnerState",
    "StepTimeoutError",
    "WaitForConditionStep",
    "fail",
    "jump_to_step",
    "load_config",
]
