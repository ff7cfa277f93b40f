"""Error hierarchy shared by the runner, the steps and the page environments."""

from __future__ import annotations

from typing import Any, Optional


class PageFlowError(Exception):
    """Base class for every error raised or reported by pageflow."""

    default_message = "Page flow error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def __eq__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class ParameterSerializationError(PageFlowError):
    default_message = "Could not serialize the parameters to pass to the script"


class ContentUnexpectedError(PageFlowError):
    default_message = "Something went wrong, the page contents was not what was expected"


class ScriptError(PageFlowError):
    """The page raised while evaluating a script function."""

    def __init__(self, error_message: str) -> None:
        self.error_message = error_message
        super().__init__(f"A JavaScript error occurred: {error_message}")


class NavigationError(PageFlowError):
    def __init__(self, error_message: str) -> None:
        self.error_message = error_message
        super().__init__(f"Something went wrong when navigating to the page: {error_message}")


class IncorrectStepError(PageFlowError):
    """A step asked to jump to an index outside the current step list."""

    def __init__(self, target: Optional[int] = None) -> None:
        self.target = target
        super().__init__("An incorrect step was specified")


class StepTimeoutError(PageFlowError):
    default_message = "Timeout occurred while waiting for a step to complete"


class CommonScriptNotFoundError(PageFlowError):
    default_message = "Could not load pageflow.js"


class ScriptNotFoundError(PageFlowError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Could not load {name}")


class DownloadReadError(PageFlowError):
    default_message = "Unable to read downloaded file"


class StepContractError(PageFlowError):
    """A step completed more than once or produced something other than a verdict."""

    default_message = "Step violated its completion contract"


class RunnerBusyError(PageFlowError):
    default_message = "The step runner is already running a pipeline"


class DownloadError(PageFlowError):
    """The page environment could not fetch a resource."""

    def __init__(self, error_message: str) -> None:
        self.error_message = error_message
        super().__init__(f"Download failed: {error_message}")
