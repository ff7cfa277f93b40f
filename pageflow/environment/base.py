"""Interface the steps need from a page-rendering environment."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class PageEnvironment(Protocol):
    """Asynchronous page operations used by the concrete steps.

    Failures are raised as :class:`~pageflow.errors.PageFlowError`
    subclasses: :class:`~pageflow.errors.NavigationError` for navigation,
    :class:`~pageflow.errors.ScriptError` and
    :class:`~pageflow.errors.ParameterSerializationError` for scripts.
    """

    async def navigate(self, path: str) -> None:
        """Load ``path`` and return once the document has finished loading."""

    async def run_script(self, function_name: str, params: Sequence[Any] = ()) -> Any:
        """Call ``function_name`` of the page module and return its result."""

    async def run_page_change_script(self, function_name: str, params: Sequence[Any] = ()) -> None:
        """Call a page function that navigates; return when the new page has loaded."""

    async def run_async_script(self, function_name: str, params: Sequence[Any] = ()) -> Any:
        """Call a page function and return the value it later posts back."""

    async def download(self, url: str) -> Path:
        """Fetch ``url`` into a temporary file owned by the caller."""
