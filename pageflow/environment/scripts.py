"""Build the JavaScript call expressions evaluated in the page."""

from __future__ import annotations

import json
import re
from typing import Any, Sequence

from ..errors import ParameterSerializationError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def stringify_param(param: Any) -> str:
    try:
        return json.dumps(param, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ParameterSerializationError() from exc


def generate_script(module_name: str, function_name: str, params: Sequence[Any] = ()) -> str:
    """Return ``module.function(arg, ...)`` with JSON encoded arguments."""

    for identifier in (module_name, function_name):
        if not _IDENTIFIER_RE.match(identifier):
            raise ParameterSerializationError(f"Invalid script identifier {identifier!r}")
    args = ",".join(stringify_param(param) for param in params)
    return f"{module_name}.{function_name}({args})"
