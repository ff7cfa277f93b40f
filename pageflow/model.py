"""The schema-less data model threaded through a pipeline run."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import JsonValue, TypeAdapter

Model = Dict[str, JsonValue]

_MODEL_ADAPTER: TypeAdapter[Model] = TypeAdapter(Model)


def validate_model(value: Mapping[str, Any]) -> Model:
    """Check that every value is JSON-like and return a detached copy.

    Raises :class:`pydantic.ValidationError` when a value is not one of
    null, bool, number, string, list or mapping, or when ``value`` itself
    is not a mapping.
    """

    return copy.deepcopy(_MODEL_ADAPTER.validate_python(value))


def copy_model(model: Optional[Mapping[str, Any]]) -> Model:
    if not model:
        return {}
    return copy.deepcopy(dict(model))


def resolve_params(
    params: Sequence[Any],
    params_keys: Optional[Sequence[str]],
    model: Mapping[str, Any],
) -> List[Any]:
    """Return the script arguments for a step.

    When ``params_keys`` is given the current model values are used (``None``
    for missing keys) and ``params`` is ignored.
    """

    if params_keys is not None:
        return [copy.deepcopy(model.get(key)) for key in params_keys]
    return list(params)
