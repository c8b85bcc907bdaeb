# src/olakai/contracts/jsonable.py
"""Conversion of arbitrary call arguments and results into JSON values.

Prompts and responses reported by the SDK are whatever the wrapped
function received or returned: strings, dicts, provider SDK objects,
pydantic models, dataclasses. Everything is reduced to JSON-compatible
values before it crosses the wire.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

JsonValue = None | bool | int | float | str | list["JsonValue"] | dict[str, "JsonValue"]

_MAX_DEPTH = 32


def to_json_value(
    value: Any,
    *,
    transform_str: Callable[[str], str] | None = None,
    _depth: int = 0,
) -> JsonValue:
    """Reduce ``value`` to a JSON-compatible structure.

    Args:
        value: Any Python object
        transform_str: Optional rewrite applied to every string leaf

    Non-finite floats become strings, unknown objects become ``str(value)``.
    Recursion stops at a fixed depth to survive self-referencing objects.
    """
    if _depth > _MAX_DEPTH:
        return "<max depth exceeded>"
    if value is None or isinstance(value, bool | int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, str):
        return transform_str(value) if transform_str else value
    if isinstance(value, Enum):
        return to_json_value(value.value, transform_str=transform_str, _depth=_depth + 1)
    if isinstance(value, bytes | bytearray):
        return to_json_value(bytes(value).decode("utf-8", errors="replace"), transform_str=transform_str)
    if isinstance(value, Mapping):
        return {
            str(k): to_json_value(v, transform_str=transform_str, _depth=_depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, list | tuple | set | frozenset):
        return [to_json_value(v, transform_str=transform_str, _depth=_depth + 1) for v in value]
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        try:
            dumped = model_dump(mode="json")
        except Exception:
            dumped = str(value)
        return to_json_value(dumped, transform_str=transform_str, _depth=_depth + 1)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_json_value(dataclasses.asdict(value), transform_str=transform_str, _depth=_depth + 1)
    text = str(value)
    return transform_str(text) if transform_str else text

