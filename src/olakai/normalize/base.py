# src/olakai/normalize/base.py
"""Shared machinery for provider metadata normalizers.

Provider SDKs hand back typed objects, plain dicts (raw HTTP clients,
tests) or camelCase structures (JS-style shapes). The accessors here
read all of them the same way. Every normalizer method is wrapped with
@tolerant so an unexpected shape yields an empty result and a log line,
never an exception inside a monitored call.
"""

from __future__ import annotations

import functools
import json
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, ParamSpec, TypeVar

import structlog

from olakai.contracts.enums import Provider
from olakai.contracts.jsonable import to_json_value
from olakai.contracts.metadata import PartialMetadata

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_MISSING = object()


def field(obj: Any, *names: str, default: Any = None) -> Any:
    """Return the first present, non-None field among ``names``.

    Works on mappings (key lookup) and objects (attribute lookup).
    """
    if obj is None:
        return default
    for name in names:
        if isinstance(obj, Mapping):
            value = obj.get(name, _MISSING)
        else:
            value = getattr(obj, name, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def dig(obj: Any, *path: str | int) -> Any:
    """Follow a path of field names and sequence indexes; None if broken."""
    current = obj
    for step in path:
        if current is None:
            return None
        if isinstance(step, int):
            if isinstance(current, Mapping) or isinstance(current, str | bytes):
                return None
            try:
                current = current[step]
            except (IndexError, KeyError, TypeError):
                return None
        else:
            current = field(current, step)
    return current


def enum_text(value: Any) -> str | None:
    """Render provider enums (e.g. FinishReason.STOP) as plain strings."""
    if value is None:
        return None
    name = getattr(value, "name", None)
    raw = getattr(value, "value", value)
    if isinstance(raw, str):
        return raw
    if isinstance(name, str):
        return name
    return str(raw)


def pick_parameters(source: Any, mapping: Mapping[str, str]) -> dict[str, Any]:
    """Copy request parameters under canonical names.

    Args:
        source: Request mapping or config object
        mapping: Source field name -> canonical parameter name
    """
    parameters: dict[str, Any] = {}
    for source_name, canonical in mapping.items():
        value = field(source, source_name)
        if value is not None and canonical not in parameters:
            parameters[canonical] = to_json_value(value)
    return parameters


def render_json(value: Any) -> str:
    return json.dumps(to_json_value(value), ensure_ascii=False, sort_keys=True)


def tolerant(default_factory: Callable[[], R]) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Make an extraction method return a default instead of raising."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    "metadata_extraction_failed",
                    extractor=func.__qualname__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return default_factory()

        return wrapper

    return decorator


class Normalizer:
    """Maps one provider's request/response shapes into canonical metadata.

    Stateless. Subclasses override the extraction methods they can
    support; the defaults return empty results.
    """

    provider: ClassVar[Provider] = Provider.CUSTOM

    @tolerant(dict)
    def extract_request_metadata(self, request: Mapping[str, Any]) -> PartialMetadata:
        return {}

    @tolerant(dict)
    def extract_response_metadata(self, response: Any) -> PartialMetadata:
        return {}

    @tolerant(str)
    def extract_prompt(self, request: Mapping[str, Any]) -> str:
        return ""

    @tolerant(str)
    def extract_response_text(self, response: Any) -> str:
        return ""

    @tolerant(str)
    def extract_chunk_text(self, chunk: Any) -> str:
        return ""

    @tolerant(dict)
    def extract_chunk_metadata(self, chunk: Any) -> PartialMetadata:
        return {}

    @tolerant(lambda: False)
    def is_terminal_chunk(self, chunk: Any) -> bool:
        return False

    @tolerant(lambda: None)
    def extract_api_key(self, client: Any) -> str | None:
        key = field(client, "api_key", "apiKey")
        return key if isinstance(key, str) else None
