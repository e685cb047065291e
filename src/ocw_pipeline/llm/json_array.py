"""Parsing of oracle responses that must be a bare JSON array.

Models are told to answer with raw JSON but sometimes wrap the
payload in markdown fences anyway. Only a fence around the whole
response (or around the array after a chatty preamble) is removed;
fences inside JSON string values are content and stay intact.
"""

import re
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from ocw_pipeline.errors import OracleResponseError

_T = TypeVar("_T")

_WRAPPING_FENCE_RE = re.compile(r"\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*", re.DOTALL)
_EMBEDDED_ARRAY_RE = re.compile(r"```(?:json)?\s*\n?(\[.*\])\s*```", re.DOTALL)


def strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences wrapping a JSON response if present."""
    match = _WRAPPING_FENCE_RE.fullmatch(text)
    if match:
        return match.group(1).strip()
    stripped = text.strip()
    if stripped.startswith("["):
        return stripped
    match = _EMBEDDED_ARRAY_RE.search(stripped)
    return match.group(1).strip() if match else stripped


def parse_json_array(raw: str, item_type: type[_T]) -> list[_T]:
    """Parse ``raw`` as a JSON array of ``item_type``.

    Raises:
        OracleResponseError: If the text is not valid JSON, not an
            array, or an element does not match ``item_type``.
    """
    cleaned = strip_markdown_fences(raw)
    list_type = list[item_type]  # type: ignore[valid-type]
    adapter: TypeAdapter[list[Any]] = TypeAdapter(list_type)
    try:
        return adapter.validate_json(cleaned)
    except ValidationError as exc:
        raise OracleResponseError(
            f"Response is not a JSON array of {item_type.__name__}: "
            f"{exc.error_count()} validation error(s)",
            raw_content=raw,
        ) from exc
