"""Encoding of caller-attached user data.

Callers declare the shape of their data with one of the tagged variants
below instead of having it guessed from the runtime type. Plain ``None``
and ``str`` values are accepted as shorthand for ``Empty`` and ``Raw``.

The stored string is handed back uninterpreted on load; callers that
stored ``Structured`` data decode it themselves (``decode_structured``
is a thin helper for that).
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Union

from .errors import EncodingError


@dataclass(frozen=True)
class Empty:
    """No user data."""


@dataclass(frozen=True)
class Raw:
    """A string stored verbatim."""

    value: str


@dataclass(frozen=True)
class Renderable:
    """An object stored as its textual rendering, ``str(value)``."""

    value: Any


@dataclass(frozen=True)
class Structured:
    """A composite value stored as JSON text."""

    value: Any


UserData = Union[None, str, Empty, Raw, Renderable, Structured]


def _structured_default(value: Any) -> Any:
    """Let json.dumps descend into dataclass records."""
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(data: Any) -> str:
    """Return the storable string for ``data``.

    Raises ``EncodingError`` when the value is not one of the accepted
    variants or its structured form cannot be represented as JSON.
    """

    if data is None or isinstance(data, Empty):
        return ""
    if isinstance(data, str):
        return data
    if isinstance(data, Raw):
        if not isinstance(data.value, str):
            raise EncodingError(
                message=f"Raw user data must be str, got {type(data.value).__name__}"
            )
        return data.value
    if isinstance(data, Renderable):
        return str(data.value)
    if isinstance(data, Structured):
        try:
            return json.dumps(
                data.value,
                separators=(",", ":"),
                sort_keys=True,
                default=_structured_default,
            )
        except (TypeError, ValueError) as exc:
            raise EncodingError(
                message=f"cannot encode {type(data.value).__name__} as JSON: {exc}"
            ) from exc
    raise EncodingError(message=f"cannot encode user data of type {type(data).__name__}")


def decode_structured(text: str) -> Any:
    """Decode a string previously written from ``Structured`` data."""

    if not text:
        return None
    return json.loads(text)
