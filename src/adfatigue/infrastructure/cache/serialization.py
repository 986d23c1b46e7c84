"""
Payload serialization shared by the cache tiers.

orjson is used for both size accounting (memory tier) and storage
(persistent tier), so sizes and checksums refer to the same bytes.
"""

import hashlib
from typing import Any

import orjson
from pydantic import BaseModel

from adfatigue.core.exceptions import SerializationError


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def dumps(data: Any) -> bytes:
    """
    Serialize a payload.

    Raises:
        SerializationError: If the payload cannot be encoded
    """
    try:
        return orjson.dumps(data, default=_default)
    except TypeError as e:
        raise SerializationError(
            f"Payload cannot be serialized: {e}", details={"type": type(data).__name__}
        )


def loads(raw: str | bytes) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise SerializationError(f"Stored payload is corrupt: {e}")


def to_jsonable(data: Any) -> Any:
    """Convert pydantic models to plain JSON types; other values pass through."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return data


def checksum(raw: bytes) -> str:
    """SHA-256 of the serialized payload."""
    return hashlib.sha256(raw).hexdigest()
