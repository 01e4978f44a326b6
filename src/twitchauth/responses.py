"""Response gatekeeping and JSON-to-record decoding.

`is_response_valid` runs first and only looks at transport outcome and
status code. `decode` runs second and only looks at the body.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, Optional, Type, TypeVar, Union

import httpx

from .errors import DecodeError

T = TypeVar("T")

_SCALARS = (str, int, float, bool)


def is_response_valid(
    response: Optional[httpx.Response], transport_succeeded: bool
) -> bool:
    if not transport_succeeded or response is None:
        return False
    return 200 <= response.status_code <= 299


def _json_key(f: dataclasses.Field) -> str:
    return f.metadata.get("json_key", f.name)


def decode(model: Type[T], body: Union[str, bytes]) -> T:
    """Decode a JSON object body into the dataclass `model`.

    Keys are matched to fields by name (or by `json_key` metadata). Unknown
    keys are ignored and missing or null keys keep the field default.
    """
    if not dataclasses.is_dataclass(model):
        raise TypeError(f"{model!r} is not a dataclass")

    try:
        payload = json.loads(body)
    except (ValueError, TypeError) as exc:
        raise DecodeError(f"response body is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise DecodeError(
            f"expected a JSON object for {model.__name__}, got {type(payload).__name__}"
        )

    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(model):
        if not f.init:
            continue
        key = _json_key(f)
        if key not in payload or payload[key] is None:
            continue
        value = payload[key]
        if not isinstance(value, _SCALARS):
            raise DecodeError(
                f"field {key!r} of {model.__name__} expects a scalar, got {type(value).__name__}"
            )
        # every record field is a string; Kraken sometimes sends numeric ids
        if isinstance(value, bool):
            kwargs[f.name] = json.dumps(value)
        else:
            kwargs[f.name] = value if isinstance(value, str) else str(value)
    return model(**kwargs)
