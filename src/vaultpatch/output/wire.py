"""Wire adapter — ServiceResult to a transport-neutral ``(status, body)``.

Success bodies are the operation payload; failure bodies follow the
``{"errorCode": 40901, "message": "..."}`` shape with any error detail
merged in. Keys are camelCased on the way out (``old_path`` becomes
``oldPath``); values are left untouched.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vaultpatch.services.result import ServiceResult

_SNAKE_SEGMENT = re.compile(r"_([a-z0-9])")


def camel_case(key: str) -> str:
    """Convert a snake_case key to camelCase.

    Examples:
        >>> camel_case("files_moved_count")
        'filesMovedCount'
        >>> camel_case("message")
        'message'
    """
    return _SNAKE_SEGMENT.sub(lambda m: m.group(1).upper(), key)


def camelize(value: Any) -> Any:
    """Recursively camelCase the keys of every mapping in *value*."""
    if isinstance(value, dict):
        return {camel_case(str(k)): camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [camelize(v) for v in value]
    return value


def to_wire(result: ServiceResult) -> tuple[int, dict[str, Any]]:
    """Return the response ``(status, body)`` for *result*."""
    if result.ok:
        body: dict[str, Any] = camelize(result.data)
        if result.warnings:
            body.setdefault("warnings", list(result.warnings))
        return result.status, body

    error = result.error
    if error is None:
        return result.status, {"errorCode": result.status * 100, "message": "Unknown error"}
    body = {"errorCode": error.error_code, "message": error.message}
    for key, value in camelize(error.detail).items():
        body.setdefault(key, value)
    return result.status, body
