"""
Result types shared by every client-facing operation.

Operations never raise for expected failures: they return ``Ok(data)`` or
``Err(kind, message)``. Internally, helpers raise ``ServiceError`` and the
operation boundary converts it.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""
    CONFIGURATION = "configuration"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    VALIDATION = "validation"


class ServiceError(Exception):
    """Raised inside operations; converted to ``Err`` at the boundary."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class Ok:
    data: Any = None
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    success: bool = field(default=False, init=False)


Result = Union[Ok, Err]

HTTP_STATUS = {
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.VALIDATION: 422,
}


def to_response(result: Result, status_code: int = 200) -> JSONResponse:
    """Translate an operation result into a JSON HTTP response."""
    if isinstance(result, Err):
        return JSONResponse(
            status_code=HTTP_STATUS[result.kind],
            content={"success": False, "error": result.message, "kind": result.kind.value},
        )
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": jsonable_encoder(result.data, by_alias=True)},
    )
