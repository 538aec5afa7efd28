"""
Response envelopes.

    success: {"message": str, "data": any, "success": true, "doc_length"?: int}
    failure: {"message": str, "error": str, "success": false, "stack"?: object}

Optional keys are structurally absent when unset (models are dumped with
`exclude_unset=True`), never written as null. `stack` is only set in development.
"""

import logging
import traceback
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crudkit.exceptions.base import KIND_TO_STATUS, ErrorKind, RepositoryError
from crudkit.exceptions.classifier import classify_error

logger = logging.getLogger(__name__)

DEVELOPMENT = "development"


class StackInfo(BaseModel):
    type: str
    trace: list[str]


class SuccessEnvelope(BaseModel):
    message: str
    data: Any = None
    success: bool = True
    doc_length: int | None = None


class ErrorEnvelope(BaseModel):
    message: str
    error: str
    success: bool = False
    stack: StackInfo | None = None


def _stack_info(exc: BaseException) -> StackInfo:
    return StackInfo(
        type=type(exc).__name__,
        trace=traceback.format_exception(type(exc), exc, exc.__traceback__),
    )


# raw store/driver text never reaches the client
GENERIC_MESSAGES = {
    ErrorKind.NOT_FOUND: "Entity not found",
    ErrorKind.DUPLICATE_ENTITY: "Entity already exists",
    ErrorKind.VALIDATION_FAILURE: "Invalid value or query",
    ErrorKind.UNKNOWN: "Internal server error",
}


def _client_message(exc: BaseException, kind: ErrorKind) -> str:
    if isinstance(exc, RepositoryError):
        return exc.message
    return GENERIC_MESSAGES[kind]


def success_envelope(message: str, data: Any = None, doc_length: int | None = None) -> dict[str, Any]:
    fields: dict[str, Any] = {"message": message, "data": data, "success": True}
    if doc_length is not None:
        fields["doc_length"] = doc_length
    return SuccessEnvelope(**fields).model_dump(exclude_unset=True)


def error_envelope(exc: BaseException, environment: str) -> dict[str, Any]:
    kind = classify_error(exc)
    fields: dict[str, Any] = {"message": _client_message(exc, kind), "error": kind.value, "success": False}
    if environment == DEVELOPMENT:
        fields["stack"] = _stack_info(exc)
    return ErrorEnvelope(**fields).model_dump(exclude_unset=True)


def error_status(exc: BaseException) -> int:
    return KIND_TO_STATUS[classify_error(exc)]


def write_success(message: str, data: Any = None, *, doc_length: int | None = None,
                  status_code: int = 200) -> JSONResponse:
    content = success_envelope(message, data, doc_length)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def write_error(exc: BaseException, environment: str) -> JSONResponse:
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error("response.error", exc_info=exc, extra={"status_code": status_code})
    else:
        logger.info("response.error", extra={"status_code": status_code, "exc_type": type(exc).__name__})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(error_envelope(exc, environment)))
