from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request
from starlette.responses import Response

from crudkit.config.settings import Settings, get_settings


class ErrorPropagation(str, Enum):
    """How a CRUD entry point surfaces a failure."""

    # write the error envelope as the entry point's response
    DIRECT = "direct"
    # hand the classified error to the host's own handling chain
    DELEGATE = "delegate"


ErrorDelegate = Callable[[Exception], Awaitable[Response]]


@dataclass
class OperationContext:
    """
    Per-request state passed into every CRUD entry point.

    Owned by the caller and never kept beyond the request. `error_delegate` is
    only consulted in DELEGATE mode; without one the classified error is re-raised
    so that FastAPI's registered exception handlers produce the response.
    """

    request: Request
    db: AsyncSession
    environment: str = "production"
    propagation: ErrorPropagation = ErrorPropagation.DIRECT
    error_delegate: ErrorDelegate | None = None

    @classmethod
    def from_settings(cls, request: Request, db: AsyncSession, settings: Settings | None = None,
                      **overrides) -> "OperationContext":
        """Build a context whose environment and propagation mode come from Settings."""
        settings = settings or get_settings()
        values = {
            "environment": settings.ENV,
            "propagation": ErrorPropagation(settings.ERROR_PROPAGATION),
        }
        values.update(overrides)
        return cls(request=request, db=db, **values)
