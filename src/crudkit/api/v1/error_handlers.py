"""
Global error normalization for FastAPI.

`normalize_error` is a pure function: (error, environment) -> envelope response.
It is what the CRUD entry points use in DIRECT mode, and what the handlers
registered here use when entry points run in DELEGATE mode and re-raise.

    app = FastAPI()
    register_exception_handlers(app, environment=settings.ENV)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from crudkit.api.v1.responses import write_error
from crudkit.config.settings import get_settings
from crudkit.exceptions.base import RepositoryError

logger = logging.getLogger(__name__)


def normalize_error(exc: BaseException, environment: str) -> JSONResponse:
    """Classify `exc` and build its failure envelope response. Retains no state."""
    return write_error(exc, environment)


def register_exception_handlers(app: FastAPI, environment: str | None = None) -> None:
    """
    Map app-level, store-level and unexpected exceptions to failure envelopes.

    `environment` defaults to Settings.ENV, read once at registration.
    """
    env = environment or get_settings().ENV

    async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
        logger.info("handler.repository_error",
                    extra={"method": request.method, "path": request.url.path, "fields": exc.fields})
        return normalize_error(exc, env)

    async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.warning("handler.store_error",
                       extra={"method": request.method, "path": request.url.path, "exc_type": type(exc).__name__})
        return normalize_error(exc, env)

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return normalize_error(exc, env)

    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
