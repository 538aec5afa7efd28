from contextlib import asynccontextmanager

from fastapi import FastAPI

from crudkit.api.v1.error_handlers import register_exception_handlers
from crudkit.api.v1.routes import router
from crudkit.config.settings import Settings, get_settings
from crudkit.core.logging import RequestIDMiddleware, setup_logging


def create_app(settings: Settings | None = None) -> FastAPI:
    """App factory: logging, request ids, error envelopes and the example routes."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        yield

    app = FastAPI(title="crudkit", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app, environment=settings.ENV)
    app.include_router(router)
    return app
