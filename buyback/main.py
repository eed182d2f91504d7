"""Application wiring: settings, logging, database, middleware, routers, errors.

``uvicorn buyback.main:app`` serves the API. Tables are created (and older
SQLite files migrated) when this module is imported, so a fresh checkout
boots without a separate setup step.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import settings
from .core.errors import (
    AssetError,
    asset_error_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.logging import configure_logging
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware

# Registers the model with the metadata before ``create_all``.
from .models import asset as _asset  # noqa: F401
from .routers import api_assets

configure_logging()

run_migrations(engine)
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME, version=__version__)
app.add_middleware(RequestIdMiddleware, header_name=settings.REQUEST_ID_HEADER)

app.include_router(api_assets.router)

app.add_exception_handler(AssetError, asset_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


__all__ = ["app"]
