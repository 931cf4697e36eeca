"""
FastAPI application entry point for the LegalFlow backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from legalflow.config import get_settings
from legalflow.errors import BackendError, describe_error, http_status_for
from legalflow.routes import auth_router, router

LOG_FORMAT = "%(name)s %(levelname)s %(asctime)s %(message)s"


async def handle_backend_error(request: Request, exc: BackendError) -> JSONResponse:
    return JSONResponse(
        status_code=http_status_for(exc),
        content={"detail": describe_error(exc), "code": exc.code},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    app = FastAPI(title="LegalFlow Backend (FastAPI)", version="0.1.0")
    app.add_exception_handler(BackendError, handle_backend_error)
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
