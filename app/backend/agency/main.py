"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agency.api.router import api_router
from agency.core.config import get_settings
from agency.core.logging import configure_logging
from agency.domain.errors import InvalidParameter, InvalidTransition

logger = logging.getLogger(__name__)


async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    logger.warning("Rejected task transition at %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": str(exc),
            "current_status": exc.current.value,
            "requested_status": exc.requested.value,
        },
    )


async def invalid_parameter_handler(request: Request, exc: InvalidParameter) -> JSONResponse:
    logger.warning("Invalid parameter at %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "field": exc.field},
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.add_exception_handler(InvalidParameter, invalid_parameter_handler)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "status": "running"}

    return app


app = create_app()
