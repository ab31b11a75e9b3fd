"""Map domain exceptions to the API response envelope."""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from pricecrawler.core.exceptions import (
    AllSourcesFailedError,
    InvalidInputError,
    UnknownSourceError,
)
from pricecrawler.schemas import ApiResponse, SourceFailureResponse

logger = structlog.get_logger(__name__)


def _envelope(status_code: int, body: ApiResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def handle_invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.info("invalid_input", path=request.url.path, error=exc.message)
    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        ApiResponse(success=False, error=exc.message),
    )


async def handle_unknown_source(request: Request, exc: UnknownSourceError) -> JSONResponse:
    logger.info("unknown_source", path=request.url.path, source=exc.source)
    return _envelope(
        status.HTTP_404_NOT_FOUND,
        ApiResponse(success=False, error="Unsupported shop"),
    )


async def handle_all_sources_failed(request: Request, exc: AllSourcesFailedError) -> JSONResponse:
    """Every source failed: a bad gateway, with one failure per source."""
    logger.warning(
        "all_sources_failed",
        path=request.url.path,
        query=exc.query,
        failures=len(exc.failures),
    )
    return _envelope(
        status.HTTP_502_BAD_GATEWAY,
        ApiResponse(
            success=False,
            error=exc.message,
            failures=[SourceFailureResponse(**f.to_dict()) for f in exc.failures],
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidInputError, handle_invalid_input)
    app.add_exception_handler(UnknownSourceError, handle_unknown_source)
    app.add_exception_handler(AllSourcesFailedError, handle_all_sources_failed)
