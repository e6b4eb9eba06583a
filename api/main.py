"""
Contributor API - Main Application.

FastAPI application exposing the sale lifecycle, contributions and claims.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.dependencies import get_settings
from api.models import ErrorResponse
from config.logging import configure_logging
from domain.errors import ContributorError, ContributorException, ErrorCategory
from repositories.store import StaleWriteError

logger = logging.getLogger(__name__)

_CATEGORY_STATUS = {
    ErrorCategory.DECODING: 400,
    ErrorCategory.LIFECYCLE: 409,
    ErrorCategory.ACCOUNTING: 409,
    ErrorCategory.CRYPTOGRAPHY: 403,
    ErrorCategory.IDENTITY: 403,
}

_CODE_STATUS = {
    ContributorError.INVALID_TOKEN_INDEX: 422,
    ContributorError.AMOUNT_TOO_LARGE: 422,
    ContributorError.INVALID_SALE: 404,
    ContributorError.INVALID_ACCOUNT: 404,
}


def status_for(code: ContributorError) -> int:
    return _CODE_STATUS.get(code, _CATEGORY_STATUS[code.category])


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = application.dependency_overrides.get(get_settings, get_settings)()
    configure_logging(settings.log_format)
    yield


# Create FastAPI application
app = FastAPI(
    title="Sale Contributor API",
    description="REST API for contributing to cross-chain token sales and claiming allocations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ContributorException)
async def contributor_error_handler(_: Request, exc: ContributorException) -> JSONResponse:
    status_code = status_for(exc.code)
    body = ErrorResponse(
        error=exc.code.value,
        category=exc.code.category.value,
        detail=exc.detail,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(StaleWriteError)
async def stale_write_handler(_: Request, exc: StaleWriteError) -> JSONResponse:
    logger.warning("Request gave up after repeated stale writes: %s", exc)
    body = ErrorResponse(error="StaleWrite", detail=str(exc), status_code=409)
    return JSONResponse(status_code=409, content=body.model_dump())


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "sale-contributor-api"
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Sale Contributor API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import buyers, messages, sales  # noqa: E402

app.include_router(messages.router, prefix="/api/v1", tags=["Messages"])
app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
app.include_router(buyers.router, prefix="/api/v1", tags=["Buyers"])
