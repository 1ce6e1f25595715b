"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import AggregationInconsistencyError, CipherError
from app.middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from app.routers import agencies, reviews, workers
from app.utils.crypto import get_cipher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: a missing PII key stops startup."""
    get_cipher()
    logger.info("PII cipher ready")
    yield


app = FastAPI(
    title="Agency Reviews & Trust",
    description="Moderated agency reviews, rating aggregates and encrypted worker identity fields",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(CipherError)
async def cipher_error_handler(request: Request, exc: CipherError) -> JSONResponse:
    # Never echo token contents back to the caller
    logger.error("PII cipher failure on %s %s: %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(status_code=500, content={"detail": "Stored identity value could not be read"})


@app.exception_handler(AggregationInconsistencyError)
async def aggregation_error_handler(request: Request, exc: AggregationInconsistencyError) -> JSONResponse:
    logger.error("Rating aggregate inconsistent on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Rating aggregate is being recomputed, retry shortly"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware (the last one added runs outermost)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_request_body_bytes)

# Routers
app.include_router(agencies.router)
app.include_router(reviews.router)
app.include_router(workers.router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
