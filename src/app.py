"""Waitlist Service - FastAPI server for waitlist signups."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.database import init_db
from src.shared.waitlist.routes import router as waitlist_router
from src.shared.waitlist.schemas import HealthResponse

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "waitlist-api"

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database on startup
    init_db()
    logger.info("Database initialization completed on startup")
    yield


app = FastAPI(
    title="Waitlist Service",
    description="Waitlist signup API with per-IP daily rate limiting",
    version="0.1.0",
    lifespan=lifespan
)

# Include waitlist routes
app.include_router(waitlist_router)

# CORS configuration - must be added before exception handlers
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Retry-After"],
)


def _cors_headers(request: Request) -> dict:
    """CORS headers for error responses, which bypass the middleware."""
    headers = {}
    origin = request.headers.get("origin")
    if origin in CORS_ORIGINS:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Access-Control-Allow-Methods"] = "*"
        headers["Access-Control-Allow-Headers"] = "*"
    return headers


# Global exception handlers to ensure CORS headers are always added
@app.exception_handler(StarletteHTTPException)
async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Ensure CORS headers are added to Starlette HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail} if isinstance(exc.detail, (str, dict)) else {"detail": str(exc.detail)},
        headers={**(exc.headers or {}), **_cors_headers(request)}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors (e.g. lost database connection) and return a generic 500."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
        headers=_cors_headers(request)
    )


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(service=SERVICE_NAME)
