"""FastAPI application: middleware, error envelopes, rate limiting and route mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from imageecology import __version__
from imageecology.api.routes import limiter, router
from imageecology.clients.provider_selector import provider_status
from imageecology.core.config import settings
from imageecology.core.logging import log

MAX_BODY_BYTES = 2_000_000


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the Image Ecology API."""
    # Startup
    log.info(
        f"IMAGE_ECOLOGY_STARTUP version={__version__} folder={settings.cloudinary_folder} "
        f"providers={provider_status()}"
    )

    yield

    # Shutdown
    log.info("IMAGE_ECOLOGY_SHUTDOWN")


app = FastAPI(title="Image Ecology API", version=__version__, lifespan=lifespan)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as ``{"error": message}``."""
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Query parameter errors are client errors (400), same envelope."""
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()))
    return JSONResponse(
        {"error": f"Invalid request: {where} {first.get('msg', '')}".strip()},
        status_code=400,
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def body_size_limit_middleware(request: Request, call_next):
    """Limits request body size.

    Raises:
        JSONResponse: 413 if body exceeds 2MB
    """
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > MAX_BODY_BYTES:
        log.warning(f"body_too_large client={get_remote_address(request)} size={content_length}")
        return JSONResponse(
            {"error": "Payload too large (max 2MB)"},
            status_code=413,
        )
    return await call_next(request)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Adds security headers to all responses."""
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


# API routes
app.include_router(router, prefix="/api")


@app.get("/")
def root() -> dict:
    """Root endpoint."""
    return {
        "name": "Image Ecology API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/healthz",
        "endpoints": {
            "recent": "/api/cloudinary/recent",
            "upload": "/api/cloudinary/upload",
            "remix": "/api/generateImage",
            "autotag": "/api/autotagallimages",
            "logs": "/api/logs/tail",
        },
    }
