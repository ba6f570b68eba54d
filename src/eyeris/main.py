import asyncio
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from eyeris.api.v1.router import api_router
from eyeris.core.config import get_settings
from eyeris.core.context import set_correlation_id
from eyeris.core.dependencies import get_processor_pool
from eyeris.core.errors import EyerisError, ImageError, ProviderError, ProviderErrorKind
from eyeris.core.logging import LoggerRegistry, configure_logging

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = LoggerRegistry.get_api_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.request_limiter = asyncio.Semaphore(settings.MAX_CONCURRENT_REQUESTS)
    logger.info("Application startup", provider=settings.PROVIDER)
    yield
    await get_processor_pool().aclose()
    logger.info("Application shutdown")


app = FastAPI(
    title="eyeris",
    description="Image analysis through pluggable vision backends.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Attach a correlation id to the request's logs and response."""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    set_correlation_id(correlation_id)
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


def _status_for(exc: EyerisError) -> int:
    if isinstance(exc, ImageError):
        return 422
    if isinstance(exc, ProviderError) and exc.kind == ProviderErrorKind.MISSING_CREDENTIAL:
        return 500
    return 502


@app.exception_handler(EyerisError)
async def pipeline_error_handler(request: Request, exc: EyerisError):
    logger.error("Failed to process image", **exc.to_dict())
    return JSONResponse(
        status_code=_status_for(exc),
        content={
            "success": False,
            "message": f"Processing failed: {exc.message}",
            "data": None,
            "error": exc.to_dict(),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": str(exc.detail),
            "data": None,
            "error": {"stage": "request", "message": str(exc.detail)},
        },
        headers=getattr(exc, "headers", None),
    )


app.include_router(api_router, prefix="/api/v1")
