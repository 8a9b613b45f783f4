"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import database
from app.errors import AppError, InternalError, ValidationError
from app.repositories.base import StorageError
from app.routers import goals, metrics, tasks, validation
from app.utils.logging import get_logger

logger = get_logger(__name__)

HTTP_ERROR_NAMES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    410: "Gone",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await database.connect()
    yield
    # Shutdown
    await database.disconnect()


app = FastAPI(
    title="SMART Goals Service API",
    description="Goal, task and metric tracking with SMART readiness rules",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render application errors in the standard envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are validation failures (400)."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    error = ValidationError(messages)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Framework HTTP errors (404 route, 405 method, 401 token) in the standard envelope."""
    body = {
        "error": HTTP_ERROR_NAMES.get(exc.status_code, "Error"),
        "message": str(exc.detail),
    }
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """Storage failures are reported as a generic 500."""
    logger.error(f"{request.method} {request.url.path} storage failure", exc_info=exc)
    return JSONResponse(status_code=500, content=InternalError("An unexpected error occurred").to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything else is logged with its traceback and hidden from the caller."""
    logger.error(f"{request.method} {request.url.path} unhandled error", exc_info=exc)
    return JSONResponse(status_code=500, content=InternalError("An unexpected error occurred").to_dict())


# Include routers
app.include_router(goals.router)
app.include_router(tasks.router)
app.include_router(metrics.router)
app.include_router(validation.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "SMART Goals Service API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "storage": database.backend}
