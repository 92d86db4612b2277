"""
hackhub/main.py
FastAPI application for the hackathon assignment service

Run locally:  uvicorn hackhub.main:app --reload
Production:   gunicorn hackhub.main:app -c deploy/gunicorn.conf.py
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from hackhub.config.settings import Settings
from hackhub.database import init_db, close_db
from hackhub.errors import (
    ErrorCode, APIError, error_response,
    assignment_error_response, internal_error_response,
)
from hackhub.exceptions import AssignmentError
from hackhub.routes import router

logging.basicConfig(
    level=getattr(logging, Settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting HackHub assignment API ({Settings.ENVIRONMENT})")
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    yield

    try:
        await close_db()
        logger.info("Database connection closed")
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")


def register_exception_handlers(app: FastAPI):
    """Map every failure onto the shared error envelope."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        details = [
            {"loc": error.get("loc"), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation Error",
            "Request validation failed",
            ErrorCode.VALIDATION_ERROR,
            details
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        headers = getattr(exc, "headers", None)
        # Routes re-raise domain errors with the envelope already built
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=headers)
        return error_response(
            exc.status_code,
            "Error",
            str(exc.detail),
            ErrorCode.for_status(exc.status_code),
            headers=headers
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
        return exc.to_response()

    @app.exception_handler(AssignmentError)
    async def assignment_error_handler(request: Request, exc: AssignmentError):
        logger.warning(f"Assignment error on {request.url.path}: {exc.code} - {exc.message}")
        return assignment_error_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        return internal_error_response(exc, context=request.url.path)


app = FastAPI(
    title="HackHub Assignment API",
    description="Hackathon task assignment and submission backend",
    version="1.0.0",
    docs_url="/docs" if Settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if Settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

origins = list(DEV_ORIGINS) if Settings.ENVIRONMENT == "development" else []
origins += [origin.strip() for origin in Settings.ALLOWED_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(router)


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "environment": Settings.ENVIRONMENT,
        "version": "1.0.0"
    }
