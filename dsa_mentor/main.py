"""
dsa_mentor/main.py
Application entry point: FastAPI app, error handlers, routers and the relay endpoint
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from dsa_mentor.config.settings import get_settings
from dsa_mentor.database import init_db, close_db
from dsa_mentor.errors import APIError, ErrorCode, ErrorResponse, ERROR_MAPPING, internal_error_for
from dsa_mentor.realtime.ws_server import websocket_endpoint
from dsa_mentor.routes import router
from dsa_mentor.routes.auth import limiter
from dsa_mentor.security.session_tokens import get_signing_key

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Fail fast on a missing signing key in production-like environments
get_signing_key()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting DSA Mentor API (environment={settings.ENVIRONMENT})...")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    yield

    logger.info("Shutting down application...")
    await close_db()


app = FastAPI(
    title="DSA Mentor API",
    description="84-day DSA curriculum progress tracking with real-time sync",
    version=VERSION,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    lifespan=lifespan
)

# Attach rate limiter to the app
app.state.limiter = limiter
logger.info(f"✓ Rate limiter configured (enabled={settings.RATE_LIMIT_ENABLED}, auth={settings.AUTH_RATE_LIMIT})")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "success": False,
            "error": "Too Many Requests",
            "message": f"Rate limit exceeded: {exc.detail}",
            "code": ErrorCode.RATE_LIMITED
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {len(exc.errors())} error(s)")

    error_details = []
    for error in exc.errors():
        error_details.append({
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg"),
            "type": error.get("type")
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "Validation Error",
            "message": "Request validation failed",
            "code": ErrorCode.VALIDATION_ERROR,
            "details": {"errors": error_details}
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")

    error, code = ERROR_MAPPING.get(
        exc.status_code,
        ("Error", ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.INVALID_INPUT)
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error,
            "message": str(exc.detail),
            "code": code
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
    return exc.to_response()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    return internal_error_for(exc, context=request.url.path).to_response()


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": VERSION
    }


app.include_router(
    router,
    prefix="/api",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    }
)
app.add_api_websocket_route("/ws/sync", websocket_endpoint)


if __name__ == "__main__":
    uvicorn.run("dsa_mentor.main:app", host=settings.HOST, port=settings.PORT)
