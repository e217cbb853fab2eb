"""
HealthBridge API

FastAPI application for consent-gated fitness metric ingestion.
"""

from contextlib import asynccontextmanager
import logging
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from healthbridge import __version__
from healthbridge.config import settings
from healthbridge.db.session import init_db, AsyncSessionLocal
from healthbridge.api.v1.router import api_router
from healthbridge.shared.errors import HealthBridgeError
from healthbridge.features.google_fit.pull import BackgroundPullRunner


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting HealthBridge API...")
    await init_db()
    logger.info("Database initialized")

    runner = None
    if settings.scheduled_pull_enabled and settings.google_fit_configured:
        runner = BackgroundPullRunner(settings)
        await runner.start(AsyncSessionLocal)
    app.state.pull_runner = runner

    yield

    # Shutdown
    if runner:
        await runner.stop()
    logger.info("Shutting down...")


# === App Creation ===
app = FastAPI(
    title="HealthBridge API",
    description="Consent-gated fitness metric ingestion",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# === Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def answer_preflight(request: Request, call_next):
    """Every endpoint answers OPTIONS with 204 and permissive CORS headers."""
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=PREFLIGHT_HEADERS)
    return await call_next(request)


# === Error Handlers ===
@app.exception_handler(HealthBridgeError)
async def healthbridge_error_handler(request: Request, exc: HealthBridgeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        first = errors[0]
        if first.get("type") == "json_invalid":
            message = "Invalid JSON body"
        elif first.get("type") == "value_error":
            message = str(first.get("msg", "")).removeprefix("Value error, ")
        else:
            field = first.get("loc", ())[-1] if first.get("loc") else None
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} crashed: {exc!r}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# === Routes ===
app.include_router(api_router, prefix="/api/v1")


# === Health Check ===
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
