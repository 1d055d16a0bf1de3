from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import structlog

from upcora import config
from upcora.db import init_db
from upcora.errors import UpcoraError
from upcora.routers import admin as admin_router
from upcora.routers import auth as auth_router
from upcora.routers import games as games_router
from upcora.routers import upload as upload_router
from upcora.services.extraction import build_default_extractor
from upcora.services.generator import TemplateContentGenerator
from upcora.services.logging import configure_logging, log_api_request
from upcora.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from upcora.middleware.rate_limit import limiter, rate_limit_exceeded_handler

# Configure logging
configure_logging()
logger = structlog.get_logger()

# Metric label for requests that match no route, so unknown paths share one series
UNMATCHED_ENDPOINT = "unmatched"

app = FastAPI(
    title="Upcora",
    description="Turns study documents into interactive learning games",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Parsers and the generator are built once and shared by every request
app.state.extractor = build_default_extractor()
app.state.generator = TemplateContentGenerator(delay_seconds=config.GENERATION_DELAY_SECONDS)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    log_api_request(request)

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    route = request.scope.get("route")
    endpoint = getattr(route, "path", UNMATCHED_ENDPOINT)
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()
    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=endpoint
    ).observe(process_time)

    log_api_request(request, response, duration=process_time)
    return response


# ----------------- Error handlers -----------------
@app.exception_handler(UpcoraError)
async def upcora_error_handler(request: Request, exc: UpcoraError):
    log_api_request(request, error=exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.user_message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


@app.get("/api/ping")
async def ping():
    return {"message": "pong"}


# ----------------- Startup -----------------
@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("upcora_started", generator=app.state.generator.name, parsers=len(app.state.extractor.parsers))


# ----------------- Routers -----------------
app.include_router(auth_router.router)
app.include_router(upload_router.router)
app.include_router(games_router.router)
app.include_router(admin_router.router)
