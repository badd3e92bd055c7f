"""Main FastAPI application"""
import logging
import logging.config
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from routes import router as api_router
from services.expense_store import ExpenseStore, sample_expenses
from utils.config import Settings

# --- slowapi imports ---
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

# --- Unified Logging Configuration with Rich ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "class": "rich.logging.RichHandler",
            "formatter": "default",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_time": True,
            "show_path": False,
            "log_time_format": "%Y-%m-%d %H:%M:%S",
            "markup": False
        },
    },
    "loggers": {
        "uvicorn": {
             "handlers": ["default"],
             "level": "INFO",
             "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "": { # Root logger for our application
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

def configure_logging(level: str = "INFO") -> None:
    """Applies the Rich logging config, with the app log level taken from settings."""
    config = dict(LOGGING_CONFIG, loggers=dict(LOGGING_CONFIG["loggers"]))
    config["loggers"][""] = dict(config["loggers"][""], level=level)
    logging.config.dictConfig(config)

logger = logging.getLogger(__name__)

# --- Error Handlers ---
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Renders every HTTP error as {"error": ...}."""
    if exc.status_code == 405:
        message = f"Method {request.method} Not Allowed"
        logger.warning(f"{message} on {request.url.path}")
    else:
        message = exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None))

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything that escaped the routes. The detail is only logged."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

# --- Middleware to keep unhandled errors JSON (and inside CORS) ---
class CatchUnhandledErrorsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return await unhandled_exception_handler(request, exc)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Builds the application. The expense store is created by the lifespan and owned by app.state."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: create the in-memory store
        seed = sample_expenses() if settings.seed_sample_expenses else []
        app.state.expense_store = ExpenseStore(id_strategy=settings.id_strategy, seed=seed)
        logger.info(
            f"Configuration: LIST_NEWEST_FIRST = {settings.list_newest_first}, "
            f"REQUIRE_ALL_FIELDS = {settings.require_all_fields}, "
            f"EXPENSE_ID_STRATEGY = {settings.id_strategy}"
        )

        yield # Application runs here

        # Shutdown: the collection is not persisted
        logger.info(f"Discarding {len(app.state.expense_store)} in-memory expenses.")
        app.state.expense_store = None

    app = FastAPI(
        title="Expense Tracker API",
        description="In-memory API for listing and adding expenses.",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    # --- Rate Limiter State and Handler ---
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --- Middleware (Order Matters: last added runs first) ---
    # 1. Rate Limiter Middleware
    app.add_middleware(SlowAPIMiddleware)
    # 2. Unhandled errors become JSON 500s, wrapped by CORS
    app.add_middleware(CatchUnhandledErrorsMiddleware)
    # 3. CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- API Routes ---
    # Served both at the root and under /api
    app.include_router(api_router, tags=["expenses"])
    app.include_router(api_router, prefix="/api", tags=["api"])

    return app


settings = Settings.from_env()
configure_logging(settings.log_level)
app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
