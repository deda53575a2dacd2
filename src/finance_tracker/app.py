import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from finance_tracker.api.routes import auth, reports, transactions
from finance_tracker.core import settings
from finance_tracker.core.errors import TrackerError
from finance_tracker.domain.buckets import parse_weekday, resolve_timezone
from finance_tracker.domain.timestamps import utc_now
from finance_tracker.logger import get_logger, setup_logging
from finance_tracker.services.auth import AuthService
from finance_tracker.services.reports import ReportService
from finance_tracker.services.transactions import TransactionService
from finance_tracker.storage.database import Database
from finance_tracker.storage.transactions import TransactionStore
from finance_tracker.storage.users import UserStore

logger = get_logger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in {"body", "query", "path"})
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def _tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[HTTP] %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": _describe_validation_error(exc)})


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[HTTP] Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})


def create_app(
    database: Database | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        # Fail fast on bad configuration rather than on the first request.
        resolve_timezone(settings.DEFAULT_TIMEZONE)
        week_start = parse_weekday(settings.WEEK_START)

        db = database or Database(settings.DATABASE_URL)
        try:
            await asyncio.to_thread(db.ping)
            await asyncio.to_thread(db.create_schema)
        except SQLAlchemyError as exc:
            logger.critical("[DB] Database unavailable, refusing to start: %s", exc)
            raise

        transaction_store = TransactionStore(db)
        app.state.database = db
        app.state.auth_service = AuthService(
            UserStore(db),
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            token_ttl=timedelta(days=settings.TOKEN_TTL_DAYS),
        )
        app.state.transaction_service = TransactionService(
            transaction_store,
            default_timezone=settings.DEFAULT_TIMEZONE,
            clock=clock,
        )
        app.state.report_service = ReportService(
            transaction_store,
            default_timezone=settings.DEFAULT_TIMEZONE,
            week_start=week_start,
            years_window=settings.YEARS_WINDOW,
            clock=clock,
        )

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        if database is None:
            db.dispose()

    app = FastAPI(title="Finance Tracker", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_origin_regex=settings.CORS_ORIGIN_REGEX or None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = perf_counter()
        response = await call_next(request)
        logger.debug(
            "[HTTP] %s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started) * 1000,
        )
        return response

    app.add_exception_handler(TrackerError, _tracker_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    app.include_router(auth.router)
    app.include_router(transactions.router)
    app.include_router(reports.router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"name": "Finance Tracker API", "status": "running"}

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
