"""FastAPI application entrypoint.

This module builds the student records API. Controllers live in the
`routes` package and are intentionally thin: they accept requests,
delegate to services, and return JSON responses. Errors raised by
services are mapped to JSON bodies here.

Endpoints implemented:
- POST /api/auth/login
- GET /api/students/{id}/invoice | grades | audit | full-audit | history | details
- POST /api/students/register-units
- GET /api/students/available-units
- POST /api/admin/student | program | unit
- PUT /api/admin/invoice/{studentId}
- PUT /api/admin/grade/{studentId}/{unitId}
- GET /health
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import build_engine, create_db_and_tables
from .errors import RecordsError, StoreError
from .routes import admin_router, auth_router, students_router
from .utils.rate_limit import LoginThrottle

logger = logging.getLogger("studentrecords.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


def _request_record(request: Request, started: float, **extra) -> dict:
    record = {
        "request_id": request.state.request_id,
        "path": request.url.path,
        "method": request.method,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
        "client": request.client.host if request.client else "unknown",
    }
    record.update(extra)
    return record


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The engine (and its connection pool) is built when the application
    starts and disposed when it stops; `database_url` overrides the
    configured `DATABASE_URL`.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(database_url)
        create_db_and_tables(engine)
        app.state.engine = engine
        logger.info("api_startup %s", json.dumps({"dialect": engine.dialect.name}))
        try:
            yield
        finally:
            engine.dispose()
            logger.info("api_shutdown")

    app = FastAPI(title="Student Records API", lifespan=lifespan)
    app.state.login_throttle = LoginThrottle()

    # Wide-open CORS keeps local web and mobile clients working in dev.
    if settings.ALLOW_DEV_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        started = time.perf_counter()
        response: Response
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed %s",
                json.dumps(_request_record(request, started), ensure_ascii=True),
            )
            raise
        response.headers["X-Request-ID"] = request.state.request_id
        if request.url.path.startswith("/api"):
            logger.info(
                "request_done %s",
                json.dumps(
                    _request_record(request, started, status_code=response.status_code),
                    ensure_ascii=True,
                ),
            )
        return response

    @app.exception_handler(RecordsError)
    async def records_error_handler(request: Request, exc: RecordsError):
        if isinstance(exc, StoreError):
            logger.error("store_error %s", json.dumps({"path": request.url.path, "error": exc.message}))
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            "store_error %s",
            json.dumps({"path": request.url.path, "error": str(exc)}, ensure_ascii=True),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": StoreError().message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_error %s",
            json.dumps({"path": request.url.path, "error": repr(exc)}, ensure_ascii=True),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "internal error"})

    app.include_router(auth_router)
    app.include_router(students_router)
    app.include_router(admin_router)

    @app.get("/health")
    def health():
        """Lightweight health check for uptime monitoring."""
        return {"status": "ok"}

    return app


# Default app instance for uvicorn
app = create_app()
