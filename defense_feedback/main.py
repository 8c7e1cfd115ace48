from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from defense_feedback.config import AppConfig, load_config
from defense_feedback.db.base import get_engine
from defense_feedback.db.migrations_runner import apply_migrations
from defense_feedback.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from defense_feedback.http.request_id import RequestIdMiddleware
from defense_feedback.logging_setup import configure_logging
from defense_feedback.logic.repository_feedback_forms import ensure_default_form
from defense_feedback.routes import api_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1")).scalar_one()
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("health_db_check_failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def bootstrap_database(cfg: AppConfig) -> None:
    """Build the engine, apply pending migrations when enabled and seed the default form."""
    engine = get_engine(cfg.database.dsn)
    if not cfg.database.auto_apply_migrations:
        logger.info("startup_migrations_disabled")
        return
    try:
        applied = apply_migrations(engine, cfg.database.migrations_dir)
    except SQLAlchemyError:
        logger.error("startup_migrations_failed", exc_info=True)
        raise
    logger.info("startup_migrations_done applied=%s", applied)
    seeded = ensure_default_form()
    if seeded:
        logger.info("default_feedback_form_seeded form_id=%s", seeded["id"])


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    configure_logging()
    cfg = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        bootstrap_database(cfg)
        yield

    app = FastAPI(title="Defense Feedback Service", lifespan=lifespan)
    app.state.config = cfg

    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix=API_PREFIX)

    health_check = _health_check()

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    return app


# Built only through create_app(); importing this module has no side effects.
__all__ = ["API_PREFIX", "bootstrap_database", "create_app"]
