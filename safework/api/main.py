import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from safework import __version__
from safework.api.routers import health, lmra_sessions, tras
from safework.api.schemas.common import ErrorDetail, ErrorResponse
from safework.core.config import get_settings
from safework.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RiskCoreError,
    ValidationError,
)
from safework.core.logger import setup_logger
from safework.db.store import PersistenceStore, SQLAlchemyDocumentStore
from safework.services.audit import AuditRecorder, LoggingAuditRecorder, SQLAlchemyAuditRecorder
from safework.services.events import EventDispatcher

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def status_for(error: RiskCoreError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def risk_core_error_handler(request: Request, exc: RiskCoreError) -> JSONResponse:
    code = status_for(exc)
    if code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Unhandled %s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        body = {"code": "INTERNAL_ERROR", "message": "Internal server error"}
    else:
        body = exc.to_dict()
    content = ErrorResponse(error=ErrorDetail(**body)).model_dump(exclude_none=True)
    return JSONResponse(status_code=code, content=content)


def create_app(
    store: Optional[PersistenceStore] = None,
    audit: Optional[AuditRecorder] = None,
    dispatcher: Optional[EventDispatcher] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Document store; defaults to the SQL store on ``SessionLocal``
        audit: Audit recorder; defaults to the ``audit_logs`` table, or to
            the application log when a custom store is given
        dispatcher: Event dispatcher handed to the services

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()
    setup_logger("safework")

    use_database = store is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if use_database:
            from safework.db.session import init_db

            init_db()
        yield

    app = FastAPI(
        title=settings.app_name,
        description="Risk scoring, TRA approval workflow and LMRA gate",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    if use_database:
        from safework.db.session import SessionLocal

        store = SQLAlchemyDocumentStore(SessionLocal)
        if audit is None:
            audit = SQLAlchemyAuditRecorder(SessionLocal)
    elif audit is None:
        audit = LoggingAuditRecorder()

    app.state.store = store
    app.state.audit = audit
    app.state.dispatcher = dispatcher or EventDispatcher()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RiskCoreError, risk_core_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(tras.router, prefix="/api")
    app.include_router(lmra_sessions.router, prefix="/api")

    return app


app = create_app()
