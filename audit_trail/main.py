# audit_trail/main.py

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from audit_trail.api.dependencies import get_metrics
from audit_trail.api.middleware import (
    CallerContextMiddleware,
    CorrelationIdMiddleware,
    RequestAuditMiddleware,
)
from audit_trail.api.routers import audit, health
from audit_trail.application.exceptions import (
    ApplicationError,
    OperationTimeoutError,
    RecordConflictError,
    StoreUnavailableError,
)
from audit_trail.config.logging import configure_logging
from audit_trail.config.settings import get_settings
from audit_trail.domain.exceptions import DomainError, DomainValidationError
from audit_trail.observability import metrics as m
from audit_trail.security.exceptions import AuthorizationError

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("audit_trail.api")

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
)

# Middleware order: last added runs first (outermost). Request flow: CorrelationId -> CallerContext -> RequestAudit.
app.add_middleware(RequestAuditMiddleware)
app.add_middleware(CallerContextMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request, exc: AuthorizationError):
    logger.warning(
        "permission_denied",
        extra={
            "caller": getattr(request.state, "actor_id", None),
            "role": getattr(request.state, "actor_role", None),
            "path": request.url.path,
            "reason": exc.message,
        },
    )
    get_metrics().increment(m.PERMISSION_DENIED)
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request, exc: DomainValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(RecordConflictError)
async def record_conflict_error_handler(request, exc: RecordConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(OperationTimeoutError)
async def operation_timeout_error_handler(request, exc: OperationTimeoutError):
    return JSONResponse(status_code=504, content={"detail": exc.message})


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_error_handler(request, exc: StoreUnavailableError):
    return JSONResponse(status_code=503, content={"detail": exc.message})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /metrics, /audit
app.include_router(health.router)
app.include_router(audit.router, prefix="/audit")
