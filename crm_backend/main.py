"""
FastAPI application entry point for the team CRM backend.

Creates the app, installs CORS and the validation error handler, and
registers every router.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crm_backend import __version__
from crm_backend.config import settings
from crm_backend.routes.calendar import router as calendar_router
from crm_backend.routes.chat import router as chat_router
from crm_backend.routes.clients import router as clients_router
from crm_backend.routes.expenses import router as expenses_router
from crm_backend.routes.health import router as health_router
from crm_backend.routes.journal import router as journal_router
from crm_backend.routes.payments import router as payments_router
from crm_backend.routes.settings import router as settings_router
from crm_backend.routes.tasks import groups_router as task_groups_router
from crm_backend.routes.tasks import router as tasks_router
from crm_backend.routes.users import router as users_router
from crm_backend.utils.logging import configure_logging

configure_logging()

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    """
    Allowed CORS origins for the current environment.

    Production uses CORS_ALLOWED_ORIGINS (none allowed when unset). Every
    other environment allows all origins for the local frontend.
    """
    if settings.is_production():
        origins = settings.CORS_ALLOWED_ORIGINS
        if origins:
            logger.info(f"CORS configured for production with {len(origins)} allowed origins")
        else:
            logger.warning(
                "CORS_ALLOWED_ORIGINS not set in production. No web origins allowed."
            )
        return list(origins)

    logger.info(f"CORS configured for {settings.ENVIRONMENT}: allowing all origins")
    return ["*"]


app = FastAPI(
    title="Team CRM API",
    description="Client pipeline, payments and expenses, calendars, tasks, journal and chat for the leadership team",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw exception object (e.g. from field validators)
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors and answer with the standard error shape."""
    logger.error(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "details": _jsonable_errors(exc),
        }
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(clients_router)
app.include_router(payments_router)
app.include_router(expenses_router)
app.include_router(calendar_router)
app.include_router(tasks_router)
app.include_router(task_groups_router)
app.include_router(journal_router)
app.include_router(chat_router)
app.include_router(settings_router)
app.include_router(users_router)

logger.info("FastAPI app initialized successfully")
