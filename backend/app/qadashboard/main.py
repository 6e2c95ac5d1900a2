import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from qadashboard.api.v1.routes import router as api_router
from qadashboard.api.v1.routes_websocket import router as ws_router
from qadashboard.core.config import Settings, settings as default_settings
from qadashboard.core.exceptions import DashboardError
from qadashboard.core.registry import ProjectRegistry
from qadashboard.database.config import SessionLocal
from qadashboard.logging_config import setup_logging
from qadashboard.services.notifier import manager
from qadashboard.services.test_runner import PlaywrightRunner

logger = logging.getLogger(__name__)

SERVICE_NAME = "qa-dashboard"


async def dashboard_error_handler(request: Request, exc: DashboardError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"数据库错误: {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Database error"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"未处理的异常: {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def create_app(settings: Settings = default_settings) -> FastAPI:
    setup_logging()

    app = FastAPI(title="QA Dashboard")

    registry = ProjectRegistry.from_settings(settings)
    app.state.registry = registry
    app.state.test_runner = PlaywrightRunner(
        notifier=manager,
        session_factory=SessionLocal,
        retention=registry.run_retention,
        timeout=settings.RUNNER_TIMEOUT,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DashboardError, dashboard_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)
    app.include_router(ws_router)

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy", "service": SERVICE_NAME}

    @app.get("/api/health", include_in_schema=False)
    def api_health():
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()
