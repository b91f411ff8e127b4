"""FastAPI application serving the expression API and the worker task API."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from arithmetic_task_server.common.errors import CalculatorError
from arithmetic_task_server.common.logger import logger, setup_logging
from arithmetic_task_server.config import Settings, get_settings
from arithmetic_task_server.server import routes
from arithmetic_task_server.server.service import CalculatorService
from arithmetic_task_server.server.worker import AgentLoop


def create_app(settings: Optional[Settings] = None, service: Optional[CalculatorService] = None) -> FastAPI:
    """
    Build the application.

    The service is created here, not at startup, so it is reachable through
    ``app.state.service`` before the first request. The agent loop, when
    enabled, runs between startup and shutdown.

    :param settings: Settings to use, defaults to the environment settings
    :param service: Pre-built service, defaults to one built from the settings

    :return: FastAPI application
    :rtype: FastAPI
    """
    settings = settings or get_settings()
    service = service or CalculatorService(
        queue_capacity=settings.queue_capacity,
        operation_times=settings.operation_times(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        logger.info(f"🖥️ Server starting (queue capacity {service.queue.capacity})")
        agent: Optional[AgentLoop] = None
        if settings.agent_enabled:
            agent = AgentLoop(service)
            agent.start()
        app.state.agent = agent
        yield
        if agent is not None:
            agent.stop()
        logger.info("🖥️ Server shutting down")

    app = FastAPI(title="Arithmetic Task Server", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.agent = None

    app.include_router(routes.router)
    register_error_handlers(app)
    return app


def register_error_handlers(app: FastAPI) -> None:
    """Map domain errors, validation errors and anything else to JSON error bodies."""

    @app.exception_handler(CalculatorError)
    async def calculator_error_handler(request: Request, exc: CalculatorError):
        logger.warning(f"⚠️ {exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"⚠️ Invalid request on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": {
                    "code": "BAD_REQUEST",
                    "message": "Invalid request data",
                    "details": [
                        {
                            "field": ".".join(str(loc) for loc in e["loc"]),
                            "message": e["msg"],
                        }
                        for e in exc.errors()
                    ],
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
        )
