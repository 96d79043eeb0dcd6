import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from .config import Settings, configure_logging, settings as default_settings
from .models import ErrorResponse
from .routers import tasks
from .services.diagnostics import DiagnosticReporter
from .services.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def _log_banner(port: int) -> None:
    logger.info("Server running on port %d", port)
    logger.info("Usage instructions:")
    logger.info("1. Test single request: curl http://localhost:%d/user/123", port)
    logger.info("2. Test concurrent requests: curl http://localhost:%d/stress-test", port)
    logger.info("3. Test memory pressure: curl http://localhost:%d/memory-test/50", port)
    logger.info(
        "Try several terminals: curl http://localhost:%d/user/1 & curl http://localhost:%d/user/2 & curl http://localhost:%d/user/3",
        port, port, port,
    )


def create_app(settings: Optional[Settings] = None, orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_banner(settings.port)
        yield
        logger.info("Shutting down gracefully...")

    app = FastAPI(title="Async Context Demo", version="1.0.0", lifespan=lifespan)
    app.state.orchestrator = orchestrator or Orchestrator(
        reporter=DiagnosticReporter(collect_garbage=settings.collect_garbage),
        settings=settings,
    )

    @app.middleware("http")
    async def report_request(request: Request, call_next):
        request.app.state.orchestrator.observe_request(request.url.path)
        return await call_next(request)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        body = ErrorResponse(error="Something went wrong!", message=str(exc))
        return JSONResponse(status_code=500, content=body.model_dump(by_alias=True, exclude_none=True))

    app.include_router(tasks.router)
    return app


configure_logging()
app = create_app()
