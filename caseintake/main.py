"""
FastAPI application for the Case Intake service.

The service accepts pasted text or photographed clinical documents and returns
a structured, partially populated surgical case record for a clinician to
confirm.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from caseintake.api.v1.router import api_router
from caseintake.core.config import Settings, settings
from caseintake.graph.pipeline import get_default_pipeline
from caseintake.middleware.logging import LoggingMiddleware
from caseintake.ocr.worker import WorkerState, create_text_acquisition
from caseintake.utils.logging import configure_logging
from caseintake.utils.metrics import setup_metrics_endpoint

configure_logging(log_level=settings.LOG_LEVEL)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Own the pipeline and the OCR handle for the lifetime of the application.

    The OCR worker is not started here; the first image request builds it.
    """
    config: Settings = app.state.settings

    app.state.pipeline = get_default_pipeline()
    app.state.text_acquisition = create_text_acquisition(config)
    logger.info(
        "Case Intake service started",
        version=config.VERSION,
        environment=config.ENVIRONMENT,
        ocr_language=config.OCR_LANGUAGE,
    )

    yield

    await app.state.text_acquisition.shutdown()
    logger.info("Case Intake service shut down")


def create_app(config: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service settings

    Returns:
        Configured application with routes, middleware and metrics
    """
    docs_enabled = config.SHOW_DOCS
    application = FastAPI(
        title=config.PROJECT_NAME,
        description=config.PROJECT_DESCRIPTION,
        version=config.VERSION,
        docs_url="/api/docs" if docs_enabled else None,
        redoc_url="/api/redoc" if docs_enabled else None,
        openapi_url="/api/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    application.state.settings = config

    setup_metrics_endpoint(application, config.VERSION, str(config.ENVIRONMENT))

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in config.CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(LoggingMiddleware)

    application.include_router(api_router, prefix=config.API_PREFIX)

    @application.get("/api/health")
    async def health_check(request: Request):
        """Service health, including whether the OCR worker has been started."""
        acquisition = getattr(request.app.state, "text_acquisition", None)
        ocr_state = acquisition.state if acquisition is not None else WorkerState.UNINITIALIZED
        return {"status": "healthy", "version": config.VERSION, "ocr": ocr_state.value}

    @application.get("/")
    async def root():
        return {
            "message": "Case Intake API",
            "version": config.VERSION,
            "docs": "/api/docs" if docs_enabled else None,
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "caseintake.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
