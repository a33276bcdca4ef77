"""
IPA Builder backend service — packaging, saved apps, watch folders, metrics
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .apps import AppRegistry, AppService, StateLoadError
from .metrics import MetricEventType, MetricsCollector
from .packaging import PackagingPipeline
from .paths import get_data_dir, metrics_file, state_file
from .routes import apps, health, metrics, packaging, watch

logger = logging.getLogger(__name__)


def create_app(data_dir: Optional[Path] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        data_dir: Directory for app state and metrics
            (defaults to $IPABUILDER_HOME or ~/.ipabuilder)
    """
    data_dir = Path(data_dir) if data_dir is not None else get_data_dir()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        runner = app.state.watch_runner
        if runner is not None:
            runner.stop(timeout=5.0)

    app = FastAPI(title="IPA Builder", version=__version__, lifespan=lifespan)

    # CORS middleware for a local frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = AppRegistry(state_path=state_file(data_dir))
    try:
        registry.load()
    except StateLoadError as e:
        logger.error(f"{e}. Starting with an empty app list.")

    app.state.metrics = MetricsCollector(metrics_file(data_dir))
    app.state.pipeline = PackagingPipeline()
    app.state.app_service = AppService(registry, app.state.metrics, app.state.pipeline)
    app.state.watch_runner = None

    app.state.metrics.record(MetricEventType.APP_LAUNCHED)

    app.include_router(health.router)
    app.include_router(packaging.router)
    app.include_router(apps.router)
    app.include_router(watch.router)
    app.include_router(metrics.router)

    return app
