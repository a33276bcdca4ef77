"""
App service.

Ties the registry, the packaging pipeline and the metrics log together.
Every mutating operation saves state and records a metric event.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..metrics import MetricEventType, MetricsCollector
from ..packaging import PackagingPipeline, PackagingRequest, PackagingResult
from ..packaging.errors import PackagingError
from .errors import OutputDirectoryNotSetError
from .models import AppConfig
from .registry import AppRegistry

logger = logging.getLogger(__name__)


class AppService:
    """Registry operations with persistence and metrics."""

    def __init__(
        self,
        registry: AppRegistry,
        metrics: MetricsCollector,
        pipeline: Optional[PackagingPipeline] = None,
    ):
        self.registry = registry
        self.metrics = metrics
        self.pipeline = pipeline or PackagingPipeline()

    def _save(self) -> None:
        if self.registry.state_path is not None:
            self.registry.save()

    def set_output_directory(self, path: str) -> None:
        self.registry.set_output_directory(path)
        self._save()
        self.metrics.record(MetricEventType.OUTPUT_DIRECTORY_SET)
        logger.info(f"Output directory set: {path}")

    def add_app(self, app_name: str, input_zip_path: str, output_ipa_name: str) -> AppConfig:
        app = self.registry.add_app(app_name, input_zip_path, output_ipa_name)
        self._save()
        self.metrics.record(MetricEventType.APP_ADDED, app_name=app.app_name)
        logger.info(f"App added: {app.app_name} ({app.id})")
        return app

    def update_app(
        self,
        app_id: str,
        app_name: str,
        input_zip_path: str,
        output_ipa_name: str,
    ) -> AppConfig:
        app = self.registry.update_app(app_id, app_name, input_zip_path, output_ipa_name)
        self._save()
        self.metrics.record(MetricEventType.APP_CONFIG_EDITED, app_id=app.id)
        return app

    def rename_app(self, app_id: str, new_name: str) -> AppConfig:
        old_name = self.registry.get_app(app_id).app_name
        app = self.registry.rename_app(app_id, new_name)
        self._save()
        self.metrics.record(
            MetricEventType.APP_RENAMED,
            old_app_name=old_name,
            new_app_name=app.app_name,
        )
        return app

    def remove_app(self, app_id: str) -> AppConfig:
        app = self.registry.remove_app(app_id)
        self._save()
        self.metrics.record(MetricEventType.APP_REMOVED, app_name=app.app_name)
        logger.info(f"App removed: {app.app_name} ({app.id})")
        return app

    def generate(self, app_id: str) -> PackagingResult:
        """
        Package a registered app into the configured output directory.

        The outcome is recorded as an IPA_GENERATED metric whether or not
        packaging succeeds; packaging errors are re-raised afterwards.

        Raises:
            AppNotFoundError: If app_id is not registered
            OutputDirectoryNotSetError: If no output directory is configured
            PackagingError: If packaging fails
        """
        app = self.registry.get_app(app_id)
        output_dir = self.registry.output_directory
        if output_dir is None:
            raise OutputDirectoryNotSetError()

        request = PackagingRequest(
            source_path=app.input_zip_path,
            output_dir=output_dir,
            app_name=app.app_name,
            output_name=app.output_ipa_name,
        )

        start = time.monotonic()
        try:
            result = self.pipeline.package(request)
        except PackagingError as e:
            duration_ms = (time.monotonic() - start) * 1000
            self.metrics.record_generation(app.app_name, success=False, duration_ms=duration_ms)
            logger.error(f"Generation failed for {app.app_name}: {e}")
            raise

        self.metrics.record_generation(
            app.app_name,
            success=True,
            duration_ms=result.duration_ms,
            output_size_bytes=result.size_bytes,
        )
        self.registry.mark_generated(app.id, datetime.now(timezone.utc))
        self._save()
        return result
