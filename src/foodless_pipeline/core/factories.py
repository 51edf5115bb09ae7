"""Factory classes for creating configured pipeline instances."""

import logging
from typing import Any, Dict, Optional

from .models import FilterConfig, ImageOptions
from .observability import LogContext, MetricsCollector, StructuredLogger
from .pipeline import ImageFilterPipeline
from .protocols import LoggerProtocol
from .settings import load_filter_config


class LoggerAdapter:
    """Adapter to make standard logger compatible with LoggerProtocol."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _render(self, message: str, context: Any, **kwargs: Any) -> str:
        if isinstance(context, LogContext) or kwargs:
            return StructuredLogger.format_message(message, context, **kwargs)
        return message

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        self._logger.debug(self._render(message, context, **kwargs))

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        self._logger.info(self._render(message, context, **kwargs))

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        self._logger.warning(self._render(message, context, **kwargs))

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        self._logger.error(self._render(message, context, **kwargs))


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: int = logging.INFO) -> LoggerProtocol:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(level)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return LoggerAdapter(logger)


class PipelineFactory:
    """Factory for creating a fully configured ImageFilterPipeline."""

    @staticmethod
    def create_pipeline(
        filter_config: Optional[FilterConfig] = None,
        image_options: Optional[ImageOptions] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        config_overrides: Optional[Dict[str, Any]] = None,
        preset: str = "default",
    ) -> ImageFilterPipeline:
        """
        Create a pipeline.

        An explicit ``filter_config`` wins; otherwise the config is resolved
        from ``preset``, the environment and ``config_overrides``.
        """
        if filter_config is None:
            filter_config = load_filter_config(config_overrides, preset=preset)

        if logger is None:
            logger = LoggerFactory.create_logger("foodless_pipeline")

        return ImageFilterPipeline(
            filter_config=filter_config,
            image_options=image_options,
            logger=logger,
            metrics_collector=metrics_collector,
        )
