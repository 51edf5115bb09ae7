"""Custom exceptions and error handling utilities for the foodless pipeline."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

from PIL import Image, UnidentifiedImageError

from .logging_config import get_logger


class FoodlessPipelineError(Exception):
    """Base exception for all foodless pipeline errors."""


class ConfigurationError(FoodlessPipelineError):
    """Error raised for invalid configuration options."""


class InvalidConfig(ConfigurationError):
    """A filter or image option is non-finite or outside its domain."""


class ImageProcessingError(FoodlessPipelineError):
    """Error raised when processing a single image fails."""


class DecodeError(ImageProcessingError):
    """Source bytes could not be interpreted as an image."""


class AllocationFailure(ImageProcessingError):
    """Buffers for a pathologically large image could not be allocated."""


F = TypeVar("F", bound=Callable[..., Any])


def translate_exception(exc: BaseException) -> FoodlessPipelineError:
    """Map a third-party or builtin exception onto the pipeline taxonomy."""
    if isinstance(exc, FoodlessPipelineError):
        return exc
    if isinstance(exc, (MemoryError, Image.DecompressionBombError)):
        return AllocationFailure(f"Image too large to process: {exc}")
    if isinstance(exc, (UnidentifiedImageError, SyntaxError)):
        return DecodeError(f"Cannot decode image: {exc}")
    return ImageProcessingError(str(exc))


def with_error_handling(func: F) -> F:
    """Wrap a function with standardized error handling."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
        logger = get_logger("processor")
        try:
            return func(*args, **kwargs)
        except FoodlessPipelineError:
            logger.error("Pipeline error", exc_info=True)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Unhandled error in {func.__name__}: {exc}", exc_info=True)
            raise translate_exception(exc) from exc

    return wrapper  # type: ignore[return-value]
