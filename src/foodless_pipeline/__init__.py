"""Foodless pipeline: make food photos look unappetizing."""

__version__ = "0.1.0"

from .core import (
    FilterConfig,
    FilterResult,
    ImageFilterPipeline,
    ImageOptions,
    RasterImage,
)

__all__ = [
    "__version__",
    "FilterConfig",
    "FilterResult",
    "ImageFilterPipeline",
    "ImageOptions",
    "RasterImage",
]
