"""Core utilities and shared components for the foodless pipeline."""

from .logging_config import (
    configure_worker_logging,
    get_logger,
    setup_logger,
)
from .exceptions import (
    FoodlessPipelineError,
    ConfigurationError,
    InvalidConfig,
    ImageProcessingError,
    DecodeError,
    AllocationFailure,
    with_error_handling,
)
from .models import (
    BatchConfig,
    FilterConfig,
    FilterJob,
    FilterJobResult,
    FilterResult,
    ImageOptions,
    RasterImage,
)
from .filters import (
    apply_unappetizing_filter,
    compute_luminance,
    compute_tone_shift,
    detect_edges,
    remap_colors,
)
from .image_utils import (
    calculate_dest_path,
    decode_image,
    downscale,
    encode_image,
    fit_within,
)
from .settings import (
    FILTER_PRESETS,
    get_preset,
    load_filter_config,
    load_filter_config_file,
    load_image_options,
)
from .pipeline import ImageFilterPipeline

__all__ = [
    "FilterConfig",
    "ImageOptions",
    "RasterImage",
    "FilterResult",
    "BatchConfig",
    "FilterJob",
    "FilterJobResult",
    "ImageFilterPipeline",
    "apply_unappetizing_filter",
    "compute_luminance",
    "compute_tone_shift",
    "detect_edges",
    "remap_colors",
    "calculate_dest_path",
    "decode_image",
    "downscale",
    "encode_image",
    "fit_within",
    "FILTER_PRESETS",
    "get_preset",
    "load_filter_config",
    "load_filter_config_file",
    "load_image_options",
    "setup_logger",
    "get_logger",
    "configure_worker_logging",
    "FoodlessPipelineError",
    "ConfigurationError",
    "InvalidConfig",
    "ImageProcessingError",
    "DecodeError",
    "AllocationFailure",
    "with_error_handling",
]
