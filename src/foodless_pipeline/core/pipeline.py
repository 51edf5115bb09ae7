"""The image filter pipeline: decode, downscale, filter, encode."""

import time
from typing import Optional

from pydantic import ValidationError

from .exceptions import FoodlessPipelineError, InvalidConfig, translate_exception
from .filters import apply_unappetizing_filter
from .image_utils import ImageSource, decode_image, describe_image, downscale, encode_image
from .models import FilterConfig, FilterResult, ImageOptions, RasterImage
from .observability import LogContext, MetricsCollector, StructuredLogger, track_stage
from .protocols import LoggerProtocol


def validate_filter_config(config: FilterConfig) -> FilterConfig:
    """Re-check a config that may have bypassed validation (e.g. ``model_construct``)."""
    if not isinstance(config, FilterConfig):
        raise InvalidConfig(
            f"Expected FilterConfig, got {type(config).__name__}"
        )
    try:
        return FilterConfig.model_validate(config.model_dump())
    except ValidationError as exc:
        raise InvalidConfig(f"Invalid FilterConfig: {exc}") from exc


class ImageFilterPipeline:
    """
    Turns a food photo into its unappetizing variant.

    The pipeline holds only immutable configuration and a logger. Each call
    allocates its own buffers, so one instance can serve several threads.
    """

    def __init__(
        self,
        filter_config: Optional[FilterConfig] = None,
        image_options: Optional[ImageOptions] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._filter_config = validate_filter_config(filter_config or FilterConfig())
        self._image_options = image_options or ImageOptions()
        self._logger = logger or StructuredLogger("foodless_pipeline.pipeline")
        self._metrics_collector = metrics_collector

    @property
    def filter_config(self) -> FilterConfig:
        return self._filter_config

    @property
    def image_options(self) -> ImageOptions:
        return self._image_options

    def _resolve_config(self, config: Optional[FilterConfig]) -> FilterConfig:
        if config is None:
            return self._filter_config
        return validate_filter_config(config)

    def _load(self, source: ImageSource, log_context: LogContext) -> RasterImage:
        with track_stage("decode", self._metrics_collector):
            image = decode_image(source)
        self._logger.debug(
            "Decoded source image",
            log_context.with_operation("decode"),
            **describe_image(image),
        )

        with track_stage("resize", self._metrics_collector):
            image = downscale(image, self._image_options.max_dimension)
            raster = RasterImage.from_pil(image)
        return raster

    def filter_raster(
        self, raster: RasterImage, config: Optional[FilterConfig] = None
    ) -> RasterImage:
        """
        Apply both filter passes to an already decoded raster (no resize, no encode).

        Raises:
            InvalidConfig: ``config`` is out of range
            AllocationFailure: Buffers for the raster could not be allocated
        """
        config = self._resolve_config(config)
        try:
            with track_stage("filter", self._metrics_collector, width=raster.width, height=raster.height):
                return apply_unappetizing_filter(raster, config)
        except FoodlessPipelineError:
            raise
        except Exception as e:  # noqa: BLE001
            raise translate_exception(e) from e

    def process(
        self, source: ImageSource, config: Optional[FilterConfig] = None
    ) -> FilterResult:
        """
        Run the full pipeline on ``source``.

        Args:
            source: Encoded bytes, path, binary stream, Pillow image or RasterImage
            config: Filter parameters for this call (defaults to the pipeline's)

        Returns:
            FilterResult holding the filtered raster, its encoding and
            ``source`` itself as the preview reference

        Raises:
            DecodeError: The source is not a decodable image
            InvalidConfig: ``config`` is out of range
            AllocationFailure: The image is too large to allocate buffers for
        """
        config = self._resolve_config(config)
        options = self._image_options
        log_context = LogContext(
            operation="process", component="image_filter_pipeline"
        ).with_metadata(output_format=options.output_format)
        start_time = time.perf_counter()

        try:
            raster = self._load(source, log_context)
            processed = self.filter_raster(raster, config)
            with track_stage("encode", self._metrics_collector):
                encoded = encode_image(processed, options)
        except FoodlessPipelineError as e:
            self._logger.error(
                f"Image filtering failed: {e}",
                log_context.with_metadata(error_type=type(e).__name__),
            )
            raise
        except Exception as e:  # noqa: BLE001
            error = translate_exception(e)
            self._logger.error(
                f"Image filtering failed: {e}",
                log_context.with_metadata(error_type=type(error).__name__),
            )
            raise error from e

        self._logger.info(
            "Filtered image",
            log_context,
            width=processed.width,
            height=processed.height,
            encoded_bytes=len(encoded),
            processing_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return FilterResult(
            processed_image=processed,
            encoded=encoded,
            output_format=options.output_format,
            original_image_ref=source,
        )

    def compress(self, source: ImageSource) -> bytes:
        """Downscale and re-encode ``source`` without filtering it."""
        log_context = LogContext(operation="compress", component="image_filter_pipeline")
        try:
            raster = self._load(source, log_context)
            with track_stage("encode", self._metrics_collector):
                return encode_image(raster, self._image_options)
        except FoodlessPipelineError:
            raise
        except Exception as e:  # noqa: BLE001
            raise translate_exception(e) from e
