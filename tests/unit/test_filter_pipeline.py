"""Unit tests for ImageFilterPipeline."""

import io
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from foodless_pipeline.core.exceptions import (
    AllocationFailure,
    DecodeError,
    ImageProcessingError,
    InvalidConfig,
)
from foodless_pipeline.core.factories import LoggerAdapter, LoggerFactory, PipelineFactory
from foodless_pipeline.core.filters import apply_unappetizing_filter
from foodless_pipeline.core.models import FilterConfig, ImageOptions, RasterImage
from foodless_pipeline.core.observability import LogContext, MetricsCollector
from foodless_pipeline.core.pipeline import ImageFilterPipeline, validate_filter_config
from foodless_pipeline.testing.fakes import (
    FakeLogger,
    create_split_image,
    create_test_image,
    create_uniform_image,
)


def _png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_logger():
    return FakeLogger()


@pytest.fixture
def pipeline(fake_logger):
    return ImageFilterPipeline(logger=fake_logger)


class TestValidateFilterConfig:
    """Tests for validate_filter_config."""

    def test_valid_config_is_returned(self):
        config = FilterConfig(contrast=2.0)
        assert validate_filter_config(config) == config

    def test_unvalidated_config_is_rejected(self):
        config = FilterConfig.model_construct(desaturation=2.0)
        with pytest.raises(InvalidConfig):
            validate_filter_config(config)

    def test_wrong_type_is_rejected(self):
        with pytest.raises(InvalidConfig, match="Expected FilterConfig"):
            validate_filter_config({"contrast": 1.0})


class TestProcess:
    """Tests for ImageFilterPipeline.process."""

    def test_bytes_source(self, pipeline):
        result = pipeline.process(create_test_image(120, 90))

        assert (result.width, result.height) == (120, 90)
        assert result.output_format == "JPEG"
        decoded = Image.open(io.BytesIO(result.encoded))
        assert decoded.format == "JPEG"
        assert decoded.size == (120, 90)

    def test_path_source(self, pipeline, tmp_path):
        path = tmp_path / "salad.png"
        path.write_bytes(create_test_image(50, 40, format="PNG"))

        result = pipeline.process(path)

        assert (result.width, result.height) == (50, 40)
        assert result.original_image_ref is path

    def test_large_image_is_bounded_by_max_dimension(self, pipeline):
        result = pipeline.process(_png_bytes(Image.new("RGB", (1600, 1000), (200, 150, 90))))
        assert (result.width, result.height) == (800, 500)

    def test_tall_image_keeps_aspect_ratio(self, fake_logger):
        pipeline = ImageFilterPipeline(
            image_options=ImageOptions(max_dimension=100), logger=fake_logger
        )
        result = pipeline.process(_png_bytes(Image.new("RGB", (60, 240))))
        assert (result.width, result.height) == (25, 100)

    def test_small_image_is_not_upscaled(self, pipeline):
        result = pipeline.process(create_uniform_image(3, 2))
        assert (result.width, result.height) == (3, 2)

    def test_original_reference_is_untouched(self, pipeline):
        source = create_split_image(8, 8, (200, 180, 90, 255), (30, 20, 10, 255))
        before = np.array(source)

        result = pipeline.process(source)

        assert result.original_image_ref is source
        assert np.array_equal(np.array(source), before)

    def test_raster_source_is_untouched(self, pipeline):
        raster = RasterImage.from_pil(create_uniform_image(5, 5, (240, 230, 200, 255)))
        before = raster.pixels.copy()

        result = pipeline.process(raster)

        assert np.array_equal(raster.pixels, before)
        assert result.processed_image.pixels is not raster.pixels

    def test_uniform_gray_result(self, fake_logger):
        pipeline = ImageFilterPipeline(
            image_options=ImageOptions(output_format="PNG"), logger=fake_logger
        )
        result = pipeline.process(create_uniform_image(4, 4, (128, 128, 128, 255)))

        decoded = np.array(Image.open(io.BytesIO(result.encoded)))
        assert np.all(decoded[..., :3] == 96)
        assert np.all(result.processed_image.pixels[..., :3] == 96)

    def test_png_output_preserves_alpha(self, fake_logger):
        pipeline = ImageFilterPipeline(
            image_options=ImageOptions(output_format="PNG"), logger=fake_logger
        )
        result = pipeline.process(create_uniform_image(6, 6, (128, 64, 32, 77)))

        decoded = np.array(Image.open(io.BytesIO(result.encoded)))
        assert np.all(decoded[..., 3] == 77)
        assert result.mime_type == "image/png"

    def test_is_deterministic(self, pipeline):
        source = create_test_image(64, 48)
        assert pipeline.process(source).encoded == pipeline.process(source).encoded

    def test_per_call_config_overrides_default(self, fake_logger):
        pipeline = ImageFilterPipeline(
            image_options=ImageOptions(output_format="PNG"), logger=fake_logger
        )
        source = create_uniform_image(4, 4, (128, 128, 128, 255))

        default = pipeline.process(source)
        neutral = pipeline.process(source, FilterConfig(contrast=1.0, brightness=1.0))

        assert default.processed_image.pixels[0, 0, 0] == 96
        assert neutral.processed_image.pixels[0, 0, 0] == 128
        assert pipeline.filter_config == FilterConfig()

    def test_logs_success(self, pipeline, fake_logger):
        pipeline.process(create_test_image(30, 20))

        info_logs = fake_logger.get_logs("INFO")
        assert len(info_logs) == 1
        assert info_logs[0]["message"] == "Filtered image"
        assert info_logs[0]["width"] == 30
        assert info_logs[0]["height"] == 20
        assert info_logs[0]["operation"] == "process"
        assert info_logs[0]["output_format"] == "JPEG"
        assert "processing_time_ms" in info_logs[0]

    def test_records_stage_metrics(self, fake_logger):
        metrics = MetricsCollector()
        pipeline = ImageFilterPipeline(logger=fake_logger, metrics_collector=metrics)

        pipeline.process(create_test_image(40, 40))

        operations = [m.operation for m in metrics.get_metrics()]
        assert operations == ["decode", "resize", "filter", "encode"]
        assert all(m.success for m in metrics.get_metrics())
        assert metrics.get_metrics("filter")[0].metadata == {"width": 40, "height": 40}


class TestProcessErrors:
    """Failure modes of ImageFilterPipeline.process."""

    def test_undecodable_bytes(self, pipeline, fake_logger):
        with pytest.raises(DecodeError):
            pipeline.process(b"definitely not a photo")

        error_logs = fake_logger.get_logs("ERROR")
        assert len(error_logs) == 1
        assert error_logs[0]["error_type"] == "DecodeError"

    def test_failed_decode_metric(self, fake_logger):
        metrics = MetricsCollector()
        pipeline = ImageFilterPipeline(logger=fake_logger, metrics_collector=metrics)

        with pytest.raises(DecodeError):
            pipeline.process(b"")

        decode_metric = metrics.get_metrics("decode")[0]
        assert not decode_metric.success
        assert decode_metric.error_message

    def test_invalid_per_call_config(self, pipeline):
        with pytest.raises(InvalidConfig):
            pipeline.process(create_test_image(10, 10), FilterConfig.model_construct(contrast=-1.0))

    def test_invalid_pipeline_config(self):
        with pytest.raises(InvalidConfig):
            ImageFilterPipeline(filter_config=FilterConfig.model_construct(brightness=float("nan")))

    def test_memory_error_becomes_allocation_failure(self, pipeline, fake_logger):
        with patch(
            "foodless_pipeline.core.pipeline.apply_unappetizing_filter",
            side_effect=MemoryError(),
        ):
            with pytest.raises(AllocationFailure):
                pipeline.process(create_test_image(10, 10))

        assert fake_logger.get_logs("ERROR")[0]["error_type"] == "AllocationFailure"

    def test_filter_raster_memory_error_becomes_allocation_failure(self, pipeline):
        raster = RasterImage.from_pil(create_uniform_image(4, 4))
        with patch(
            "foodless_pipeline.core.pipeline.apply_unappetizing_filter",
            side_effect=MemoryError("cannot allocate"),
        ):
            with pytest.raises(AllocationFailure) as exc_info:
                pipeline.filter_raster(raster)

        assert isinstance(exc_info.value.__cause__, MemoryError)

    def test_filter_raster_unexpected_error_is_typed(self, pipeline):
        raster = RasterImage.from_pil(create_uniform_image(4, 4))
        with patch(
            "foodless_pipeline.core.pipeline.apply_unappetizing_filter",
            side_effect=ValueError("broadcast failure"),
        ):
            with pytest.raises(ImageProcessingError, match="broadcast failure"):
                pipeline.filter_raster(raster)

    def test_unexpected_error_becomes_processing_error(self, pipeline):
        with patch(
            "foodless_pipeline.core.pipeline.encode_image",
            side_effect=RuntimeError("encoder exploded"),
        ):
            with pytest.raises(ImageProcessingError, match="encoder exploded"):
                pipeline.process(create_test_image(10, 10))


class TestOtherOperations:
    """filter_raster, compress and concurrent use."""

    def test_filter_raster_matches_filter_function(self, pipeline):
        raster = RasterImage.from_pil(create_split_image(9, 9))
        expected = apply_unappetizing_filter(raster, FilterConfig())
        assert np.array_equal(pipeline.filter_raster(raster).pixels, expected.pixels)

    def test_compress_does_not_filter(self, fake_logger):
        pipeline = ImageFilterPipeline(
            image_options=ImageOptions(output_format="PNG", max_dimension=2), logger=fake_logger
        )
        data = pipeline.compress(create_uniform_image(4, 4, (128, 128, 128, 255)))

        decoded = np.array(Image.open(io.BytesIO(data)))
        assert decoded.shape == (2, 2, 4)
        assert np.all(np.abs(decoded[..., :3].astype(int) - 128) <= 1)

    def test_compress_undecodable(self, pipeline):
        with pytest.raises(DecodeError):
            pipeline.compress(b"nope")

    def test_shared_pipeline_across_threads(self, pipeline):
        source = create_test_image(80, 60)
        expected = pipeline.process(source).encoded

        with ThreadPoolExecutor(max_workers=4) as executor:
            outputs = list(executor.map(lambda _: pipeline.process(source).encoded, range(8)))

        assert all(output == expected for output in outputs)

    def test_data_url(self, pipeline):
        result = pipeline.process(create_test_image(10, 10))
        assert result.to_data_url().startswith("data:image/jpeg;base64,")


class TestFactories:
    """Tests for the factory helpers."""

    def test_create_pipeline_from_preset(self, fake_logger):
        pipeline = PipelineFactory.create_pipeline(logger=fake_logger, preset="mild")
        assert pipeline.filter_config.contrast == 1.2

    def test_create_pipeline_with_overrides(self, fake_logger, monkeypatch):
        monkeypatch.delenv("FOODLESS_CONTRAST", raising=False)
        pipeline = PipelineFactory.create_pipeline(
            logger=fake_logger, config_overrides={"edgeSharpness": 1.5}
        )
        assert pipeline.filter_config.edge_sharpness == 1.5

    def test_explicit_config_wins(self):
        config = FilterConfig(contrast=3.0)
        pipeline = PipelineFactory.create_pipeline(filter_config=config, preset="mild")
        assert pipeline.filter_config == config

    def test_logger_adapter_renders_context(self):
        with patch("logging.Logger.info") as info:
            adapter = LoggerFactory.create_logger("test-adapter")
            assert isinstance(adapter, LoggerAdapter)
            context = LogContext(correlation_id="abc", operation="process")
            adapter.info("Filtered image", context, width=4)

        info.assert_called_once_with("[process] [abc] Filtered image (width=4)")

    def test_logger_adapter_plain_message(self):
        with patch("logging.Logger.warning") as warning:
            LoggerFactory.create_logger("test-plain").warning("careful")
        warning.assert_called_once_with("careful")
