"""Shared data models for the foodless pipeline."""

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import numpy as np
from PIL import Image
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

OutputFormat = Literal["JPEG", "PNG", "WEBP"]

MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

FILE_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
}

LOSSY_FORMATS = frozenset({"JPEG", "WEBP"})


def _tunable(default: float, name: str, camel: str, **constraints: Any) -> Any:
    # Accepts snake_case, camelCase and the UPPER_SNAKE keys served by the
    # remote filter config endpoint.
    return Field(
        default,
        validation_alias=AliasChoices(name, camel, name.upper()),
        allow_inf_nan=False,
        **constraints,
    )


class FilterConfig(BaseModel):
    """Numeric thresholds and factors of the unappetizing filter.

    The defaults are product-tuned constants; missing fields fall back to
    them one by one.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    edge_threshold: float = _tunable(30.0, "edge_threshold", "edgeThreshold", ge=0)
    highlight_threshold: float = _tunable(
        180.0, "highlight_threshold", "highlightThreshold", ge=0, le=255
    )
    shadow_threshold: float = _tunable(
        80.0, "shadow_threshold", "shadowThreshold", ge=0, le=255
    )
    desaturation: float = _tunable(0.9, "desaturation", "desaturation", ge=0, le=1)
    contrast: float = _tunable(1.4, "contrast", "contrast", gt=0)
    brightness: float = _tunable(0.75, "brightness", "brightness", gt=0)
    edge_sharpness: float = _tunable(1.2, "edge_sharpness", "edgeSharpness", gt=0)


class ImageOptions(BaseModel):
    """Resize and encoding options applied around the filter."""

    model_config = ConfigDict(frozen=True)

    max_dimension: int = Field(800, gt=0)
    quality: float = Field(0.8, gt=0, le=1, allow_inf_nan=False)
    output_format: OutputFormat = "JPEG"

    @field_validator("output_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            if value == "JPG":
                return "JPEG"
        return value

    @property
    def encoder_quality(self) -> int:
        """Quality on the 1-100 scale used by Pillow encoders."""
        return max(1, min(100, int(round(self.quality * 100))))

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.output_format]

    @property
    def extension(self) -> str:
        return FILE_EXTENSIONS[self.output_format]

    @property
    def is_lossy(self) -> bool:
        return self.output_format in LOSSY_FORMATS


@dataclass
class RasterImage:
    """An RGBA raster, 8 bits per channel, shape (height, width, 4)."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(
                f"RasterImage needs an (height, width, 4) array, got {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"RasterImage needs uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[..., 3]

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        """Copy a Pillow image into a new RGBA raster."""
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        return cls(np.array(rgba, dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy())


@dataclass
class FilterResult:
    """Processed raster plus its encoding, and the untouched source for preview."""

    processed_image: RasterImage
    encoded: bytes
    output_format: str
    original_image_ref: Any

    @property
    def width(self) -> int:
        return self.processed_image.width

    @property
    def height(self) -> int:
        return self.processed_image.height

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.output_format]

    def to_data_url(self) -> str:
        """Encoded image as a base64 ``data:`` URL."""
        payload = base64.b64encode(self.encoded).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


class BatchConfig(BaseModel):
    """Configuration for filtering a directory of images."""

    source_dir: Path
    dest_dir: Path
    processor: Literal["serial", "multithread"] = "serial"
    batch_size: int = Field(100, gt=0)
    concurrency: int = Field(8, gt=0)
    recursive: bool = True
    debug: bool = False
    filter_config: FilterConfig = Field(default_factory=FilterConfig)
    image_options: ImageOptions = Field(default_factory=ImageOptions)


class FilterJob(BaseModel):
    """One image to filter."""

    source_path: Path
    dest_path: Path


class FilterJobResult(BaseModel):
    """Result of filtering a single image file."""

    source_path: Path
    dest_path: Path
    success: bool = False
    error: str = ""
    width: int = 0
    height: int = 0
    processing_time: float = 0.0
