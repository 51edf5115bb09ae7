"""Image decoding, resizing and encoding utilities for the foodless pipeline."""

import io
from pathlib import Path
from typing import Any, BinaryIO, Dict, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import AllocationFailure, DecodeError
from .models import ImageOptions, RasterImage

SUPPORTED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")

ImageSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO, Image.Image, RasterImage]


def _open_image(source: Any) -> Image.Image:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return Image.open(io.BytesIO(bytes(source)))
    if isinstance(source, (str, Path)):
        # Read eagerly so the file handle is closed before decoding finishes.
        return Image.open(io.BytesIO(Path(source).read_bytes()))
    if hasattr(source, "read"):
        return Image.open(source)
    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


def decode_image(source: ImageSource) -> Image.Image:
    """
    Decode ``source`` into a new RGBA Pillow image with EXIF orientation applied.

    Args:
        source: Encoded bytes, a path, a binary stream, a Pillow image or a
            RasterImage. Pillow images and rasters are copied, never modified.

    Returns:
        A fully loaded RGBA image owned by the caller

    Raises:
        DecodeError: If the source cannot be interpreted as an image
        AllocationFailure: If Pillow refuses the image as a decompression bomb
    """
    try:
        if isinstance(source, RasterImage):
            return source.copy().to_pil()
        if isinstance(source, Image.Image):
            image = source.copy()
        else:
            image = _open_image(source)
            image.load()
        image = ImageOps.exif_transpose(image)
        return image.convert("RGBA")
    except Image.DecompressionBombError as exc:
        raise AllocationFailure(f"Image exceeds the pixel limit: {exc}") from exc
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc


def fit_within(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    Size that fits ``width`` x ``height`` inside a ``max_dimension`` square.

    Images already inside the bound keep their size; larger ones are scaled
    down preserving aspect ratio, never below 1 pixel per side.
    """
    ratio = min(1.0, max_dimension / width, max_dimension / height)
    if ratio >= 1.0:
        return width, height
    new_width = min(max_dimension, max(1, int(round(width * ratio))))
    new_height = min(max_dimension, max(1, int(round(height * ratio))))
    return new_width, new_height


def downscale(image: Image.Image, max_dimension: int) -> Image.Image:
    """Shrink ``image`` to fit ``max_dimension``; returns it unchanged if it already fits."""
    target = fit_within(image.width, image.height, max_dimension)
    if target == image.size:
        return image
    return image.resize(target, Image.Resampling.LANCZOS)


def encode_image(raster: RasterImage, options: ImageOptions) -> bytes:
    """
    Encode a raster in the configured output format.

    JPEG carries no alpha, so the alpha channel is dropped on encode; PNG and
    WEBP keep it. Quality only applies to lossy formats.
    """
    image = raster.to_pil()
    if options.output_format == "JPEG":
        image = image.convert("RGB")

    save_kwargs: Dict[str, Any] = {}
    if options.is_lossy:
        save_kwargs["quality"] = options.encoder_quality

    buffer = io.BytesIO()
    image.save(buffer, format=options.output_format, **save_kwargs)
    return buffer.getvalue()


def describe_image(image: Image.Image) -> Dict[str, Any]:
    """Basic image information for logging."""
    return {
        "width": image.width,
        "height": image.height,
        "format": image.format or "unknown",
        "mode": image.mode,
    }


def is_supported_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS


def calculate_dest_path(
    source_path: Path, source_dir: Path, dest_dir: Path, extension: str
) -> Path:
    """
    Calculate the output path for a source image.

    Args:
        source_path: Image being filtered
        source_dir: Root directory the source was discovered under
        dest_dir: Root output directory
        extension: Output extension including the dot, e.g. ".jpg"

    Returns:
        ``dest_dir`` joined with the source's path relative to ``source_dir``,
        with the extension replaced. Sources outside ``source_dir`` land
        directly in ``dest_dir``.
    """
    try:
        relative = source_path.relative_to(source_dir)
    except ValueError:
        relative = Path(source_path.name)

    return dest_dir / relative.with_suffix(extension)
