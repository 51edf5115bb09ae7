"""The unappetizing filter: Sobel edge pass followed by a per-pixel color remap.

Everything here is a pure function over numpy arrays. Inputs are never
written to; each call allocates its own edge map and output buffer, so the
functions are safe to call from several threads at once.

Pass 1 (``detect_edges``) computes a Sobel gradient magnitude on the
luminance of the 8 neighbours of every interior pixel, each gradient
divided by 8. Border pixels keep magnitude 0 and are never edges.

Pass 2 (``remap_colors``) desaturates, adds an oily yellow-green cast to
highlights or a cold blue cast to shadows, stretches contrast around 128,
scales brightness and finally boosts edge pixels.
"""

import numpy as np

from .models import FilterConfig, RasterImage

MIDPOINT = 128.0

# Per-channel (R, G, B) shift at full oiliness / full coldness.
HIGHLIGHT_CAST = np.array([40.0, 35.0, -20.0])
SHADOW_CAST = np.array([-15.0, 10.0, 25.0])


def compute_luminance(rgb: np.ndarray) -> np.ndarray:
    """Perceptual luminance ``0.299R + 0.587G + 0.114B`` as float64."""
    rgb = rgb.astype(np.float64, copy=False)
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]


def detect_edges(pixels: np.ndarray) -> np.ndarray:
    """
    Compute the edge map of an RGB(A) raster.

    Args:
        pixels: Array of shape (height, width, 3 or 4)

    Returns:
        uint8 array of shape (height, width) holding gradient magnitudes,
        rounded half to even. Images narrower or shorter than 3 pixels have
        no interior and get an all-zero map.
    """
    gray = compute_luminance(pixels[..., :3])
    edge_map = np.zeros(gray.shape, dtype=np.uint8)

    height, width = gray.shape
    if height < 3 or width < 3:
        return edge_map

    top_left, top, top_right = gray[:-2, :-2], gray[:-2, 1:-1], gray[:-2, 2:]
    left, right = gray[1:-1, :-2], gray[1:-1, 2:]
    bottom_left, bottom, bottom_right = gray[2:, :-2], gray[2:, 1:-1], gray[2:, 2:]

    gx = (
        -top_left + top_right - 2 * left + 2 * right - bottom_left + bottom_right
    ) / 8
    gy = (
        -top_left - 2 * top - top_right + bottom_left + 2 * bottom + bottom_right
    ) / 8

    magnitude = np.sqrt(gx * gx + gy * gy)
    edge_map[1:-1, 1:-1] = np.clip(np.rint(magnitude), 0, 255).astype(np.uint8)
    return edge_map


def compute_tone_shift(luminance: np.ndarray, config: FilterConfig) -> np.ndarray:
    """
    Per-channel tone shift for each pixel, shape ``luminance.shape + (3,)``.

    Highlights (strictly above ``highlight_threshold``) drift toward an oily
    yellow-green, shadows (strictly below ``shadow_threshold``) toward a cold
    blue. Highlight wins when both would apply; midtones get zero.
    """
    luminance = np.asarray(luminance, dtype=np.float64)
    shift = np.zeros(luminance.shape + (3,), dtype=np.float64)

    highlight = luminance > config.highlight_threshold
    shadow = ~highlight & (luminance < config.shadow_threshold)

    if highlight.any():
        threshold = config.highlight_threshold
        oiliness = (luminance[highlight] - threshold) / (255 - threshold)
        shift[highlight] = np.outer(oiliness, HIGHLIGHT_CAST)

    if shadow.any():
        threshold = config.shadow_threshold
        coldness = (threshold - luminance[shadow]) / threshold
        shift[shadow] = np.outer(coldness, SHADOW_CAST)

    return shift


def remap_colors(
    pixels: np.ndarray, edge_map: np.ndarray, config: FilterConfig
) -> np.ndarray:
    """
    Run the color remap pass without clamping.

    Args:
        pixels: RGB(A) array of shape (height, width, 3 or 4)
        edge_map: Output of ``detect_edges`` for the same pixels
        config: Filter parameters

    Returns:
        float64 array of shape (height, width, 3) with the remapped RGB
        values, possibly outside [0, 255].
    """
    rgb = pixels[..., :3].astype(np.float64)
    luminance = compute_luminance(rgb)
    is_edge = edge_map > config.edge_threshold

    average = (rgb[..., 0] + rgb[..., 1] + rgb[..., 2]) / 3
    desaturation = config.desaturation
    channels = rgb * (1 - desaturation) + average[..., np.newaxis] * desaturation

    channels += compute_tone_shift(luminance, config)

    channels = (channels - MIDPOINT) * config.contrast + MIDPOINT
    channels *= config.brightness

    channels[is_edge] *= config.edge_sharpness
    return channels


def to_channel_bytes(values: np.ndarray) -> np.ndarray:
    """Clamp to [0, 255] and round half to even into uint8."""
    return np.rint(np.clip(values, 0, 255)).astype(np.uint8)


def apply_unappetizing_filter(raster: RasterImage, config: FilterConfig) -> RasterImage:
    """Run both passes on ``raster`` and return a new raster; alpha is copied as is."""
    edge_map = detect_edges(raster.pixels)
    remapped = remap_colors(raster.pixels, edge_map, config)

    output = np.empty_like(raster.pixels)
    output[..., :3] = to_channel_bytes(remapped)
    output[..., 3] = raster.pixels[..., 3]
    return RasterImage(output)
