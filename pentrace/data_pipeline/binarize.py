"""Binarization: colour/grayscale image → two-valued mask.

Two strategies share one contract (image → mask):
    1. THRESHOLD: integer luminance compared against a cutoff (optionally inverted)
    2. EDGE-DETECT: Sobel gradient magnitude compared against a cutoff

Luminance uses the fixed integer weighting with round-half-up:
    Y = (299·R + 587·G + 114·B + 500) // 1000

Masks are (H, W) uint8 with 0 = background and 255 = foreground.

Edge detection leaves the one-pixel image border at background: the 3×3
window does not fit there and the border is never evaluated.

Public API:
    binarize(image, ThresholdStrategy(threshold=128, invert=False)) → mask
    binarize(image, EdgeDetectStrategy(threshold=100.0)) → mask
"""

from dataclasses import dataclass
import logging
from typing import Union

import numpy as np
from PIL import Image
from scipy import ndimage

from ..utils import fs, validators

logger = logging.getLogger(__name__)

FOREGROUND = 255
BACKGROUND = 0

SOBEL_X = np.array([[-1, 0, 1],
                    [-2, 0, 2],
                    [-1, 0, 1]], dtype=np.int32)
SOBEL_Y = np.array([[-1, -2, -1],
                    [0, 0, 0],
                    [1, 2, 1]], dtype=np.int32)

ImageLike = Union[np.ndarray, Image.Image]


@dataclass(frozen=True)
class ThresholdStrategy:
    """Luminance threshold; foreground where Y > threshold (strict)."""
    threshold: int = 128
    invert: bool = False


@dataclass(frozen=True)
class EdgeDetectStrategy:
    """Sobel edge detection; foreground where magnitude > threshold (strict)."""
    threshold: float = 128.0


BinarizeStrategy = Union[ThresholdStrategy, EdgeDetectStrategy]


def _to_channels(image: ImageLike) -> np.ndarray:
    """Convert an image to (H, W, 3) int32 RGB in the 8-bit range.

    RGBA input is alpha-premultiplied, so fully transparent pixels read
    as black. PIL images are decoded like fs.load_image() decodes files.
    """
    if isinstance(image, Image.Image):
        image = fs.pil_to_array(image)

    arr = np.asarray(image)
    if arr.dtype == bool:
        arr = arr.astype(np.uint8) * 255
    elif arr.dtype == np.uint16:
        arr = (arr >> 8).astype(np.uint8)
    elif np.issubdtype(arr.dtype, np.integer):
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    else:
        raise ValueError(f"Expected integer image channels, got dtype {arr.dtype}")

    if arr.ndim == 2:
        return np.repeat(arr.astype(np.int32)[..., None], 3, axis=2)
    if arr.ndim != 3 or arr.shape[2] not in (1, 3, 4):
        raise ValueError(f"Expected image of shape (H, W), (H, W, 3) or (H, W, 4), got {arr.shape}")

    arr = arr.astype(np.int32)
    if arr.shape[2] == 1:
        return np.repeat(arr, 3, axis=2)
    if arr.shape[2] == 4:
        alpha = arr[..., 3:4]
        return (arr[..., :3] * alpha + 127) // 255
    return arr


def luminance(image: ImageLike) -> np.ndarray:
    """Integer luminance of every pixel.

    Parameters
    ----------
    image : np.ndarray or PIL.Image.Image
        (H, W) grayscale, (H, W, 3) RGB or (H, W, 4) RGBA, 8-bit

    Returns
    -------
    lum : np.ndarray
        (H, W) uint8, Y = (299·R + 587·G + 114·B + 500) // 1000
    """
    rgb = _to_channels(image)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    return ((299 * r + 587 * g + 114 * b + 500) // 1000).astype(np.uint8)


def threshold(image: ImageLike, t: int, invert: bool = False) -> np.ndarray:
    """Threshold luminance into a mask.

    A pixel is foreground when its (optionally inverted) luminance is
    strictly greater than t; Y == t is background.

    Raises
    ------
    ValueError
        If t is not an integer in [0, 255]
    """
    if int(t) != t or not 0 <= t <= 255:
        raise ValueError(f"Threshold must be an integer in [0, 255], got {t}")

    lum = luminance(image).astype(np.int32)
    if invert:
        lum = 255 - lum

    mask = np.where(lum > int(t), FOREGROUND, BACKGROUND).astype(np.uint8)
    logger.debug(f"Threshold t={int(t)} invert={invert}: {np.count_nonzero(mask)} foreground px")
    return mask


def sobel_magnitude(lum: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude over the interior of a luminance grid.

    Returns
    -------
    magnitude : np.ndarray
        (H-2, W-2) float64 for H, W >= 3, otherwise an empty (0, 0) array
    """
    lum = np.asarray(lum, dtype=np.int32)
    h, w = lum.shape
    if h < 3 or w < 3:
        return np.zeros((0, 0), dtype=np.float64)

    # Kernels are applied as written (correlation, not flipped convolution)
    sum_x = ndimage.correlate(lum, SOBEL_X, mode='constant', cval=0)[1:-1, 1:-1]
    sum_y = ndimage.correlate(lum, SOBEL_Y, mode='constant', cval=0)[1:-1, 1:-1]
    return np.sqrt(sum_x.astype(np.float64) ** 2 + sum_y.astype(np.float64) ** 2)


def edge_detection(image: ImageLike, threshold: float) -> np.ndarray:
    """Sobel edge detection into a mask.

    The one-pixel border is never evaluated and stays background.

    Raises
    ------
    ValueError
        If threshold is negative
    """
    if threshold < 0:
        raise ValueError(f"Edge threshold must be non-negative, got {threshold}")

    lum = luminance(image)
    mask = np.zeros(lum.shape, dtype=np.uint8)
    magnitude = sobel_magnitude(lum)
    if magnitude.size:
        mask[1:-1, 1:-1] = np.where(magnitude > threshold, FOREGROUND, BACKGROUND)
    logger.debug(f"Edge detection threshold={threshold}: {np.count_nonzero(mask)} foreground px")
    return mask


def binarize(image: ImageLike, strategy: BinarizeStrategy) -> np.ndarray:
    """Dispatch to the strategy's binarization.

    Raises
    ------
    TypeError
        If strategy is not a known binarization strategy
    """
    if isinstance(strategy, ThresholdStrategy):
        return threshold(image, strategy.threshold, strategy.invert)
    if isinstance(strategy, EdgeDetectStrategy):
        return edge_detection(image, strategy.threshold)
    raise TypeError(f"Unknown binarization strategy: {type(strategy).__name__}")


def mask_name(strategy: BinarizeStrategy) -> str:
    """File stem used for the strategy's diagnostic mask image."""
    if isinstance(strategy, EdgeDetectStrategy):
        return "edge-detection"
    return "threshold"


def strategy_from_config(cfg: validators.BinarizeConfig) -> BinarizeStrategy:
    """Build the strategy variant from a validated config section."""
    if cfg.bw_mode == "edge-detect":
        return EdgeDetectStrategy(threshold=float(cfg.threshold))
    return ThresholdStrategy(threshold=int(cfg.threshold), invert=cfg.invert)
