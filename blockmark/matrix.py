"""
Pixel plane helpers - validation, rasterisation and block tiling
"""

import numpy as np

from .errors import InvalidMatrixError, DimensionMismatch


def as_plane(values, name="matrix"):
    """
    Validate and convert input into a float64 2-D plane.

    Args:
        values: Anything numpy can turn into a 2-D array
        name: Label used in error messages

    Returns:
        np.ndarray: New float64 array (the input is never aliased)
    """
    if values is None:
        raise InvalidMatrixError(f"{name} is None")

    plane = np.array(values, dtype=np.float64)
    if plane.ndim != 2:
        raise InvalidMatrixError(f"{name} must be 2-D", {"ndim": plane.ndim})
    if plane.size == 0:
        raise InvalidMatrixError(f"{name} is empty", {"shape": plane.shape})
    if not np.all(np.isfinite(plane)):
        raise InvalidMatrixError(f"{name} contains NaN or infinite values")
    return plane


def check_same_shape(a, b):
    """Raise DimensionMismatch unless both arrays share a shape."""
    if a.shape != b.shape:
        raise DimensionMismatch("shapes differ", {"left": a.shape, "right": b.shape})


def round_half_up(values):
    """Round to the nearest integer, halves going towards +inf."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def to_raster(plane):
    """Clamp a plane to [0, 255] and round it into uint8 pixels."""
    return np.clip(round_half_up(plane), 0, 255).astype(np.uint8)


def as_rgb_array(image):
    """
    Turn a PIL image or array into an (H, W, 3) uint8 raster.

    Alpha is dropped and grayscale input is replicated over three channels.
    """
    # PIL images go through convert so palette and alpha modes work too
    if hasattr(image, "convert"):
        return np.array(image.convert("RGB"), dtype=np.uint8)

    array = np.asarray(image)
    if array.ndim == 2:
        array = np.stack([array] * 3, axis=-1)
    if array.ndim != 3 or array.shape[2] < 3:
        raise InvalidMatrixError("expected an RGB raster", {"shape": array.shape})
    return np.clip(array[:, :, :3], 0, 255).astype(np.uint8)


def apply_blockwise(plane, block_size, func):
    """
    Apply func to every full block_size x block_size tile of plane.

    func receives a stack of tiles with shape (rows, cols, N, N) and must
    return an array of the same shape. Trailing rows and columns that do not
    fill a whole tile are copied unchanged.
    """
    out = np.array(plane, dtype=np.float64)
    n = block_size
    rows, cols = out.shape
    full_r, full_c = (rows // n) * n, (cols // n) * n
    if full_r == 0 or full_c == 0:
        return out

    region = out[:full_r, :full_c]
    tiles = region.reshape(full_r // n, n, full_c // n, n).swapaxes(1, 2)
    result = func(tiles)
    out[:full_r, :full_c] = result.swapaxes(1, 2).reshape(full_r, full_c)
    return out
