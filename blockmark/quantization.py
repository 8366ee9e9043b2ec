"""
JPEG-style quantization of transform coefficients
"""

from functools import lru_cache

import numpy as np

from .errors import InvalidBlockSize
from .matrix import as_plane, apply_blockwise, round_half_up

LUMINANCE_TABLE = np.array([
    [16, 11, 10, 16, 24, 40, 51, 61],
    [12, 12, 14, 19, 26, 58, 60, 55],
    [14, 13, 16, 24, 40, 57, 69, 56],
    [14, 17, 22, 29, 51, 87, 80, 62],
    [18, 22, 37, 56, 68, 109, 103, 77],
    [24, 35, 55, 64, 81, 104, 113, 92],
    [49, 64, 78, 87, 103, 121, 120, 101],
    [72, 92, 95, 98, 112, 100, 103, 99],
], dtype=np.float64)

CHROMINANCE_TABLE = np.array([
    [17, 18, 24, 47, 99, 99, 99, 99],
    [18, 21, 26, 66, 99, 99, 99, 99],
    [24, 26, 56, 99, 99, 99, 99, 99],
    [47, 66, 99, 99, 99, 99, 99, 99],
    [99, 99, 99, 99, 99, 99, 99, 99],
    [99, 99, 99, 99, 99, 99, 99, 99],
    [99, 99, 99, 99, 99, 99, 99, 99],
    [99, 99, 99, 99, 99, 99, 99, 99],
], dtype=np.float64)

# quantized values with magnitude below this keep two decimals instead of one
FINE_ROUNDING_LIMIT = 0.2


def scale_factor(quality):
    """Map a 1..100 quality to the JPEG table multiplier."""
    if quality >= 50:
        return 2 - 2 * quality / 100.0
    return 50.0 / quality


@lru_cache(maxsize=None)
def get_quantization_matrix(block_size, quality, is_luma=True):
    """
    Build the quantization matrix for a block size and quality.

    Args:
        block_size: Tile edge length N
        quality: JPEG-like quality in (0, 100]
        is_luma: Luminance table when True, chrominance table otherwise

    Returns:
        np.ndarray: Read-only N x N matrix
    """
    if not isinstance(block_size, (int, np.integer)) or block_size < 1:
        raise InvalidBlockSize("Block size must be a positive integer", {"block_size": block_size})
    if not 0 < quality <= 100:
        raise ValueError(f"Quality must be in (0, 100], got {quality}")

    if quality == 100:
        matrix = np.ones((block_size, block_size))
    else:
        base = LUMINANCE_TABLE if is_luma else CHROMINANCE_TABLE
        src = (np.arange(block_size) * 8) // block_size
        matrix = base[np.ix_(src, src)] * scale_factor(quality)

    matrix.setflags(write=False)
    return matrix


def _round_coefficients(values):
    fine = round_half_up(values * 100) / 100
    coarse = round_half_up(values * 10) / 10
    return np.where(np.abs(values) < FINE_ROUNDING_LIMIT, fine, coarse)


def quantize(plane, block_size, quality, is_luma=True):
    """
    Divide every full tile by the quantization matrix and round.

    Quality 100 uses an all-ones matrix, so integer-valued planes come back
    unchanged from inverse_quantize. The decimal rounding still applies, and
    fractional coefficients can move by up to 0.05.
    """
    table = get_quantization_matrix(block_size, float(quality), is_luma)
    return apply_blockwise(as_plane(plane), block_size,
                           lambda tiles: _round_coefficients(tiles / table))


def inverse_quantize(plane, block_size, quality, is_luma=True):
    """Multiply every full tile by the quantization matrix."""
    table = get_quantization_matrix(block_size, float(quality), is_luma)
    return apply_blockwise(as_plane(plane), block_size, lambda tiles: tiles * table)
