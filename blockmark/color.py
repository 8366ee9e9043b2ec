"""
RGB <-> YCbCr conversion (BT.601, studio swing)
"""

import numpy as np

from .matrix import as_plane, check_same_shape, round_half_up


def rgb_to_ycbcr(red, green, blue):
    """
    Convert RGB planes to Y, Cb, Cr planes.

    Y lands in roughly [16, 235], Cb and Cr in [16, 240]. No rounding is
    applied.

    Returns:
        tuple: (y, cb, cr) float64 arrays
    """
    r = as_plane(red, "red")
    g = as_plane(green, "green")
    b = as_plane(blue, "blue")
    check_same_shape(r, g)
    check_same_shape(r, b)

    y = 0.257 * r + 0.504 * g + 0.098 * b + 16
    cb = -0.148 * r - 0.291 * g + 0.439 * b + 128
    cr = 0.439 * r - 0.368 * g - 0.071 * b + 128
    return y, cb, cr


def ycbcr_to_rgb(y, cb, cr):
    """
    Convert Y, Cb, Cr planes back to 8-bit RGB planes.

    Each channel is rounded half up and clamped to [0, 255].

    Returns:
        tuple: (red, green, blue) int32 arrays
    """
    y = as_plane(y, "y") - 16
    cb = as_plane(cb, "cb") - 128
    cr = as_plane(cr, "cr") - 128
    check_same_shape(y, cb)
    check_same_shape(y, cr)

    red = 1.164 * y + 1.596 * cr
    green = 1.164 * y - 0.813 * cr - 0.391 * cb
    blue = 1.164 * y + 2.018 * cb

    return tuple(np.clip(round_half_up(c), 0, 255).astype(np.int32)
                 for c in (red, green, blue))
