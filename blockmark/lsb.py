"""
Spatial-domain watermarking in a single bit plane
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import permutation
from .errors import WatermarkTooLarge
from .matrix import as_plane
from .watermark import Watermark, WatermarkCodec, WatermarkMethod, binarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LSBParams:
    """
    Args:
        bit_plane: Bit index 0..7 that carries the mark (0 is least significant)
        permute: Scatter the bits with the key before writing them
        key: Permutation key; permutation only happens when this is set
    """
    bit_plane: int = 0
    permute: bool = False
    key: Optional[str] = None

    def __post_init__(self):
        if not 0 <= int(self.bit_plane) <= 7:
            raise ValueError(f"bit_plane must be in 0..7, got {self.bit_plane}")

    @property
    def uses_permutation(self):
        return bool(self.permute and self.key is not None)

    def describe(self):
        return f"BitPlane: {self.bit_plane}, Permute: {self.permute}"


def _check_fits(shape, width, height):
    rows, cols = shape
    if width > cols or height > rows:
        raise WatermarkTooLarge("watermark is larger than the carrier plane",
                                {"watermark": (width, height), "plane": (cols, rows)})


class LSBWatermarking(WatermarkCodec):
    """Writes watermark bits straight into one bit plane of the pixels."""

    method = WatermarkMethod.LSB
    params_type = LSBParams

    def embed(self, plane, watermark, params):
        """
        Embed a watermark into the top-left corner of a plane.

        Args:
            plane: Carrier plane (not modified)
            watermark: Watermark, image or array; binarized first
            params: LSBParams

        Returns:
            np.ndarray: Carrier copy with the bit plane overwritten
        """
        self._check_params(params)
        carrier = as_plane(plane, "carrier")
        bits = binarize(watermark)
        height, width = bits.shape
        _check_fits(carrier.shape, width, height)

        if params.uses_permutation:
            bits = permutation.permute(bits, params.key)

        mask = 1 << params.bit_plane
        region = np.floor(carrier[:height, :width]).astype(np.int64)
        region = (region & ~mask) | (bits.astype(np.int64) << params.bit_plane)

        marked = carrier.copy()
        marked[:height, :width] = region
        logger.debug("LSB embedded %dx%d mark in bit plane %d", width, height, params.bit_plane)
        return marked

    def extract(self, plane, width, height, params, reference=None):
        self._check_params(params)
        data = as_plane(plane, "carrier")
        _check_fits(data.shape, width, height)

        values = np.trunc(data[:height, :width]).astype(np.int64)
        bits = ((values >> params.bit_plane) & 1).astype(bool)

        if params.uses_permutation:
            bits = permutation.unpermute(bits, params.key)
        return Watermark(bits)
