"""
Singular-value watermarking, one bit per block

The largest singular value of each full block is raised for a 1 and lowered
for a 0. For a smooth block the first singular vectors are close to flat, so a
change of alpha * N in that value moves every pixel by roughly alpha.
Extraction is non-blind: each block's largest singular value is compared with
the same block of the unmarked host plane.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .errors import InvalidBlockSize, MissingReference, WatermarkTooLarge
from .frequency import capacity, join_blocks, split_blocks
from .matrix import as_plane, check_same_shape
from .watermark import Watermark, WatermarkCodec, WatermarkMethod, binarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SVDParams:
    """
    Args:
        alpha: Mean per-pixel change of a marked block, must be > 0
        block_size: Tile edge length N
    """
    alpha: float = 1.0
    block_size: int = 8

    def __post_init__(self):
        object.__setattr__(self, "alpha", float(self.alpha))
        if self.alpha <= 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")
        if self.block_size < 2:
            raise InvalidBlockSize("SVD blocks need at least 2x2 pixels", {"block_size": self.block_size})

    def describe(self):
        return f"Alpha: {self.alpha}, Block: {self.block_size}"


def leading_singular_values(plane, block_size, count):
    """Largest singular value of the first count blocks in raster order."""
    tiles = split_blocks(as_plane(plane), block_size)[:count]
    return np.linalg.svd(tiles, compute_uv=False)[:, 0]


class SVDWatermarking(WatermarkCodec):
    """Moves the dominant singular value of each block up or down."""

    method = WatermarkMethod.SVD
    params_type = SVDParams
    needs_reference = True

    def _check_capacity(self, shape, bit_count, params):
        available = capacity(shape, params.block_size)
        if bit_count > available:
            raise WatermarkTooLarge("not enough blocks for the watermark",
                                    {"bits": bit_count, "blocks": available})

    def embed(self, plane, watermark, params):
        """
        Embed a watermark, one bit per block in raster order.

        Args:
            plane: Carrier plane (not modified)
            watermark: Watermark, image or array; binarized first
            params: SVDParams

        Returns:
            np.ndarray: Marked copy of the carrier
        """
        self._check_params(params)
        carrier = as_plane(plane, "carrier")
        bits = binarize(watermark).ravel()
        self._check_capacity(carrier.shape, bits.size, params)

        n = params.block_size
        count = bits.size
        tiles = split_blocks(carrier, n)
        u, s, vt = np.linalg.svd(tiles[:count])

        step = params.alpha * n
        # singular values stay non-negative
        s[:, 0] = np.maximum(s[:, 0] + np.where(bits, step, -step), 0.0)
        tiles[:count] = (u * s[:, np.newaxis, :]) @ vt

        region = join_blocks(tiles, carrier.shape, n)
        marked = carrier.copy()
        marked[:region.shape[0], :region.shape[1]] = region
        logger.debug("SVD embedded %d bits (block %d, alpha %.2f)", count, n, params.alpha)
        return marked

    def extract(self, plane, width, height, params, reference=None):
        """
        Read a watermark by comparing singular values with the host.

        Raises:
            MissingReference: reference is None
        """
        self._check_params(params)
        if reference is None:
            raise MissingReference("SVD extraction needs the unmarked host plane")
        data = as_plane(plane, "carrier")
        host = as_plane(reference, "reference")
        check_same_shape(host, data)
        count = width * height
        self._check_capacity(data.shape, count, params)

        n = params.block_size
        marked = leading_singular_values(data, n, count)
        original = leading_singular_values(host, n, count)
        return Watermark((marked > original).reshape(height, width))
