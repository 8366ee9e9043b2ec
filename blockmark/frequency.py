"""
Frequency-domain watermarking by ordering a pair of block coefficients

Each full block of the carrier holds one bit. The bit is encoded in the
relation between two mid-frequency coefficients: for a 1 the first exceeds
the second by at least the strength, for a 0 the second exceeds the first.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import InvalidBlockSize, WatermarkTooLarge
from .matrix import as_plane
from .transform import TransformType, get_transform_matrix
from .watermark import Watermark, WatermarkCodec, WatermarkMethod, binarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DCTParams:
    """
    Args:
        block_size: Tile edge length N
        coef1: (row, col) of the first coefficient
        coef2: (row, col) of the second coefficient
        strength: Minimum separation enforced between the two, must be > 0
        transform: Block transform used to reach the coefficients
    """
    block_size: int = 8
    coef1: Tuple[int, int] = (3, 1)
    coef2: Tuple[int, int] = (4, 1)
    strength: float = 10.0
    transform: TransformType = TransformType.DCT

    def __post_init__(self):
        object.__setattr__(self, "coef1", tuple(int(v) for v in self.coef1))
        object.__setattr__(self, "coef2", tuple(int(v) for v in self.coef2))
        object.__setattr__(self, "strength", float(self.strength))
        object.__setattr__(self, "transform", TransformType.parse(self.transform))

        if self.block_size < 1:
            raise InvalidBlockSize("Block size must be positive", {"block_size": self.block_size})
        for coef in (self.coef1, self.coef2):
            if len(coef) != 2 or not all(0 <= v < self.block_size for v in coef):
                raise ValueError(f"coefficient {coef} is outside a {self.block_size}x{self.block_size} block")
        if self.coef1 == self.coef2:
            raise ValueError("coef1 and coef2 must be different positions")
        if self.strength <= 0:
            raise ValueError(f"strength must be positive, got {self.strength}")

    def describe(self):
        return (f"Block: {self.block_size}, Coef1: ({self.coef1[0]},{self.coef1[1]}), "
                f"Coef2: ({self.coef2[0]},{self.coef2[1]}), Strength: {self.strength}")


def capacity(shape, block_size):
    """Number of bits a plane of the given shape can carry."""
    rows, cols = shape
    return (rows // block_size) * (cols // block_size)


def split_blocks(data, n):
    """Full tiles of data in raster block order, as an (count, n, n) copy."""
    rows, cols = data.shape[0] // n, data.shape[1] // n
    region = data[:rows * n, :cols * n]
    return region.reshape(rows, n, cols, n).swapaxes(1, 2).reshape(rows * cols, n, n).copy()


def join_blocks(tiles, shape, n):
    rows, cols = shape[0] // n, shape[1] // n
    return tiles.reshape(rows, cols, n, n).swapaxes(1, 2).reshape(rows * n, cols * n)


class DCTWatermarking(WatermarkCodec):
    """Hides one bit per block in the order of two transform coefficients."""

    method = WatermarkMethod.DCT
    params_type = DCTParams

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
            params: DCTParams

        Returns:
            np.ndarray: Marked copy of the carrier
        """
        self._check_params(params)
        carrier = as_plane(plane, "carrier")
        bits = binarize(watermark).ravel()
        self._check_capacity(carrier.shape, bits.size, params)

        n = params.block_size
        basis = get_transform_matrix(params.transform, n)
        tiles = split_blocks(carrier, n)
        count = bits.size

        coeffs = basis @ tiles[:count] @ basis.T
        (r1, c1), (r2, c2) = params.coef1, params.coef2
        first = coeffs[:, r1, c1]
        second = coeffs[:, r2, c2]

        # keep the pair's mean, widen the gap to at least the strength
        middle = (first + second) / 2
        half_gap = np.maximum(np.abs(first - second), params.strength) / 2
        sign = np.where(bits, 1.0, -1.0)
        coeffs[:, r1, c1] = middle + sign * half_gap
        coeffs[:, r2, c2] = middle - sign * half_gap

        tiles[:count] = basis.T @ coeffs @ basis
        region = join_blocks(tiles, carrier.shape, n)
        marked = carrier.copy()
        marked[:region.shape[0], :region.shape[1]] = region
        logger.debug("DCT embedded %d bits (block %d, strength %.2f)", count, n, params.strength)
        return marked

    def extract(self, plane, width, height, params, reference=None):
        self._check_params(params)
        data = as_plane(plane, "carrier")
        count = width * height
        self._check_capacity(data.shape, count, params)

        n = params.block_size
        basis = get_transform_matrix(params.transform, n)
        coeffs = basis @ split_blocks(data, n)[:count] @ basis.T
        (r1, c1), (r2, c2) = params.coef1, params.coef2
        bits = coeffs[:, r1, c1] > coeffs[:, r2, c2]
        return Watermark(bits.reshape(height, width))
