"""
Block transforms - orthonormal DCT-II and Walsh-Hadamard applied per tile
"""

import math
from enum import Enum
from functools import lru_cache

import numpy as np

from .errors import InvalidBlockSize, UnsupportedTransformType
from .matrix import as_plane, apply_blockwise


class TransformType(Enum):
    """Supported block transforms."""
    DCT = "dct"
    WHT = "wht"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedTransformType(f"Unknown transform type: {value}") from None


def _dct_matrix(n):
    matrix = np.empty((n, n))
    matrix[0, :] = math.sqrt(1.0 / n)
    j = np.arange(n)
    for i in range(1, n):
        matrix[i, :] = math.sqrt(2.0 / n) * np.cos((2 * j + 1) * i * math.pi / (2 * n))
    return matrix


def _hadamard(n):
    if n == 1:
        return np.ones((1, 1))
    half = _hadamard(n // 2)
    return np.block([[half, half], [half, -half]])


@lru_cache(maxsize=None)
def get_transform_matrix(kind, block_size):
    """
    Build (and cache) the N x N basis for a transform.

    Args:
        kind: TransformType or its name
        block_size: Tile edge length N

    Returns:
        np.ndarray: Read-only orthonormal matrix
    """
    kind = TransformType.parse(kind)
    if not isinstance(block_size, (int, np.integer)) or block_size < 1:
        raise InvalidBlockSize("Block size must be a positive integer", {"block_size": block_size})

    if kind is TransformType.DCT:
        matrix = _dct_matrix(block_size)
    else:
        if block_size & (block_size - 1):
            raise InvalidBlockSize("WHT block size must be a power of two",
                                   {"block_size": block_size})
        matrix = _hadamard(block_size) / math.sqrt(block_size)

    matrix.setflags(write=False)
    return matrix


def transform(plane, kind, block_size):
    """
    Forward transform every full tile: A . X . A^T.

    Partial tiles at the right and bottom edges pass through unchanged.
    """
    basis = get_transform_matrix(TransformType.parse(kind), block_size)
    data = as_plane(plane)
    return apply_blockwise(data, block_size, lambda tiles: basis @ tiles @ basis.T)


def inverse_transform(plane, kind, block_size):
    """Inverse transform every full tile: A^T . T . A."""
    basis = get_transform_matrix(TransformType.parse(kind), block_size)
    data = as_plane(plane)
    return apply_blockwise(data, block_size, lambda tiles: basis.T @ tiles @ basis)
