"""
Chroma subsampling by point decimation and sample replication
"""

from enum import Enum

import numpy as np

from .matrix import as_plane


class SamplingType(Enum):
    """Chroma subsampling schemes."""
    S_4_4_4 = "4:4:4"
    S_4_2_2 = "4:2:2"
    S_4_2_0 = "4:2:0"
    S_4_1_1 = "4:1:1"

    @classmethod
    def parse(cls, value):
        """Accept a SamplingType, a '4:2:0' style label or a member name."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        raise ValueError(f"Unknown sampling type: {value}")


def sample_down(plane, sampling):
    """
    Subsample a chroma plane.

    Columns (and rows for 4:2:0) are kept by index; nothing is averaged.

    Args:
        plane: 2-D chroma plane
        sampling: SamplingType or label

    Returns:
        np.ndarray: Reduced plane
    """
    sampling = SamplingType.parse(sampling)
    data = as_plane(plane, "chroma")

    if sampling is SamplingType.S_4_4_4:
        return data
    if sampling is SamplingType.S_4_2_2:
        return data[:, ::2]
    if sampling is SamplingType.S_4_1_1:
        return data[:, ::4]

    # 4:2:0 - horizontal pass first, then vertical
    half = data[:, ::2]
    return half[::2, :]


def sample_up(plane, sampling, shape=None):
    """
    Replicate a subsampled chroma plane back to full size.

    Args:
        plane: Subsampled plane
        sampling: SamplingType or label used for the downsample
        shape: Optional (rows, cols) the result must have; extra samples are
            trimmed and missing trailing rows/columns repeat the edge

    Returns:
        np.ndarray: Upsampled plane
    """
    sampling = SamplingType.parse(sampling)
    data = as_plane(plane, "chroma")

    if sampling is SamplingType.S_4_2_2:
        data = np.repeat(data, 2, axis=1)
    elif sampling is SamplingType.S_4_1_1:
        data = np.repeat(data, 4, axis=1)
    elif sampling is SamplingType.S_4_2_0:
        # vertical pass first, then horizontal
        data = np.repeat(np.repeat(data, 2, axis=0), 2, axis=1)

    if shape is not None:
        data = _fit_shape(data, shape)
    return data


def _fit_shape(data, shape):
    """Trim or edge-extend data to exactly shape."""
    rows, cols = shape
    data = data[:rows, :cols]
    pad_r = rows - data.shape[0]
    pad_c = cols - data.shape[1]
    if pad_r or pad_c:
        data = np.pad(data, ((0, pad_r), (0, pad_c)), mode="edge")
    return data
