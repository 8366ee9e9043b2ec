"""
Objective image quality metrics - MSE, MAE, SAE, PSNR, SSIM and MSSIM
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum

import numpy as np

from .matrix import as_plane, check_same_shape

MAX_PIXEL = 255.0
SSIM_C1 = (0.01 * MAX_PIXEL) ** 2
SSIM_C2 = (0.03 * MAX_PIXEL) ** 2
MSSIM_WINDOW = 8


def _pair(original, modified):
    a = as_plane(original, "original")
    b = as_plane(modified, "modified")
    check_same_shape(a, b)
    return a, b


def mse(original, modified):
    """Mean squared error."""
    a, b = _pair(original, modified)
    return float(np.mean((a - b) ** 2))


def mae(original, modified):
    """Mean absolute error."""
    a, b = _pair(original, modified)
    return float(np.mean(np.abs(a - b)))


def sae(original, modified):
    """Sum of absolute errors."""
    a, b = _pair(original, modified)
    return float(np.sum(np.abs(a - b)))


def psnr(mse_value):
    """PSNR in dB for an 8-bit signal; infinite for a zero error."""
    if mse_value == 0:
        return math.inf
    return 10 * math.log10(MAX_PIXEL ** 2 / mse_value)


def psnr_rgb(mse_red, mse_green, mse_blue):
    """PSNR of an RGB image from its per-channel MSE values."""
    return psnr((mse_red + mse_green + mse_blue) / 3.0)


def _ssim(a, b):
    n = a.size
    mean_a = a.mean()
    mean_b = b.mean()
    # sample statistics: N - 1 in the denominator
    var_a = np.sum((a - mean_a) ** 2) / (n - 1)
    var_b = np.sum((b - mean_b) ** 2) / (n - 1)
    cov = np.sum((a - mean_a) * (b - mean_b)) / (n - 1)

    numerator = (2 * mean_a * mean_b + SSIM_C1) * (2 * cov + SSIM_C2)
    denominator = (mean_a ** 2 + mean_b ** 2 + SSIM_C1) * (var_a + var_b + SSIM_C2)
    return float(numerator / denominator)


def ssim(original, modified):
    """
    Structural similarity computed once over the whole plane.

    Uses global means, variances and covariance rather than a sliding window.
    """
    a, b = _pair(original, modified)
    if a.size < 2:
        raise ValueError("SSIM needs at least two samples")
    return _ssim(a, b)


def mssim(original, modified, window=MSSIM_WINDOW):
    """
    Mean SSIM over non-overlapping window x window blocks.

    Trailing partial blocks are ignored; returns 0.0 when no full block fits.
    """
    if window < 2:
        raise ValueError(f"MSSIM window must be at least 2, got {window}")
    a, b = _pair(original, modified)
    rows, cols = a.shape
    scores = []
    for i in range(0, rows - window + 1, window):
        for j in range(0, cols - window + 1, window):
            scores.append(_ssim(a[i:i + window, j:j + window], b[i:i + window, j:j + window]))
    if not scores:
        return 0.0
    return float(np.mean(scores))


class QualityType(Enum):
    """Image components that can be compared."""
    RGB = "RGB"
    RED = "Red"
    GREEN = "Green"
    BLUE = "Blue"
    Y = "Y"
    CB = "Cb"
    CR = "Cr"
    YCBCR = "YCbCr"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown quality component: {value}")


_COMPONENT_PLANES = {
    QualityType.RGB: ("red", "green", "blue"),
    QualityType.RED: ("red",),
    QualityType.GREEN: ("green",),
    QualityType.BLUE: ("blue",),
    QualityType.Y: ("y",),
    QualityType.CB: ("cb",),
    QualityType.CR: ("cr",),
    QualityType.YCBCR: ("y", "cb", "cr"),
}


@dataclass(frozen=True)
class QualityReport:
    """Error metrics for one compared component."""
    component: str
    mse: float
    mae: float
    sae: float
    psnr: float

    def to_dict(self):
        return asdict(self)


def compare(original, modified, component=QualityType.RGB):
    """
    Compare a component of two ImageState objects.

    Multi-plane components average MSE and MAE over their planes and sum SAE;
    PSNR is derived from the averaged MSE.

    Args:
        original: Reference ImageState
        modified: Processed ImageState
        component: QualityType or its label

    Returns:
        QualityReport
    """
    component = QualityType.parse(component)
    names = _COMPONENT_PLANES[component]
    pairs = [(getattr(original, name), getattr(modified, name)) for name in names]

    mse_values = [mse(a, b) for a, b in pairs]
    mae_values = [mae(a, b) for a, b in pairs]
    sae_values = [sae(a, b) for a, b in pairs]

    if component is QualityType.RGB:
        psnr_value = psnr_rgb(*mse_values)
    else:
        psnr_value = psnr(float(np.mean(mse_values)))

    return QualityReport(
        component=component.value,
        mse=float(np.mean(mse_values)),
        mae=float(np.mean(mae_values)),
        sae=float(np.sum(sae_values)),
        psnr=psnr_value,
    )
