"""
Wavelet-domain watermarking in one subband of a single-level Haar transform

Every 2x2 pixel block yields one coefficient in each of the LL, LH, HL and HH
subbands. The mark occupies the top-left width x height corner of the chosen
subband: each coefficient is pushed up for a 1 and down for a 0. Extraction
compares against the same coefficients of the unmarked host plane.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pywt

from .errors import WatermarkTooLarge
from .matrix import as_plane, check_same_shape
from .watermark import Watermark, WatermarkCodec, WatermarkMethod, binarize

logger = logging.getLogger(__name__)

# lower bound on the magnitude the embedding step is scaled from
MIN_STEP_BASE = 2.0


class Subband(Enum):
    LL = "LL"
    LH = "LH"
    HL = "HL"
    HH = "HH"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown subband: {value}") from None


@dataclass(frozen=True)
class DWTParams:
    """
    Args:
        strength: Step size as a multiple of the coefficient magnitude, must be > 0
        subband: Subband that carries the mark
    """
    strength: float = 2.5
    subband: Subband = Subband.LH

    def __post_init__(self):
        object.__setattr__(self, "strength", float(self.strength))
        object.__setattr__(self, "subband", Subband.parse(self.subband))
        if self.strength <= 0:
            raise ValueError(f"strength must be positive, got {self.strength}")

    def describe(self):
        return f"Strength: {self.strength}, Subband: {self.subband.value}"


def haar_decompose(plane):
    """
    Split a plane into its four single-level Haar subbands.

    A trailing odd row or column has no 2x2 block and is left out.

    Returns:
        dict: Subband -> (H // 2, W // 2) array
    """
    data = as_plane(plane)
    rows, cols = data.shape[0] // 2 * 2, data.shape[1] // 2 * 2
    ll, (lh, hl, hh) = pywt.dwt2(data[:rows, :cols], "haar", mode="periodization")
    return {Subband.LL: ll, Subband.LH: lh, Subband.HL: hl, Subband.HH: hh}


def haar_reconstruct(bands, shape, fill=None):
    """
    Inverse of haar_decompose.

    Args:
        bands: dict Subband -> array, as returned by haar_decompose
        shape: Shape of the plane to rebuild
        fill: Plane whose trailing odd row/column is copied; zeros otherwise
    """
    coeffs = (bands[Subband.LL], (bands[Subband.LH], bands[Subband.HL], bands[Subband.HH]))
    region = pywt.idwt2(coeffs, "haar", mode="periodization")
    out = np.zeros(shape) if fill is None else as_plane(fill).copy()
    out[:region.shape[0], :region.shape[1]] = region
    return out


def _check_fits(shape, width, height):
    rows, cols = shape[0] // 2, shape[1] // 2
    if width > cols or height > rows:
        raise WatermarkTooLarge("watermark is larger than a subband",
                                {"watermark": (width, height), "subband": (cols, rows)})


class DWTWatermarking(WatermarkCodec):
    """Shifts Haar subband coefficients up or down relative to the host."""

    method = WatermarkMethod.DWT
    params_type = DWTParams
    needs_reference = True

    def embed(self, plane, watermark, params):
        """
        Embed a watermark into the top-left corner of a subband.

        The step for each coefficient is strength * max(|value|, |subband mean|, 2).
        Coefficients are orthonormal Haar, so pixels move by half the step.

        Args:
            plane: Carrier plane (not modified)
            watermark: Watermark, image or array; binarized first
            params: DWTParams

        Returns:
            np.ndarray: Marked copy of the carrier
        """
        self._check_params(params)
        carrier = as_plane(plane, "carrier")
        bits = binarize(watermark)
        height, width = bits.shape
        _check_fits(carrier.shape, width, height)

        bands = haar_decompose(carrier)
        target = bands[params.subband]
        mean = target.mean()
        region = target[:height, :width]
        step = params.strength * np.maximum(np.maximum(np.abs(region), abs(mean)), MIN_STEP_BASE)
        target[:height, :width] = region + np.where(bits, step, -step)

        logger.debug("DWT embedded %dx%d mark in %s (strength %.2f)",
                     width, height, params.subband.value, params.strength)
        return haar_reconstruct(bands, carrier.shape, fill=carrier)

    def extract(self, plane, width, height, params, reference=None):
        """
        Read a watermark back from a subband.

        Args:
            plane: Possibly attacked marked plane
            width: Watermark width
            height: Watermark height
            params: DWTParams
            reference: Unmarked host plane; without it the subband mean is the threshold

        Returns:
            Watermark
        """
        self._check_params(params)
        data = as_plane(plane, "carrier")
        _check_fits(data.shape, width, height)
        band = haar_decompose(data)[params.subband]
        marked = band[:height, :width]

        if reference is None:
            logger.warning("DWT extraction without the host plane; thresholding at the subband mean")
            threshold = band.mean()
        else:
            host = as_plane(reference, "reference")
            check_same_shape(host, data)
            threshold = haar_decompose(host)[params.subband][:height, :width]
        return Watermark(marked > threshold)
