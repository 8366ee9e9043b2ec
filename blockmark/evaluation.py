"""
Watermark evaluation - BER, NC, PSNR, WNR, ratings and the results log
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import DimensionMismatch
from .matrix import as_rgb_array
from .quality import MAX_PIXEL
from .watermark import binarize

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["Attack Type", "Method", "Component", "Parameter",
                  "BER", "NC", "PSNR", "Quality Rating"]

DETAILED_COLUMNS = ["TestID", "Attack", "Parameters", "Method", "Component", "Parameter",
                    "BER", "NC", "PSNR", "WNR", "QualityRating", "Robustness", "WatermarkConfig"]

# PSNR reported for two identical images
IDENTICAL_PSNR = 100.0


def _bit_pair(original, extracted):
    a = binarize(original)
    b = binarize(extracted)
    if a.shape != b.shape:
        raise DimensionMismatch("watermarks differ in size",
                                {"original": a.shape[::-1], "extracted": b.shape[::-1]})
    return a, b


def ber(original, extracted):
    """Fraction of watermark bits that differ."""
    a, b = _bit_pair(original, extracted)
    return float(np.count_nonzero(a != b)) / a.size


def nc(original, extracted):
    """
    Normalized correlation of two watermarks with bits mapped to +1/-1.

    Returns 0.0 when either energy term is zero.
    """
    a, b = _bit_pair(original, extracted)
    x = np.where(a, 1.0, -1.0)
    y = np.where(b, 1.0, -1.0)
    norm = math.sqrt(np.sum(x * x)) * math.sqrt(np.sum(y * y))
    if norm == 0:
        return 0.0
    return float(np.sum(x * y) / norm)


def image_psnr(reference, distorted):
    """PSNR between two RGB rasters; IDENTICAL_PSNR when they are equal."""
    a = as_rgb_array(reference).astype(np.float64)
    b = as_rgb_array(distorted).astype(np.float64)
    if a.shape != b.shape:
        raise DimensionMismatch("images differ in size", {"left": a.shape, "right": b.shape})
    mse = float(np.mean((a - b) ** 2))
    if mse == 0:
        return IDENTICAL_PSNR
    return 10 * math.log10(MAX_PIXEL ** 2 / mse)


def wnr(host, marked, attacked):
    """
    Watermark-to-noise ratio in dB.

    The watermark signal is marked - host and the noise is attacked - marked.
    Infinite when the attack changed nothing, 0.0 when nothing was embedded.
    """
    h = as_rgb_array(host).astype(np.float64)
    m = as_rgb_array(marked).astype(np.float64)
    a = as_rgb_array(attacked).astype(np.float64)
    if not h.shape == m.shape == a.shape:
        raise DimensionMismatch("images differ in size",
                                {"host": h.shape, "marked": m.shape, "attacked": a.shape})
    signal = float(np.sum((m - h) ** 2))
    noise = float(np.sum((a - m) ** 2))
    if noise == 0:
        return math.inf
    if signal == 0:
        return 0.0
    return 10 * math.log10(signal / noise)


@dataclass(frozen=True)
class RatingBands:
    """
    Thresholds turning BER and NC into a quality label.

    Args:
        ber_limits: Upper bounds (exclusive) for the first three labels
        nc_limits: Lower bounds (exclusive) for the first three labels
        labels: Four labels from best to worst
    """
    ber_limits: Tuple[float, float, float] = (0.05, 0.15, 0.30)
    nc_limits: Tuple[float, float, float] = (0.95, 0.85, 0.75)
    labels: Tuple[str, str, str, str] = ("Excellent", "Good", "Fair", "Poor")

    def rate_ber(self, value):
        for limit, label in zip(self.ber_limits, self.labels):
            if value < limit:
                return label
        return self.labels[-1]

    def rate_nc(self, value):
        for limit, label in zip(self.nc_limits, self.labels):
            if value > limit:
                return label
        return self.labels[-1]


DEFAULT_BANDS = RatingBands()

ROBUSTNESS_THRESHOLDS = {
    "jpeg": 0.15,
    "jpeg_internal": 0.15,
    "png": 0.15,
    "rotation": 0.30,
    "crop": 0.25,
    "gaussian_noise": 0.22,
    "median": 0.18,
    "histogram_equalization": 0.18,
    "sharpening": 0.18,
}
DEFAULT_ROBUSTNESS_THRESHOLD = 0.20


def robustness_level(ber_value, attack_name):
    """Grade BER against a threshold that depends on how harsh the attack is."""
    threshold = ROBUSTNESS_THRESHOLDS.get(attack_name, DEFAULT_ROBUSTNESS_THRESHOLD)
    if ber_value < threshold / 4:
        return "High"
    if ber_value < threshold / 2:
        return "Good"
    if ber_value < threshold:
        return "Moderate"
    return "Low"


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one embedding configuration under one attack."""
    test_id: int
    attack_name: str
    attack_params: str
    method: str
    component: str
    method_params: str
    ber: float
    nc: float
    psnr: float
    quality_rating: str
    wnr: float = 0.0
    robustness: str = ""
    watermark_config: Optional[str] = None

    def to_dict(self):
        return asdict(self)

    def report_row(self):
        """Row for the stable CSV schema."""
        return {
            "Attack Type": self.attack_name,
            "Method": self.method,
            "Component": self.component,
            "Parameter": self.method_params,
            "BER": self.ber,
            "NC": self.nc,
            "PSNR": self.psnr,
            "Quality Rating": self.quality_rating,
        }

    def detailed_row(self):
        return {
            "TestID": self.test_id,
            "Attack": self.attack_name,
            "Parameters": self.attack_params,
            "Method": self.method,
            "Component": self.component,
            "Parameter": self.method_params,
            "BER": self.ber,
            "NC": self.nc,
            "PSNR": self.psnr,
            "WNR": self.wnr,
            "QualityRating": self.quality_rating,
            "Robustness": self.robustness,
            "WatermarkConfig": self.watermark_config or "",
        }


def evaluate(test_id, original_mark, extracted_mark, marked_image, attacked_image,
             attack_name, attack_params, method, component, method_params,
             host_image=None, watermark_config=None, bands=DEFAULT_BANDS):
    """
    Score one extraction and package it as an EvaluationResult.

    PSNR compares the watermarked image with its attacked version.
    """
    ber_value = ber(original_mark, extracted_mark)
    nc_value = nc(original_mark, extracted_mark)
    psnr_value = image_psnr(marked_image, attacked_image)
    wnr_value = wnr(host_image, marked_image, attacked_image) if host_image is not None else 0.0

    return EvaluationResult(
        test_id=test_id,
        attack_name=attack_name,
        attack_params=attack_params,
        method=method,
        component=component,
        method_params=method_params,
        ber=ber_value,
        nc=nc_value,
        psnr=psnr_value,
        quality_rating=bands.rate_ber(ber_value),
        wnr=wnr_value,
        robustness=robustness_level(ber_value, attack_name),
        watermark_config=watermark_config,
    )


@dataclass
class ResultsLog:
    """Append-only collection of results, kept ordered by test id."""
    results: List[EvaluationResult] = field(default_factory=list)

    def append(self, result):
        if not isinstance(result, EvaluationResult):
            raise TypeError("ResultsLog only holds EvaluationResult objects")
        if any(r.test_id == result.test_id for r in self.results):
            raise ValueError(f"test id {result.test_id} is already logged")
        self.results.append(result)
        self.results.sort(key=lambda r: r.test_id)

    def extend(self, results):
        for result in results:
            self.append(result)

    def __iter__(self):
        return iter(list(self.results))

    def __len__(self):
        return len(self.results)

    def __getitem__(self, index):
        return self.results[index]

    def to_dataframe(self, detailed=False):
        """Results as a DataFrame with the report (or detailed) columns."""
        if detailed:
            return pd.DataFrame([r.detailed_row() for r in self.results], columns=DETAILED_COLUMNS)
        return pd.DataFrame([r.report_row() for r in self.results], columns=REPORT_COLUMNS)

    def write_csv(self, path, detailed=False):
        frame = self.to_dataframe(detailed=detailed)
        frame.to_csv(path, index=False)
        logger.info("wrote %d results to %s", len(frame), path)
        return path

    def summary(self, by="Attack Type"):
        """
        Aggregate BER and NC per attack or method.

        Args:
            by: Report column to group on, e.g. 'Attack Type' or 'Method'

        Returns:
            pd.DataFrame indexed by the group value
        """
        frame = self.to_dataframe()
        if frame.empty:
            return pd.DataFrame(columns=["mean_ber", "min_ber", "max_ber", "mean_nc", "count"])
        grouped = frame.groupby(by)
        return pd.DataFrame({
            "mean_ber": grouped["BER"].mean(),
            "min_ber": grouped["BER"].min(),
            "max_ber": grouped["BER"].max(),
            "mean_nc": grouped["NC"].mean(),
            "count": grouped["BER"].count(),
        })

    def best(self) -> Dict[str, EvaluationResult]:
        """Lowest-BER result for every attack."""
        best = {}
        for result in self.results:
            current = best.get(result.attack_name)
            if current is None or result.ber < current.ber:
                best[result.attack_name] = result
        return best
