"""
blockmark - Block transform coding and image watermarking testbed
JPEG-like DCT/WHT pipeline, LSB, DCT, DWT and SVD watermarking, attacks and BER/NC evaluation
"""

__version__ = "0.1.0"

from .process import ImageState, run_pipeline
from .sampling import SamplingType
from .transform import TransformType
from .watermark import Watermark, WatermarkMethod
from .lsb import LSBParams, LSBWatermarking
from .frequency import DCTParams, DCTWatermarking
from .wavelet import DWTParams, DWTWatermarking
from .svd import SVDParams, SVDWatermarking
from .attacks import ATTACKS, get_attack
from .evaluation import EvaluationResult, ResultsLog, ber, nc
from .harness import WatermarkTestHarness

__all__ = [
    "ImageState", "run_pipeline", "SamplingType", "TransformType",
    "Watermark", "WatermarkMethod", "LSBParams", "LSBWatermarking",
    "DCTParams", "DCTWatermarking", "DWTParams", "DWTWatermarking",
    "SVDParams", "SVDWatermarking", "ATTACKS", "get_attack",
    "EvaluationResult", "ResultsLog", "ber", "nc", "WatermarkTestHarness",
]
