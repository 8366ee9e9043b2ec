"""
Codec registry - picks the watermarking implementation for a parameter record
"""

from .frequency import DCTParams, DCTWatermarking
from .lsb import LSBParams, LSBWatermarking
from .svd import SVDParams, SVDWatermarking
from .watermark import WatermarkMethod
from .wavelet import DWTParams, DWTWatermarking

_CODECS = {
    WatermarkMethod.LSB: LSBWatermarking(),
    WatermarkMethod.DCT: DCTWatermarking(),
    WatermarkMethod.DWT: DWTWatermarking(),
    WatermarkMethod.SVD: SVDWatermarking(),
}


def create_watermarking(method):
    """Return the codec for a WatermarkMethod or its name."""
    return _CODECS[WatermarkMethod.parse(method)]


def codec_for(params):
    """Return the codec that accepts this parameter record."""
    for codec in _CODECS.values():
        if isinstance(params, codec.params_type):
            return codec
    raise TypeError(f"No watermarking codec accepts {type(params).__name__}")


def method_of(params):
    return codec_for(params).method


def needs_reference(params):
    """True when extraction compares against the unmarked host plane."""
    return codec_for(params).needs_reference


def params_from_dict(method, values):
    """
    Build a parameter record from plain config values.

    Args:
        method: WatermarkMethod or name
        values: dict of field values; missing fields use the defaults

    Returns:
        LSBParams, DCTParams, DWTParams or SVDParams
    """
    method = WatermarkMethod.parse(method)
    values = dict(values or {})
    if method is WatermarkMethod.LSB:
        return LSBParams(
            bit_plane=int(values.get("bit_plane", 0)),
            permute=bool(values.get("permute", False)),
            key=values.get("key"),
        )
    if method is WatermarkMethod.DWT:
        return DWTParams(
            strength=float(values.get("strength", 2.5)),
            subband=values.get("subband", "LH"),
        )
    if method is WatermarkMethod.SVD:
        return SVDParams(
            alpha=float(values.get("alpha", 1.0)),
            block_size=int(values.get("block_size", 8)),
        )
    return DCTParams(
        block_size=int(values.get("block_size", 8)),
        coef1=tuple(values.get("coef1", (3, 1))),
        coef2=tuple(values.get("coef2", (4, 1))),
        strength=float(values.get("strength", 10.0)),
        transform=values.get("transform", "dct"),
    )


def embed(plane, watermark, params):
    """Embed with whichever codec matches params."""
    return codec_for(params).embed(plane, watermark, params)


def extract(plane, width, height, params, reference=None):
    """Extract with whichever codec matches params; reference is the unmarked host plane."""
    return codec_for(params).extract(plane, width, height, params, reference=reference)


def describe(params):
    """Human readable parameter text used in reports."""
    return params.describe()
