"""
ImageState - one image moving through the block coding pipeline

The state is either Raw (only RGB planes) or YCbCr. A YCbCr state records
which of the optional sub-stages (chroma subsampling, block transform,
quantization) have been applied together with the parameters needed to undo
them, so an inverse step always matches its forward step.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from . import color, quantization, sampling, transform
from .errors import DimensionMismatch, NotYCbCrConverted, StageOrderError
from .matrix import as_plane, as_rgb_array, to_raster
from .sampling import SamplingType
from .transform import TransformType

logger = logging.getLogger(__name__)

CHANNELS = ("red", "green", "blue", "y", "cb", "cr")


@dataclass(frozen=True)
class Raw:
    """Only the RGB planes are populated."""


@dataclass(frozen=True)
class Sampled:
    sampling: SamplingType
    chroma_shape: Tuple[int, int]


@dataclass(frozen=True)
class Transformed:
    kind: TransformType
    block_size: int


@dataclass(frozen=True)
class Quantized:
    quality: float
    block_size: int


@dataclass(frozen=True, eq=False)
class YCbCr:
    """Y, Cb and Cr planes plus the sub-stages applied to them."""
    y: np.ndarray
    cb: np.ndarray
    cr: np.ndarray
    sampled: Optional[Sampled] = None
    transformed: Optional[Transformed] = None
    quantized: Optional[Quantized] = None


class ImageState:
    """
    Holds an image and the stage it is in.

    Args:
        image: PIL Image or (H, W, 3) array; alpha is dropped
    """

    def __init__(self, image):
        rgb = as_rgb_array(image).astype(np.int32)
        self.red = rgb[:, :, 0].copy()
        self.green = rgb[:, :, 1].copy()
        self.blue = rgb[:, :, 2].copy()
        self.stage = Raw()

    @classmethod
    def from_image(cls, path_or_image):
        """Create a state from a file path or a PIL image."""
        if isinstance(path_or_image, Image.Image):
            return cls(path_or_image)
        with Image.open(path_or_image) as image:
            return cls(image.convert("RGB"))

    @property
    def shape(self):
        return self.red.shape

    @property
    def is_ycbcr(self):
        return isinstance(self.stage, YCbCr)

    def _ycbcr(self, operation):
        if not isinstance(self.stage, YCbCr):
            raise NotYCbCrConverted(operation)
        return self.stage

    # Plane accessors

    @property
    def y(self):
        return self._ycbcr("y").y

    @property
    def cb(self):
        return self._ycbcr("cb").cb

    @property
    def cr(self):
        return self._ycbcr("cr").cr

    def channel(self, name):
        """Return one plane by name ('red', 'green', 'blue', 'y', 'cb', 'cr')."""
        name = name.lower()
        if name not in CHANNELS:
            raise ValueError(f"Unknown channel: {name}")
        return getattr(self, name)

    def set_channel(self, name, plane):
        """Replace a Y, Cb or Cr plane with one of the same shape."""
        name = name.lower()
        if name not in ("y", "cb", "cr"):
            raise ValueError(f"Only y, cb and cr can be replaced, got {name}")
        state = self._ycbcr("set_channel")
        current = getattr(state, name)
        data = as_plane(plane, name)
        if data.shape != current.shape:
            raise DimensionMismatch("replacement plane has the wrong shape",
                                    {"expected": current.shape, "got": data.shape})
        self.stage = replace(state, **{name: data})

    # Colour conversion

    def convert_to_ycbcr(self):
        """Compute Y/Cb/Cr from the RGB planes, discarding earlier YCbCr work."""
        y, cb, cr = color.rgb_to_ycbcr(self.red, self.green, self.blue)
        self.stage = YCbCr(y, cb, cr)
        logger.debug("converted %dx%d image to YCbCr", self.shape[1], self.shape[0])
        return self

    def convert_to_rgb(self):
        """Rebuild the RGB planes from the current Y/Cb/Cr planes."""
        state = self._ycbcr("convert_to_rgb")
        if state.sampled is not None:
            raise StageOrderError("chroma is subsampled; call up_sample() before convert_to_rgb()",
                                  {"sampling": state.sampled.sampling.value})
        if state.transformed is not None or state.quantized is not None:
            logger.warning("converting to RGB while planes still hold transform coefficients")
        self.red, self.green, self.blue = color.ycbcr_to_rgb(state.y, state.cb, state.cr)
        return self

    # Chroma subsampling

    def down_sample(self, sampling_type):
        state = self._ycbcr("down_sample")
        if state.sampled is not None:
            raise StageOrderError("chroma is already subsampled",
                                  {"sampling": state.sampled.sampling.value})
        if state.transformed is not None or state.quantized is not None:
            raise StageOrderError("subsample before transforming")
        sampling_type = SamplingType.parse(sampling_type)
        self.stage = replace(
            state,
            cb=sampling.sample_down(state.cb, sampling_type),
            cr=sampling.sample_down(state.cr, sampling_type),
            sampled=Sampled(sampling_type, state.cb.shape),
        )
        return self

    def up_sample(self):
        state = self._ycbcr("up_sample")
        if state.sampled is None:
            raise StageOrderError("chroma is not subsampled")
        if state.transformed is not None or state.quantized is not None:
            raise StageOrderError("invert the transform before upsampling")
        info = state.sampled
        self.stage = replace(
            state,
            cb=sampling.sample_up(state.cb, info.sampling, info.chroma_shape),
            cr=sampling.sample_up(state.cr, info.sampling, info.chroma_shape),
            sampled=None,
        )
        return self

    # Block transform

    def transform(self, kind, block_size):
        state = self._ycbcr("transform")
        if state.transformed is not None:
            raise StageOrderError("planes are already transformed")
        kind = TransformType.parse(kind)
        self.stage = replace(
            state,
            y=transform.transform(state.y, kind, block_size),
            cb=transform.transform(state.cb, kind, block_size),
            cr=transform.transform(state.cr, kind, block_size),
            transformed=Transformed(kind, block_size),
        )
        return self

    def inverse_transform(self):
        state = self._ycbcr("inverse_transform")
        if state.transformed is None:
            raise StageOrderError("planes are not transformed")
        if state.quantized is not None:
            raise StageOrderError("inverse quantize before the inverse transform")
        kind, n = state.transformed.kind, state.transformed.block_size
        self.stage = replace(
            state,
            y=transform.inverse_transform(state.y, kind, n),
            cb=transform.inverse_transform(state.cb, kind, n),
            cr=transform.inverse_transform(state.cr, kind, n),
            transformed=None,
        )
        return self

    # Quantization

    def quantize(self, quality, block_size):
        state = self._ycbcr("quantize")
        if state.quantized is not None:
            raise StageOrderError("planes are already quantized")
        self.stage = replace(
            state,
            y=quantization.quantize(state.y, block_size, quality, is_luma=True),
            cb=quantization.quantize(state.cb, block_size, quality, is_luma=False),
            cr=quantization.quantize(state.cr, block_size, quality, is_luma=False),
            quantized=Quantized(float(quality), block_size),
        )
        return self

    def inverse_quantize(self):
        state = self._ycbcr("inverse_quantize")
        if state.quantized is None:
            raise StageOrderError("planes are not quantized")
        quality, n = state.quantized.quality, state.quantized.block_size
        self.stage = replace(
            state,
            y=quantization.inverse_quantize(state.y, n, quality, is_luma=True),
            cb=quantization.inverse_quantize(state.cb, n, quality, is_luma=False),
            cr=quantization.inverse_quantize(state.cr, n, quality, is_luma=False),
            quantized=None,
        )
        return self

    # Output

    def rgb_image(self):
        """Return the RGB planes as an (H, W, 3) uint8 array."""
        return np.stack([self.red, self.green, self.blue], axis=-1).clip(0, 255).astype(np.uint8)

    def to_image(self):
        return Image.fromarray(self.rgb_image())

    def channel_image(self, name):
        """Render one plane as an 8-bit grayscale PIL image."""
        return Image.fromarray(to_raster(self.channel(name)))

    def copy(self):
        clone = ImageState.__new__(ImageState)
        clone.red = self.red.copy()
        clone.green = self.green.copy()
        clone.blue = self.blue.copy()
        if isinstance(self.stage, YCbCr):
            clone.stage = replace(self.stage, y=self.stage.y.copy(),
                                  cb=self.stage.cb.copy(), cr=self.stage.cr.copy())
        else:
            clone.stage = self.stage
        return clone


def run_pipeline(image, sampling_type=SamplingType.S_4_4_4, kind=TransformType.DCT,
                 block_size=8, quality=50):
    """
    Push an image through the full lossy round trip and return the result.

    YCbCr -> subsample -> transform -> quantize, then every step inverted and
    the planes converted back to RGB.

    Returns:
        ImageState: The reconstructed state (back in RGB)
    """
    state = ImageState(image)
    state.convert_to_ycbcr()
    state.down_sample(sampling_type)
    state.transform(kind, block_size)
    state.quantize(quality, block_size)
    state.inverse_quantize()
    state.inverse_transform()
    state.up_sample()
    state.convert_to_rgb()
    logger.info("pipeline round trip: sampling=%s transform=%s block=%d quality=%s",
                SamplingType.parse(sampling_type).value, TransformType.parse(kind).value,
                block_size, quality)
    return state
