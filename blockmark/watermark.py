"""
Binary watermark model and test pattern generators
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from . import permutation

# luminance strictly above this is a 1 bit
BINARIZE_THRESHOLD = 128


def binarize(image):
    """
    Turn an image into a boolean bitmap.

    A pixel is set when int(0.299 R + 0.587 G + 0.114 B) exceeds 128.
    Boolean arrays are returned unchanged and 2-D arrays are treated as gray.

    Args:
        image: Watermark, PIL Image, or 2-D / (H, W, 3) array

    Returns:
        np.ndarray: bool array of shape (H, W)
    """
    if isinstance(image, Watermark):
        return image.bits.copy()
    if isinstance(image, Image.Image):
        image = np.array(image.convert("RGB"))

    array = np.asarray(image)
    if array.dtype == bool:
        if array.ndim != 2:
            raise ValueError("boolean watermark must be 2-D")
        return array.copy()

    array = array.astype(np.float64)
    if array.ndim == 2:
        gray = array
    else:
        gray = 0.299 * array[:, :, 0] + 0.587 * array[:, :, 1] + 0.114 * array[:, :, 2]
    return np.trunc(gray).astype(np.int64) > BINARIZE_THRESHOLD


@dataclass(frozen=True, eq=False)
class Watermark:
    """
    A binary watermark.

    Args:
        bits: (H, W) boolean array, True renders white
        key: Set when the bits are stored permuted under this key
    """
    bits: np.ndarray
    key: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "bits", np.asarray(self.bits, dtype=bool))

    @classmethod
    def from_image(cls, image):
        """Binarize a PIL image, path or array."""
        if isinstance(image, (str, bytes)) or hasattr(image, "__fspath__"):
            with Image.open(image) as opened:
                return cls(binarize(opened))
        return cls(binarize(image))

    @property
    def height(self):
        return self.bits.shape[0]

    @property
    def width(self):
        return self.bits.shape[1]

    @property
    def size(self):
        return self.bits.size

    def permuted(self, key):
        """Return a copy whose bits are scattered by the key."""
        return Watermark(permutation.permute(self.bits, key), key=key)

    def restored(self):
        """Undo the permutation recorded in key; a no-op without a key."""
        if self.key is None:
            return self
        return Watermark(permutation.unpermute(self.bits, self.key))

    def to_array(self):
        """Render as (H, W, 3) uint8, white for 1 bits and black for 0 bits."""
        gray = np.where(self.bits, 255, 0).astype(np.uint8)
        return np.stack([gray] * 3, axis=-1)

    def to_image(self):
        return Image.fromarray(self.to_array())

    def save(self, path):
        self.to_image().save(path)


def checkerboard(width=64, height=64, square=None):
    """White background with black squares where (col + row) of the cell is even."""
    square = square or max(8, width // 8)
    ys, xs = np.mgrid[0:height, 0:width]
    black = ((xs // square + ys // square) % 2) == 0
    return Watermark(~black)


def circle_logo(width=64, height=64):
    """Black disc with crosshairs on white."""
    image = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(image)
    size = min(width, height) // 2
    left, top = width // 2 - size // 2, height // 2 - size // 2
    draw.ellipse([left, top, left + size - 1, top + size - 1], fill="black")

    line = max(2, width // 16)
    draw.rectangle([0, height // 2 - line // 2, width - 1, height // 2 - line // 2 + line - 1], fill="black")
    draw.rectangle([width // 2 - line // 2, 0, width // 2 - line // 2 + line - 1, height - 1], fill="black")
    return Watermark.from_image(image)


def text_mark(text="ZMD", width=64, height=64):
    """Black text on white using Pillow's default font."""
    image = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    draw.text((width // 4, height // 2 - height // 8), text, fill="black", font=font)
    return Watermark.from_image(image)


GENERATORS = {
    "checkerboard": checkerboard,
    "logo": circle_logo,
    "text": lambda width=64, height=64: text_mark("ZMD", width, height),
}


class WatermarkMethod(Enum):
    """Embedding domains."""
    LSB = "LSB"
    DCT = "DCT"
    DWT = "DWT"
    SVD = "SVD"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown watermark method: {value}") from None


class WatermarkCodec(ABC):
    """
    Embeds a binary watermark into one pixel plane and reads it back.

    Subclasses declare the parameter record they accept in params_type.
    Non-blind codecs set needs_reference and compare against the unmarked
    host plane passed to extract.
    """

    method = None
    params_type = None
    needs_reference = False

    def _check_params(self, params):
        if not isinstance(params, self.params_type):
            raise TypeError(f"{type(self).__name__} expects {self.params_type.__name__}, "
                            f"got {type(params).__name__}")

    @abstractmethod
    def embed(self, plane, watermark, params):
        """Return a new plane carrying the watermark."""

    @abstractmethod
    def extract(self, plane, width, height, params, reference=None):
        """Read a width x height Watermark out of a plane."""
