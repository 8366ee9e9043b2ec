"""
Attack simulators - image degradations applied to watermarked images

Every attack takes an (H, W, 3) uint8 raster (or a PIL image) and returns a
new uint8 raster with the same height and width.
"""

import io
import logging

import numpy as np
from PIL import Image
from scipy import ndimage

from .errors import InvalidAttackParameter
from .matrix import as_rgb_array, round_half_up
from .process import ImageState
from .transform import TransformType

logger = logging.getLogger(__name__)


class Attack:
    """
    Base class for attacks.

    Subclasses set name, defaults and ranges and implement _apply. Numeric
    parameters are validated against ranges (inclusive); parameters listed in
    choices must be one of the given values.
    """

    name = ""
    display_name = ""
    description = ""
    defaults = {}
    ranges = {}
    choices = {}

    def resolve(self, params=None):
        """Merge params over the defaults and validate them."""
        params = dict(params or {})
        unknown = set(params) - set(self.defaults)
        if unknown:
            raise InvalidAttackParameter(f"Unknown parameter(s) for {self.name}",
                                         {"unknown": sorted(unknown)})

        resolved = dict(self.defaults)
        resolved.update(params)
        for key, value in resolved.items():
            if key in self.choices:
                if value not in self.choices[key]:
                    raise InvalidAttackParameter(f"{key} must be one of {self.choices[key]}",
                                                 {key: value})
                continue
            if value is None:
                continue
            default = self.defaults[key]
            kind = type(default) if default is not None else int
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise InvalidAttackParameter(f"{key} must be numeric", {key: value}) from None
            if kind is int and not number.is_integer():
                raise InvalidAttackParameter(f"{key} must be an integer", {key: value})
            value = kind(number)
            if key in self.ranges:
                low, high = self.ranges[key]
                if not low <= value <= high:
                    raise InvalidAttackParameter(f"{key} must be in [{low}, {high}]", {key: value})
            resolved[key] = value
        return resolved

    def apply(self, image, params=None):
        """
        Run the attack.

        Args:
            image: PIL Image or (H, W, 3) array
            params: Optional dict overriding the defaults

        Returns:
            np.ndarray: Attacked (H, W, 3) uint8 raster
        """
        resolved = self.resolve(params)
        rgb = as_rgb_array(image)
        logger.debug("applying %s with %s", self.name, resolved)
        attacked = self._apply(rgb, resolved)
        if attacked.shape != rgb.shape:
            attacked = _resize(attacked, rgb.shape[1], rgb.shape[0])
        return attacked

    def _apply(self, image, params):
        raise NotImplementedError

    def describe(self, params=None):
        return self._describe(self.resolve(params))

    def _describe(self, params):
        return ", ".join(f"{k}: {v}" for k, v in params.items()) or "None"


def _resize(image, width, height, resample=Image.BILINEAR):
    return np.array(Image.fromarray(image).resize((width, height), resample))


def _fmt(value):
    return f"{value:g}" if isinstance(value, float) else str(value)


class NoAttack(Attack):
    name = "none"
    display_name = "No Attack"
    description = "Returns the image unchanged"

    def _apply(self, image, params):
        return image.copy()

    def _describe(self, params):
        return "None"


class JpegCompression(Attack):
    name = "jpeg"
    display_name = "JPEG Compression"
    description = "Re-encodes the image as JPEG"
    defaults = {"quality": 75}
    ranges = {"quality": (1, 100)}

    def _apply(self, image, params):
        buffer = io.BytesIO()
        Image.fromarray(image).save(buffer, format="JPEG", quality=params["quality"])
        buffer.seek(0)
        with Image.open(buffer) as decoded:
            return np.array(decoded.convert("RGB"))

    def _describe(self, params):
        return f"Quality: {params['quality']}%"


class InternalJpegCompression(Attack):
    name = "jpeg_internal"
    display_name = "JPEG Compression (internal)"
    description = "Runs the block DCT and quantization round trip of this package"
    defaults = {"quality": 75.0, "block_size": 8}
    ranges = {"quality": (1.0, 100.0), "block_size": (1, 64)}

    def _apply(self, image, params):
        n = params["block_size"]
        state = ImageState(image)
        state.convert_to_ycbcr()
        state.transform(TransformType.DCT, n)
        state.quantize(params["quality"], n)
        state.inverse_quantize()
        state.inverse_transform()
        state.convert_to_rgb()
        return state.rgb_image()

    def _describe(self, params):
        return f"Quality: {_fmt(params['quality'])}%"


class PngCompression(Attack):
    name = "png"
    display_name = "PNG Compression"
    description = "Saves and reloads as PNG; lower levels run more cycles"
    defaults = {"level": 5}
    ranges = {"level": (0, 9)}

    def _apply(self, image, params):
        level = params["level"]
        current = Image.fromarray(image)
        for _ in range(max(1, 10 - level)):
            buffer = io.BytesIO()
            current.save(buffer, format="PNG", compress_level=level)
            buffer.seek(0)
            with Image.open(buffer) as decoded:
                current = decoded.convert("RGB")
        return np.array(current)

    def _describe(self, params):
        return f"Level: {params['level']} (1-9)"


class Rotation(Attack):
    name = "rotation"
    display_name = "Rotation"
    description = "Rotates clockwise; right angles are exact, other angles lose the corners"
    defaults = {"angle": 45.0}
    ranges = {"angle": (-360.0, 360.0)}

    def _apply(self, image, params):
        angle = params["angle"] % 360
        if angle == 0:
            return image.copy()
        if angle in (90, 180, 270):
            # clockwise, so a positive angle turns k=-1 quarter turns
            rotated = np.rot90(image, k=-int(angle // 90))
            return np.ascontiguousarray(rotated)

        # rotate about the centre inside the original frame; corners go black
        rotated = Image.fromarray(image).rotate(-angle, resample=Image.BILINEAR, expand=False)
        return np.array(rotated)

    def _describe(self, params):
        return f"Angle: {_fmt(params['angle'])}°"


class Resize(Attack):
    name = "resize"
    display_name = "Resize"
    description = "Scales the image down then back up"
    defaults = {"scale": 0.75}
    ranges = {"scale": (0.01, 1.0)}

    def _apply(self, image, params):
        height, width = image.shape[:2]
        small_w = max(1, int(width * params["scale"]))
        small_h = max(1, int(height * params["scale"]))
        small = _resize(image, small_w, small_h)
        return _resize(small, width, height)

    def _describe(self, params):
        return f"Scale: {_fmt(params['scale'] * 100)}%"


class Mirroring(Attack):
    name = "mirror"
    display_name = "Mirroring"
    description = "Flips the image"
    defaults = {"direction": "horizontal"}
    choices = {"direction": ("horizontal", "vertical")}

    def _apply(self, image, params):
        if params["direction"] == "horizontal":
            return image[:, ::-1].copy()
        return image[::-1, :].copy()

    def _describe(self, params):
        return f"Direction: {params['direction']}"


class Cropping(Attack):
    name = "crop"
    display_name = "Cropping"
    description = "Cuts a border from every side and stretches the rest back"
    defaults = {"percentage": 0.2}
    ranges = {"percentage": (0.0, 0.49)}

    def _apply(self, image, params):
        height, width = image.shape[:2]
        dx = int(width * params["percentage"])
        dy = int(height * params["percentage"])
        if dx == 0 and dy == 0:
            return image.copy()
        cropped = image[dy:height - dy, dx:width - dx]
        return _resize(np.ascontiguousarray(cropped), width, height)

    def _describe(self, params):
        return f"Crop: {_fmt(params['percentage'] * 100)}%"


class GaussianNoise(Attack):
    name = "gaussian_noise"
    display_name = "Gaussian Noise"
    description = "Adds truncated N(0, stddev) noise to each channel"
    defaults = {"stddev": 10.0, "seed": None}
    ranges = {"stddev": (0.0, 255.0)}

    def _apply(self, image, params):
        rng = np.random.default_rng(params["seed"])
        noise = np.trunc(rng.standard_normal(image.shape) * params["stddev"])
        return np.clip(image.astype(np.float64) + noise, 0, 255).astype(np.uint8)

    def _describe(self, params):
        return f"StdDev: {_fmt(params['stddev'])}"


class MedianFilter(Attack):
    name = "median"
    display_name = "Median Filter"
    description = "Median over a (2r+1) square window with replicated edges"
    defaults = {"radius": 1}
    ranges = {"radius": (1, 5)}

    def _apply(self, image, params):
        window = 2 * params["radius"] + 1
        return ndimage.median_filter(image, size=(window, window, 1), mode="nearest")

    def _describe(self, params):
        return f"Radius: {params['radius']}"


class Sharpening(Attack):
    name = "sharpening"
    display_name = "Sharpening"
    description = "3x3 sharpening convolution; the one pixel border is left as is"
    defaults = {"amount": 1.0}
    ranges = {"amount": (0.0, 2.0)}

    def _apply(self, image, params):
        a = params["amount"]
        kernel = np.array([
            [-a / 4, -a, -a / 4],
            [-a, 1 + 4 * a, -a],
            [-a / 4, -a, -a / 4],
        ])
        result = image.copy()
        if min(image.shape[:2]) < 3:
            return result
        for c in range(3):
            filtered = ndimage.convolve(image[:, :, c].astype(np.float64), kernel, mode="nearest")
            result[1:-1, 1:-1, c] = np.clip(round_half_up(filtered[1:-1, 1:-1]), 0, 255)
        return result

    def _describe(self, params):
        return f"Amount: {_fmt(params['amount'])}"


class HistogramEqualization(Attack):
    name = "histogram_equalization"
    display_name = "Histogram Equalization"
    description = "Equalizes the luma histogram over the studio range"

    def _apply(self, image, params):
        state = ImageState(image)
        state.convert_to_ycbcr()
        levels = np.clip(round_half_up(state.y), 0, 255).astype(np.int64)

        cdf = np.cumsum(np.bincount(levels.ravel(), minlength=256))
        cdf_min = cdf[cdf > 0][0]
        total = levels.size
        if total == cdf_min:
            return image.copy()

        # map the cumulative distribution onto Y's 16..235 range
        lut = 16 + (cdf - cdf_min) / (total - cdf_min) * 219
        state.set_channel("y", lut[levels])
        state.convert_to_rgb()
        return state.rgb_image()


ATTACKS = {attack.name: attack for attack in (
    NoAttack(),
    JpegCompression(),
    InternalJpegCompression(),
    PngCompression(),
    Rotation(),
    Resize(),
    Mirroring(),
    Cropping(),
    GaussianNoise(),
    MedianFilter(),
    Sharpening(),
    HistogramEqualization(),
)}


def get_attack(name):
    """Look up an attack by name."""
    try:
        return ATTACKS[name]
    except KeyError:
        raise InvalidAttackParameter(f"Unknown attack: {name}",
                                     {"available": sorted(ATTACKS)}) from None


def apply_attack(image, name, params=None):
    return get_attack(name).apply(image, params)
