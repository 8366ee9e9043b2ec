"""
Tests for attack simulators
"""

import unittest
import numpy as np
from PIL import Image

from blockmark.attacks import ATTACKS, apply_attack, get_attack
from blockmark.errors import InvalidAttackParameter
from blockmark.evaluation import image_psnr


def textured_image(width=64, height=48, seed=0):
    """Smooth gradient with mild noise so filters have something to do."""
    rng = np.random.RandomState(seed)
    ys, xs = np.mgrid[0:height, 0:width]
    base = np.stack([xs * 3, ys * 4, (xs + ys) * 2], axis=-1).astype(float)
    return np.clip(base + rng.randint(-8, 9, size=base.shape) + 40, 0, 255).astype(np.uint8)


class TestAttackContract(unittest.TestCase):
    """Test behaviour shared by every attack."""

    def setUp(self):
        self.image = textured_image()

    def test_dimensions_preserved(self):
        """Test every attack returns an H x W x 3 uint8 raster."""
        for name, attack in ATTACKS.items():
            attacked = attack.apply(self.image)
            self.assertEqual(attacked.shape, self.image.shape, name)
            self.assertEqual(attacked.dtype, np.uint8, name)

    def test_input_not_modified(self):
        """Test attacks leave the source raster alone."""
        before = self.image.copy()
        for attack in ATTACKS.values():
            attack.apply(self.image)
        np.testing.assert_array_equal(before, self.image)

    def test_accepts_pil(self):
        """Test PIL input is converted."""
        attacked = apply_attack(Image.fromarray(self.image), 'mirror')
        np.testing.assert_array_equal(attacked, self.image[:, ::-1])

    def test_unknown_attack(self):
        """Test lookups of names that do not exist."""
        with self.assertRaises(InvalidAttackParameter):
            get_attack('blur')

    def test_invalid_parameters(self):
        """Test out of range, unknown and non-numeric parameters."""
        bad = [
            ('jpeg', {'quality': 0}),
            ('jpeg', {'quality': 101}),
            ('png', {'level': 10}),
            ('crop', {'percentage': 0.5}),
            ('resize', {'scale': 0}),
            ('rotation', {'angle': 400}),
            ('median', {'radius': 0}),
            ('sharpening', {'amount': -1}),
            ('gaussian_noise', {'stddev': -1}),
            ('mirror', {'direction': 'diagonal'}),
            ('jpeg', {'level': 3}),
            ('jpeg', {'quality': 'high'}),
        ]
        for name, params in bad:
            with self.assertRaises(InvalidAttackParameter, msg=f"{name} {params}"):
                apply_attack(self.image, name, params)

    def test_fractional_integer_parameters(self):
        """Test integer parameters reject fractions instead of truncating them."""
        for name, params in [('jpeg', {'quality': 75.9}), ('median', {'radius': 1.9}),
                             ('png', {'level': '4.5'}), ('gaussian_noise', {'seed': 2.5}),
                             ('jpeg_internal', {'block_size': 8.5})]:
            with self.assertRaises(InvalidAttackParameter, msg=f"{name} {params}"):
                get_attack(name).resolve(params)

        self.assertEqual(get_attack('jpeg').resolve({'quality': 60.0})['quality'], 60)
        self.assertEqual(get_attack('median').resolve({'radius': '2'})['radius'], 2)
        self.assertEqual(get_attack('jpeg_internal').resolve({'quality': 62.5})['quality'], 62.5)

    def test_describe(self):
        """Test parameter text for reports."""
        self.assertEqual(get_attack('jpeg').describe({'quality': 50}), 'Quality: 50%')
        self.assertEqual(get_attack('none').describe(), 'None')
        self.assertEqual(get_attack('resize').describe({'scale': 0.5}), 'Scale: 50%')


class TestGeometricAttacks(unittest.TestCase):
    """Test rotation, mirroring, cropping and resizing."""

    def setUp(self):
        self.image = textured_image()

    def test_no_attack_identity(self):
        """Test the null attack copies."""
        np.testing.assert_array_equal(apply_attack(self.image, 'none'), self.image)

    def test_mirror_twice(self):
        """Test flipping twice restores the image."""
        for direction in ('horizontal', 'vertical'):
            once = apply_attack(self.image, 'mirror', {'direction': direction})
            self.assertFalse(np.array_equal(once, self.image))
            twice = apply_attack(once, 'mirror', {'direction': direction})
            np.testing.assert_array_equal(twice, self.image)

    def test_right_angle_rotation_square(self):
        """Test 90 degrees clockwise is an exact quarter turn."""
        square = textured_image(32, 32)
        rotated = apply_attack(square, 'rotation', {'angle': 90})
        np.testing.assert_array_equal(rotated, np.rot90(square, k=-1))
        back = apply_attack(rotated, 'rotation', {'angle': -90})
        np.testing.assert_array_equal(back, square)

    def test_full_turn_identity(self):
        """Test 0 and 360 degrees are the identity."""
        for angle in (0, 360):
            np.testing.assert_array_equal(
                apply_attack(self.image, 'rotation', {'angle': angle}), self.image)

    def test_arbitrary_rotation_blackens_corners(self):
        """Test 45 degrees loses the corners."""
        white = np.full((40, 40, 3), 255, dtype=np.uint8)
        rotated = apply_attack(white, 'rotation', {'angle': 45})
        self.assertEqual(rotated[0, 0].tolist(), [0, 0, 0])
        self.assertEqual(rotated[20, 20].tolist(), [255, 255, 255])

    def test_crop_zero_identity(self):
        """Test a zero crop changes nothing."""
        np.testing.assert_array_equal(
            apply_attack(self.image, 'crop', {'percentage': 0.0}), self.image)

    def test_resize_full_scale(self):
        """Test scale 1 leaves the image unchanged."""
        np.testing.assert_array_equal(apply_attack(self.image, 'resize', {'scale': 1.0}), self.image)


class TestSignalAttacks(unittest.TestCase):
    """Test compression, noise and filtering attacks."""

    def setUp(self):
        self.image = textured_image()

    def test_png_lossless(self):
        """Test PNG round trips exactly at every level."""
        for level in (0, 5, 9):
            np.testing.assert_array_equal(
                apply_attack(self.image, 'png', {'level': level}), self.image)

    def test_jpeg_quality_ordering(self):
        """Test higher JPEG quality keeps more of the image."""
        high = image_psnr(self.image, apply_attack(self.image, 'jpeg', {'quality': 95}))
        low = image_psnr(self.image, apply_attack(self.image, 'jpeg', {'quality': 10}))
        self.assertGreater(high, low)
        self.assertGreater(high, 28)

    def test_internal_jpeg(self):
        """Test the package's own block codec as an attack."""
        attacked = apply_attack(self.image, 'jpeg_internal', {'quality': 90})
        self.assertGreater(image_psnr(self.image, attacked), 28)

    def test_median_on_constant(self):
        """Test the median of a flat image is the image."""
        flat = np.full((20, 24, 3), 77, dtype=np.uint8)
        np.testing.assert_array_equal(apply_attack(flat, 'median', {'radius': 2}), flat)

    def test_median_removes_impulse(self):
        """Test an isolated spike is filtered out."""
        flat = np.full((9, 9, 3), 50, dtype=np.uint8)
        flat[4, 4] = 255
        np.testing.assert_array_equal(apply_attack(flat, 'median')[4, 4], [50, 50, 50])

    def test_sharpen_zero_amount(self):
        """Test amount 0 is the identity kernel."""
        np.testing.assert_array_equal(
            apply_attack(self.image, 'sharpening', {'amount': 0.0}), self.image)

    def test_sharpen_keeps_border(self):
        """Test the one pixel border is copied."""
        attacked = apply_attack(self.image, 'sharpening', {'amount': 2.0})
        np.testing.assert_array_equal(attacked[0], self.image[0])
        np.testing.assert_array_equal(attacked[:, -1], self.image[:, -1])
        self.assertFalse(np.array_equal(attacked, self.image))

    def test_noise_zero_stddev(self):
        """Test zero deviation adds nothing."""
        np.testing.assert_array_equal(
            apply_attack(self.image, 'gaussian_noise', {'stddev': 0.0}), self.image)

    def test_noise_seeded(self):
        """Test a seed makes noise reproducible."""
        a = apply_attack(self.image, 'gaussian_noise', {'stddev': 15, 'seed': 3})
        b = apply_attack(self.image, 'gaussian_noise', {'stddev': 15, 'seed': 3})
        np.testing.assert_array_equal(a, b)
        self.assertFalse(np.array_equal(a, self.image))

    def test_histogram_equalization(self):
        """Test a flat image is untouched and a dark one is stretched."""
        flat = np.full((16, 16, 3), 90, dtype=np.uint8)
        np.testing.assert_array_equal(apply_attack(flat, 'histogram_equalization'), flat)

        dark = (textured_image(32, 32) // 4).astype(np.uint8)
        equalized = apply_attack(dark, 'histogram_equalization')
        self.assertGreater(int(equalized.max()) - int(equalized.min()),
                           int(dark.max()) - int(dark.min()))


if __name__ == '__main__':
    unittest.main()
