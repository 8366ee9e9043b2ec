"""
Tests for objective quality metrics
"""

import json
import math
import unittest
from pathlib import Path

import numpy as np

from blockmark import quality
from blockmark.errors import DimensionMismatch, NotYCbCrConverted
from blockmark.process import ImageState

FIXTURES = Path(__file__).parent / 'fixtures'


class TestQualityMetrics(unittest.TestCase):
    """Test metrics against reference values for a 24x24 pair."""

    @classmethod
    def setUpClass(cls):
        with open(FIXTURES / 'quality_matrices.json') as f:
            data = json.load(f)
        cls.original = np.array(data['original'])
        cls.modified = np.array(data['modified'])

    def test_fixture_shape(self):
        """Test the fixture loaded as two 24x24 planes."""
        self.assertEqual(self.original.shape, (24, 24))
        self.assertEqual(self.modified.shape, (24, 24))

    def test_mse(self):
        """Test mean squared error."""
        self.assertAlmostEqual(quality.mse(self.original, self.modified), 8142.3184, places=4)

    def test_mae(self):
        """Test mean absolute error."""
        self.assertAlmostEqual(quality.mae(self.original, self.modified), 63.0651, places=4)

    def test_sae(self):
        """Test sum of absolute errors."""
        self.assertAlmostEqual(quality.sae(self.original, self.modified), 36325.49, places=2)

    def test_psnr(self):
        """Test PSNR from MSE."""
        mse = quality.mse(self.original, self.modified)
        self.assertAlmostEqual(quality.psnr(mse), 9.0233, places=4)

    def test_psnr_rgb(self):
        """Test RGB PSNR from three channel MSE values."""
        self.assertAlmostEqual(quality.psnr_rgb(64, 85, 90), 29.1180, places=4)

    def test_ssim(self):
        """Test global SSIM."""
        self.assertAlmostEqual(quality.ssim(self.original, self.modified), 0.265384, places=6)

    def test_mssim(self):
        """Test block-averaged SSIM."""
        self.assertAlmostEqual(quality.mssim(self.original, self.modified), 0.265600, places=6)

    def test_identical_planes(self):
        """Test zero error metrics."""
        self.assertEqual(quality.mse(self.original, self.original), 0.0)
        self.assertEqual(quality.psnr(0.0), math.inf)
        self.assertAlmostEqual(quality.ssim(self.original, self.original), 1.0)

    def test_mssim_without_full_block(self):
        """Test MSSIM is zero when no 8x8 block fits."""
        plane = np.random.RandomState(0).rand(7, 20) * 255
        self.assertEqual(quality.mssim(plane, plane + 1), 0.0)

    def test_mssim_window_too_small(self):
        """Test single-sample windows are rejected instead of dividing by zero."""
        for window in (0, 1):
            with self.assertRaises(ValueError):
                quality.mssim(self.original, self.modified, window=window)
        self.assertAlmostEqual(quality.mssim(self.original, self.original, window=2), 1.0)

    def test_shape_mismatch(self):
        """Test mismatched planes raise."""
        with self.assertRaises(DimensionMismatch):
            quality.mse(np.zeros((4, 4)), np.zeros((4, 5)))


class TestComponentComparison(unittest.TestCase):
    """Test comparing ImageState components."""

    def setUp(self):
        rng = np.random.RandomState(7)
        self.image = rng.randint(0, 256, size=(16, 16, 3), dtype=np.uint8)
        noisy = self.image.astype(int)
        noisy[:, :, 0] += 4
        self.noisy = np.clip(noisy, 0, 255).astype(np.uint8)

    def test_identical_rgb(self):
        """Test identical images report zero error."""
        report = quality.compare(ImageState(self.image), ImageState(self.image), 'RGB')
        self.assertEqual(report.mse, 0.0)
        self.assertEqual(report.psnr, math.inf)

    def test_single_channel_difference(self):
        """Test per-channel and averaged RGB values."""
        a, b = ImageState(self.image), ImageState(self.noisy)
        red = quality.compare(a, b, 'Red')
        green = quality.compare(a, b, 'Green')
        rgb = quality.compare(a, b, 'RGB')

        self.assertGreater(red.mse, 0)
        self.assertEqual(green.mse, 0.0)
        self.assertAlmostEqual(rgb.mse, red.mse / 3)
        self.assertAlmostEqual(rgb.sae, red.sae)
        self.assertAlmostEqual(rgb.psnr, quality.psnr_rgb(red.mse, 0.0, 0.0))

    def test_ycbcr_components_need_conversion(self):
        """Test Y comparison requires YCbCr planes."""
        a, b = ImageState(self.image), ImageState(self.noisy)
        with self.assertRaises(NotYCbCrConverted):
            quality.compare(a, b, 'Y')

        a.convert_to_ycbcr()
        b.convert_to_ycbcr()
        report = quality.compare(a, b, quality.QualityType.YCBCR)
        self.assertGreater(report.mse, 0)
        self.assertEqual(report.component, 'YCbCr')


if __name__ == '__main__':
    unittest.main()
