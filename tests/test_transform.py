"""
Tests for block transforms and quantization
"""

import unittest
import numpy as np

from blockmark.errors import InvalidBlockSize, UnsupportedTransformType
from blockmark.quantization import (CHROMINANCE_TABLE, LUMINANCE_TABLE, get_quantization_matrix,
                                    inverse_quantize, quantize)
from blockmark.transform import TransformType, get_transform_matrix, inverse_transform, transform


class TestTransformMatrix(unittest.TestCase):
    """Test transform basis construction."""

    def test_orthonormal(self):
        """Test A . A^T == I for both transforms."""
        for kind in TransformType:
            for n in (2, 4, 8, 16):
                a = get_transform_matrix(kind, n)
                np.testing.assert_allclose(a @ a.T, np.eye(n), atol=1e-12)

    def test_dct_first_row(self):
        """Test DC basis row is sqrt(1/N)."""
        a = get_transform_matrix(TransformType.DCT, 8)
        np.testing.assert_allclose(a[0], np.full(8, np.sqrt(1 / 8)))
        self.assertAlmostEqual(a[1, 0], np.sqrt(2 / 8) * np.cos(np.pi / 16))

    def test_wht_values(self):
        """Test normalized Hadamard entries."""
        a = get_transform_matrix(TransformType.WHT, 4)
        np.testing.assert_allclose(np.abs(a), np.full((4, 4), 0.5))
        np.testing.assert_allclose(a[1], [0.5, -0.5, 0.5, -0.5])

    def test_wht_rejects_non_power_of_two(self):
        """Test WHT block size validation."""
        with self.assertRaises(InvalidBlockSize):
            get_transform_matrix(TransformType.WHT, 6)

    def test_dct_accepts_any_size(self):
        """Test DCT works for sizes that are not powers of two."""
        a = get_transform_matrix(TransformType.DCT, 6)
        np.testing.assert_allclose(a @ a.T, np.eye(6), atol=1e-12)

    def test_invalid_requests(self):
        """Test bad sizes and kinds."""
        with self.assertRaises(InvalidBlockSize):
            get_transform_matrix(TransformType.DCT, 0)
        with self.assertRaises(UnsupportedTransformType):
            get_transform_matrix('fft', 8)

    def test_matrix_is_cached_and_read_only(self):
        """Test the cache returns the same immutable object."""
        a = get_transform_matrix(TransformType.DCT, 8)
        self.assertIs(a, get_transform_matrix(TransformType.DCT, 8))
        with self.assertRaises(ValueError):
            a[0, 0] = 1.0


class TestBlockTransform(unittest.TestCase):
    """Test block-wise forward and inverse transforms."""

    def setUp(self):
        self.plane = np.random.RandomState(42).rand(32, 24) * 255

    def test_round_trip(self):
        """Test inverse(forward(M)) == M."""
        for kind in TransformType:
            for n in (4, 8):
                restored = inverse_transform(transform(self.plane, kind, n), kind, n)
                self.assertLess(np.max(np.abs(restored - self.plane)), 1e-9)

    def test_dc_coefficient(self):
        """Test a constant block puts everything in the DC term."""
        coeffs = transform(np.full((8, 8), 100.0), TransformType.DCT, 8)
        self.assertAlmostEqual(coeffs[0, 0], 800.0)
        coeffs[0, 0] = 0
        self.assertLess(np.max(np.abs(coeffs)), 1e-9)

    def test_partial_edge_blocks_copied(self):
        """Test trailing rows and columns pass through unchanged."""
        plane = np.random.RandomState(1).rand(10, 13) * 255
        coeffs = transform(plane, TransformType.DCT, 8)
        np.testing.assert_array_equal(coeffs[8:, :], plane[8:, :])
        np.testing.assert_array_equal(coeffs[:, 8:], plane[:, 8:])

        restored = inverse_transform(coeffs, TransformType.DCT, 8)
        np.testing.assert_allclose(restored, plane, atol=1e-9)

    def test_plane_smaller_than_block(self):
        """Test a plane with no full block is returned unchanged."""
        plane = np.arange(12, dtype=float).reshape(3, 4)
        np.testing.assert_array_equal(transform(plane, TransformType.DCT, 8), plane)

    def test_input_not_modified(self):
        """Test the source plane is left alone."""
        copy = self.plane.copy()
        transform(self.plane, TransformType.WHT, 8)
        np.testing.assert_array_equal(copy, self.plane)


class TestQuantization(unittest.TestCase):
    """Test quantization matrices and rounding."""

    def test_quality_50_is_base_table(self):
        """Test alpha == 1 at quality 50."""
        np.testing.assert_array_equal(get_quantization_matrix(8, 50, True), LUMINANCE_TABLE)
        np.testing.assert_array_equal(get_quantization_matrix(8, 50, False), CHROMINANCE_TABLE)

    def test_quality_scaling(self):
        """Test the alpha formula on both sides of 50."""
        np.testing.assert_allclose(get_quantization_matrix(8, 25, True), LUMINANCE_TABLE * 2)
        np.testing.assert_allclose(get_quantization_matrix(8, 75, True), LUMINANCE_TABLE * 0.5)
        np.testing.assert_array_equal(get_quantization_matrix(8, 100, True), np.ones((8, 8)))

    def test_table_scaled_to_block_size(self):
        """Test nearest-lower-index scaling for larger and smaller blocks."""
        big = get_quantization_matrix(16, 50, True)
        self.assertEqual(big.shape, (16, 16))
        self.assertEqual(big[2, 3], LUMINANCE_TABLE[1, 1])
        self.assertEqual(big[15, 15], LUMINANCE_TABLE[7, 7])

        small = get_quantization_matrix(4, 50, True)
        self.assertEqual(small[1, 1], LUMINANCE_TABLE[2, 2])

    def test_invalid_quality(self):
        """Test quality bounds."""
        with self.assertRaises(ValueError):
            get_quantization_matrix(8, 0, True)
        with self.assertRaises(ValueError):
            get_quantization_matrix(8, 101, True)

    def test_rounding_rule(self):
        """Test two decimals near zero and one decimal elsewhere."""
        plane = np.zeros((8, 8))
        plane[0, 0] = 16 * 0.126
        plane[0, 1] = 11 * 1.26
        plane[0, 2] = -10 * 0.126
        result = quantize(plane, 8, 50, is_luma=True)
        self.assertAlmostEqual(result[0, 0], 0.13)
        self.assertAlmostEqual(result[0, 1], 1.3)
        self.assertAlmostEqual(result[0, 2], -0.13)

    def test_round_trip_error_bounded(self):
        """Test dequantized values stay within half a step of the input."""
        plane = np.random.RandomState(3).randn(16, 16) * 200
        restored = inverse_quantize(quantize(plane, 8, 50), 8, 50)
        table = np.tile(LUMINANCE_TABLE, (2, 2))
        self.assertTrue(np.all(np.abs(restored - plane) <= table * 0.05 + 1e-9))

    def test_quality_100_integer_round_trip_exact(self):
        """Test integer coefficients survive quality 100 unchanged."""
        rng = np.random.RandomState(11)
        for block_size in (8, 16):
            plane = rng.randint(-1024, 1024, size=(block_size * 2, block_size * 3)).astype(float)
            for is_luma in (True, False):
                coded = quantize(plane, block_size, 100, is_luma)
                restored = inverse_quantize(coded, block_size, 100, is_luma)
                np.testing.assert_array_equal(restored, plane)

    def test_quality_100_fractional_error(self):
        """Test fractional coefficients move by at most 0.05 at quality 100."""
        plane = np.random.RandomState(12).randn(16, 16) * 50
        for is_luma in (True, False):
            restored = inverse_quantize(quantize(plane, 8, 100, is_luma), 8, 100, is_luma)
            error = np.abs(restored - plane)
            self.assertTrue(np.all(error <= 0.05 + 1e-9))
            self.assertGreater(error.max(), 0.0)

    def test_partial_edge_blocks_copied(self):
        """Test trailing rows and columns are not quantized."""
        plane = np.random.RandomState(5).rand(12, 9) * 500
        result = quantize(plane, 8, 20)
        np.testing.assert_array_equal(result[8:, :], plane[8:, :])
        np.testing.assert_array_equal(result[:, 8:], plane[:, 8:])


if __name__ == '__main__':
    unittest.main()
