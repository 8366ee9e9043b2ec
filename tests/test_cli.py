"""
Tests for the blockmark command line
"""

import json
import os
import tempfile
import unittest

import numpy as np
import pandas as pd
from click.testing import CliRunner
from PIL import Image

from blockmark.cli import main
from blockmark.watermark import checkerboard


def gray_host(size=64):
    ys, xs = np.mgrid[0:size, 0:size]
    gray = (64 + xs + ys).astype(np.uint8)
    return np.stack([gray] * 3, axis=-1)


class TestCLI(unittest.TestCase):
    """Run the commands end to end on temporary files."""

    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name
        self.host = os.path.join(self.dir, 'host.png')
        self.mark = os.path.join(self.dir, 'mark.png')
        Image.fromarray(gray_host()).save(self.host)
        checkerboard(8, 8, square=2).save(self.mark)

    def tearDown(self):
        self.tmp.cleanup()

    def path(self, name):
        return os.path.join(self.dir, name)

    def test_list_attacks(self):
        """Test every attack is listed."""
        result = self.runner.invoke(main, ['list-attacks'])
        self.assertEqual(result.exit_code, 0, result.output)
        for name in ('jpeg', 'png', 'rotation', 'median', 'histogram_equalization'):
            self.assertIn(name, result.output)

    def test_convert(self):
        """Test the block coding round trip command."""
        out = self.path('coded.png')
        result = self.runner.invoke(main, ['convert', self.host, out, '--sampling', '4:2:0',
                                           '-q', '75', '--channels-dir', self.path('planes')])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('PSNR', result.output)
        with Image.open(out) as img:
            self.assertEqual(img.size, (64, 64))
        self.assertTrue(os.path.exists(self.path('planes/cb.png')))

    def test_quality(self):
        """Test comparing an image with itself."""
        result = self.runner.invoke(main, ['quality', self.host, self.host, '-c', 'Y'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('MSE:  0.0000', result.output)
        self.assertIn('SSIM', result.output)

    def test_attack(self):
        """Test applying an attack with parameters."""
        out = self.path('attacked.png')
        result = self.runner.invoke(main, ['attack', self.host, out, '-t', 'jpeg', '-p', 'quality=40'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Quality: 40%', result.output)
        self.assertTrue(os.path.exists(out))

    def test_attack_bad_parameter(self):
        """Test invalid parameters fail cleanly."""
        result = self.runner.invoke(main, ['attack', self.host, self.path('x.png'),
                                           '-t', 'jpeg', '-p', 'quality=0'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('quality', result.output)

    def test_embed_and_extract(self):
        """Test a DCT mark written by embed is read back by extract."""
        marked = self.path('marked.png')
        result = self.runner.invoke(main, ['embed', self.host, self.mark, marked,
                                           '-m', 'dct', '-s', '15'])
        self.assertEqual(result.exit_code, 0, result.output)

        extracted = self.path('extracted.png')
        result = self.runner.invoke(main, ['extract', marked, extracted, '-m', 'dct', '-s', '15',
                                           '-w', '8', '--height', '8', '-r', self.mark])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('BER: 0.0000', result.output)
        self.assertIn('NC: 1.0000', result.output)

    def test_host_compared_methods(self):
        """Test DWT and SVD marks are read back with the unmarked host."""
        for options in (['-m', 'dwt', '--subband', 'HL', '-s', '5'], ['-m', 'svd', '--alpha', '2']):
            marked = self.path('marked.png')
            result = self.runner.invoke(main, ['embed', self.host, self.mark, marked] + options)
            self.assertEqual(result.exit_code, 0, result.output)

            result = self.runner.invoke(main, ['extract', marked, self.path('extracted.png'),
                                               '-w', '8', '--height', '8', '-r', self.mark,
                                               '--host', self.host] + options)
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn('BER: 0.0000', result.output)

    def test_svd_extract_without_host(self):
        """Test SVD extraction reports the missing host image."""
        marked = self.path('marked.png')
        self.runner.invoke(main, ['embed', self.host, self.mark, marked, '-m', 'svd'])
        result = self.runner.invoke(main, ['extract', marked, self.path('x.png'), '-m', 'svd',
                                           '-w', '8', '--height', '8'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('host plane', result.output)

    def test_embed_too_large(self):
        """Test capacity errors are reported without a traceback."""
        big = self.path('big.png')
        checkerboard(64, 64).save(big)
        result = self.runner.invoke(main, ['embed', self.host, big, self.path('m.png'), '-m', 'dct'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('not enough blocks', result.output)

    def test_evaluate(self):
        """Test a small plan produces a CSV report."""
        plan = self.path('plan.json')
        with open(plan, 'w') as f:
            json.dump({
                'watermarks': {'mark': 'mark.png'},
                'methods': [{'method': 'DCT', 'strength': 15}],
                'attacks': [{'name': 'none'}, {'name': 'png', 'params': {'level': 9}}],
            }, f)

        out = self.path('report.csv')
        result = self.runner.invoke(main, ['evaluate', self.host, out, '--plan', plan])
        self.assertEqual(result.exit_code, 0, result.output)

        frame = pd.read_csv(out)
        self.assertEqual(len(frame), 2)
        self.assertEqual(frame['Attack Type'].tolist(), ['none', 'png'])
        self.assertEqual(frame['BER'].tolist(), [0.0, 0.0])


if __name__ == '__main__':
    unittest.main()
