"""
Command-line interface for blockmark
"""

import functools
import logging
from pathlib import Path

import click
from PIL import Image

from . import codecs, quality as metrics
from .attacks import ATTACKS, get_attack
from .errors import BlockmarkError
from .evaluation import ber, image_psnr, nc
from .frequency import DCTParams
from .harness import (EmbeddingConfig, WatermarkTestHarness, embed_into_image,
                      extract_from_image, load_plan, plan_from_dict)
from .lsb import LSBParams
from .process import ImageState, run_pipeline
from .svd import SVDParams
from .watermark import Watermark
from .wavelet import DWTParams

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _configure_logging(level):
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT)


def _handle_errors(func):
    """Report library errors as a clean CLI failure instead of a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (BlockmarkError, ValueError) as e:
            raise click.ClickException(str(e)) from e
    return wrapper


def _parse_pair(ctx, param, value):
    try:
        row, col = (int(v) for v in value.split(","))
    except ValueError:
        raise click.BadParameter("expected 'row,col', e.g. 3,1") from None
    return row, col


def _parse_value(text):
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            pass
    return text


def _method_params(method, bit_plane, key, block_size, coef1, coef2, strength, transform,
                   subband, alpha):
    if method == "lsb":
        return LSBParams(bit_plane=bit_plane, permute=key is not None, key=key)
    if method == "dwt":
        return DWTParams(strength=2.5 if strength is None else strength, subband=subband)
    if method == "svd":
        return SVDParams(alpha=alpha, block_size=block_size)
    return DCTParams(block_size=block_size, coef1=coef1, coef2=coef2,
                     strength=10.0 if strength is None else strength, transform=transform)


def method_options(func):
    """Options shared by embed and extract."""
    options = [
        click.option('--method', '-m', default='lsb', type=click.Choice(['lsb', 'dct', 'dwt', 'svd']),
                     help='Watermarking method (default: lsb)'),
        click.option('--component', '-c', default='Y', type=click.Choice(['Y', 'Cb', 'Cr']),
                     help='YCbCr component carrying the mark (default: Y)'),
        click.option('--bit-plane', default=3, type=click.IntRange(0, 7),
                     help='LSB bit plane 0-7 (default: 3)'),
        click.option('--key', '-k', default=None,
                     help='Permutation key; LSB bits are scattered when given'),
        click.option('--block-size', '-b', default=8, type=int,
                     help='DCT and SVD block size (default: 8)'),
        click.option('--coef1', default='3,1', callback=_parse_pair,
                     help='First coefficient row,col (default: 3,1)'),
        click.option('--coef2', default='4,1', callback=_parse_pair,
                     help='Second coefficient row,col (default: 4,1)'),
        click.option('--strength', '-s', default=None, type=float,
                     help='DCT coefficient separation (default: 10) or DWT step multiple (default: 2.5)'),
        click.option('--transform', default='dct', type=click.Choice(['dct', 'wht']),
                     help='Block transform for the frequency method (default: dct)'),
        click.option('--subband', default='LH', type=click.Choice(['LL', 'LH', 'HL', 'HH']),
                     help='DWT subband carrying the mark (default: LH)'),
        click.option('--alpha', default=1.0, type=float,
                     help='SVD per-pixel change (default: 1.0)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging verbosity (default: WARNING)')
def main(log_level):
    """blockmark - block transform coding and watermarking testbed"""
    _configure_logging(log_level)


@main.command()
@click.argument('input_image', type=click.Path(exists=True))
@click.argument('output_image', type=click.Path())
@click.option('--sampling', default='4:2:0',
              type=click.Choice(['4:4:4', '4:2:2', '4:2:0', '4:1:1']),
              help='Chroma subsampling (default: 4:2:0)')
@click.option('--transform', '-t', default='dct', type=click.Choice(['dct', 'wht']),
              help='Block transform (default: dct)')
@click.option('--block-size', '-b', default=8, type=int,
              help='Transform block size (default: 8)')
@click.option('--quality', '-q', default=50, type=click.FloatRange(1, 100),
              help='Quantization quality 1-100 (default: 50)')
@click.option('--channels-dir', default=None, type=click.Path(),
              help='Also write the reconstructed Y, Cb and Cr planes here')
@_handle_errors
def convert(input_image, output_image, sampling, transform, block_size, quality, channels_dir):
    """Run an image through the lossy block coding round trip."""
    click.echo(f"Processing {input_image}...")

    original = ImageState.from_image(input_image)
    result = run_pipeline(original.rgb_image(), sampling, transform, block_size, quality)
    result.to_image().save(output_image)

    if channels_dir:
        out_dir = Path(channels_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        result.convert_to_ycbcr()
        for name in ('y', 'cb', 'cr'):
            result.channel_image(name).save(out_dir / f"{name}.png")

    report = metrics.compare(original, result, metrics.QualityType.RGB)
    click.echo(f"Reconstructed image saved to {output_image}")
    click.echo(f"Settings: sampling={sampling}, transform={transform}, "
               f"block_size={block_size}, quality={quality}")
    click.echo(f"MSE: {report.mse:.4f}  MAE: {report.mae:.4f}  PSNR: {report.psnr:.2f} dB")


@main.command(name='quality')
@click.argument('original_image', type=click.Path(exists=True))
@click.argument('modified_image', type=click.Path(exists=True))
@click.option('--component', '-c', default='RGB',
              type=click.Choice([t.value for t in metrics.QualityType]),
              help='Component to compare (default: RGB)')
@_handle_errors
def quality_command(original_image, modified_image, component):
    """Compare two images with MSE, MAE, SAE, PSNR (and SSIM for one plane)."""
    original = ImageState.from_image(original_image)
    modified = ImageState.from_image(modified_image)
    kind = metrics.QualityType.parse(component)
    if kind in (metrics.QualityType.Y, metrics.QualityType.CB,
                metrics.QualityType.CR, metrics.QualityType.YCBCR):
        original.convert_to_ycbcr()
        modified.convert_to_ycbcr()

    report = metrics.compare(original, modified, kind)
    click.echo(f"Component: {report.component}")
    click.echo(f"MSE:  {report.mse:.4f}")
    click.echo(f"MAE:  {report.mae:.4f}")
    click.echo(f"SAE:  {report.sae:.2f}")
    click.echo(f"PSNR: {report.psnr:.4f} dB")

    if kind not in (metrics.QualityType.RGB, metrics.QualityType.YCBCR):
        plane = kind.name.lower()
        a, b = original.channel(plane), modified.channel(plane)
        click.echo(f"SSIM:  {metrics.ssim(a, b):.6f}")
        click.echo(f"MSSIM: {metrics.mssim(a, b):.6f}")


@main.command()
@click.argument('input_image', type=click.Path(exists=True))
@click.argument('watermark_image', type=click.Path(exists=True))
@click.argument('output_image', type=click.Path())
@method_options
@_handle_errors
def embed(input_image, watermark_image, output_image, method, component, bit_plane, key,
          block_size, coef1, coef2, strength, transform, subband, alpha):
    """Embed a binary watermark into one component of an image."""
    params = _method_params(method, bit_plane, key, block_size, coef1, coef2, strength, transform,
                            subband, alpha)
    mark = Watermark.from_image(watermark_image)
    host = ImageState.from_image(input_image).rgb_image()

    marked = embed_into_image(host, mark, EmbeddingConfig(params, component))
    Image.fromarray(marked).save(output_image)

    click.echo(f"Watermarked image saved to {output_image}")
    click.echo(f"Method: {method.upper()} on {component} [{codecs.describe(params)}]")
    click.echo(f"Watermark: {mark.width}x{mark.height}  PSNR: {image_psnr(host, marked):.2f} dB")


@main.command()
@click.argument('input_image', type=click.Path(exists=True))
@click.argument('output_image', type=click.Path())
@click.option('--width', '-w', required=True, type=int, help='Watermark width')
@click.option('--height', required=True, type=int, help='Watermark height')
@click.option('--reference', '-r', default=None, type=click.Path(exists=True),
              help='Original watermark; prints BER and NC against it')
@click.option('--host', default=None, type=click.Path(exists=True),
              help='Unmarked host image; required for svd, improves dwt')
@method_options
@_handle_errors
def extract(input_image, output_image, width, height, reference, host, method, component,
            bit_plane, key, block_size, coef1, coef2, strength, transform, subband, alpha):
    """Extract a watermark from one component of an image."""
    params = _method_params(method, bit_plane, key, block_size, coef1, coef2, strength, transform,
                            subband, alpha)
    image = ImageState.from_image(input_image).rgb_image()
    host_image = ImageState.from_image(host).rgb_image() if host else None
    mark = extract_from_image(image, width, height, EmbeddingConfig(params, component),
                              host=host_image)
    mark.save(output_image)

    click.echo(f"Extracted watermark saved to {output_image}")
    if reference:
        original = Watermark.from_image(reference)
        click.echo(f"BER: {ber(original, mark):.4f}  NC: {nc(original, mark):.4f}")


@main.command()
@click.argument('input_image', type=click.Path(exists=True))
@click.argument('output_image', type=click.Path())
@click.option('--type', '-t', 'attack_name', required=True, type=click.Choice(sorted(ATTACKS)),
              help='Attack to apply')
@click.option('--param', '-p', 'params', multiple=True,
              help='Attack parameter as name=value (repeatable)')
@_handle_errors
def attack(input_image, output_image, attack_name, params):
    """Apply an attack to an image."""
    values = {}
    for item in params:
        if '=' not in item:
            raise click.BadParameter(f"expected name=value, got {item}", param_hint='--param')
        name, value = item.split('=', 1)
        values[name.strip()] = _parse_value(value.strip())

    image = ImageState.from_image(input_image).rgb_image()
    selected = get_attack(attack_name)
    attacked = selected.apply(image, values)
    Image.fromarray(attacked).save(output_image)

    click.echo(f"{selected.display_name} ({selected.describe(values)}) saved to {output_image}")
    click.echo(f"PSNR: {image_psnr(image, attacked):.2f} dB")


@main.command(name='list-attacks')
def list_attacks():
    """List available attacks and their default parameters."""
    for name in sorted(ATTACKS):
        selected = ATTACKS[name]
        defaults = ", ".join(f"{k}={v}" for k, v in selected.defaults.items()) or "-"
        click.echo(f"{name:24s} {selected.description} [{defaults}]")


@main.command()
@click.argument('input_image', type=click.Path(exists=True))
@click.argument('output_csv', type=click.Path())
@click.option('--plan', default=None, type=click.Path(exists=True),
              help='JSON evaluation plan (default: full standard sweep)')
@click.option('--workers', '-j', default=1, type=int,
              help='Worker processes (default: 1)')
@click.option('--detailed', is_flag=True,
              help='Write every column including WNR and robustness')
@_handle_errors
def evaluate(input_image, output_csv, plan, workers, detailed):
    """Sweep watermarking configurations against attacks and write a CSV report."""
    loaded = load_plan(plan) if plan else plan_from_dict({})
    image = ImageState.from_image(input_image).rgb_image()

    harness = WatermarkTestHarness(image, loaded.watermarks, loaded.configs,
                                   loaded.attacks, loaded.bands)
    click.echo(f"Running {len(loaded.configs) * len(loaded.attacks)} test cases...")
    log = harness.run(workers=workers)
    log.write_csv(output_csv, detailed=detailed)

    click.echo(f"Report saved to {output_csv}")
    click.echo(log.summary().to_string())


if __name__ == '__main__':
    main()
