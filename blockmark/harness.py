"""
Batch evaluation harness

Sweeps embedding configurations against a list of attacks. Every
(configuration, attack) pair becomes an independent HarnessCase with a test id
assigned up front; cases run sequentially or in a process pool and results
are collected in test id order.
"""

import concurrent.futures
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

import numpy as np

from . import codecs, watermark as wm
from .attacks import get_attack
from .evaluation import DEFAULT_BANDS, RatingBands, ResultsLog, evaluate
from .frequency import DCTParams
from .lsb import LSBParams
from .matrix import as_rgb_array
from .process import ImageState
from .svd import SVDParams
from .watermark import Watermark
from .wavelet import DWTParams, Subband

logger = logging.getLogger(__name__)

COMPONENTS = ("Y", "Cb", "Cr")
DEFAULT_KEY = "watermark-key"


@dataclass(frozen=True)
class AttackSpec:
    name: str
    params: Dict = field(default_factory=dict)

    def describe(self):
        return get_attack(self.name).describe(self.params)


@dataclass(frozen=True)
class EmbeddingConfig:
    """
    Args:
        params: LSBParams, DCTParams, DWTParams or SVDParams
        component: Plane that carries the mark ('Y', 'Cb' or 'Cr')
        watermark_name: Key into the harness watermark dict
    """
    params: Union[LSBParams, DCTParams, DWTParams, SVDParams]
    component: str = "Y"
    watermark_name: str = "checkerboard"

    def __post_init__(self):
        if self.component.lower() not in ("y", "cb", "cr"):
            raise ValueError(f"component must be Y, Cb or Cr, got {self.component}")

    @property
    def method(self):
        return codecs.method_of(self.params).value

    def describe(self):
        return f"{self.method} {self.component} [{self.params.describe()}] on {self.watermark_name}"


DEFAULT_ATTACK_SUITE = (
    AttackSpec("none"),
    AttackSpec("jpeg", {"quality": 25}),
    AttackSpec("jpeg", {"quality": 50}),
    AttackSpec("jpeg", {"quality": 75}),
    AttackSpec("jpeg", {"quality": 90}),
    AttackSpec("png", {"level": 1}),
    AttackSpec("png", {"level": 5}),
    AttackSpec("png", {"level": 9}),
    AttackSpec("rotation", {"angle": 45.0}),
    AttackSpec("rotation", {"angle": 90.0}),
    AttackSpec("resize", {"scale": 0.5}),
    AttackSpec("resize", {"scale": 0.75}),
    AttackSpec("mirror"),
    AttackSpec("crop", {"percentage": 0.1}),
    AttackSpec("crop", {"percentage": 0.2}),
)


def default_embedding_configs(components=COMPONENTS, watermark_name="checkerboard", key=DEFAULT_KEY):
    """The standard sweep of LSB, DCT, DWT and SVD settings over the given components."""
    configs = []
    for component in components:
        for bit_plane in (1, 3, 5, 7):
            for permute in (False, True):
                params = LSBParams(bit_plane=bit_plane, permute=permute, key=key if permute else None)
                configs.append(EmbeddingConfig(params, component, watermark_name))

        for coef1, coef2 in (((3, 1), (4, 1)), ((4, 3), (5, 2))):
            for strength in (5.0, 10.0, 15.0):
                params = DCTParams(block_size=8, coef1=coef1, coef2=coef2, strength=strength)
                configs.append(EmbeddingConfig(params, component, watermark_name))

        for subband in Subband:
            for strength in (2.5, 5.0):
                params = DWTParams(strength=strength, subband=subband)
                configs.append(EmbeddingConfig(params, component, watermark_name))

        for alpha in (0.5, 1.0, 2.0, 5.0):
            configs.append(EmbeddingConfig(SVDParams(alpha=alpha), component, watermark_name))
    return configs


def embed_into_image(image, mark, config):
    """
    Embed a watermark into one YCbCr component of an RGB image.

    Returns:
        np.ndarray: Watermarked (H, W, 3) uint8 raster
    """
    state = ImageState(image)
    state.convert_to_ycbcr()
    component = config.component.lower()
    marked = codecs.embed(state.channel(component), mark, config.params)
    state.set_channel(component, marked)
    state.convert_to_rgb()
    return state.rgb_image()


def component_plane(image, component):
    """One YCbCr plane of an RGB image."""
    state = ImageState(image)
    state.convert_to_ycbcr()
    return state.channel(component.lower())


def extract_from_image(image, width, height, config, host=None):
    """
    Read a width x height watermark out of one component of an RGB image.

    Args:
        image: Watermarked, possibly attacked, RGB image
        width: Watermark width
        height: Watermark height
        config: EmbeddingConfig used to embed
        host: Unmarked RGB image; used by codecs that compare against the host
    """
    reference = None
    if host is not None and codecs.needs_reference(config.params):
        reference = component_plane(host, config.component)
    return codecs.extract(component_plane(image, config.component), width, height,
                          config.params, reference=reference)


@dataclass(frozen=True, eq=False)
class HarnessCase:
    test_id: int
    image: np.ndarray
    watermark: Watermark
    config: EmbeddingConfig
    attack: AttackSpec
    bands: RatingBands = DEFAULT_BANDS


def run_case(case):
    """Embed, attack, extract and score one case. Pure in its inputs."""
    marked = embed_into_image(case.image, case.watermark, case.config)
    attacked = get_attack(case.attack.name).apply(marked, case.attack.params)
    extracted = extract_from_image(attacked, case.watermark.width, case.watermark.height,
                                   case.config, host=case.image)

    return evaluate(
        test_id=case.test_id,
        original_mark=case.watermark,
        extracted_mark=extracted,
        marked_image=marked,
        attacked_image=attacked,
        attack_name=case.attack.name,
        attack_params=case.attack.describe(),
        method=case.config.method,
        component=case.config.component,
        method_params=case.config.params.describe(),
        host_image=case.image,
        watermark_config=case.config.describe(),
        bands=case.bands,
    )


class WatermarkTestHarness:
    """
    Runs every embedding configuration against every attack.

    Args:
        image: Host image (PIL Image or array)
        watermarks: dict name -> Watermark referenced by the configs
        configs: EmbeddingConfig list
        attacks: AttackSpec list
        bands: RatingBands used for the quality label
    """

    def __init__(self, image, watermarks, configs, attacks=DEFAULT_ATTACK_SUITE, bands=DEFAULT_BANDS):
        self.image = as_rgb_array(image)
        self.watermarks = dict(watermarks)
        self.configs = list(configs)
        self.attacks = list(attacks)
        self.bands = bands

        missing = {c.watermark_name for c in self.configs} - set(self.watermarks)
        if missing:
            raise KeyError(f"configs reference unknown watermarks: {sorted(missing)}")

    def cases(self) -> List[HarnessCase]:
        """All cases with test ids 1..n, configuration-major."""
        cases = []
        test_id = 1
        for config in self.configs:
            for attack in self.attacks:
                cases.append(HarnessCase(test_id, self.image, self.watermarks[config.watermark_name],
                                        config, attack, self.bands))
                test_id += 1
        return cases

    def run(self, workers=1):
        """
        Execute every case.

        Args:
            workers: Process count; 1 runs in this process

        Returns:
            ResultsLog ordered by test id
        """
        cases = self.cases()
        log = ResultsLog()
        logger.info("running %d cases (%d configs x %d attacks) with %d worker(s)",
                    len(cases), len(self.configs), len(self.attacks), workers)

        if workers <= 1:
            for case in cases:
                log.append(run_case(case))
            return log

        with concurrent.futures.ProcessPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(run_case, case): case.test_id for case in cases}
            for future in concurrent.futures.as_completed(futures):
                log.append(future.result())
                logger.debug("case %d finished", futures[future])
        return log


@dataclass
class Plan:
    watermarks: Dict[str, Watermark]
    configs: List[EmbeddingConfig]
    attacks: List[AttackSpec]
    bands: RatingBands = DEFAULT_BANDS


def plan_from_dict(config, base_dir=None):
    """
    Build a Plan from a config dict.

    Recognised keys (all optional):
        watermarks: list of generator names or dict name -> image path
        components: components to sweep with the default configs
        methods: list of {"method": "LSB"|"DCT"|"DWT"|"SVD", "component": ..., "watermark": ..., **params}
        attacks: list of {"name": ..., "params": {...}}
        rating: {"ber_limits": [...], "nc_limits": [...], "labels": [...]}
    """
    base_dir = Path(base_dir) if base_dir else Path.cwd()

    watermarks = {}
    sources = config.get("watermarks", ["checkerboard"])
    if isinstance(sources, dict):
        for name, path in sources.items():
            watermarks[name] = Watermark.from_image(base_dir / path)
    else:
        for name in sources:
            if name not in wm.GENERATORS:
                raise ValueError(f"Unknown watermark generator: {name}")
            watermarks[name] = wm.GENERATORS[name]()
    first = next(iter(watermarks))

    if "methods" in config:
        configs = []
        for entry in config["methods"]:
            values = dict(entry)
            method = values.pop("method")
            component = values.pop("component", "Y")
            name = values.pop("watermark", first)
            configs.append(EmbeddingConfig(codecs.params_from_dict(method, values), component, name))
    else:
        configs = []
        for name in watermarks:
            configs.extend(default_embedding_configs(config.get("components", COMPONENTS), name))

    if "attacks" in config:
        attacks = [AttackSpec(a["name"], dict(a.get("params", {}))) for a in config["attacks"]]
    else:
        attacks = list(DEFAULT_ATTACK_SUITE)

    rating = config.get("rating", {})
    bands = RatingBands(
        ber_limits=tuple(rating.get("ber_limits", DEFAULT_BANDS.ber_limits)),
        nc_limits=tuple(rating.get("nc_limits", DEFAULT_BANDS.nc_limits)),
        labels=tuple(rating.get("labels", DEFAULT_BANDS.labels)),
    )
    return Plan(watermarks, configs, attacks, bands)


def load_plan(path):
    """Read a JSON plan; relative watermark paths resolve next to the file."""
    path = Path(path)
    with open(path, "r") as f:
        config = json.load(f)
    return plan_from_dict(config, base_dir=path.parent)
