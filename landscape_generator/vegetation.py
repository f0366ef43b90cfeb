# landscape_generator/vegetation.py

"""
================================================================================
VEGETATION PLACEMENT
================================================================================
This module scatters grass blades over the playable disc by rejection
sampling against a height source, and builds their render geometry.

Data Contract:
---------------
- Inputs:
    - height_source: Any callable (x, z) -> height. Either the synthesizer
      (before edits) or TerrainGrid.sample_height_at (after edits).
    - target_count (int): Requested number of blades.
    - cfg (PlacementConfig): Thresholds, blade shape and budget.
    - rng (np.random.Generator, optional): Unseeded by default, so every
      run gives a different layout even on identical terrain.
- Outputs:
    - VegetationField: Immutable render buffers plus per-instance data.
- Side Effects: None.
- Invariants:
    - At most target_count blades; fewer only when the attempt budget
      (attempt_multiplier * target_count) ran out.
    - Every anchor height lies in [min_height, height_threshold + jitter].
    - Blades appear in the order they were accepted.
================================================================================
"""

import math
from dataclasses import dataclass
from typing import Callable, NamedTuple

import numpy as np

from . import config as DEFAULTS
from . import noise

HeightSource = Callable[[float, float], float]

# Triangle fan over the five blade vertices (bl, br, tr, tl, tip).
BLADE_TRIANGLES = np.array([0, 1, 2, 2, 4, 3, 3, 1, 2], dtype=np.uint32)
BLADE_COLORS = np.array([
    DEFAULTS.BLADE_COLOR_ROOT,
    DEFAULTS.BLADE_COLOR_ROOT,
    DEFAULTS.BLADE_COLOR_MID,
    DEFAULTS.BLADE_COLOR_MID,
    DEFAULTS.BLADE_COLOR_TIP,
], dtype=np.float32)


@dataclass(frozen=True)
class PlacementConfig:
    radius: float = DEFAULTS.PLANE_SIZE / 2.0
    plane_size: float = DEFAULTS.PLANE_SIZE
    height_threshold: float = DEFAULTS.GRASS_HEIGHT_THRESHOLD
    threshold_jitter: float = DEFAULTS.GRASS_THRESHOLD_JITTER
    min_height: float = DEFAULTS.GRASS_MIN_HEIGHT
    blade_width: float = DEFAULTS.BLADE_WIDTH
    blade_height: float = DEFAULTS.BLADE_HEIGHT
    height_variation: float = DEFAULTS.BLADE_HEIGHT_VARIATION
    tip_offset: float = DEFAULTS.BLADE_TIP_OFFSET
    attempt_multiplier: int = DEFAULTS.PLACEMENT_ATTEMPT_MULTIPLIER
    density_base: float = DEFAULTS.GRASS_DENSITY_BASE
    density_noise_weight: float = DEFAULTS.GRASS_DENSITY_NOISE_WEIGHT
    density_noise_frequency: float = DEFAULTS.GRASS_DENSITY_NOISE_FREQUENCY
    density_noise_z: float = DEFAULTS.GRASS_DENSITY_NOISE_Z

    @classmethod
    def from_config(cls, config: dict) -> "PlacementConfig":
        """Builds a PlacementConfig from a user dict, falling back to defaults."""
        plane_size = config.get('plane_size', DEFAULTS.PLANE_SIZE)
        return cls(
            radius=config.get('placement_radius', plane_size / 2.0),
            plane_size=plane_size,
            height_threshold=config.get('grass_height_threshold', DEFAULTS.GRASS_HEIGHT_THRESHOLD),
            threshold_jitter=config.get('grass_threshold_jitter', DEFAULTS.GRASS_THRESHOLD_JITTER),
            min_height=config.get('grass_min_height', DEFAULTS.GRASS_MIN_HEIGHT),
            blade_width=config.get('blade_width', DEFAULTS.BLADE_WIDTH),
            blade_height=config.get('blade_height', DEFAULTS.BLADE_HEIGHT),
            height_variation=config.get('blade_height_variation', DEFAULTS.BLADE_HEIGHT_VARIATION),
            tip_offset=config.get('blade_tip_offset', DEFAULTS.BLADE_TIP_OFFSET),
            attempt_multiplier=config.get('placement_attempt_multiplier', DEFAULTS.PLACEMENT_ATTEMPT_MULTIPLIER),
            density_base=config.get('grass_density_base', DEFAULTS.GRASS_DENSITY_BASE),
            density_noise_weight=config.get('grass_density_noise_weight', DEFAULTS.GRASS_DENSITY_NOISE_WEIGHT),
            density_noise_frequency=config.get('grass_density_noise_frequency', DEFAULTS.GRASS_DENSITY_NOISE_FREQUENCY),
            density_noise_z=config.get('grass_density_noise_z', DEFAULTS.GRASS_DENSITY_NOISE_Z),
        )


class VegetationInstance(NamedTuple):
    anchor: tuple
    yaw: float
    bend: float
    height: float
    vertices: np.ndarray


def _planar_unit(angle: float) -> np.ndarray:
    return np.array([math.sin(angle), 0.0, -math.cos(angle)])


def generate_blade(center, rng: np.random.Generator, cfg: PlacementConfig):
    """
    Builds the five vertices of one blade anchored at `center`.

    Returns:
        tuple: (vertices (5, 3), yaw, bend, height)
    """
    center = np.asarray(center, dtype=np.float64)
    height = cfg.blade_height + rng.random() * cfg.height_variation
    yaw = rng.random() * math.pi * 2
    bend = rng.random() * math.pi * 2

    half_width = cfg.blade_width / 2.0
    # The blade narrows to half width at mid height.
    half_mid_width = cfg.blade_width * 0.5 / 2.0
    across = _planar_unit(yaw)
    tip_dir = _planar_unit(bend)

    bottom_left = center + across * half_width
    bottom_right = center - across * half_width
    top_left = center + across * half_mid_width
    top_right = center - across * half_mid_width
    tip = center + tip_dir * cfg.tip_offset

    top_left[1] += height / 2
    top_right[1] += height / 2
    tip[1] += height

    vertices = np.stack([bottom_left, bottom_right, top_right, top_left, tip])
    return vertices, yaw, bend, height


class VegetationField:
    """The finished, immutable output of one placement run."""

    def __init__(self, positions, uvs, anchors, yaws, bends, blade_heights,
                 target_count: int, attempts: int, budget_exhausted: bool):
        count = len(anchors)
        self.positions = positions
        self.uvs = uvs
        self.colors = np.tile(BLADE_COLORS, (count, 1))
        offsets = np.arange(count, dtype=np.uint32)[:, None] * DEFAULTS.BLADE_VERTEX_COUNT
        self.indices = (offsets + BLADE_TRIANGLES[None, :]).ravel()
        self.anchors = anchors
        self.yaws = yaws
        self.bends = bends
        self.blade_heights = blade_heights
        self.target_count = target_count
        self.attempts = attempts
        self.budget_exhausted = budget_exhausted

        for array in (self.positions, self.uvs, self.colors, self.indices,
                      self.anchors, self.yaws, self.bends, self.blade_heights):
            array.setflags(write=False)

    @classmethod
    def empty(cls) -> "VegetationField":
        return cls(
            np.zeros((0, 3), dtype=np.float32), np.zeros((0, 2), dtype=np.float32),
            np.zeros((0, 3), dtype=np.float64), np.zeros(0), np.zeros(0), np.zeros(0),
            target_count=0, attempts=0, budget_exhausted=False
        )

    def __len__(self) -> int:
        return len(self.anchors)

    def instance(self, i: int) -> VegetationInstance:
        start = i * DEFAULTS.BLADE_VERTEX_COUNT
        return VegetationInstance(
            anchor=tuple(float(v) for v in self.anchors[i]),
            yaw=float(self.yaws[i]),
            bend=float(self.bends[i]),
            height=float(self.blade_heights[i]),
            vertices=self.positions[start:start + DEFAULTS.BLADE_VERTEX_COUNT],
        )


class PlacementRun:
    """
    A resumable rejection-sampling run. Its whole state is the blade buffer,
    the attempt counter and the accepted-blade counter, so it can be
    advanced in bounded steps across frames.
    """

    def __init__(self, height_source: HeightSource, target_count: int, cfg: PlacementConfig,
                 permutation_table: np.ndarray = None, rng: np.random.Generator = None):
        if target_count < 0:
            raise ValueError(f"target_count must be non-negative, got {target_count}")
        self.height_source = height_source
        self.target_count = int(target_count)
        self.cfg = cfg
        self._p = permutation_table if permutation_table is not None else noise.create_permutation_table()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.max_attempts = self.target_count * cfg.attempt_multiplier
        self.attempts = 0
        self.blades_generated = 0

        vertex_capacity = self.target_count * DEFAULTS.BLADE_VERTEX_COUNT
        self._positions = np.zeros((vertex_capacity, 3), dtype=np.float32)
        self._uvs = np.zeros((vertex_capacity, 2), dtype=np.float32)
        self._anchors = np.zeros((self.target_count, 3), dtype=np.float64)
        self._yaws = np.zeros(self.target_count)
        self._bends = np.zeros(self.target_count)
        self._heights = np.zeros(self.target_count)

    @property
    def finished(self) -> bool:
        return self.blades_generated >= self.target_count or self.attempts >= self.max_attempts

    @property
    def budget_exhausted(self) -> bool:
        return self.blades_generated < self.target_count and self.attempts >= self.max_attempts

    def step(self, max_accepted: int) -> bool:
        """
        Runs attempts until `max_accepted` more blades were accepted or the
        run finished.

        Returns:
            bool: True once the run has finished.
        """
        accepted = 0
        while accepted < max_accepted and not self.finished:
            self.attempts += 1
            if self._attempt():
                accepted += 1
        return self.finished

    def _attempt(self) -> bool:
        cfg = self.cfg
        rng = self.rng

        # 1. Uniform point in the disc. sqrt keeps the areal density flat.
        r = cfg.radius * math.sqrt(rng.random())
        theta = rng.random() * 2 * math.pi
        x = r * math.cos(theta)
        z = r * math.sin(theta)

        # 2. Height at the candidate.
        height = float(self.height_source(x, z))

        # 3. Bare peaks, with a fuzzy edge.
        threshold = cfg.height_threshold + (rng.random() - 0.5) * 2 * cfg.threshold_jitter
        if height > threshold:
            return False

        # 4. No grass in deep cuts.
        if height < cfg.min_height:
            return False

        # 5. Patchiness from a second noise field.
        density_noise = noise.perlin_noise_3d(
            self._p,
            x * cfg.density_noise_frequency,
            z * cfg.density_noise_frequency,
            cfg.density_noise_z
        )
        if rng.random() > cfg.density_base + density_noise * cfg.density_noise_weight:
            return False

        self._emit(x, height, z)
        return True

    def _emit(self, x: float, height: float, z: float):
        i = self.blades_generated
        vertices, yaw, bend, blade_height = generate_blade((x, height, z), self.rng, self.cfg)

        start = i * DEFAULTS.BLADE_VERTEX_COUNT
        end = start + DEFAULTS.BLADE_VERTEX_COUNT
        self._positions[start:end] = vertices
        # Every vertex of a blade shares its anchor's UV.
        half = self.cfg.plane_size / 2.0
        self._uvs[start:end] = ((x + half) / self.cfg.plane_size, (z + half) / self.cfg.plane_size)

        self._anchors[i] = (x, height, z)
        self._yaws[i] = yaw
        self._bends[i] = bend
        self._heights[i] = blade_height
        self.blades_generated += 1

    def result(self) -> VegetationField:
        """Copies the accepted blades into a finished VegetationField."""
        n = self.blades_generated
        vertex_count = n * DEFAULTS.BLADE_VERTEX_COUNT
        return VegetationField(
            self._positions[:vertex_count].copy(),
            self._uvs[:vertex_count].copy(),
            self._anchors[:n].copy(),
            self._yaws[:n].copy(),
            self._bends[:n].copy(),
            self._heights[:n].copy(),
            target_count=self.target_count,
            attempts=self.attempts,
            budget_exhausted=self.budget_exhausted,
        )


def place(height_source: HeightSource, target_count: int, cfg: PlacementConfig,
          permutation_table: np.ndarray = None, rng: np.random.Generator = None) -> VegetationField:
    """Runs a whole placement in one call."""
    run = PlacementRun(height_source, target_count, cfg, permutation_table, rng)
    run.step(run.target_count)
    return run.result()
