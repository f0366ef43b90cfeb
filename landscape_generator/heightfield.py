# landscape_generator/heightfield.py

"""
================================================================================
HEIGHTFIELD SYNTHESIZER
================================================================================
This module contains the HeightfieldSynthesizer class, which turns the seeded
noise field into a continuous height function over the playable disc.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Parameters which can override the internal defaults.
      Expected keys include 'seed', 'terrain_noise_scale', etc.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - Scalar heights (height) or NumPy arrays of heights (height_map), >= 0.
- Side Effects: Logs messages using the provided logger.
- Invariants: Given the same seed and configuration, the output is
  deterministic. Heights are never negative.
================================================================================
"""

import logging

import numpy as np

from . import config as DEFAULTS
from . import noise


def roll_seed(rng: np.random.Generator = None) -> float:
    """Draws a fresh session seed in [0, RANDOM_SEED_RANGE)."""
    rng = rng if rng is not None else np.random.default_rng()
    return float(rng.uniform(0.0, DEFAULTS.RANDOM_SEED_RANGE))


class HeightfieldSynthesizer:
    """
    Computes terrain height as the sum of two terms:
    - three noise octaves, attenuated by a radial edge falloff, and
    - a dome that is not attenuated, so the centre always stays walkable.
    """
    def __init__(self, config: dict, logger: logging.Logger, permutation_table: np.ndarray = None):
        """
        Initializes the synthesizer.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
            permutation_table (np.ndarray, optional): A pre-computed noise
                permutation table. If None, the reference table is used.
        """
        self.logger = logger
        self.user_config = config

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'terrain_noise_scale': self.user_config.get('terrain_noise_scale', DEFAULTS.TERRAIN_NOISE_SCALE),
            'terrain_height_scale': self.user_config.get('terrain_height_scale', DEFAULTS.TERRAIN_HEIGHT_SCALE),
            'terrain_plateau_height': self.user_config.get('terrain_plateau_height', DEFAULTS.TERRAIN_PLATEAU_HEIGHT),
            'terrain_octaves': self.user_config.get('terrain_octaves', DEFAULTS.TERRAIN_OCTAVES),
            'plane_size': self.user_config.get('plane_size', DEFAULTS.PLANE_SIZE),
        }

        if self.settings['seed'] is None:
            self.settings['seed'] = roll_seed()
            self.logger.info("No seed configured, rolled a new one for this session.")

        # --- Public Properties for easy access ---
        self.seed = float(self.settings['seed'])
        self.default_radius = self.settings['plane_size'] / 2.0

        # --- Initialize Noise ---
        if permutation_table is not None:
            self._p = permutation_table
            self.logger.debug("Initialized with injected permutation table.")
        else:
            self._p = noise.create_permutation_table()
        self.permutation_table = self._p

        self.logger.info(f"HeightfieldSynthesizer initialized with seed: {self.seed:.3f}")

    def height(self, x: float, z: float, radius: float = None) -> float:
        """
        Returns the terrain height at planar position (x, z).

        Args:
            x (float): World x coordinate.
            z (float): World z coordinate.
            radius (float, optional): Radius of the playable disc. Defaults
                to half the plane size.
        """
        radius = self.default_radius if radius is None else radius
        dist_from_center = np.sqrt(x * x + z * z) / radius

        scale = self.settings['terrain_noise_scale']
        amplitude = self.settings['terrain_height_scale']

        # 1. Sum the octaves. The seed shifts every octave along x.
        height = 0.0
        for frequency, weight, noise_z in self.settings['terrain_octaves']:
            height += noise.perlin_noise_3d(
                self._p,
                x * scale * frequency + self.seed,
                z * scale * frequency,
                noise_z
            ) * (amplitude * weight)

        # 2. Smooth falloff at the edge of the disc.
        height *= 1.0 - min(dist_from_center, 1.0) ** 2

        # 3. The dome is added after the falloff so it is never attenuated.
        plateau = (1.0 - dist_from_center * dist_from_center) * self.settings['terrain_plateau_height']

        return max(0.0, height + plateau)

    def height_map(self, x_coords: np.ndarray, z_coords: np.ndarray, radius: float = None) -> np.ndarray:
        """
        Vectorized version of height(). Returns an array with the shape of
        x_coords holding exactly the values height() gives per element.
        """
        radius = self.default_radius if radius is None else radius
        x_coords = np.asarray(x_coords, dtype=np.float64)
        z_coords = np.asarray(z_coords, dtype=np.float64)
        dist_from_center = np.sqrt(x_coords * x_coords + z_coords * z_coords) / radius

        scale = self.settings['terrain_noise_scale']
        amplitude = self.settings['terrain_height_scale']

        heights = np.zeros_like(x_coords)
        for frequency, weight, noise_z in self.settings['terrain_octaves']:
            heights += noise.perlin_noise_3d_array(
                self._p,
                x_coords * scale * frequency + self.seed,
                z_coords * scale * frequency,
                noise_z
            ) * (amplitude * weight)

        heights *= 1.0 - np.minimum(dist_from_center, 1.0) ** 2
        plateau = (1.0 - dist_from_center * dist_from_center) * self.settings['terrain_plateau_height']

        return np.maximum(0.0, heights + plateau)
