# landscape_generator/color_maps.py

"""
================================================================================
SHARED COLOR MAPPING UTILITIES
================================================================================
This module contains the color constants and functions for turning terrain
heights and vegetation density into RGB arrays for top-down previews.

It is designed to be a pure, stateless utility with no dependencies on
Pygame, so both the interactive viewer and the offline bake can use it.
================================================================================
"""
import numpy as np
from . import config as DEFAULTS

# --- Default Colors ---
COLOR_SKY = (98, 193, 229)          # Shown where the grid holds the sentinel
COLOR_MUD = (139, 105, 20)          # Bare ground
COLOR_CANYON = (70, 52, 12)         # Deepest sculpted cuts
COLOR_PEAK = (196, 186, 160)        # Highest sculpted peaks
COLOR_GRASS = (58, 140, 40)

HEIGHT_LUT_SIZE = 256


def create_height_lut() -> np.ndarray:
    """
    Creates a 256-entry color LUT spanning the sculptable height range:
    canyon -> mud at height 0 -> peak.
    """
    min_h = DEFAULTS.SCULPT_MIN_HEIGHT
    max_h = DEFAULTS.SCULPT_MAX_HEIGHT
    heights = np.linspace(min_h, max_h, HEIGHT_LUT_SIZE)[..., np.newaxis]

    below = np.clip(heights / min_h, 0.0, 1.0)   # 0 at ground, 1 at the canyon floor
    above = np.clip(heights / max_h, 0.0, 1.0)   # 0 at ground, 1 at the top
    colors = np.where(
        heights < 0,
        (1 - below) * np.array(COLOR_MUD) + below * np.array(COLOR_CANYON),
        (1 - above) * np.array(COLOR_MUD) + above * np.array(COLOR_PEAK),
    )
    return colors.astype(np.uint8)


def get_height_color_array(heights: np.ndarray, inside_mask: np.ndarray, height_lut: np.ndarray) -> np.ndarray:
    """
    Converts a (rows, cols) height array into an RGB array using a
    pre-computed LUT. Samples outside the playable disc get the sky color.
    The result is transposed to (cols, rows, 3), the layout pygame's
    surfarray expects.
    """
    min_h = DEFAULTS.SCULPT_MIN_HEIGHT
    span = DEFAULTS.SCULPT_MAX_HEIGHT - min_h
    normalized = np.clip((heights - min_h) / span, 0.0, 1.0)
    indices = (normalized * (HEIGHT_LUT_SIZE - 1)).astype(np.int64)
    colors = height_lut[indices]
    colors[~inside_mask] = COLOR_SKY
    return np.transpose(colors, (1, 0, 2))


def get_vegetation_density(anchors: np.ndarray, resolution: int, plane_size: float) -> np.ndarray:
    """
    Counts blade anchors per preview cell and returns a (rows, cols) array
    normalized to [0, 1] (rows follow z, columns follow x).
    """
    half = plane_size / 2.0
    if len(anchors) == 0:
        return np.zeros((resolution, resolution))
    counts, _, _ = np.histogram2d(
        anchors[:, 2], anchors[:, 0],
        bins=resolution,
        range=[[-half, half], [-half, half]]
    )
    peak = counts.max()
    return counts / peak if peak > 0 else counts


def apply_vegetation_tint(colors: np.ndarray, density: np.ndarray, strength: float = 0.8) -> np.ndarray:
    """
    Blends the grass color over a (cols, rows, 3) color array in proportion
    to a (rows, cols) density map of the same grid size.
    """
    weight = (np.transpose(density) * strength)[..., np.newaxis]
    blended = colors * (1 - weight) + np.array(COLOR_GRASS) * weight
    return blended.astype(np.uint8)
