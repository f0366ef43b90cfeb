# landscape_generator/sculpt.py

"""
================================================================================
SCULPT ENGINE
================================================================================
This module applies brush edits to a TerrainGrid and tracks the transient
brush state driven by pointer and wheel input.

Data Contract:
---------------
- Inputs:
    - grid (TerrainGrid): The grid to edit in place.
    - hit_point: World-space point under the cursor, (x, y, z) or (x, z).
    - sign: +1 raises, -1 lowers.
    - radius, strength: Brush size in world units and peak height change.
- Outputs:
    - apply() returns the number of samples it changed.
- Side Effects:
    - Mutates grid heights. Does NOT recompute normals; the caller does that
      once per batch of edits, before the next draw.
    - Calls the on_edit hook after every apply() that changed something.
- Invariants:
    - Every edited sample ends inside [min_height, max_height].
    - No sample farther than `radius` (planar) from the hit point changes.
================================================================================
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from . import config as DEFAULTS
from .terrain_grid import TerrainGrid


class BrushMode(enum.IntEnum):
    LOWER = -1
    IDLE = 0
    RAISE = 1


@dataclass
class BrushState:
    """Current brush radius and mode. Reset on every interaction, never saved."""
    radius: float = DEFAULTS.BRUSH_DEFAULT_RADIUS
    mode: BrushMode = BrushMode.IDLE
    min_radius: float = DEFAULTS.BRUSH_MIN_RADIUS
    max_radius: float = DEFAULTS.BRUSH_MAX_RADIUS
    wheel_step: float = field(default=DEFAULTS.BRUSH_WHEEL_STEP, repr=False)

    def __post_init__(self):
        self.radius = self.clamp_radius(self.radius)

    def clamp_radius(self, radius: float) -> float:
        return min(max(radius, self.min_radius), self.max_radius)

    @property
    def is_active(self) -> bool:
        return self.mode != BrushMode.IDLE

    def begin(self, mode: BrushMode):
        self.mode = BrushMode(mode)

    def end(self):
        self.mode = BrushMode.IDLE

    def adjust_radius(self, wheel_delta: float) -> float:
        """
        Grows the brush for positive wheel deltas and shrinks it for negative
        ones, one step per call regardless of the delta's magnitude.
        """
        if wheel_delta > 0:
            self.radius = self.clamp_radius(self.radius + self.wheel_step)
        elif wheel_delta < 0:
            self.radius = self.clamp_radius(self.radius - self.wheel_step)
        return self.radius


class SculptEngine:
    """Applies falloff-weighted additive edits to a TerrainGrid."""

    def __init__(self, config: dict, logger: logging.Logger, on_edit: Optional[Callable[[], None]] = None):
        self.logger = logger
        self.user_config = config
        self.on_edit = on_edit

        self.settings = {
            'brush_min_radius': self.user_config.get('brush_min_radius', DEFAULTS.BRUSH_MIN_RADIUS),
            'brush_max_radius': self.user_config.get('brush_max_radius', DEFAULTS.BRUSH_MAX_RADIUS),
            'sculpt_min_height': self.user_config.get('sculpt_min_height', DEFAULTS.SCULPT_MIN_HEIGHT),
            'sculpt_max_height': self.user_config.get('sculpt_max_height', DEFAULTS.SCULPT_MAX_HEIGHT),
        }

    def apply(self, grid: TerrainGrid, hit_point, sign: int, radius: float, strength: float) -> int:
        """
        Raises or lowers every in-disc sample within `radius` of the hit
        point by sign * strength * (1 - dist / radius)^2.

        Returns:
            int: The number of samples whose height changed.
        """
        if sign not in (1, -1) or not strength > 0:
            return 0

        hit_x, hit_z = self._planar_point(hit_point)
        if hit_x is None:
            return 0

        radius = min(max(radius, self.settings['brush_min_radius']), self.settings['brush_max_radius'])

        candidates = grid.planar_tree.query_ball_point((hit_x, hit_z), radius)
        if not candidates:
            return 0
        candidates = np.asarray(candidates, dtype=np.int64)
        # The sentinel ring outside the disc is never gameplay terrain.
        candidates = candidates[grid.inside_disc[candidates]]

        planar = grid.planar_coords[candidates]
        dist = np.hypot(planar[:, 0] - hit_x, planar[:, 1] - hit_z)
        within = dist < radius
        candidates = candidates[within]
        if candidates.size == 0:
            return 0

        # Quadratic falloff: strong in the centre, fading smoothly to the rim.
        weight = (1.0 - dist[within] / radius) ** 2

        heights = grid.heights
        old = heights[candidates].astype(np.float64)
        new = np.clip(
            old + sign * strength * weight,
            self.settings['sculpt_min_height'],
            self.settings['sculpt_max_height']
        )
        heights[candidates] = new

        changed = int(np.count_nonzero(heights[candidates] != old.astype(np.float32)))
        if changed:
            self.logger.debug(f"Brush {'raise' if sign > 0 else 'lower'} at ({hit_x:.2f}, {hit_z:.2f}) "
                              f"r={radius:.2f} changed {changed} samples.")
            if self.on_edit is not None:
                self.on_edit()
        return changed

    @staticmethod
    def _planar_point(hit_point):
        """Extracts (x, z) from an (x, y, z) or (x, z) point. (None, None) if unusable."""
        try:
            values = [float(v) for v in hit_point]
        except (TypeError, ValueError):
            return None, None
        if len(values) == 3:
            x, z = values[0], values[2]
        elif len(values) == 2:
            x, z = values
        else:
            return None, None
        if not (math.isfinite(x) and math.isfinite(z)):
            return None, None
        return x, z
