# landscape_generator/runtime/state.py

"""
================================================================================
LANDSCAPE SESSION STATE
================================================================================
This module provides the LandscapeState class: one explicit object holding
everything a running session owns (seed, terrain grid, brush, vegetation,
scheduler, persistence). The host loop passes input events to it and calls
update() once per frame; nothing is kept in module globals.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Overrides for any default in landscape_generator.config.
    - logger: A configured Python logging object.
    - store (SnapshotStore, optional): Where terrain and camera snapshots
      live. Without one the session is purely in-memory.
- Public Methods:
    - on_pointer_down(button), on_pointer_up(), on_wheel(delta)
    - request_regeneration(full)
    - update(real_delta_time, hit_point)
    - render_handoff(), ground_height(x, z), clamp_to_bounds(x, z)
    - save_camera(pose), shutdown()
- Side Effects: Snapshot writes through the debounced writer.
- Invariants:
    - The seed never changes after construction.
    - The published vegetation field is only replaced once a new one is
      complete.
    - Brush edits land before update() returns, so before the next draw.
================================================================================
"""

import logging
import math
from typing import Optional

import numpy as np

from .. import config as DEFAULTS
from ..heightfield import HeightfieldSynthesizer
from ..persistence import (CameraPose, DebouncedWriter, SnapshotStore,
                           decode_terrain_snapshot, encode_terrain_snapshot)
from ..scheduler import IncrementalScheduler
from ..sculpt import BrushMode, BrushState, SculptEngine
from ..terrain_grid import TerrainGrid
from ..vegetation import PlacementConfig, PlacementRun, VegetationField
from .clock import SessionClock

# Pointer buttons as reported by pygame.
BUTTON_RAISE = 1
BUTTON_LOWER = 3


class LandscapeState:
    """The whole mutable state of one landscape session."""

    def __init__(self, config: dict, logger: logging.Logger, store: Optional[SnapshotStore] = None,
                 clock: Optional[SessionClock] = None, rng: np.random.Generator = None,
                 start_placement: bool = True):
        self.logger = logger
        self.user_config = config
        self.store = store
        self.rng = rng
        self.logger.info("LandscapeState initializing...")

        # --- Consolidate Configuration ---
        self.settings = {
            'plane_size': self.user_config.get('plane_size', DEFAULTS.PLANE_SIZE),
            'grid_resolution': self.user_config.get('grid_resolution', DEFAULTS.GRID_RESOLUTION),
            'blade_count': self.user_config.get('blade_count', DEFAULTS.BLADE_COUNT),
            'blade_count_reduced': self.user_config.get('blade_count_reduced', DEFAULTS.BLADE_COUNT_REDUCED),
            'brush_strength': self.user_config.get('brush_strength', DEFAULTS.BRUSH_STRENGTH),
            'brush_default_radius': self.user_config.get('brush_default_radius', DEFAULTS.BRUSH_DEFAULT_RADIUS),
            'brush_min_radius': self.user_config.get('brush_min_radius', DEFAULTS.BRUSH_MIN_RADIUS),
            'brush_max_radius': self.user_config.get('brush_max_radius', DEFAULTS.BRUSH_MAX_RADIUS),
            'brush_wheel_step': self.user_config.get('brush_wheel_step', DEFAULTS.BRUSH_WHEEL_STEP),
            'placement_chunk_size': self.user_config.get('placement_chunk_size', DEFAULTS.PLACEMENT_CHUNK_SIZE),
            'persist_debounce_seconds': self.user_config.get('persist_debounce_seconds', DEFAULTS.PERSIST_DEBOUNCE_SECONDS),
            'eye_height': self.user_config.get('eye_height', DEFAULTS.EYE_HEIGHT),
        }

        self.clock = clock or SessionClock(self.user_config)

        # --- 1. Terrain: restore or generate ---
        self.grid = TerrainGrid(self.settings['grid_resolution'], self.settings['plane_size'], logger)
        self.terrain_restored = self._restore_terrain()
        if not self.terrain_restored:
            self.synthesizer = HeightfieldSynthesizer(self.user_config, logger)
            self.grid.build(self.synthesizer)
        self.seed = self.synthesizer.seed
        # Until the grid diverges from the synthesizer, placement may read either.
        self.terrain_edited = self.terrain_restored

        # --- 2. Camera ---
        self.camera = self._restore_camera()

        # --- 3. Editing ---
        self.brush = BrushState(
            radius=self.settings['brush_default_radius'],
            min_radius=self.settings['brush_min_radius'],
            max_radius=self.settings['brush_max_radius'],
            wheel_step=self.settings['brush_wheel_step'],
        )
        self.writer = DebouncedWriter(
            self._write_terrain_snapshot,
            self.settings['persist_debounce_seconds'],
            logger,
            clock=self.clock.now
        )
        self.sculptor = SculptEngine(self.user_config, logger, on_edit=self._on_terrain_edit)

        # --- 4. Vegetation ---
        self.placement_config = PlacementConfig.from_config(self.user_config)
        self.scheduler = IncrementalScheduler(self.settings['placement_chunk_size'], logger)
        self.vegetation = VegetationField.empty()
        self.vegetation_generation = 0

        self.logger.info(f"LandscapeState ready (seed {self.seed:.3f}, "
                         f"{'restored' if self.terrain_restored else 'fresh'} terrain).")

        if start_placement:
            self.request_regeneration(full=True)

    # --- Startup ---
    def _restore_terrain(self) -> bool:
        if self.store is None:
            return False
        snapshot = decode_terrain_snapshot(self.store.load(DEFAULTS.TERRAIN_SNAPSHOT_KEY), self.logger)
        if snapshot is None:
            return False

        seed, vertices = snapshot
        if not self.grid.restore(vertices):
            # A mismatched snapshot counts as no snapshot at all, seed included.
            return False
        self.synthesizer = HeightfieldSynthesizer({**self.user_config, 'seed': seed}, self.logger)
        return True

    def _restore_camera(self) -> CameraPose:
        if self.store is not None:
            pose = CameraPose.from_dict(self.store.load(DEFAULTS.CAMERA_SNAPSHOT_KEY))
            if pose is not None:
                self.logger.info("Camera pose restored from snapshot.")
                return pose
        return CameraPose()

    # --- Persistence ---
    def _on_terrain_edit(self):
        self.terrain_edited = True
        self.writer.schedule()

    def _write_terrain_snapshot(self) -> bool:
        if self.store is None:
            return True
        ok = self.store.save(DEFAULTS.TERRAIN_SNAPSHOT_KEY, encode_terrain_snapshot(self.seed, self.grid))
        if ok:
            self.logger.info("Terrain snapshot saved.")
        return ok

    def save_camera(self, pose: CameraPose) -> bool:
        self.camera = pose
        if self.store is None:
            return True
        return self.store.save(DEFAULTS.CAMERA_SNAPSHOT_KEY, pose.to_dict())

    def shutdown(self):
        """Writes any pending terrain edit and the current camera pose."""
        self.writer.flush()
        self.save_camera(self.camera)
        self.logger.info("LandscapeState shut down.")

    # --- Input ---
    def on_pointer_down(self, button: int):
        if button == BUTTON_RAISE:
            self.brush.begin(BrushMode.RAISE)
        elif button == BUTTON_LOWER:
            self.brush.begin(BrushMode.LOWER)

    def on_pointer_up(self, button: int = None):
        self.brush.end()

    def on_wheel(self, delta: float) -> float:
        return self.brush.adjust_radius(delta)

    def request_regeneration(self, full: bool = False) -> bool:
        """
        Starts an incremental placement run. Ignored while one is running.

        Args:
            full (bool): Use the full blade count instead of the reduced one.
        """
        if self.scheduler.is_running:
            self.logger.info("Vegetation regeneration requested while one is running; ignored.")
            return False

        count = self.settings['blade_count'] if full else self.settings['blade_count_reduced']
        job = PlacementRun(
            self._placement_height,
            count,
            self.placement_config,
            permutation_table=self.synthesizer.permutation_table,
            rng=self.rng,
        )
        self.logger.info(f"Vegetation placement started: {count} blades requested.")
        return self.scheduler.run_incremental(job, self._publish_vegetation)

    def height_source(self):
        """The synthesizer while the grid matches it, the grid afterwards."""
        if self.terrain_edited:
            return self.grid.sample_height_at
        return self.synthesizer.height

    def _placement_height(self, x: float, z: float) -> float:
        # Resolved per call so a run already in flight follows later edits.
        return self.height_source()(x, z)

    def _publish_vegetation(self, field: VegetationField):
        self.vegetation = field
        self.vegetation_generation += 1
        if field.budget_exhausted:
            self.logger.warning(
                f"Vegetation placement ran out of attempts: {len(field)} of "
                f"{field.target_count} blades after {field.attempts} attempts."
            )
        else:
            self.logger.info(f"Vegetation placement finished: {len(field)} blades in {field.attempts} attempts.")

    # --- Frame ---
    def update(self, real_delta_time: float, hit_point=None) -> int:
        """
        Advances the session by one frame.

        Args:
            real_delta_time (float): Seconds since the last frame.
            hit_point: World-space point under the cursor, if any.

        Returns:
            int: Number of grid samples the brush changed this frame.
        """
        self.clock.update(real_delta_time)

        changed = 0
        if self.brush.is_active and hit_point is not None:
            changed = self.sculptor.apply(
                self.grid, hit_point, int(self.brush.mode), self.brush.radius, self.settings['brush_strength']
            )
        if changed:
            self.grid.compute_normals()

        self.scheduler.tick()
        self.writer.poll()
        return changed

    # --- Queries for the host ---
    def ground_height(self, x: float, z: float) -> float:
        return self.grid.sample_height_at(x, z)

    def eye_position(self, x: float, z: float) -> tuple:
        """Camera position standing on the terrain at (x, z)."""
        x, z = self.clamp_to_bounds(x, z)
        return x, self.ground_height(x, z) + self.settings['eye_height'], z

    def clamp_to_bounds(self, x: float, z: float) -> tuple:
        limit = self.settings['plane_size'] / 2.0
        if not (math.isfinite(x) and math.isfinite(z)):
            return 0.0, 0.0
        return min(max(x, -limit), limit), min(max(z, -limit), limit)

    def render_handoff(self) -> dict:
        """
        The flat buffers the renderer consumes, one entry per artifact.
        Positions, normals and colors hold 3 floats per vertex, uvs hold 2.
        """
        field = self.vegetation
        return {
            'terrain': {
                'positions': self.grid.positions.ravel(),
                'normals': self.grid.normals.ravel(),
                'uvs': self.grid.uvs.ravel(),
                'colors': None,
                'indices': self.grid.indices,
            },
            'vegetation': {
                'positions': field.positions.ravel(),
                'uvs': field.uvs.ravel(),
                'colors': field.colors.ravel(),
                'indices': field.indices,
            },
            'wind_time': self.clock.wind_time,
        }
