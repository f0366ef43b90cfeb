# FOLDER: /

# viewer.py

"""
================================================================================
LANDSCAPE SCULPT VIEWER
================================================================================
A top-down pygame host for a landscape session. It draws the terrain grid as
a height image with a grass density tint, turns the cursor into a world-space
hit point for the brush, and forwards input to LandscapeState.

Controls:
- Raise terrain: hold left mouse button
- Lower terrain: hold right mouse button
- Brush size: mouse wheel
- Regenerate vegetation: R (reduced count), F (full count)
- Quit: ESC or close window (pending edits are saved)
================================================================================
"""

import argparse
import json
import logging
import sys

import numpy as np
import pygame

from landscape_generator import color_maps
from landscape_generator import config as DEFAULTS
from landscape_generator.persistence import SnapshotStore
from landscape_generator.runtime import LandscapeState

# --- Application Constants (Rule 1) ---
SCREEN_SIZE = 720
CLOCK_TICK_RATE = 60
BACKGROUND_COLOR = (10, 10, 20)
BRUSH_RAISE_COLOR = (255, 255, 255)
BRUSH_LOWER_COLOR = (255, 80, 80)
BRUSH_IDLE_COLOR = (200, 200, 200)
VEGETATION_DOT_COLOR = (120, 200, 70)
VEGETATION_DOT_SAMPLE = 4000       # Blades drawn as dots; the density tint covers the rest


class TopDownCamera:
    """Maps between screen pixels and world (x, z) for a fixed, fitted view."""
    def __init__(self, screen_size: int, plane_size: float):
        self.screen_size = screen_size
        self.plane_size = plane_size
        self.zoom = screen_size / plane_size

    def world_to_screen(self, world_x, world_z):
        screen_x = (world_x + self.plane_size / 2) * self.zoom
        screen_y = (world_z + self.plane_size / 2) * self.zoom
        return int(screen_x), int(screen_y)

    def screen_to_world(self, screen_x, screen_y):
        world_x = screen_x / self.zoom - self.plane_size / 2
        world_z = screen_y / self.zoom - self.plane_size / 2
        return world_x, world_z


class ViewerApp:
    """The main application class for the sculpt viewer."""
    def __init__(self, config: dict, save_dir: str):
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        self.logger = logging.getLogger(__name__)

        self.logger.info("Initializing Pygame...")
        pygame.init()
        self.screen = pygame.display.set_mode((SCREEN_SIZE, SCREEN_SIZE))
        pygame.display.set_caption("Landscape Sculpt Viewer")
        self.clock = pygame.time.Clock()
        self.is_running = True

        self.state = LandscapeState(config, self.logger, store=SnapshotStore(save_dir, self.logger))
        self.camera = TopDownCamera(SCREEN_SIZE, self.state.grid.plane_size)
        self.height_lut = color_maps.create_height_lut()

        self._terrain_surface = None
        self._drawn_generation = -1
        self._terrain_dirty = True

    def run(self):
        """The main application loop."""
        while self.is_running:
            dt = self.clock.tick(CLOCK_TICK_RATE) / 1000.0
            self.handle_events()
            self.update(dt)
            self.draw()

        self.state.shutdown()
        self.logger.info("Exiting viewer.")
        pygame.quit()
        sys.exit()

    def handle_events(self):
        """Processes user input and other events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.is_running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.is_running = False
                elif event.key == pygame.K_r:
                    self.state.request_regeneration(full=False)
                elif event.key == pygame.K_f:
                    self.state.request_regeneration(full=True)
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button in (1, 3):
                self.state.on_pointer_down(event.button)
            elif event.type == pygame.MOUSEBUTTONUP and event.button in (1, 3):
                self.state.on_pointer_up(event.button)
            elif event.type == pygame.MOUSEWHEEL:
                self.state.on_wheel(event.y)

    def update(self, dt: float):
        """Feeds the cursor's world position to the session as the brush hit point."""
        world_x, world_z = self.camera.screen_to_world(*pygame.mouse.get_pos())
        hit_point = (world_x, self.state.ground_height(world_x, world_z), world_z)
        if self.state.update(dt, hit_point):
            self._terrain_dirty = True
        if self.state.vegetation_generation != self._drawn_generation:
            self._terrain_dirty = True

    def _rebuild_terrain_surface(self):
        grid = self.state.grid
        side = grid.samples_per_side
        heights = grid.heights.reshape(side, side)
        inside = grid.inside_disc.reshape(side, side)

        colors = color_maps.get_height_color_array(heights, inside, self.height_lut)
        density = color_maps.get_vegetation_density(self.state.vegetation.anchors, side, grid.plane_size)
        colors = color_maps.apply_vegetation_tint(colors, density)

        surface = pygame.surfarray.make_surface(np.ascontiguousarray(colors))
        self._terrain_surface = pygame.transform.smoothscale(surface, (SCREEN_SIZE, SCREEN_SIZE))
        self._draw_vegetation_dots(self._terrain_surface)
        self._drawn_generation = self.state.vegetation_generation
        self._terrain_dirty = False

    def _draw_vegetation_dots(self, surface):
        anchors = self.state.vegetation.anchors
        if len(anchors) == 0:
            return
        stride = max(1, len(anchors) // VEGETATION_DOT_SAMPLE)
        for x, _, z in anchors[::stride]:
            surface.set_at(self.camera.world_to_screen(x, z), VEGETATION_DOT_COLOR)

    def draw(self):
        """Handles all rendering for the application."""
        if self._terrain_dirty or self._terrain_surface is None:
            self._rebuild_terrain_surface()

        self.screen.fill(BACKGROUND_COLOR)
        self.screen.blit(self._terrain_surface, (0, 0))

        brush = self.state.brush
        if brush.mode > 0:
            color = BRUSH_RAISE_COLOR
        elif brush.mode < 0:
            color = BRUSH_LOWER_COLOR
        else:
            color = BRUSH_IDLE_COLOR
        radius_px = max(1, int(brush.radius * self.camera.zoom))
        pygame.draw.circle(self.screen, color, pygame.mouse.get_pos(), radius_px, 1)

        status = "regenerating" if self.state.scheduler.is_running else f"{len(self.state.vegetation)} blades"
        pygame.display.set_caption(
            f"Landscape Sculpt Viewer | seed {self.state.seed:.1f} | brush {brush.radius:.1f} | {status}"
        )
        pygame.display.flip()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Interactive top-down sculpt viewer.")
    parser.add_argument("--config", type=str, default=None, help="Optional JSON file of setting overrides.")
    parser.add_argument("--save-dir", type=str, default=DEFAULTS.SNAPSHOT_DIRECTORY, help="Snapshot directory.")
    args = parser.parse_args()

    user_config = {}
    if args.config:
        with open(args.config, 'r') as f:
            user_config = json.load(f)

    app = ViewerApp(user_config, args.save_dir)
    app.run()
