# bake_landscape.py

"""
================================================================================
OFFLINE LANDSCAPE BAKER SCRIPT
================================================================================
This script is a command-line tool that runs a landscape session headless:
it generates (or restores) the terrain, places the full vegetation field
through the incremental scheduler, and writes everything a renderer needs
to disk.

Outputs (under --out):
    - terrain.json     Terrain snapshot (seed + grid vertices), loadable by
                       the viewer as its save directory.
    - vegetation.npz   Blade render buffers (positions, uvs, colors, indices)
                       and per-instance anchors.
    - heightmap.png    Top-down preview with a grass density tint.

Usage:
    python bake_landscape.py --out baked/landscape --seed 42
================================================================================
"""
import os
import sys
import json
import logging
import argparse
import time
import numpy as np
from PIL import Image
from tqdm import tqdm

# Add project root to Python path to allow importing from landscape_generator
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from landscape_generator import color_maps
from landscape_generator import config as DEFAULTS
from landscape_generator.persistence import SnapshotStore, encode_terrain_snapshot
from landscape_generator.runtime import LandscapeState

# --- Baking Constants (Rule 1) ---
# Fixed frame time fed to the session clock while baking.
BAKE_FRAME_SECONDS = 1.0 / 60.0


def save_vegetation(state: LandscapeState, path: str):
    """Writes the published vegetation buffers to a compressed .npz archive."""
    field = state.vegetation
    np.savez_compressed(
        path,
        positions=field.positions,
        uvs=field.uvs,
        colors=field.colors,
        indices=field.indices,
        anchors=field.anchors,
        seed=np.array(state.seed),
    )


def save_heightmap_preview(state: LandscapeState, path: str):
    """Renders the terrain and vegetation density to a PNG with Pillow."""
    grid = state.grid
    side = grid.samples_per_side
    heights = grid.heights.reshape(side, side)
    inside = grid.inside_disc.reshape(side, side)

    colors = color_maps.get_height_color_array(heights, inside, color_maps.create_height_lut())
    density = color_maps.get_vegetation_density(state.vegetation.anchors, side, grid.plane_size)
    colors = color_maps.apply_vegetation_tint(colors, density)

    # Back from (x, z, 3) to image rows.
    Image.fromarray(np.ascontiguousarray(np.transpose(colors, (1, 0, 2)))).save(path)


# --- Main Baking Function ---
def bake_landscape(config: dict, out_dir: str):
    """
    Builds a landscape session, runs its full vegetation placement to
    completion and saves the results.
    """
    # 1. --- Setup Logging (Rule 2) ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    logger = logging.getLogger("Baker")

    # 2. --- Build the Session ---
    store = SnapshotStore(out_dir, logger)
    state = LandscapeState(config, logger, store=store)
    requested_seed = config.get('seed')
    if state.terrain_restored and requested_seed is not None and float(requested_seed) != state.seed:
        logger.warning(
            f"'{out_dir}' already holds a terrain snapshot with seed {state.seed:.3f}; "
            f"requested seed {float(requested_seed):.3f} is ignored. Use an empty --out to bake a new terrain."
        )

    # 3. --- Drive the Scheduler ---
    target = state.settings['blade_count']
    start_time = time.perf_counter()
    with tqdm(total=target, desc="Placing Blades", unit="blade") as progress:
        while state.scheduler.is_running:
            state.update(BAKE_FRAME_SECONDS)
            job = state.scheduler.active_job
            progress.n = job.blades_generated if job is not None else len(state.vegetation)
            progress.refresh()
    logger.info(f"Placement complete in {time.perf_counter() - start_time:.2f} seconds.")

    # 4. --- Save Outputs ---
    if not store.save(DEFAULTS.TERRAIN_SNAPSHOT_KEY, encode_terrain_snapshot(state.seed, state.grid)):
        logger.critical("Could not write the terrain snapshot.")
        return False
    save_vegetation(state, os.path.join(out_dir, "vegetation.npz"))
    save_heightmap_preview(state, os.path.join(out_dir, "heightmap.png"))

    logger.info(f"Baked landscape (seed {state.seed:.3f}, {len(state.vegetation)} blades) saved to: {out_dir}")
    return True


# --- Command-Line Interface ---
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Offline baker for procedural landscapes.")
    parser.add_argument("--config", type=str, default=None, help="Optional JSON file of setting overrides.")
    parser.add_argument("--out", type=str, required=True, help="Output directory.")
    parser.add_argument("--seed", type=float, default=None, help="Terrain seed (random if omitted).")
    parser.add_argument("--blades", type=int, default=None, help="Override the full blade count.")
    args = parser.parse_args()

    user_config = {}
    if args.config:
        try:
            with open(args.config, 'r') as f:
                user_config = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            print(f"Failed to load or parse config file: {e}")
            sys.exit(1)
    if args.seed is not None:
        user_config['seed'] = args.seed
    if args.blades is not None:
        user_config['blade_count'] = args.blades

    sys.exit(0 if bake_landscape(user_config, args.out) else 1)
