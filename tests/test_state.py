import json
import logging

import numpy as np
import pytest

from landscape_generator import config as DEFAULTS
from landscape_generator.persistence import CameraPose, SnapshotStore, encode_terrain_snapshot
from landscape_generator.runtime import LandscapeState
from landscape_generator.runtime.state import BUTTON_LOWER, BUTTON_RAISE
from landscape_generator.terrain_grid import TerrainGrid

LOGGER = logging.getLogger("test")

SMALL = {
    'seed': 42,
    'grid_resolution': 32,
    'blade_count': 300,
    'blade_count_reduced': 100,
    'placement_chunk_size': 50,
}


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(str(tmp_path), LOGGER)


def make_state(store=None, start_placement=True, **overrides):
    return LandscapeState({**SMALL, **overrides}, LOGGER, store=store, rng=np.random.default_rng(0),
                          start_placement=start_placement)


def test_fresh_session_generates_and_places(store):
    state = make_state(store)
    assert state.seed == 42.0
    assert not state.terrain_restored
    assert state.scheduler.is_running
    assert len(state.vegetation) == 0

    state.scheduler.run_to_completion()
    assert state.vegetation_generation == 1
    assert 0 < len(state.vegetation) <= 300
    assert state.vegetation.target_count == 300


def test_placement_spreads_over_frames():
    state = make_state()
    state.update(1 / 60)
    assert state.scheduler.is_running
    assert state.scheduler.active_job.blades_generated == 50
    assert state.vegetation_generation == 0


def test_regeneration_requests_are_ignored_while_running():
    state = make_state()
    assert not state.request_regeneration(full=False)
    state.scheduler.run_to_completion()
    assert state.request_regeneration(full=False)
    assert state.scheduler.active_job.target_count == 100


def test_previous_vegetation_stays_published_until_replaced():
    state = make_state()
    state.scheduler.run_to_completion()
    first = state.vegetation
    state.request_regeneration(full=False)
    state.update(1 / 60)
    assert state.vegetation is first
    state.scheduler.run_to_completion()
    assert state.vegetation is not first
    assert state.vegetation_generation == 2


def test_sculpting_edits_the_grid_and_switches_the_height_source():
    state = make_state(start_placement=False)
    assert state.height_source() == state.synthesizer.height
    before = state.ground_height(0.0, 0.0)

    state.on_pointer_down(BUTTON_RAISE)
    changed = state.update(1 / 60, (0.0, before, 0.0))
    assert changed > 0
    assert state.ground_height(0.0, 0.0) > before
    assert state.terrain_edited
    assert state.height_source() == state.grid.sample_height_at
    assert state.writer.pending

    state.on_pointer_up(BUTTON_RAISE)
    assert state.update(1 / 60, (0.0, before, 0.0)) == 0


def test_lowering_uses_the_other_button():
    state = make_state(start_placement=False)
    before = state.ground_height(0.0, 0.0)
    state.on_pointer_down(BUTTON_LOWER)
    state.update(1 / 60, (0.0, before, 0.0))
    assert state.ground_height(0.0, 0.0) < before


def test_sculpting_during_regeneration():
    state = make_state()
    state.on_pointer_down(BUTTON_RAISE)
    assert state.update(1 / 60, (0.0, 0.0, 0.0)) > 0
    assert state.scheduler.is_running


def test_edits_are_saved_after_the_quiet_interval(store, tmp_path):
    state = make_state(store, start_placement=False)
    state.on_pointer_down(BUTTON_RAISE)
    state.update(1 / 60, (0.0, 0.0, 0.0))
    state.on_pointer_up()
    assert not (tmp_path / "terrain.json").exists()

    for _ in range(3):
        state.update(0.5)
    assert (tmp_path / "terrain.json").exists()
    assert not state.writer.pending


def test_saved_terrain_is_restored_with_its_seed(store):
    first = make_state(store, start_placement=False)
    first.on_pointer_down(BUTTON_RAISE)
    first.update(1 / 60, (3.0, 0.0, 3.0))
    first.shutdown()

    second = make_state(store, seed=7, start_placement=False)
    assert second.terrain_restored
    assert second.seed == 42.0
    assert np.array_equal(second.grid.heights, first.grid.heights)
    assert second.height_source() == second.grid.sample_height_at


def test_mismatched_snapshot_falls_back_to_fresh_generation(store):
    small_grid = TerrainGrid(16, 60.0, LOGGER)
    store.save(DEFAULTS.TERRAIN_SNAPSHOT_KEY, encode_terrain_snapshot(99.0, small_grid))

    state = make_state(store, seed=7, start_placement=False)
    assert not state.terrain_restored
    assert state.seed == 7.0
    assert state.grid.heights[state.grid.inside_disc].max() > 0.0


def test_malformed_snapshot_falls_back_to_fresh_generation(store, tmp_path):
    (tmp_path / "terrain.json").write_text("{\"seed\": 1.0, \"vertices\": [1, 2")
    state = make_state(store, start_placement=False)
    assert not state.terrain_restored
    assert state.seed == 42.0


def test_shutdown_saves_the_camera(store, tmp_path):
    state = make_state(store, start_placement=False)
    state.camera = CameraPose(position=(1.0, 2.0, 3.0), yaw=0.25, pitch=0.1)
    state.shutdown()

    saved = json.loads((tmp_path / "camera.json").read_text())
    assert saved == {'position': [1.0, 2.0, 3.0], 'yaw': 0.25, 'pitch': 0.1}
    assert make_state(store, start_placement=False).camera == state.camera


def test_wheel_changes_brush_radius():
    state = make_state(start_placement=False)
    assert state.on_wheel(1) == pytest.approx(DEFAULTS.BRUSH_DEFAULT_RADIUS + DEFAULTS.BRUSH_WHEEL_STEP)
    assert state.on_wheel(-1) == pytest.approx(DEFAULTS.BRUSH_DEFAULT_RADIUS)


def test_camera_helpers():
    state = make_state(start_placement=False)
    assert state.clamp_to_bounds(100.0, -100.0) == (30.0, -30.0)
    assert state.clamp_to_bounds(float('nan'), 1.0) == (0.0, 0.0)
    x, y, z = state.eye_position(0.0, 0.0)
    assert y == pytest.approx(state.ground_height(0.0, 0.0) + DEFAULTS.EYE_HEIGHT)


def test_render_handoff():
    state = make_state()
    state.scheduler.run_to_completion()
    state.update(0.5)
    handoff = state.render_handoff()

    terrain = handoff['terrain']
    assert terrain['positions'].shape == (33 * 33 * 3,)
    assert terrain['normals'].shape == terrain['positions'].shape
    assert terrain['uvs'].shape == (33 * 33 * 2,)
    assert terrain['positions'][1::3].tolist() == state.grid.heights.tolist()
    assert terrain['indices'].max() < 33 * 33

    vegetation = handoff['vegetation']
    n = len(state.vegetation)
    assert vegetation['positions'].shape == (n * 5 * 3,)
    assert vegetation['uvs'].shape == (n * 5 * 2,)
    assert vegetation['colors'].shape == (n * 5 * 3,)
    assert vegetation['indices'].shape == (n * 9,)
    assert handoff['wind_time'] == pytest.approx(500.0)


def test_running_placement_follows_edits_made_mid_run():
    state = make_state()
    state.update(1 / 60)
    placed_before_edit = state.scheduler.active_job.blades_generated

    assert state.sculptor.apply(state.grid, (10.0, 0.0, 10.0), -1, 3.0, 20.0) > 0
    state.scheduler.run_to_completion()

    anchors = state.vegetation.anchors[placed_before_edit:]
    assert len(anchors) > 0
    for x, y, z in anchors:
        assert y == state.grid.sample_height_at(x, z)
        assert y >= DEFAULTS.GRASS_MIN_HEIGHT
