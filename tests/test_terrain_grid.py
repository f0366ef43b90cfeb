import logging

import numpy as np
import pytest

from landscape_generator import config as DEFAULTS
from landscape_generator.heightfield import HeightfieldSynthesizer
from landscape_generator.terrain_grid import TerrainGrid

LOGGER = logging.getLogger("test")


@pytest.fixture(scope="module")
def synth():
    return HeightfieldSynthesizer({'seed': 42}, LOGGER)


@pytest.fixture
def built_grid(synth):
    grid = TerrainGrid(32, 60.0, LOGGER)
    grid.build(synth)
    return grid


def test_layout_is_a_uniform_square_grid():
    grid = TerrainGrid(128, 60.0, LOGGER)
    assert grid.samples_per_side == 129
    assert grid.positions.shape == (129 * 129, 3)
    assert len(grid) == 129 * 129 * 3
    assert grid.cell_size == pytest.approx(60.0 / 128)

    xs = grid.positions[:129, 0]
    assert xs[0] == pytest.approx(-30.0)
    assert xs[-1] == pytest.approx(30.0)
    assert np.allclose(np.diff(xs), grid.cell_size)
    # Second row starts one cell further along z.
    assert grid.positions[129, 2] == pytest.approx(-30.0 + grid.cell_size)


def test_invalid_dimensions_are_rejected():
    with pytest.raises(ValueError):
        TerrainGrid(0, 60.0, LOGGER)
    with pytest.raises(ValueError):
        TerrainGrid(16, -1.0, LOGGER)


def test_build_matches_synthesizer_inside_the_disc(built_grid, synth):
    inside = np.flatnonzero(built_grid.inside_disc)
    coords = built_grid.planar_coords[inside]
    expected = [synth.height(x, z, 30.0) for x, z in coords]
    assert np.allclose(built_grid.heights[inside], expected, rtol=1e-5, atol=1e-5)


def test_build_writes_sentinel_outside_the_disc(built_grid):
    outside = ~built_grid.inside_disc
    assert outside.any()
    assert np.all(built_grid.heights[outside] == DEFAULTS.OUTSIDE_DISC_HEIGHT)
    # Corners are always outside the inscribed circle.
    assert built_grid.sample_height_at(-30.0, -30.0) == DEFAULTS.OUTSIDE_DISC_HEIGHT


def test_sample_lookup_floors_to_the_containing_cell():
    grid = TerrainGrid(4, 8.0, LOGGER)   # cells of 2 units, samples at -4, -2, 0, 2, 4
    grid.heights[:] = np.arange(25, dtype=np.float32)
    assert grid.sample_height_at(0.0, 0.0) == grid.heights[grid.index_of(2, 2)]
    assert grid.sample_height_at(1.9, 0.5) == grid.heights[grid.index_of(2, 2)]
    assert grid.sample_height_at(-1.9, 2.1) == grid.heights[grid.index_of(1, 3)]


def test_sample_lookup_clamps_outside_the_grid():
    grid = TerrainGrid(4, 8.0, LOGGER)
    grid.heights[:] = np.arange(25, dtype=np.float32)
    assert grid.sample_height_at(-100.0, -100.0) == grid.heights[grid.index_of(0, 0)]
    assert grid.sample_height_at(100.0, 100.0) == grid.heights[grid.index_of(4, 4)]
    assert grid.sample_height_at(100.0, -100.0) == grid.heights[grid.index_of(4, 0)]


def test_sample_lookup_ignores_non_finite_input(built_grid):
    assert built_grid.sample_height_at(float('nan'), 0.0) == DEFAULTS.OUTSIDE_DISC_HEIGHT


def test_export_then_restore_reproduces_the_grid(built_grid):
    built_grid.heights[10] = 3.25
    copy = TerrainGrid(32, 60.0, LOGGER)
    assert copy.restore(built_grid.export_samples())
    assert np.array_equal(copy.positions, built_grid.positions)


def test_restore_rejects_mismatched_length(built_grid):
    smaller = TerrainGrid(16, 60.0, LOGGER)
    before = smaller.heights.copy()
    assert not smaller.restore(built_grid.export_samples())
    assert np.array_equal(smaller.heights, before)


def test_restore_rejects_garbage():
    grid = TerrainGrid(4, 8.0, LOGGER)
    assert not grid.restore(["a", "b"])
    bad = [0.0] * len(grid)
    bad[4] = float('nan')
    assert not grid.restore(bad)


def test_restore_only_takes_heights():
    grid = TerrainGrid(4, 8.0, LOGGER)
    snapshot = [7.0] * len(grid)
    assert grid.restore(snapshot)
    assert np.all(grid.heights == 7.0)
    assert grid.positions[0, 0] == pytest.approx(-4.0)


def test_flat_grid_normals_point_up():
    grid = TerrainGrid(8, 8.0, LOGGER, outside_height=0.0)
    grid.compute_normals()
    assert np.allclose(grid.normals, [0.0, 1.0, 0.0])


def test_normals_tilt_away_from_a_raised_sample():
    grid = TerrainGrid(8, 8.0, LOGGER, outside_height=0.0)
    center = grid.index_of(4, 4)
    grid.heights[center] = 2.0
    grid.compute_normals()
    east = grid.index_of(5, 4)
    assert grid.normals[east, 0] > 0.0
    assert np.allclose(np.linalg.norm(grid.normals, axis=1), 1.0, atol=1e-5)


def test_render_buffers_are_consistent():
    grid = TerrainGrid(8, 8.0, LOGGER)
    assert grid.indices.shape == (8 * 8 * 6,)
    assert grid.indices.max() < grid.samples_per_side ** 2
    assert grid.uvs.shape == (81, 2)
    assert grid.uvs.min() == 0.0 and grid.uvs.max() == 1.0
    assert tuple(grid.uvs[0]) == (0.0, 0.0)


@pytest.mark.parametrize("resolution, plane_size", [(128, 60.0), (100, 60.0), (96, 50.0), (120, 70.0)])
def test_lookup_at_each_sample_returns_that_sample(synth, resolution, plane_size):
    grid = TerrainGrid(resolution, plane_size, LOGGER)
    grid.build(synth)
    coords = grid.planar_coords
    looked_up = np.array([grid.sample_height_at(x, z) for x, z in coords], dtype=np.float32)
    assert np.array_equal(looked_up, grid.heights)
