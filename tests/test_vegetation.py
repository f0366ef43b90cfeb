import logging
import math

import numpy as np
import pytest

from landscape_generator import config as DEFAULTS
from landscape_generator.heightfield import HeightfieldSynthesizer
from landscape_generator.vegetation import (BLADE_TRIANGLES, PlacementConfig, PlacementRun,
                                            VegetationField, generate_blade, place)

LOGGER = logging.getLogger("test")


def flat(height):
    return lambda x, z: height


def test_blade_geometry():
    cfg = PlacementConfig()
    rng = np.random.default_rng(3)
    vertices, yaw, bend, height = generate_blade((1.0, 2.0, -1.0), rng, cfg)
    assert vertices.shape == (5, 3)
    assert cfg.blade_height <= height <= cfg.blade_height + cfg.height_variation
    assert 0.0 <= yaw < 2 * math.pi and 0.0 <= bend < 2 * math.pi

    bottom_left, bottom_right, top_right, top_left, tip = vertices
    # Base spans the full width and sits on the anchor.
    assert np.linalg.norm(bottom_left - bottom_right) == pytest.approx(cfg.blade_width)
    assert bottom_left[1] == pytest.approx(2.0) and bottom_right[1] == pytest.approx(2.0)
    # Mid pair is half as wide, raised by half the blade height.
    assert np.linalg.norm(top_left - top_right) == pytest.approx(cfg.blade_width * 0.5)
    assert top_left[1] == pytest.approx(2.0 + height / 2)
    # Tip leans tip_offset away from the anchor at full height.
    assert math.hypot(tip[0] - 1.0, tip[2] + 1.0) == pytest.approx(cfg.tip_offset)
    assert tip[1] == pytest.approx(2.0 + height)


def test_full_placement_on_flat_grassland():
    cfg = PlacementConfig()
    field = place(flat(0.0), 2000, cfg, rng=np.random.default_rng(1))
    assert len(field) == 2000
    assert not field.budget_exhausted
    assert field.attempts <= 3 * 2000

    anchors = field.anchors
    assert np.all(np.hypot(anchors[:, 0], anchors[:, 2]) <= cfg.radius + 1e-9)
    assert np.all(anchors[:, 1] == 0.0)


def test_impossible_threshold_exhausts_the_budget():
    cfg = PlacementConfig(height_threshold=-999.0)
    field = place(flat(0.0), 500, cfg, rng=np.random.default_rng(2))
    assert len(field) == 0
    assert field.budget_exhausted
    assert field.attempts == 3 * 500
    assert field.positions.shape == (0, 3)
    assert field.indices.size == 0


def test_anchor_heights_respect_the_thresholds():
    synth = HeightfieldSynthesizer({'seed': 42}, LOGGER)
    cfg = PlacementConfig()
    field = place(synth.height, 3000, cfg, permutation_table=synth.permutation_table,
                  rng=np.random.default_rng(5))
    heights = field.anchors[:, 1]
    assert heights.min() >= cfg.min_height
    assert heights.max() <= cfg.height_threshold + cfg.threshold_jitter
    # The seed 42 summit is bare.
    near_center = np.hypot(field.anchors[:, 0], field.anchors[:, 2]) < 0.5
    assert not near_center.any()


def test_canyon_floors_are_bare():
    cfg = PlacementConfig()
    field = place(flat(-2.0), 200, cfg, rng=np.random.default_rng(4))
    assert len(field) == 0
    assert field.budget_exhausted


def test_accepted_points_are_uniform_over_the_disc():
    # With density noise weight zero every in-range candidate is accepted.
    cfg = PlacementConfig(density_base=1.0, density_noise_weight=0.0)
    field = place(flat(0.0), 20000, cfg, rng=np.random.default_rng(7))
    assert field.attempts == 20000
    r2 = (field.anchors[:, 0] ** 2 + field.anchors[:, 2] ** 2) / cfg.radius ** 2
    # r^2 / R^2 is uniform on [0, 1] for a uniform disc.
    assert r2.mean() == pytest.approx(0.5, abs=0.02)
    assert np.mean(r2 < 0.25) == pytest.approx(0.25, abs=0.02)


def test_render_buffers_line_up():
    cfg = PlacementConfig()
    field = place(flat(0.0), 50, cfg, rng=np.random.default_rng(8))
    n = len(field)
    assert field.positions.shape == (n * DEFAULTS.BLADE_VERTEX_COUNT, 3)
    assert field.uvs.shape == (n * DEFAULTS.BLADE_VERTEX_COUNT, 2)
    assert field.colors.shape == (n * DEFAULTS.BLADE_VERTEX_COUNT, 3)
    assert field.indices.shape == (n * DEFAULTS.BLADE_INDEX_COUNT,)
    assert list(field.indices[9:18]) == list(BLADE_TRIANGLES + 5)

    blade = field.instance(3)
    x, _, z = blade.anchor
    uv = field.uvs[15]
    assert uv[0] == pytest.approx((x + 30.0) / 60.0, abs=1e-6)
    assert uv[1] == pytest.approx((z + 30.0) / 60.0, abs=1e-6)
    assert np.array_equal(blade.vertices, field.positions[15:20])
    assert tuple(field.colors[4]) == DEFAULTS.BLADE_COLOR_TIP


def test_published_buffers_are_read_only():
    field = place(flat(0.0), 10, PlacementConfig(), rng=np.random.default_rng(9))
    with pytest.raises(ValueError):
        field.positions[0, 0] = 1.0


def test_stepwise_run_matches_single_shot():
    cfg = PlacementConfig()
    run = PlacementRun(flat(1.0), 300, cfg, rng=np.random.default_rng(11))
    steps = 0
    while not run.step(40):
        steps += 1
        assert run.blades_generated == 40 * steps
    stepped = run.result()

    whole = place(flat(1.0), 300, cfg, rng=np.random.default_rng(11))
    assert np.array_equal(stepped.positions, whole.positions)
    assert stepped.attempts == whole.attempts


def test_zero_and_negative_targets():
    field = place(flat(0.0), 0, PlacementConfig())
    assert len(field) == 0 and not field.budget_exhausted
    assert VegetationField.empty().target_count == 0
    with pytest.raises(ValueError):
        PlacementRun(flat(0.0), -1, PlacementConfig())


def test_placement_config_reads_overrides():
    cfg = PlacementConfig.from_config({'plane_size': 40.0, 'grass_height_threshold': 1.0})
    assert cfg.radius == 20.0
    assert cfg.height_threshold == 1.0
    assert cfg.min_height == DEFAULTS.GRASS_MIN_HEIGHT
