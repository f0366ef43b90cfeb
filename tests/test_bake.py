import logging

import numpy as np

from bake_landscape import bake_landscape
from landscape_generator import config as DEFAULTS
from landscape_generator.persistence import SnapshotStore, encode_terrain_snapshot
from landscape_generator.terrain_grid import TerrainGrid

SMALL = {
    'grid_resolution': 16,
    'blade_count': 40,
    'placement_chunk_size': 10,
}


def test_bake_writes_all_outputs(tmp_path):
    assert bake_landscape({**SMALL, 'seed': 42}, str(tmp_path))
    assert (tmp_path / "terrain.json").exists()
    assert (tmp_path / "heightmap.png").exists()
    with np.load(tmp_path / "vegetation.npz") as baked:
        assert baked['positions'].shape[1] == 3
        assert float(baked['seed']) == 42.0


def test_bake_warns_when_an_existing_snapshot_overrides_the_seed(tmp_path, caplog):
    store = SnapshotStore(str(tmp_path))
    store.save(DEFAULTS.TERRAIN_SNAPSHOT_KEY, encode_terrain_snapshot(42.0, TerrainGrid(16, 60.0)))

    with caplog.at_level(logging.WARNING):
        assert bake_landscape({**SMALL, 'seed': 7}, str(tmp_path))
    assert any("requested seed 7.000 is ignored" in record.getMessage() for record in caplog.records)


def test_bake_is_quiet_when_the_seed_matches(tmp_path, caplog):
    store = SnapshotStore(str(tmp_path))
    store.save(DEFAULTS.TERRAIN_SNAPSHOT_KEY, encode_terrain_snapshot(42.0, TerrainGrid(16, 60.0)))

    with caplog.at_level(logging.WARNING):
        assert bake_landscape({**SMALL, 'seed': 42}, str(tmp_path))
    assert not any("is ignored" in record.getMessage() for record in caplog.records)
