# landscape_generator/persistence.py

"""
================================================================================
PERSISTENCE BRIDGE
================================================================================
This module saves and restores the session's durable state: the terrain
(seed + grid samples) and the camera pose, each under its own key.

Data Contract:
---------------
- Terrain snapshot (JSON):
    { "version": 1, "seed": float, "vertices": [x, y, z, x, y, z, ...] }
  Only the y values matter on restore; x and z come along because the
  snapshot is the whole position buffer.
- Camera snapshot (JSON):
    { "position": [x, y, z], "yaw": float, "pitch": float }
- Side Effects: Reads and writes files under the store directory.
- Failure Policy: Nothing here raises on I/O or decode problems. Read
  failures are logged and reported as "no snapshot"; write failures are
  logged and dropped.
================================================================================
"""

import json
import logging
import math
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

from . import config as DEFAULTS


class SnapshotStore:
    """A tiny key/value store holding one JSON file per key."""

    def __init__(self, directory: str = DEFAULTS.SNAPSHOT_DIRECTORY, logger: logging.Logger = None):
        self.directory = directory
        self.logger = logger or logging.getLogger(__name__)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def load(self, key: str) -> Optional[dict]:
        path = self._path(key)
        if not os.path.exists(path):
            self.logger.info(f"No '{key}' snapshot at '{path}'.")
            return None
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read '{key}' snapshot from '{path}': {e}")
            return None
        if not isinstance(data, dict):
            self.logger.error(f"Snapshot '{key}' at '{path}' is not a JSON object, ignoring it.")
            return None
        return data

    def save(self, key: str, data: dict) -> bool:
        path = self._path(key)
        tmp_path = path + ".tmp"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(data, f)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to write '{key}' snapshot to '{path}': {e}")
            return False
        self.logger.debug(f"Snapshot '{key}' written to '{path}'.")
        return True


# --- Terrain Snapshot Schema ---
def encode_terrain_snapshot(seed: float, grid) -> dict:
    return {
        'version': DEFAULTS.SNAPSHOT_VERSION,
        'seed': float(seed),
        'vertices': grid.export_samples(),
    }


def decode_terrain_snapshot(data: Optional[dict], logger: logging.Logger = None):
    """
    Validates a terrain snapshot.

    Returns:
        tuple | None: (seed, vertices) if usable, otherwise None.
    """
    logger = logger or logging.getLogger(__name__)
    if not data:
        return None

    # Snapshots written before the version field existed are version 1.
    version = data.get('version', 1)
    if version != DEFAULTS.SNAPSHOT_VERSION:
        logger.warning(f"Terrain snapshot version {version} is not supported, ignoring it.")
        return None

    seed = data.get('seed')
    vertices = data.get('vertices')
    if isinstance(seed, bool) or not isinstance(seed, (int, float)) or not math.isfinite(seed):
        logger.warning("Terrain snapshot has no usable seed, ignoring it.")
        return None
    if not isinstance(vertices, list):
        logger.warning("Terrain snapshot has no vertex list, ignoring it.")
        return None
    return float(seed), vertices


@dataclass
class CameraPose:
    position: tuple = DEFAULTS.CAMERA_START_POSITION
    yaw: float = 0.0
    pitch: float = 0.0

    def to_dict(self) -> dict:
        return {'position': [float(v) for v in self.position], 'yaw': float(self.yaw), 'pitch': float(self.pitch)}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["CameraPose"]:
        if not data:
            return None
        try:
            position = tuple(float(v) for v in data['position'])
            yaw = float(data.get('yaw', 0.0))
            pitch = float(data.get('pitch', 0.0))
        except (KeyError, TypeError, ValueError):
            return None
        if len(position) != 3 or not all(math.isfinite(v) for v in position + (yaw, pitch)):
            return None
        return cls(position=position, yaw=yaw, pitch=pitch)


class DebouncedWriter:
    """
    Coalesces bursts of edits into a single write. Every schedule() pushes
    the deadline back by `interval_s`; poll() writes once the deadline has
    passed. Single-threaded: the host loop drives it through poll().
    """

    def __init__(self, write_fn: Callable[[], bool], interval_s: float = DEFAULTS.PERSIST_DEBOUNCE_SECONDS,
                 logger: logging.Logger = None, clock: Callable[[], float] = time.monotonic):
        self.write_fn = write_fn
        self.interval_s = interval_s
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock
        self._deadline = None
        self.writes_performed = 0

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def schedule(self):
        self._deadline = self.clock() + self.interval_s

    def poll(self) -> bool:
        """Writes if the quiet interval has elapsed. Returns True if it wrote."""
        if self._deadline is None or self.clock() < self._deadline:
            return False
        return self._write()

    def flush(self) -> bool:
        """Writes immediately if a write is pending."""
        if self._deadline is None:
            return False
        return self._write()

    def _write(self) -> bool:
        self._deadline = None
        self.writes_performed += 1
        try:
            ok = self.write_fn()
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Debounced write failed: {e}")
            return False
        if not ok:
            self.logger.warning("Debounced write reported failure; the in-memory state is unchanged.")
        return bool(ok)
