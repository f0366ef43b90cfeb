# landscape_generator/terrain_grid.py

"""
================================================================================
TERRAIN GRID
================================================================================
This module provides the TerrainGrid class: the discretized, mutable storage
of the heightfield. After initial generation it is the single source of
truth for terrain shape.

Data Contract:
---------------
- Inputs (on initialization):
    - resolution (int): Cells per side. The grid holds (resolution + 1)^2
      samples.
    - plane_size (float): Side length of the square region, centred on the
      origin.
    - logger: A configured Python logging object for runtime messages.
- Outputs:
    - positions (np.ndarray): float32 (N, 3) xyz buffer, row-major over
      (z, x). Only the y column ever changes.
    - normals, uvs, indices: Render handoff buffers.
- Side Effects: Logs messages using the provided logger.
- Invariants:
    - Grid spacing is uniform (plane_size / resolution).
    - The x and z of every sample are fixed by its index.
    - Samples outside the inscribed disc hold OUTSIDE_DISC_HEIGHT until a
      snapshot says otherwise.
    - Heights are written only by build(), restore() and the sculpt engine.
================================================================================
"""

import logging
import math

import numpy as np
from scipy.spatial import cKDTree

from . import config as DEFAULTS

# Fraction of a cell treated as already past a cell boundary.
CELL_EDGE_TOLERANCE = 1e-9


class TerrainGrid:
    """A fixed-resolution square grid of height samples."""

    def __init__(self, resolution: int = DEFAULTS.GRID_RESOLUTION, plane_size: float = DEFAULTS.PLANE_SIZE,
                 logger: logging.Logger = None, outside_height: float = DEFAULTS.OUTSIDE_DISC_HEIGHT):
        if resolution < 1:
            raise ValueError(f"Grid resolution must be at least 1, got {resolution}")
        if plane_size <= 0:
            raise ValueError(f"Plane size must be positive, got {plane_size}")

        self.logger = logger or logging.getLogger(__name__)
        self.resolution = int(resolution)
        self.plane_size = float(plane_size)
        self.half_size = self.plane_size / 2.0
        self.radius = self.half_size
        self.cell_size = self.plane_size / self.resolution
        self.samples_per_side = self.resolution + 1
        self.outside_height = float(outside_height)

        # --- 1. Fixed planar layout ---
        coords = np.arange(self.samples_per_side, dtype=np.float64) * self.cell_size - self.half_size
        xv, zv = np.meshgrid(coords, coords)
        self.positions = np.zeros((self.samples_per_side ** 2, 3), dtype=np.float32)
        self.positions[:, 0] = xv.ravel()
        self.positions[:, 2] = zv.ravel()

        # Planar coordinates are kept in float64 for exact distance tests.
        self._planar = np.column_stack((xv.ravel(), zv.ravel()))
        dist_from_center = np.sqrt(self._planar[:, 0] ** 2 + self._planar[:, 1] ** 2)
        self.inside_disc = dist_from_center <= self.radius
        self._planar_tree = None

        # --- 2. Render handoff buffers that never change ---
        self.uvs = ((self._planar + self.half_size) / self.plane_size).astype(np.float32)
        self.indices = self._build_indices()
        self.normals = np.zeros_like(self.positions)
        self.normals[:, 1] = 1.0

        self.heights[~self.inside_disc] = self.outside_height

    # --- Layout ---
    @property
    def heights(self) -> np.ndarray:
        """A writable view of the y column of the position buffer."""
        return self.positions[:, 1]

    @property
    def planar_coords(self) -> np.ndarray:
        """(N, 2) array of the (x, z) of every sample."""
        return self._planar

    @property
    def planar_tree(self) -> cKDTree:
        """Spatial index over the (immutable) planar sample coordinates."""
        if self._planar_tree is None:
            self._planar_tree = cKDTree(self._planar)
        return self._planar_tree

    def __len__(self) -> int:
        "Length of the flattened xyz buffer, the unit snapshots are checked in."
        return self.positions.size

    def index_of(self, ix: int, iz: int) -> int:
        return iz * self.samples_per_side + ix

    def _build_indices(self) -> np.ndarray:
        """Two triangles per cell, in the same winding as a subdivided plane."""
        side = self.samples_per_side
        ix, iz = np.meshgrid(np.arange(self.resolution), np.arange(self.resolution))
        ix = ix.ravel()
        iz = iz.ravel()
        a = ix + side * iz
        b = ix + side * (iz + 1)
        c = (ix + 1) + side * (iz + 1)
        d = (ix + 1) + side * iz
        faces = np.column_stack((a, b, d, b, c, d))
        return faces.astype(np.uint32).ravel()

    # --- Filling ---
    def build(self, synthesizer) -> None:
        """
        Fills every in-disc sample from the synthesizer and writes the
        sentinel everywhere else.
        """
        inside = self.inside_disc
        heights = np.full(len(self._planar), self.outside_height, dtype=np.float64)
        heights[inside] = synthesizer.height_map(self._planar[inside, 0], self._planar[inside, 1], self.radius)
        self.heights[:] = heights
        self.compute_normals()
        self.logger.info(
            f"Terrain grid built: {self.samples_per_side}x{self.samples_per_side} samples, "
            f"{int(inside.sum())} inside the playable disc."
        )

    def restore(self, saved_vertices) -> bool:
        """
        Copies heights from a flattened xyz snapshot. The snapshot is only
        accepted when its length matches the position buffer exactly.

        Returns:
            bool: True if the snapshot was applied, False if it was rejected.
        """
        try:
            saved = np.asarray(saved_vertices, dtype=np.float32)
        except (TypeError, ValueError):
            self.logger.warning("Terrain snapshot is not numeric, ignoring it.")
            return False

        if saved.ndim != 1 or saved.size != self.positions.size:
            self.logger.warning(
                f"Terrain snapshot length {saved.size} does not match grid length "
                f"{self.positions.size}, ignoring it."
            )
            return False
        if not np.all(np.isfinite(saved)):
            self.logger.warning("Terrain snapshot contains non-finite values, ignoring it.")
            return False

        # Only y is load-bearing; x and z are fixed by the layout.
        self.heights[:] = saved.reshape(-1, 3)[:, 1]
        self.compute_normals()
        self.logger.info("Terrain grid restored from snapshot.")
        return True

    def export_samples(self) -> list:
        """Returns the flattened xyz buffer for persistence."""
        return self.positions.ravel().tolist()

    # --- Sampling ---
    def cell_index(self, coord: float) -> int:
        """Maps a world coordinate to a clamped grid index along one axis."""
        # Sample coordinates may land a hair below their own cell boundary.
        index = math.floor((coord + self.half_size) / self.cell_size + CELL_EDGE_TOLERANCE)
        return min(max(index, 0), self.resolution)

    def sample_height_at(self, x: float, z: float) -> float:
        """
        Returns the stored height of the grid sample containing (x, z).
        Nearest-sample lookup in O(1); no interpolation and no ray casting.
        """
        if not (math.isfinite(x) and math.isfinite(z)):
            return self.outside_height
        return float(self.heights[self.index_of(self.cell_index(x), self.cell_index(z))])

    # --- Rendering ---
    def compute_normals(self) -> None:
        """
        Recomputes area-weighted vertex normals. Must run after any batch of
        height edits and before the next draw.
        """
        faces = self.indices.reshape(-1, 3)
        v0 = self.positions[faces[:, 0]]
        v1 = self.positions[faces[:, 1]]
        v2 = self.positions[faces[:, 2]]
        # Unnormalized cross product: its length is twice the face area.
        face_normals = np.cross(v2 - v1, v0 - v1)

        normals = np.zeros_like(self.positions)
        for corner in range(3):
            np.add.at(normals, faces[:, corner], face_normals)

        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        lengths[lengths == 0] = 1.0
        self.normals = (normals / lengths).astype(np.float32)
