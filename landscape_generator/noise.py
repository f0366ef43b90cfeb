# landscape_generator/noise.py

"""
================================================================================
NOISE GENERATION UTILITIES
================================================================================
This module provides 3D improved Perlin noise. It is designed to be a pure,
stateless utility: the only data it reads is a permutation table that the
caller owns and never mutates.

Data Contract:
---------------
- Inputs:
    - p: A doubled (length 512) permutation table (int array).
    - x, y, z: Scalars or NumPy arrays of coordinates in noise space.
- Outputs:
    - Noise values, roughly in the range [-1, 1].
- Side Effects: None.
- Invariants: Identical inputs always give identical outputs. The function
  is continuous and evaluates to exactly 0 on integer lattice points.
================================================================================
"""

import numpy as np
from numba import njit

# Ken Perlin's reference permutation. Used when no seed is given so the
# noise matches the classic improved-noise implementation value for value.
_REFERENCE_PERMUTATION = np.array([
    151, 160, 137, 91, 90, 15, 131, 13, 201, 95, 96, 53, 194, 233, 7, 225,
    140, 36, 103, 30, 69, 142, 8, 99, 37, 240, 21, 10, 23, 190, 6, 148,
    247, 120, 234, 75, 0, 26, 197, 62, 94, 252, 219, 203, 117, 35, 11, 32,
    57, 177, 33, 88, 237, 149, 56, 87, 174, 20, 125, 136, 171, 168, 68, 175,
    74, 165, 71, 134, 139, 48, 27, 166, 77, 146, 158, 231, 83, 111, 229, 122,
    60, 211, 133, 230, 220, 105, 92, 41, 55, 46, 245, 40, 244, 102, 143, 54,
    65, 25, 63, 161, 1, 216, 80, 73, 209, 76, 132, 187, 208, 89, 18, 169,
    200, 196, 135, 130, 116, 188, 159, 86, 164, 100, 109, 198, 173, 186, 3, 64,
    52, 217, 226, 250, 124, 123, 5, 202, 38, 147, 118, 126, 255, 82, 85, 212,
    207, 206, 59, 227, 47, 16, 58, 17, 182, 189, 28, 42, 223, 183, 170, 213,
    119, 248, 152, 2, 44, 154, 163, 70, 221, 153, 101, 155, 167, 43, 172, 9,
    129, 22, 39, 253, 19, 98, 108, 110, 79, 113, 224, 232, 178, 185, 112, 104,
    218, 246, 97, 228, 251, 34, 242, 193, 238, 210, 144, 12, 191, 179, 162, 241,
    81, 51, 145, 235, 249, 14, 239, 107, 49, 192, 214, 31, 181, 199, 106, 157,
    184, 84, 204, 176, 115, 121, 50, 45, 127, 4, 150, 254, 138, 236, 205, 93,
    222, 114, 67, 29, 24, 72, 243, 141, 128, 195, 78, 66, 215, 61, 156, 180,
], dtype=np.int64)


def create_permutation_table(seed: int = None) -> np.ndarray:
    """
    Builds the doubled permutation table the noise kernels index into.

    Args:
        seed (int, optional): If None, the reference permutation is used.
            Otherwise the table is a deterministic shuffle of 0..255.
    """
    if seed is None:
        p = _REFERENCE_PERMUTATION.copy()
    else:
        p = np.arange(256, dtype=np.int64)
        rng = np.random.default_rng(seed)
        rng.shuffle(p)
    # Doubling the table removes the need for index wrapping.
    return np.concatenate([p, p])


@njit
def _lerp(a, b, x):
    "Linear interpolation."
    return a + x * (b - a)


@njit
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)


@njit
def _gradient(h, x, y, z):
    """Dot product between one of the 12 edge gradients and (x, y, z)."""
    h = h & 15
    u = x if h < 8 else y
    if h < 4:
        v = y
    elif h == 12 or h == 14:
        v = x
    else:
        v = z
    return (u if (h & 1) == 0 else -u) + (v if (h & 2) == 0 else -v)


@njit
def perlin_noise_3d(p, x, y, z):
    """
    Evaluates 3D improved Perlin noise at a single point.
    This function is JIT-compiled with Numba so it can be called per
    candidate from tight placement loops.
    """
    fx = np.floor(x)
    fy = np.floor(y)
    fz = np.floor(z)

    xi = int(fx) & 255
    yi = int(fy) & 255
    zi = int(fz) & 255

    xf = x - fx
    yf = y - fy
    zf = z - fz

    u = _fade(xf)
    v = _fade(yf)
    w = _fade(zf)

    a = p[xi] + yi
    aa = p[a] + zi
    ab = p[a + 1] + zi
    b = p[xi + 1] + yi
    ba = p[b] + zi
    bb = p[b + 1] + zi

    x1 = _lerp(_gradient(p[aa], xf, yf, zf), _gradient(p[ba], xf - 1, yf, zf), u)
    x2 = _lerp(_gradient(p[ab], xf, yf - 1, zf), _gradient(p[bb], xf - 1, yf - 1, zf), u)
    y1 = _lerp(x1, x2, v)

    x1 = _lerp(_gradient(p[aa + 1], xf, yf, zf - 1), _gradient(p[ba + 1], xf - 1, yf, zf - 1), u)
    x2 = _lerp(_gradient(p[ab + 1], xf, yf - 1, zf - 1), _gradient(p[bb + 1], xf - 1, yf - 1, zf - 1), u)
    y2 = _lerp(x1, x2, v)

    return _lerp(y1, y2, w)


@njit
def _perlin_noise_3d_flat(p, x, y, z):
    out = np.empty(x.size)
    for i in range(x.size):
        out[i] = perlin_noise_3d(p, x[i], y[i], z)
    return out


def perlin_noise_3d_array(p: np.ndarray, x: np.ndarray, y: np.ndarray, z: float) -> np.ndarray:
    """
    Evaluates 3D noise for every (x, y) pair at a fixed noise-space z.
    The shape of the output matches the shape of x.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"Coordinate arrays differ in shape: {x.shape} vs {y.shape}")
    flat = _perlin_noise_3d_flat(p, np.ascontiguousarray(x).ravel(), np.ascontiguousarray(y).ravel(), float(z))
    return flat.reshape(x.shape)
