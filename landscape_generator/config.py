# landscape_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the
landscape generator. These values are used if they are not explicitly
provided by the user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC SESSION.
Instead, pass a configuration dictionary to the class that needs it.
================================================================================
"""

# --- Session Seed ---
# None means a fresh random seed is rolled at session start. A restored
# snapshot's seed always takes precedence over this value.
DEFAULT_SEED = None
# Upper bound (exclusive) of a randomly rolled seed.
RANDOM_SEED_RANGE = 1000.0

# --- Noise Generation ---
TERRAIN_NOISE_SCALE = 0.05      # World units -> noise space for the base octave
TERRAIN_HEIGHT_SCALE = 8.0      # Amplitude of the base octave
TERRAIN_PLATEAU_HEIGHT = 2.0    # Height of the unattenuated dome at the centre

# Each octave is (frequency multiplier, amplitude multiplier, noise-space z).
# Distinct z values keep the octaves from sampling the same noise slice.
TERRAIN_OCTAVES = (
    (1.0, 1.0, 0.5),
    (2.5, 0.5, 1.0),
    (6.0, 0.15, 2.0),
)

# --- Terrain Grid ---
PLANE_SIZE = 60.0               # Side length of the square region, centred on the origin
GRID_RESOLUTION = 128           # Cells per side; the grid stores (res + 1)^2 samples
# Height written to samples outside the inscribed playable disc. It keeps
# them well below the visible surface.
OUTSIDE_DISC_HEIGHT = -100.0

# --- Sculpting ---
BRUSH_MIN_RADIUS = 1.0
BRUSH_MAX_RADIUS = 10.0
BRUSH_DEFAULT_RADIUS = 3.0
BRUSH_STRENGTH = 0.1            # Height change per tick at the brush centre
BRUSH_WHEEL_STEP = 0.5          # Radius change per wheel notch
SCULPT_MIN_HEIGHT = -5.0
SCULPT_MAX_HEIGHT = 15.0

# --- Vegetation ---
BLADE_COUNT = 200000            # Full placement (startup and full regeneration)
BLADE_COUNT_REDUCED = 100000    # Reduced placement (runtime regeneration)
BLADE_WIDTH = 0.25
BLADE_HEIGHT = 0.2
BLADE_HEIGHT_VARIATION = 0.9
BLADE_TIP_OFFSET = 0.1
BLADE_VERTEX_COUNT = 5
BLADE_INDEX_COUNT = 9

# No grass above this height (bare peaks). The threshold is jittered per
# candidate by +/- GRASS_THRESHOLD_JITTER to give a ragged treeline.
GRASS_HEIGHT_THRESHOLD = 3.5
GRASS_THRESHOLD_JITTER = 0.75
# No grass below this height (sculpted canyon floors).
GRASS_MIN_HEIGHT = -0.5

# Patchiness: accept with probability BASE + WEIGHT * noise(x*f, z*f, Z).
GRASS_DENSITY_BASE = 0.7
GRASS_DENSITY_NOISE_WEIGHT = 0.3
GRASS_DENSITY_NOISE_FREQUENCY = 0.15
GRASS_DENSITY_NOISE_Z = 5.0

# Attempts allowed per requested blade before a run gives up.
PLACEMENT_ATTEMPT_MULTIPLIER = 3

# Per-vertex colours of a blade. The grass shader reads them as the wind
# weight (root stays fixed, tip sways the most).
BLADE_COLOR_ROOT = (0.0, 0.0, 0.0)
BLADE_COLOR_MID = (0.5, 0.5, 0.5)
BLADE_COLOR_TIP = (1.0, 1.0, 1.0)

# --- Incremental Scheduling ---
PLACEMENT_CHUNK_SIZE = 5000     # Accepted blades per tick

# --- Persistence ---
SNAPSHOT_DIRECTORY = "saves"
SNAPSHOT_VERSION = 1
TERRAIN_SNAPSHOT_KEY = "terrain"
CAMERA_SNAPSHOT_KEY = "camera"
PERSIST_DEBOUNCE_SECONDS = 1.0

# --- Camera (host side) ---
EYE_HEIGHT = 1.5
CAMERA_START_POSITION = (0.0, 5.0, 0.0)

# --- Rendering Handoff ---
# Elapsed milliseconds are what the grass shader expects for its wind time.
WIND_TIME_SCALE = 1000.0
