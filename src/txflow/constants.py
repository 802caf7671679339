"""
Layout, placement and viewport constants.

Values follow the browser viewer this project renders for:
- MAX_VISUAL_THICKNESS: stroke width of the largest value in the scene
- DEFAULT_SLOT_WIDTH: horizontal distance between consecutive roots
"""

from __future__ import annotations

# Stroke width mapped to the scene's global maximum value
MAX_VISUAL_THICKNESS = 80.0

# Control point fractions of the half-length (input side, mirrored for outputs)
CONTROL_POINT_NEAR = 0.5
CONTROL_POINT_FAR = 0.25

# Spent-output marker drawn just past an output's endpoint
SPEND_MARKER_GAP = 6.0
SPEND_MARKER_WIDTH = 12.0
SPEND_MARKER_HEIGHT = 12.0

# Spend tree placement (world units)
DEFAULT_SLOT_WIDTH = 500.0
DEFAULT_CHILD_OFFSET = 600.0
DEFAULT_CHILD_SPACING = 150.0

# Viewport
ZOOM_MIN = 0.1
ZOOM_MAX = 10.0
RECENTER_DURATION = 0.75  # seconds
DEFAULT_CANVAS_WIDTH = 1280
DEFAULT_CANVAS_HEIGHT = 800

# Slider-style configuration changes commit at most once per window
THROTTLE_WINDOW = 0.05  # seconds

# Stroke colours per drawable kind
COLOR_INPUT = "#0f0"
COLOR_OUTPUT = "#0ff"
COLOR_FEE = "#f55"
COLOR_SPEND_MARKER = "#fc0"
