"""
Value to stroke thickness mapping.
"""

from __future__ import annotations

from txflow.constants import MAX_VISUAL_THICKNESS


def scale(
    value: float,
    global_max_value: float,
    ratio: float = 1.0,
    min_thickness: float = 0.1,
    max_thickness: float = MAX_VISUAL_THICKNESS,
) -> float:
    """
    Map a value in sats to a stroke thickness.

    ``[0, global_max_value]`` maps linearly onto ``[0, max_thickness]``, the
    result is multiplied by ``ratio`` and clamped below at ``min_thickness``.

    Args:
        value: Amount in sats
        global_max_value: Largest value held in the scene (at least 1)
        ratio: Thickness ratio multiplier
        min_thickness: Lower clamp so tiny values stay visible
        max_thickness: Thickness of ``global_max_value`` at ratio 1

    Returns:
        Stroke thickness in world units
    """
    if global_max_value <= 0:
        global_max_value = 1
    return max(min_thickness, value / global_max_value * max_thickness * ratio)
