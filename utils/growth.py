"""Growth stages of a learning tree.

A tree's stage is derived from the cumulative sun drops earned on its skill
path and is never stored, so it cannot drift from ``sun_drops_earned``.
"""
from bisect import bisect_right

from .errors import ValidationError

# Cumulative sun drops needed for stages 0 (seed) .. 14 (fully grown).
GROWTH_THRESHOLDS = (0, 10, 25, 45, 70, 100, 140, 190, 250, 320, 400, 500, 620, 750, 900)
MAX_GROWTH_STAGE = len(GROWTH_THRESHOLDS) - 1


def calculate_growth_stage(sun_drops_earned: int) -> int:
    """Return the highest stage whose threshold ``sun_drops_earned`` has reached."""
    if sun_drops_earned < 0:
        raise ValidationError(f"sun_drops_earned must be non-negative, got {sun_drops_earned}")
    return max(0, bisect_right(GROWTH_THRESHOLDS, sun_drops_earned) - 1)


def get_growth_stage_label(stage: int) -> str:
    if stage == 0:
        return "Seed"
    if stage <= 2:
        return "Sapling"
    if stage <= 5:
        return "Young Tree"
    if stage <= 9:
        return "Mature Tree"
    if stage <= 12:
        return "Grand Tree"
    return "Ancient Tree"


def sun_drops_to_next_stage(stage: int) -> int:
    """Width of the band between ``stage`` and the next one (0 at the top stage)."""
    if stage >= MAX_GROWTH_STAGE:
        return 0
    return GROWTH_THRESHOLDS[stage + 1] - GROWTH_THRESHOLDS[stage]


def sun_drops_remaining(sun_drops_earned: int) -> int:
    """Sun drops still missing before the tree reaches its next stage."""
    stage = calculate_growth_stage(sun_drops_earned)
    if stage >= MAX_GROWTH_STAGE:
        return 0
    return GROWTH_THRESHOLDS[stage + 1] - sun_drops_earned
