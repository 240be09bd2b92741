"""Sun drop earnings, lesson stars and the daily earning cap."""
import math
from typing import Optional

from models.tree import GiftType

from .errors import ValidationError

DAILY_CAP = 50
WRONG_ANSWER_PENALTY = 1


def calculate_earned(base_value: int, is_retry: bool, used_help: bool, wrong_attempts: int) -> int:
    """Net sun drops for one activity.

    Retries and helped answers earn half the base value (rounded up); each
    wrong attempt costs one drop; an activity never earns less than zero.
    """
    if base_value < 0 or wrong_attempts < 0:
        raise ValidationError("base_value and wrong_attempts must be non-negative")
    earned = math.ceil(base_value / 2) if (is_retry or used_help) else base_value
    return max(0, earned - wrong_attempts * WRONG_ANSWER_PENALTY)


def calculate_stars(earned: int, maximum: int) -> int:
    if maximum <= 0:
        return 1
    percentage = earned / maximum
    if percentage >= 0.9:
        return 3
    if percentage >= 0.6:
        return 2
    return 1


def is_daily_cap_reached(earned_today: int, cap: int = DAILY_CAP) -> bool:
    return earned_today >= cap


def remaining_daily_allowance(earned_today: int, cap: int = DAILY_CAP) -> int:
    return max(0, cap - earned_today)


def cap_reward(amount: int, earned_today: int, cap: int = DAILY_CAP) -> int:
    """Trim ``amount`` so the day's total does not exceed the cap."""
    if amount < 0:
        raise ValidationError(f"amount must be non-negative, got {amount}")
    return min(amount, remaining_daily_allowance(earned_today, cap))


def check_gift_unlock(
    stars: int,
    sun_drops_earned: int,
    sun_drops_max: int,
    path_complete: bool = False,
) -> Optional[GiftType]:
    """Gift a finished lesson unlocks, best first.

    A flawless three-star lesson earns a golden flower and finishing the skill
    path earns a seed to share. Water drops only come from friends.
    """
    if stars == 3 and sun_drops_earned == sun_drops_max:
        return GiftType.GOLDEN_FLOWER
    if path_complete:
        return GiftType.SEED
    return None
