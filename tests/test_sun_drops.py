import pytest

from models.tree import GiftType
from utils.errors import ValidationError
from utils.sun_drops import (
    calculate_earned,
    calculate_stars,
    cap_reward,
    check_gift_unlock,
    is_daily_cap_reached,
    remaining_daily_allowance,
)


def test_calculate_earned():
    assert calculate_earned(3, False, False, 0) == 3
    assert calculate_earned(3, False, True, 0) == 2
    assert calculate_earned(3, True, False, 2) == 0
    assert calculate_earned(4, False, False, 1) == 3


def test_calculate_earned_rejects_negative_input():
    with pytest.raises(ValidationError):
        calculate_earned(-1, False, False, 0)


def test_calculate_stars():
    assert calculate_stars(18, 20) == 3
    assert calculate_stars(12, 20) == 2
    assert calculate_stars(10, 20) == 1
    assert calculate_stars(0, 0) == 1


def test_daily_cap():
    assert not is_daily_cap_reached(49)
    assert is_daily_cap_reached(50)
    assert remaining_daily_allowance(30) == 20
    assert remaining_daily_allowance(60) == 0
    assert cap_reward(15, 40) == 10
    assert cap_reward(15, 0) == 15


def test_check_gift_unlock():
    assert check_gift_unlock(3, 22, 22) == GiftType.GOLDEN_FLOWER
    assert check_gift_unlock(3, 22, 22, path_complete=True) == GiftType.GOLDEN_FLOWER
    assert check_gift_unlock(2, 20, 24, path_complete=True) == GiftType.SEED
    assert check_gift_unlock(3, 21, 22) is None
    assert check_gift_unlock(2, 20, 24) is None
