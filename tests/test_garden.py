from datetime import date, timedelta

import pytest

from models.tree import GiftType, TreeCreate, TreeStatus
from utils.errors import ConcurrencyConflict, NotFoundError, ValidationError
import utils.garden as garden
from utils.garden import (
    decay_all_trees,
    decay_tree,
    get_earned_today,
    get_tree,
    list_trees,
    record_lesson,
    replant_tree,
    save_tree,
    send_gift,
    start_tree,
)
from utils.tree_health import apply_daily_decay

TODAY = date(2026, 6, 1)


def _plant(conn, skill_path_id="spanish-animals", today=TODAY):
    return start_tree(conn, "kid-1", TreeCreate(skill_path_id=skill_path_id, name="Animals"), today)


def test_start_tree(conn):
    tree = _plant(conn)
    assert tree.status == TreeStatus.SEED
    assert tree.health == 100
    assert tree.last_refresh_date == TODAY
    assert tree.version == 0
    with pytest.raises(ValidationError):
        _plant(conn)


def test_missing_tree(conn):
    with pytest.raises(NotFoundError):
        get_tree(conn, "kid-1", "nope")


def test_lesson_credits_sun_drops_up_to_daily_cap(conn):
    _plant(conn)
    tree = record_lesson(conn, "kid-1", "spanish-animals", 40, TODAY)
    assert tree.sun_drops_earned == 40
    assert tree.growth_stage == 2
    tree = record_lesson(conn, "kid-1", "spanish-animals", 30, TODAY)
    assert tree.sun_drops_earned == 50
    assert tree.lessons_completed == 2
    assert get_earned_today(conn, "kid-1", TODAY) == 50
    tree = record_lesson(conn, "kid-1", "spanish-animals", 30, TODAY + timedelta(days=1))
    assert tree.sun_drops_earned == 80


def test_concurrent_decay_is_applied_once(conn):
    _plant(conn, today=TODAY - timedelta(days=3))
    first_reader = get_tree(conn, "kid-1", "spanish-animals")
    second_reader = get_tree(conn, "kid-1", "spanish-animals")

    save_tree(conn, apply_daily_decay(first_reader, TODAY))
    conn.commit()
    with pytest.raises(ConcurrencyConflict):
        save_tree(conn, apply_daily_decay(second_reader, TODAY))
    conn.rollback()

    # The losing caller reloads and recomputes: nothing left to decay.
    tree = decay_tree(conn, "kid-1", "spanish-animals", TODAY)
    assert tree.health == 70
    assert tree.version == 1


def test_decay_all_trees(conn):
    _plant(conn, "spanish-animals", TODAY - timedelta(days=2))
    _plant(conn, "spanish-food", TODAY - timedelta(days=7))
    trees = decay_all_trees(conn, "kid-1", TODAY)
    assert [tree.health for tree in trees] == [80, 30]
    assert [tree.status for tree in list_trees(conn, "kid-1")] == [TreeStatus.SEED, TreeStatus.DYING]


def test_gift_and_replant(conn):
    _plant(conn, today=TODAY - timedelta(days=12))
    dead = decay_tree(conn, "kid-1", "spanish-animals", TODAY)
    assert dead.is_dead
    assert dead.died_on == TODAY

    ribbon = send_gift(conn, "kid-1", "spanish-animals", GiftType.RIBBON, TODAY)
    assert ribbon.version == dead.version

    revived = replant_tree(conn, "kid-1", "spanish-animals", TODAY + timedelta(days=1))
    assert revived.health == 50
    assert revived.status == TreeStatus.SEED

    watered = send_gift(conn, "kid-1", "spanish-animals", GiftType.WATER_DROP, TODAY + timedelta(days=1))
    assert watered.health == 70
    assert watered.buffer_days == 10
    with pytest.raises(ValidationError):
        replant_tree(conn, "kid-1", "spanish-animals", TODAY + timedelta(days=1))


def test_daily_cap_is_rechecked_when_earnings_change(conn, monkeypatch):
    _plant(conn, "spanish-animals")
    _plant(conn, "spanish-food")
    record_lesson(conn, "kid-1", "spanish-animals", 40, TODAY)

    seen = []
    read_earnings = garden.get_earned_today

    def earnings_with_parallel_lesson(connection, user_id, today):
        earned = read_earnings(connection, user_id, today)
        if not seen:
            # another lesson finishes between the read and the write
            connection.execute(
                "UPDATE daily_earnings SET earned = earned + 10 WHERE user_id = ? AND day = ?",
                (user_id, today.isoformat()),
            )
            connection.commit()
        seen.append(earned)
        return earned

    monkeypatch.setattr(garden, "get_earned_today", earnings_with_parallel_lesson)
    tree = record_lesson(conn, "kid-1", "spanish-food", 10, TODAY)

    assert seen == [40, 50]
    assert tree.sun_drops_earned == 0
    assert tree.lessons_completed == 1
    assert tree.version == 1
    assert read_earnings(conn, "kid-1", TODAY) == 50


def test_decay_all_trees_skips_tree_it_cannot_decay(conn):
    _plant(conn, "spanish-animals", TODAY)
    _plant(conn, "spanish-food", TODAY + timedelta(days=5))
    trees = decay_all_trees(conn, "kid-1", TODAY + timedelta(days=2))
    assert [tree.health for tree in trees] == [80, 100]
    assert [tree.version for tree in trees] == [1, 0]
    assert get_tree(conn, "kid-1", "spanish-food").last_refresh_date == TODAY + timedelta(days=5)
