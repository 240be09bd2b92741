from datetime import date, timedelta

import pytest

from models.tree import GiftType, TreeStatus, UserTreeState
from utils.errors import ValidationError
from utils.tree_health import (
    DEFAULT_TREE_RULES,
    apply_daily_decay,
    apply_gift,
    apply_reward,
    complete_lesson,
    dying_trees,
    health_category,
    is_withered,
    new_tree,
    revive_tree,
    tree_status,
    trees_needing_refresh,
)

TODAY = date(2026, 5, 20)


def _tree(**overrides):
    fields = {
        "user_id": "kid-1",
        "skill_path_id": "spanish-animals",
        "last_refresh_date": TODAY,
    }
    fields.update(overrides)
    return UserTreeState(**fields)


def test_new_tree_is_a_healthy_seed():
    tree = new_tree("kid-1", "spanish-animals", TODAY)
    assert tree.status == TreeStatus.SEED
    assert tree.health == 100
    assert tree.sun_drops_earned == 0
    assert tree.growth_stage == 0
    assert not tree.is_dead


def test_reward_grows_tree():
    tree = apply_reward(_tree(), 15)
    assert tree.sun_drops_earned == 15
    assert tree.growth_stage == 1
    assert tree.status == TreeStatus.GROWING


def test_reward_health_is_clamped():
    tree = apply_reward(_tree(health=90), 0, health_delta=500)
    assert tree.health == 100


def test_reward_rejects_negative_deltas():
    with pytest.raises(ValidationError):
        apply_reward(_tree(), -5)
    with pytest.raises(ValidationError):
        apply_reward(_tree(), 5, health_delta=-1)


def test_fully_grown_tree_blooms():
    assert apply_reward(_tree(), 900).status == TreeStatus.BLOOMED


def test_dying_tree_dies_after_three_days():
    tree = _tree(health=20, status=TreeStatus.DYING, last_refresh_date=TODAY - timedelta(days=3))
    decayed = apply_daily_decay(tree, TODAY, {**DEFAULT_TREE_RULES, "decay_per_day": 10})
    assert decayed.health == 0
    assert decayed.status == TreeStatus.DEAD
    assert decayed.is_dead
    assert decayed.died_on == TODAY
    assert decayed.last_refresh_date == TODAY


def test_decay_is_idempotent_for_the_same_day():
    tree = _tree(health=100, last_refresh_date=TODAY - timedelta(days=2))
    once = apply_daily_decay(tree, TODAY)
    twice = apply_daily_decay(once, TODAY)
    assert once.health == 80
    assert twice == once


def test_decay_never_goes_below_zero():
    tree = _tree(health=100, last_refresh_date=TODAY - timedelta(days=400))
    assert apply_daily_decay(tree, TODAY).health == 0


def test_decay_rejects_dates_before_last_refresh():
    with pytest.raises(ValidationError):
        apply_daily_decay(_tree(), TODAY - timedelta(days=1))


def test_dead_tree_decay_only_moves_refresh_date():
    died_on = TODAY - timedelta(days=5)
    tree = _tree(health=0, status=TreeStatus.DEAD, died_on=died_on, last_refresh_date=died_on)
    decayed = apply_daily_decay(tree, TODAY)
    assert decayed.health == 0
    assert decayed.died_on == died_on
    assert decayed.last_refresh_date == TODAY


def test_dead_tree_growth_is_frozen():
    tree = _tree(health=0, status=TreeStatus.DEAD, sun_drops_earned=20, died_on=TODAY)
    rewarded = apply_reward(tree, 30, today=TODAY)
    assert rewarded.sun_drops_earned == 20
    assert rewarded.growth_stage == 1
    assert rewarded.is_dead


def test_health_reward_revives_dead_tree_before_crediting():
    tree = _tree(health=0, status=TreeStatus.DEAD, sun_drops_earned=20, died_on=TODAY)
    rewarded = apply_reward(tree, 30, health_delta=60, today=TODAY)
    assert rewarded.health == 60
    assert rewarded.sun_drops_earned == 50
    assert rewarded.status == TreeStatus.GROWING
    assert rewarded.died_on is None


def test_gift_buffer_absorbs_decay_days():
    tree = apply_gift(_tree(), GiftType.WATER_DROP)
    assert tree.buffer_days == 10
    assert tree.health == 100
    decayed = apply_daily_decay(tree, TODAY + timedelta(days=12))
    assert decayed.buffer_days == 0
    assert decayed.health == 80


def test_decorative_gift_changes_nothing():
    tree = _tree()
    assert apply_gift(tree, GiftType.RIBBON) is tree


def test_complete_lesson_waters_tree():
    tree = _tree(health=30, status=TreeStatus.DYING, last_refresh_date=TODAY - timedelta(days=7))
    watered = complete_lesson(tree, 12, TODAY)
    assert watered.health == 100
    assert watered.sun_drops_earned == 12
    assert watered.last_refresh_date == TODAY
    assert watered.lessons_completed == 1
    assert watered.status == TreeStatus.GROWING


def test_revive_within_grace_window():
    tree = _tree(health=0, status=TreeStatus.DEAD, died_on=TODAY - timedelta(days=10))
    revived = revive_tree(tree, TODAY)
    assert revived.health == 50
    assert revived.status == TreeStatus.SEED
    assert revived.died_on is None
    assert revived.last_refresh_date == TODAY


def test_withered_tree_cannot_be_revived():
    tree = _tree(health=0, status=TreeStatus.DEAD, died_on=TODAY - timedelta(days=31))
    assert is_withered(tree, TODAY)
    with pytest.raises(ValidationError):
        revive_tree(tree, TODAY)


def test_withered_tree_ignores_gifts_and_lessons():
    tree = _tree(health=0, status=TreeStatus.DEAD, sun_drops_earned=20, died_on=TODAY - timedelta(days=60))
    with pytest.raises(ValidationError):
        apply_gift(tree, GiftType.WATER_DROP, today=TODAY)
    with pytest.raises(ValidationError):
        complete_lesson(tree, 20, TODAY)
    assert tree.is_dead
    assert tree.sun_drops_earned == 20


def test_lesson_revives_tree_within_grace_window():
    tree = _tree(health=0, status=TreeStatus.DEAD, died_on=TODAY - timedelta(days=30), last_refresh_date=TODAY - timedelta(days=30))
    watered = complete_lesson(tree, 20, TODAY)
    assert watered.health == 100
    assert not watered.is_dead


def test_living_tree_cannot_be_revived():
    with pytest.raises(ValidationError):
        revive_tree(_tree(), TODAY)


def test_tree_status_thresholds():
    assert tree_status(0, 5) == TreeStatus.DEAD
    assert tree_status(40, 5) == TreeStatus.DYING
    assert tree_status(41, 0) == TreeStatus.SEED
    assert tree_status(41, 5) == TreeStatus.GROWING
    assert tree_status(100, 14) == TreeStatus.BLOOMED


def test_health_category():
    assert health_category(100) == "healthy"
    assert health_category(79) == "thirsty"
    assert health_category(40) == "dying"
    assert health_category(0) == "dead"


def test_health_stays_in_bounds_for_any_sequence():
    tree = _tree()
    day = TODAY
    for step in range(30):
        day += timedelta(days=step % 4)
        tree = apply_daily_decay(tree, day)
        if step % 3 == 0:
            tree = apply_reward(tree, step, health_delta=step * 7, today=day)
        assert 0 <= tree.health <= 100


def test_trees_needing_refresh_and_dying_trees():
    fresh = _tree(skill_path_id="spanish-animals")
    thirsty = _tree(skill_path_id="spanish-food", health=65, last_refresh_date=TODAY - timedelta(days=2))
    wilting = _tree(skill_path_id="spanish-colors", health=30, status=TreeStatus.DYING)
    trees = [fresh, thirsty, wilting]

    assert [tree.skill_path_id for tree in trees_needing_refresh(trees, TODAY)] == ["spanish-food", "spanish-colors"]
    assert [tree.skill_path_id for tree in dying_trees(trees, TODAY)] == ["spanish-colors"]
    assert [tree.skill_path_id for tree in dying_trees(trees, TODAY + timedelta(days=1))] == [
        "spanish-food",
        "spanish-colors",
    ]
    assert thirsty.health == 65
