"""Health, decay and revival of learning trees.

Health drops by a fixed amount for every full day without practice. Gift
buffer days are spent before any health is lost. A tree at 0 health is dead:
its growth is frozen until a gift or a replant brings health back, and after
``revive_grace_days`` it can no longer be replanted.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

from models.tree import GiftType, TreeStatus, UserTreeState

from .dates import days_between
from .errors import ValidationError
from .growth import MAX_GROWTH_STAGE, calculate_growth_stage

logger = logging.getLogger(__name__)

MIN_HEALTH = 0
MAX_HEALTH = 100

DEFAULT_TREE_RULES = {
    "decay_per_day": 10,
    "dying_threshold": 40,
    "healthy_threshold": 80,
    "needs_refresh_threshold": 50,
    "lesson_health_restore": 100,
    "revive_health": 50,
    "revive_grace_days": 30,
}

GIFT_BUFFER_DAYS = {
    GiftType.WATER_DROP: 10,
    GiftType.SPARKLE: 5,
    GiftType.SEED: 0,
    GiftType.RIBBON: 0,
    GiftType.GOLDEN_FLOWER: 15,
}

GIFT_HEALTH_BOOST = {
    GiftType.WATER_DROP: 20,
    GiftType.SPARKLE: 5,
    GiftType.SEED: 0,
    GiftType.RIBBON: 0,
    GiftType.GOLDEN_FLOWER: 30,
}


def clamp_health(value: int) -> int:
    clamped = max(MIN_HEALTH, min(MAX_HEALTH, value))
    if clamped != value:
        logger.debug("Clamped tree health %s to %s", value, clamped)
    return clamped


def tree_status(health: int, growth_stage: int, rules: Optional[dict] = None) -> TreeStatus:
    rules = rules or DEFAULT_TREE_RULES
    if health <= MIN_HEALTH:
        return TreeStatus.DEAD
    if health <= rules["dying_threshold"]:
        return TreeStatus.DYING
    if growth_stage == 0:
        return TreeStatus.SEED
    if growth_stage >= MAX_GROWTH_STAGE:
        return TreeStatus.BLOOMED
    return TreeStatus.GROWING


def health_category(health: int, rules: Optional[dict] = None) -> str:
    """Colour band for display: healthy, thirsty, dying or dead."""
    rules = rules or DEFAULT_TREE_RULES
    if health <= MIN_HEALTH:
        return "dead"
    if health <= rules["dying_threshold"]:
        return "dying"
    if health < rules["healthy_threshold"]:
        return "thirsty"
    return "healthy"


def new_tree(
    user_id: str,
    skill_path_id: str,
    today: Optional[date] = None,
    name: str = "",
) -> UserTreeState:
    return UserTreeState(
        user_id=user_id,
        skill_path_id=skill_path_id,
        name=name,
        status=TreeStatus.SEED,
        health=MAX_HEALTH,
        sun_drops_earned=0,
        last_refresh_date=today or date.today(),
    )


def days_since_refresh(state: UserTreeState, today: Optional[date] = None) -> int:
    return days_between(state.last_refresh_date, today or date.today())


def _with_health(state: UserTreeState, health: int, sun_drops_earned: int, today: Optional[date], rules: dict, **extra) -> UserTreeState:
    status = tree_status(health, calculate_growth_stage(sun_drops_earned), rules)
    died_on = state.died_on
    if status == TreeStatus.DEAD and state.status != TreeStatus.DEAD:
        died_on = today or date.today()
        logger.info("Tree %s of user %s died", state.skill_path_id, state.user_id)
    elif status != TreeStatus.DEAD:
        if state.status == TreeStatus.DEAD:
            logger.info("Tree %s of user %s was revived", state.skill_path_id, state.user_id)
        died_on = None
    update = {
        "health": health,
        "sun_drops_earned": sun_drops_earned,
        "status": status,
        "died_on": died_on,
    }
    update.update(extra)
    return state.model_copy(update=update)


def apply_reward(
    state: UserTreeState,
    sun_drops_delta: int,
    health_delta: int = 0,
    rules: Optional[dict] = None,
    today: Optional[date] = None,
) -> UserTreeState:
    """Credit sun drops and add health, whatever their source (lesson or gift).

    A tree that is dead and stays dead does not grow: its sun drops are not
    credited. A positive ``health_delta`` revives it before crediting.
    A tree that has withered past the grace window accepts no reward at all.
    """
    rules = rules or DEFAULT_TREE_RULES
    if sun_drops_delta < 0:
        raise ValidationError(f"sun_drops_delta must be non-negative, got {sun_drops_delta}")
    if health_delta < 0:
        raise ValidationError(f"health_delta must be non-negative, got {health_delta}")
    if is_withered(state, today, rules):
        raise ValidationError(f"Tree {state.skill_path_id} has withered; start a new one")

    health = clamp_health(state.health + health_delta)
    sun_drops = state.sun_drops_earned
    if health > MIN_HEALTH:
        sun_drops += sun_drops_delta
    elif sun_drops_delta:
        logger.info(
            "Tree %s of user %s is dead; %s sun drops not credited",
            state.skill_path_id, state.user_id, sun_drops_delta,
        )
    return _with_health(state, health, sun_drops, today, rules)


def apply_daily_decay(
    state: UserTreeState,
    today: Optional[date] = None,
    rules: Optional[dict] = None,
) -> UserTreeState:
    """Subtract health for each full day since the last refresh.

    Applying the decay again on the same day is a no-op because
    ``last_refresh_date`` moves to ``today``.
    """
    rules = rules or DEFAULT_TREE_RULES
    today = today or date.today()
    days = days_since_refresh(state, today)
    if days < 0:
        raise ValidationError(
            f"today ({today}) is before last_refresh_date ({state.last_refresh_date})"
        )
    if days == 0:
        return state

    buffered = min(state.buffer_days, days)
    decay_days = days - buffered
    health = clamp_health(state.health - decay_days * rules["decay_per_day"])
    return _with_health(
        state,
        health,
        state.sun_drops_earned,
        today,
        rules,
        buffer_days=state.buffer_days - buffered,
        last_refresh_date=today,
    )


def complete_lesson(
    state: UserTreeState,
    sun_drops: int,
    today: Optional[date] = None,
    rules: Optional[dict] = None,
) -> UserTreeState:
    """Credit a finished lesson and water the tree."""
    rules = rules or DEFAULT_TREE_RULES
    today = today or date.today()
    if days_since_refresh(state, today) < 0:
        raise ValidationError(
            f"today ({today}) is before last_refresh_date ({state.last_refresh_date})"
        )
    restore = max(0, rules["lesson_health_restore"])
    rewarded = apply_reward(state, sun_drops, restore, rules, today)
    return rewarded.model_copy(update={
        "last_refresh_date": today,
        "lessons_completed": state.lessons_completed + 1,
    })


def apply_gift(
    state: UserTreeState,
    gift_type: GiftType,
    rules: Optional[dict] = None,
    today: Optional[date] = None,
) -> UserTreeState:
    gift_type = GiftType(gift_type)
    buffer_days = GIFT_BUFFER_DAYS.get(gift_type, 0)
    boost = GIFT_HEALTH_BOOST.get(gift_type, 0)
    if not buffer_days and not boost:
        logger.debug("Gift %s has no effect on tree health", gift_type.value)
        return state
    rewarded = apply_reward(state, 0, boost, rules, today)
    return rewarded.model_copy(update={"buffer_days": state.buffer_days + buffer_days})


def is_withered(state: UserTreeState, today: Optional[date] = None, rules: Optional[dict] = None) -> bool:
    """A dead tree past the grace window can no longer be replanted."""
    rules = rules or DEFAULT_TREE_RULES
    if state.status != TreeStatus.DEAD or state.died_on is None:
        return False
    return days_between(state.died_on, today or date.today()) > rules["revive_grace_days"]


def revive_tree(
    state: UserTreeState,
    today: Optional[date] = None,
    rules: Optional[dict] = None,
) -> UserTreeState:
    rules = rules or DEFAULT_TREE_RULES
    today = today or date.today()
    if state.status != TreeStatus.DEAD:
        raise ValidationError(f"Tree {state.skill_path_id} is not dead")
    if is_withered(state, today, rules):
        raise ValidationError(f"Tree {state.skill_path_id} has withered; start a new one")
    health = clamp_health(rules["revive_health"])
    return _with_health(
        state, health, state.sun_drops_earned, today, rules, last_refresh_date=today,
    )


def current_health(state: UserTreeState, today: Optional[date] = None, rules: Optional[dict] = None) -> int:
    """Health the tree would have after today's decay tick, without saving it."""
    if days_since_refresh(state, today) <= 0:
        return state.health
    return apply_daily_decay(state, today, rules).health


def trees_needing_refresh(
    trees: Iterable[UserTreeState],
    today: Optional[date] = None,
    rules: Optional[dict] = None,
) -> List[UserTreeState]:
    """Trees below the refresh threshold: the ones a lesson should water next."""
    rules = rules or DEFAULT_TREE_RULES
    return [tree for tree in trees if current_health(tree, today, rules) < rules["needs_refresh_threshold"]]


def dying_trees(
    trees: Iterable[UserTreeState],
    today: Optional[date] = None,
    rules: Optional[dict] = None,
) -> List[UserTreeState]:
    rules = rules or DEFAULT_TREE_RULES
    return [tree for tree in trees if current_health(tree, today, rules) <= rules["dying_threshold"]]
