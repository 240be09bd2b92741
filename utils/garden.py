"""Loading, updating and saving learners' trees."""
from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Callable, List, Optional

from db.database import update_versioned
from models.tree import GiftType, GridPosition, TreeCreate, TreeStatus, UserTreeState
from utils.dates import parse_date
from utils.errors import ConcurrencyConflict, NotFoundError, ValidationError
from utils.progress import with_retry
from utils.sun_drops import DAILY_CAP, cap_reward
from utils.tree_health import (
    DEFAULT_TREE_RULES,
    apply_daily_decay,
    apply_gift,
    complete_lesson,
    new_tree,
    revive_tree,
)

logger = logging.getLogger(__name__)

TREE_COLUMNS = (
    "name",
    "status",
    "health",
    "sun_drops_earned",
    "last_refresh_date",
    "buffer_days",
    "lessons_completed",
    "died_on",
)


def _row_to_tree(row: sqlite3.Row) -> UserTreeState:
    data = dict(row)
    data["position"] = GridPosition(x=data.pop("position_x"), y=data.pop("position_y"))
    data["last_refresh_date"] = parse_date(data["last_refresh_date"])
    data["died_on"] = parse_date(data["died_on"])
    data.pop("updated_at", None)
    return UserTreeState.model_validate(data)


def get_tree(conn: sqlite3.Connection, user_id: str, skill_path_id: str) -> UserTreeState:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT * FROM user_trees WHERE user_id = ? AND skill_path_id = ?",
        (user_id, skill_path_id),
    )
    row = cursor.fetchone()
    if not row:
        raise NotFoundError(f"Tree {skill_path_id} not found for user {user_id}")
    return _row_to_tree(row)


def list_trees(conn: sqlite3.Connection, user_id: str) -> List[UserTreeState]:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT * FROM user_trees WHERE user_id = ? ORDER BY skill_path_id",
        (user_id,),
    )
    return [_row_to_tree(row) for row in cursor.fetchall()]


def start_tree(
    conn: sqlite3.Connection,
    user_id: str,
    payload: TreeCreate,
    today: Optional[date] = None,
) -> UserTreeState:
    """Plant a seed for a skill path the learner has just started."""
    tree = new_tree(user_id, payload.skill_path_id, today, payload.name)
    cursor = conn.cursor()
    cursor.execute(
        "SELECT 1 FROM user_trees WHERE user_id = ? AND skill_path_id = ?",
        (user_id, payload.skill_path_id),
    )
    if cursor.fetchone():
        raise ValidationError(f"User {user_id} already has a tree for {payload.skill_path_id}")
    cursor.execute(
        """
        INSERT INTO user_trees (
            user_id, skill_path_id, name, status, health, sun_drops_earned,
            last_refresh_date, position_x, position_y
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            tree.skill_path_id,
            tree.name,
            tree.status.value,
            tree.health,
            tree.sun_drops_earned,
            tree.last_refresh_date.isoformat(),
            payload.position.x,
            payload.position.y,
        ),
    )
    conn.commit()
    return get_tree(conn, user_id, payload.skill_path_id)


def save_tree(conn: sqlite3.Connection, tree: UserTreeState) -> UserTreeState:
    values = {}
    for column in TREE_COLUMNS:
        value = getattr(tree, column)
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, TreeStatus):
            value = value.value
        values[column] = value
    new_version = update_versioned(
        conn,
        "user_trees",
        {"user_id": tree.user_id, "skill_path_id": tree.skill_path_id},
        values,
        tree.version,
    )
    return tree.model_copy(update={"version": new_version})


def _update_tree(
    conn: sqlite3.Connection,
    user_id: str,
    skill_path_id: str,
    compute: Callable[[UserTreeState], UserTreeState],
    config: dict,
) -> UserTreeState:
    def attempt() -> UserTreeState:
        tree = get_tree(conn, user_id, skill_path_id)
        updated = compute(tree)
        if updated is tree:
            return tree
        try:
            saved = save_tree(conn, updated)
            conn.commit()
        except ConcurrencyConflict:
            conn.rollback()
            raise
        return saved

    return with_retry(attempt, config.get("store", {}).get("max_retries", 3))


def get_earned_today(conn: sqlite3.Connection, user_id: str, today: date) -> int:
    cursor = conn.cursor()
    cursor.execute(
        "SELECT earned FROM daily_earnings WHERE user_id = ? AND day = ?",
        (user_id, today.isoformat()),
    )
    row = cursor.fetchone()
    return int(row["earned"]) if row else 0


def _add_earned_today(
    conn: sqlite3.Connection,
    user_id: str,
    today: date,
    amount: int,
    expected: int,
) -> None:
    """Add to the day's earnings if they are still ``expected``."""
    cursor = conn.execute(
        "UPDATE daily_earnings SET earned = earned + ? WHERE user_id = ? AND day = ? AND earned = ?",
        (amount, user_id, today.isoformat(), expected),
    )
    if cursor.rowcount == 1:
        return
    if expected == 0:
        cursor = conn.execute(
            "INSERT OR IGNORE INTO daily_earnings (user_id, day, earned) VALUES (?, ?, ?)",
            (user_id, today.isoformat(), amount),
        )
        if cursor.rowcount == 1:
            return
    raise ConcurrencyConflict(f"Earnings of user {user_id} on {today} changed since {expected}")


def record_lesson(
    conn: sqlite3.Connection,
    user_id: str,
    skill_path_id: str,
    sun_drops: int,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> UserTreeState:
    """Credit a completed lesson's sun drops (within the daily cap) and water the tree.

    The cap check, the tree and the day's earnings are written in one
    transaction, retried as a whole when either changed underneath.
    """
    config = config or {}
    today = today or date.today()
    tree_rules = config.get("tree") or DEFAULT_TREE_RULES
    cap = config.get("sun_drops", {}).get("daily_cap", DAILY_CAP)

    def attempt() -> UserTreeState:
        tree = get_tree(conn, user_id, skill_path_id)
        earned_today = get_earned_today(conn, user_id, today)
        credited = cap_reward(sun_drops, earned_today, cap)
        updated = complete_lesson(tree, credited, today, tree_rules)
        try:
            saved = save_tree(conn, updated)
            if credited:
                _add_earned_today(conn, user_id, today, credited, earned_today)
            conn.commit()
        except ConcurrencyConflict:
            conn.rollback()
            raise
        if credited < sun_drops:
            logger.info("Daily cap reached for user %s: %s of %s sun drops credited", user_id, credited, sun_drops)
        return saved

    return with_retry(attempt, config.get("store", {}).get("max_retries", 3))


def send_gift(
    conn: sqlite3.Connection,
    user_id: str,
    skill_path_id: str,
    gift_type: GiftType,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> UserTreeState:
    config = config or {}
    tree_rules = config.get("tree") or DEFAULT_TREE_RULES
    return _update_tree(
        conn,
        user_id,
        skill_path_id,
        lambda state: apply_gift(state, gift_type, tree_rules, today),
        config,
    )


def replant_tree(
    conn: sqlite3.Connection,
    user_id: str,
    skill_path_id: str,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> UserTreeState:
    config = config or {}
    tree_rules = config.get("tree") or DEFAULT_TREE_RULES
    return _update_tree(
        conn,
        user_id,
        skill_path_id,
        lambda state: revive_tree(state, today, tree_rules),
        config,
    )


def decay_tree(
    conn: sqlite3.Connection,
    user_id: str,
    skill_path_id: str,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> UserTreeState:
    """Apply the daily decay tick to one tree, guarded by its version."""
    config = config or {}
    tree_rules = config.get("tree") or DEFAULT_TREE_RULES
    return _update_tree(
        conn,
        user_id,
        skill_path_id,
        lambda state: apply_daily_decay(state, today, tree_rules),
        config,
    )


def decay_all_trees(
    conn: sqlite3.Connection,
    user_id: str,
    today: Optional[date] = None,
    config: Optional[dict] = None,
) -> List[UserTreeState]:
    """Bring every tree of a user up to date; run once when the app opens.

    A tree that cannot be decayed is logged and returned as it is stored.
    """
    trees = []
    for tree in list_trees(conn, user_id):
        try:
            trees.append(decay_tree(conn, user_id, tree.skill_path_id, today, config))
        except (ValidationError, ConcurrencyConflict) as exc:
            logger.warning("Skipped decaying tree %s of user %s: %s", tree.skill_path_id, user_id, exc)
            trees.append(get_tree(conn, user_id, tree.skill_path_id))
    return trees
