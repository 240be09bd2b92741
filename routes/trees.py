from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from config import load_config
from db.database import get_db
from models.tree import GiftCreate, LessonReward, TreeCreate, UserTreeState
from utils.garden import (
    decay_all_trees,
    get_tree,
    list_trees,
    record_lesson,
    replant_tree,
    send_gift,
    start_tree,
)
from utils.tree_health import dying_trees, trees_needing_refresh

router = APIRouter()

@router.get("/{user_id}", response_model=List[UserTreeState])
async def user_trees(
    user_id: str,
    attention: Optional[str] = Query(default=None, pattern="^(refresh|dying)$"),
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    """All of a learner's trees, or only those that need a lesson (``refresh``) or are ``dying``."""
    trees = list_trees(conn, user_id)
    if attention is None:
        return trees
    tree_rules = load_config()["tree"]
    if attention == "dying":
        return dying_trees(trees, today, tree_rules)
    return trees_needing_refresh(trees, today, tree_rules)

@router.post("/{user_id}", response_model=UserTreeState, status_code=status.HTTP_201_CREATED)
async def plant_tree(
    user_id: str,
    payload: TreeCreate,
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    """Plant a seed for a newly started skill path."""
    return start_tree(conn, user_id, payload, today)

@router.post("/{user_id}/decay", response_model=List[UserTreeState])
async def decay_trees(user_id: str, today: Optional[date] = Query(default=None), conn = Depends(get_db)):
    """Daily tick: bring every tree's health up to date."""
    return decay_all_trees(conn, user_id, today, load_config())

@router.get("/{user_id}/{skill_path_id}", response_model=UserTreeState)
async def read_tree(user_id: str, skill_path_id: str, conn = Depends(get_db)):
    return get_tree(conn, user_id, skill_path_id)

@router.post("/{user_id}/{skill_path_id}/lesson", response_model=UserTreeState)
async def lesson_completed(
    user_id: str,
    skill_path_id: str,
    payload: LessonReward,
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    return record_lesson(conn, user_id, skill_path_id, payload.sun_drops, today, load_config())

@router.post("/{user_id}/{skill_path_id}/gift", response_model=UserTreeState)
async def gift_received(
    user_id: str,
    skill_path_id: str,
    payload: GiftCreate,
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    return send_gift(conn, user_id, skill_path_id, payload.gift_type, today, load_config())

@router.post("/{user_id}/{skill_path_id}/revive", response_model=UserTreeState)
async def replant(
    user_id: str,
    skill_path_id: str,
    today: Optional[date] = Query(default=None),
    conn = Depends(get_db),
):
    """Replant a dead tree that has not withered yet."""
    return replant_tree(conn, user_id, skill_path_id, today, load_config())
