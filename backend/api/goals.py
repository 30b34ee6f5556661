"""
backend/api/goals.py
Goal lifecycle routes: CRUD, steps, completion, archival and habit days.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from backend.core.auth import get_current_user_id
from backend.core.logging import get_request_id
from backend.features.goals.service import goal_service
from backend.models.goal import (
    CreateGoalRequest,
    CreateStepRequest,
    GoalFilter,
    MarkHabitDayRequest,
    MarkStepRequest,
    UpdateGoalRequest,
    UpdateStepRequest,
)

router = APIRouter(prefix="/v1/goals", tags=["goals"])


def _ok(data):
    return {"data": data, "request_id": get_request_id()}


@router.post("", status_code=201)
def create_goal(body: CreateGoalRequest, user_id: str = Depends(get_current_user_id)):
    goal = goal_service.create_goal(user_id, body)
    return _ok(goal.to_document())


@router.get("/archived")
def list_archived_goals(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    """Archived goals owned by the caller (solo and group)."""
    return _ok(goal_service.list_archived_goals(user_id, page=page, limit=limit).model_dump(mode="json"))


@router.get("/users/{owner_id}")
def list_user_goals(
    owner_id: str = Path(..., description="Goal owner"),
    filter: Optional[GoalFilter] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    result = goal_service.list_user_goals(owner_id, filter, page=page, limit=limit)
    return _ok(result.model_dump(mode="json"))


@router.get("/{goal_id}")
def get_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.get_goal(goal_id).to_document())


@router.put("/{goal_id}")
def update_goal(goal_id: str, body: UpdateGoalRequest, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.update_goal(goal_id, user_id, body).to_document())


@router.delete("/{goal_id}")
def delete_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    goal_service.delete_goal(goal_id, user_id)
    return _ok({"id": goal_id, "deleted": True})


@router.put("/{goal_id}/complete")
def complete_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.complete_goal(goal_id, user_id).to_document())


@router.put("/{goal_id}/archive")
def archive_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.archive_goal(goal_id, user_id).to_document())


@router.put("/{goal_id}/unarchive")
def unarchive_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.unarchive_goal(goal_id, user_id).to_document())


@router.post("/{goal_id}/steps", status_code=201)
def create_step(goal_id: str, body: CreateStepRequest, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.create_step(goal_id, user_id, body.text).to_document())


@router.put("/{goal_id}/steps/{step_id}")
def edit_step(goal_id: str, step_id: str, body: UpdateStepRequest, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.edit_step(goal_id, user_id, step_id, body.text).to_document())


@router.put("/{goal_id}/steps/{step_id}/complete")
def mark_step(goal_id: str, step_id: str, body: MarkStepRequest, user_id: str = Depends(get_current_user_id)):
    """Set a step's completion flag; progress and stats follow."""
    return _ok(goal_service.mark_step(goal_id, user_id, step_id, body.is_completed).to_document())


@router.delete("/{goal_id}/steps/{step_id}")
def delete_step(goal_id: str, step_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.delete_step(goal_id, user_id, step_id).to_document())


@router.put("/{goal_id}/habit-days")
def mark_habit_day(goal_id: str, body: MarkHabitDayRequest, user_id: str = Depends(get_current_user_id)):
    """Mark one calendar day (UTC) of a habit goal complete or incomplete."""
    return _ok(goal_service.mark_habit_day(goal_id, user_id, body.date, body.is_completed).to_document())


@router.get("/{goal_id}/habit-stats")
def get_habit_stats(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(goal_service.get_habit_stats(goal_id).model_dump())
