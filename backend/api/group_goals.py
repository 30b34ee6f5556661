"""
backend/api/group_goals.py
Group goal routes: creation, roster, invitations, stats and user search.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backend.core.auth import get_current_user_id
from backend.core.logging import get_request_id
from backend.features.goals.group_service import group_goal_service
from backend.models.goal import (
    AddParticipantRequest,
    CreateGroupGoalRequest,
    GoalFilter,
    InvitationStatus,
    RespondToInvitationRequest,
)

router = APIRouter(prefix="/v1/group-goals", tags=["group-goals"])


def _ok(data):
    return {"data": data, "request_id": get_request_id()}


@router.post("", status_code=201)
def create_group_goal(body: CreateGroupGoalRequest, user_id: str = Depends(get_current_user_id)):
    """Create a group goal; the caller becomes its owner and each listed user is invited."""
    goal = group_goal_service.create_group_goal(user_id, body)
    return _ok(goal.to_document())


@router.get("/my")
def list_my_group_goals(
    filter: Optional[GoalFilter] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    result = group_goal_service.list_group_goals(user_id, filter, page=page, limit=limit)
    return _ok(result.model_dump(mode="json"))


@router.get("/invitations")
def list_invitations(user_id: str = Depends(get_current_user_id)):
    goals = group_goal_service.list_group_invitations(user_id)
    return _ok([goal.to_document() for goal in goals])


@router.get("/users/search")
def search_users(
    query: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1),
    exclude: Optional[List[str]] = Query(None),
    goal_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
):
    """Find users to invite by display name (the caller and current participants are excluded)."""
    results = group_goal_service.search_users_for_invite(
        user_id, query, limit=limit, exclude_user_ids=exclude or [], goal_id=goal_id
    )
    return _ok([profile.model_dump() for profile in results])


@router.get("/{goal_id}")
def get_group_goal(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(group_goal_service.get_group_goal(goal_id).to_document())


@router.post("/{goal_id}/participants", status_code=201)
def add_participant(goal_id: str, body: AddParticipantRequest, user_id: str = Depends(get_current_user_id)):
    goal = group_goal_service.add_participant(goal_id, user_id, body.user_id, body.role)
    return _ok(goal.to_document())


@router.put("/{goal_id}/invitations/respond")
def respond_to_invitation(goal_id: str, body: RespondToInvitationRequest, user_id: str = Depends(get_current_user_id)):
    goal = group_goal_service.respond_to_invitation(goal_id, user_id, InvitationStatus(body.status))
    return _ok(goal.to_document())


@router.delete("/{goal_id}/participants/{participant_id}")
def remove_participant(goal_id: str, participant_id: str, user_id: str = Depends(get_current_user_id)):
    goal = group_goal_service.remove_participant(goal_id, user_id, participant_id)
    return _ok(goal.to_document())


@router.get("/{goal_id}/stats")
def get_group_goal_stats(goal_id: str, user_id: str = Depends(get_current_user_id)):
    return _ok(group_goal_service.get_group_goal_stats(goal_id).model_dump())
