"""
backend/api/progress_entries.py
Progress entry, like and comment routes.
"""

from fastapi import APIRouter, Depends, Query

from backend.core.auth import get_current_user_id
from backend.core.logging import get_request_id
from backend.features.progress_entries.service import progress_entry_service
from backend.models.progress_entry import (
    CreateCommentRequest,
    CreateProgressEntryRequest,
    UpdateCommentRequest,
    UpdateProgressEntryRequest,
)

router = APIRouter(prefix="/v1/progress-entries", tags=["progress-entries"])


def _ok(data):
    return {"data": data, "request_id": get_request_id()}


@router.post("", status_code=201)
def create_entry(body: CreateProgressEntryRequest, user_id: str = Depends(get_current_user_id)):
    entry = progress_entry_service.create_entry(user_id, body.goal_id, body.content)
    return _ok(entry.model_dump(mode="json"))


@router.get("/goals/{goal_id}")
def list_entries(
    goal_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    return _ok(progress_entry_service.list_entries(goal_id, page=page, limit=limit).model_dump(mode="json"))


@router.put("/comments/{comment_id}")
def update_comment(comment_id: str, body: UpdateCommentRequest, user_id: str = Depends(get_current_user_id)):
    comment = progress_entry_service.update_comment(user_id, comment_id, body.content)
    return _ok(comment.model_dump(mode="json"))


@router.delete("/comments/{comment_id}")
def delete_comment(comment_id: str, user_id: str = Depends(get_current_user_id)):
    progress_entry_service.delete_comment(user_id, comment_id)
    return _ok({"id": comment_id, "deleted": True})


@router.put("/comments/{comment_id}/like")
def toggle_comment_like(comment_id: str, user_id: str = Depends(get_current_user_id)):
    comment = progress_entry_service.toggle_comment_like(user_id, comment_id)
    return _ok(comment.model_dump(mode="json"))


@router.put("/{entry_id}")
def update_entry(entry_id: str, body: UpdateProgressEntryRequest, user_id: str = Depends(get_current_user_id)):
    entry = progress_entry_service.update_entry(user_id, entry_id, body.content)
    return _ok(entry.model_dump(mode="json"))


@router.delete("/{entry_id}")
def delete_entry(entry_id: str, user_id: str = Depends(get_current_user_id)):
    progress_entry_service.delete_entry(user_id, entry_id)
    return _ok({"id": entry_id, "deleted": True})


@router.put("/{entry_id}/like")
def toggle_like(entry_id: str, user_id: str = Depends(get_current_user_id)):
    entry = progress_entry_service.toggle_like(user_id, entry_id)
    return _ok(entry.model_dump(mode="json"))


@router.post("/{entry_id}/comments", status_code=201)
def create_comment(entry_id: str, body: CreateCommentRequest, user_id: str = Depends(get_current_user_id)):
    comment = progress_entry_service.create_comment(user_id, entry_id, body.content)
    return _ok(comment.model_dump(mode="json"))


@router.get("/{entry_id}/comments")
def list_comments(
    entry_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    return _ok(progress_entry_service.list_comments(entry_id, page=page, limit=limit).model_dump(mode="json"))
