"""
backend/api/profile.py
Profile and stats view.
"""

from fastapi import APIRouter, Depends

from backend.core.auth import get_current_user_id
from backend.core.logging import get_request_id
from backend.features.stats.ledger import stats_ledger
from backend.models.stats import UpdateProfileRequest

router = APIRouter(prefix="/v1/profile", tags=["profile"])


def _ok(data):
    return {"data": data, "request_id": get_request_id()}


@router.get("/{user_id}/stats")
def get_user_stats(user_id: str, caller_id: str = Depends(get_current_user_id)):
    """Counters for user_id with the current month applied; rating comes from the profile."""
    return _ok(stats_ledger.get_stats(user_id).model_dump())


@router.get("/{user_id}")
def get_profile(user_id: str, caller_id: str = Depends(get_current_user_id)):
    profile = stats_ledger.profile_store.get_or_create(user_id)
    return _ok(profile.model_dump(mode="json"))


@router.put("")
def update_profile(body: UpdateProfileRequest, user_id: str = Depends(get_current_user_id)):
    profile = stats_ledger.profile_store.update(user_id, display_name=body.display_name, avatar=body.avatar)
    return _ok(profile.model_dump(mode="json"))
