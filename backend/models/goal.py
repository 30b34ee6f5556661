"""
backend/models/goal.py
Goal aggregate: solo and group variants with embedded steps, habit days,
activity log and (group only) participant roster.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class GoalType(str, Enum):
    REGULAR = "regular"
    HABIT = "habit"


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class PrivacyStatus(str, Enum):
    PRIVATE = "private"
    FRIENDS = "friends"
    PUBLIC = "public"


class ActivityType(str, Enum):
    MARK_STEP = "mark_step"
    UNMARK_STEP = "unmark_step"
    MARK_HABIT_DAY = "mark_habit_day"
    UNMARK_HABIT_DAY = "unmark_habit_day"


class ParticipantRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class InvitationStatus(str, Enum):
    """Invitation lifecycle: pending -> accepted OR declined"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class GoalFilter(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Step(BaseModel):
    id: str
    text: str
    is_completed: bool = False


class HabitDay(BaseModel):
    """One calendar day of a habit goal, keyed by its UTC date."""

    date: date
    is_completed: bool = False


class Activity(BaseModel):
    model_config = ConfigDict(frozen=True)

    activity_type: ActivityType
    date: datetime
    user_id: Optional[str] = None


class Participant(BaseModel):
    user_id: str
    role: ParticipantRole
    invitation_status: InvitationStatus = InvitationStatus.PENDING
    joined_at: Optional[datetime] = None
    contribution_score: int = Field(default=0, ge=0)


class GroupSettings(BaseModel):
    allow_members_to_invite: bool = False
    require_approval: bool = True
    max_participants: int = Field(default=10, ge=1)


class GoalBase(BaseModel):
    """Fields shared by solo and group goals."""

    id: str
    owner_id: str
    goal_name: str
    category: str
    description: Optional[str] = None
    goal_type: GoalType = GoalType.REGULAR
    start_date: datetime
    end_date: Optional[datetime] = None
    no_deadline: bool = False
    completed_date: Optional[datetime] = None
    habit_duration: Optional[int] = Field(default=None, ge=1)
    habit_days_of_week: List[DayOfWeek] = Field(default_factory=list)
    habit_completed_days: List[HabitDay] = Field(default_factory=list)
    image: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)
    reward: Optional[str] = None
    consequence: Optional[str] = None
    privacy: PrivacyStatus = PrivacyStatus.PRIVATE
    is_completed: bool = False
    is_archived: bool = False
    value: int = Field(default=100, ge=1, le=500)
    progress: int = Field(default=0, ge=0, le=100)
    activity: List[Activity] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        """Counted in active_goals_now: neither completed nor archived."""
        return not self.is_completed and not self.is_archived

    def find_step(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class SoloGoal(GoalBase):
    is_group: Literal[False] = False


class GroupGoal(GoalBase):
    is_group: Literal[True] = True
    participants: List[Participant] = Field(default_factory=list)
    group_settings: GroupSettings = Field(default_factory=GroupSettings)

    def find_participant(self, user_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def accepted_participants(self) -> List[Participant]:
        return [p for p in self.participants if p.invitation_status == InvitationStatus.ACCEPTED]


Goal = Union[SoloGoal, GroupGoal]


def goal_from_document(doc: Dict[str, Any]) -> Goal:
    """Parse a stored document into the right goal variant (checked once, here)."""
    if doc.get("is_group"):
        return GroupGoal.model_validate(doc)
    return SoloGoal.model_validate(doc)


# Request/response models -----------------------------------------------------

class StepInput(BaseModel):
    id: Optional[str] = None
    text: str = Field(min_length=1)
    is_completed: bool = False


class GroupSettingsInput(BaseModel):
    allow_members_to_invite: bool = False
    require_approval: bool = True
    max_participants: int = Field(default=10, ge=1, le=100)


class ImageUpload(BaseModel):
    """Base64 image payload; stored through the image store, goal keeps the reference."""

    content_base64: str = Field(min_length=1)
    content_type: str = "image/webp"


class CreateGoalRequest(BaseModel):
    goal_name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    description: Optional[str] = None
    goal_type: GoalType = GoalType.REGULAR
    start_date: datetime
    end_date: Optional[datetime] = None
    no_deadline: bool = False
    habit_duration: Optional[int] = Field(default=None, ge=1)
    habit_days_of_week: List[DayOfWeek] = Field(default_factory=list)
    steps: List[StepInput] = Field(default_factory=list)
    reward: Optional[str] = None
    consequence: Optional[str] = None
    privacy: PrivacyStatus = PrivacyStatus.PRIVATE
    value: Optional[int] = Field(default=None, ge=1, le=500)
    image: Optional[ImageUpload] = None


class CreateGroupGoalRequest(CreateGoalRequest):
    participant_ids: List[str] = Field(default_factory=list)
    group_settings: Optional[GroupSettingsInput] = None


class UpdateGoalRequest(BaseModel):
    """Partial update; progress, completion, archival and ownership are not editable."""

    goal_name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    no_deadline: Optional[bool] = None
    habit_duration: Optional[int] = Field(default=None, ge=1)
    habit_days_of_week: Optional[List[DayOfWeek]] = None
    steps: Optional[List[StepInput]] = None
    reward: Optional[str] = None
    consequence: Optional[str] = None
    privacy: Optional[PrivacyStatus] = None
    value: Optional[int] = Field(default=None, ge=1, le=500)
    image: Optional[ImageUpload] = None


class CreateStepRequest(BaseModel):
    text: str = Field(min_length=1)


class UpdateStepRequest(BaseModel):
    text: str = Field(min_length=1)


class MarkStepRequest(BaseModel):
    is_completed: bool


class MarkHabitDayRequest(BaseModel):
    date: datetime
    is_completed: bool


class AddParticipantRequest(BaseModel):
    user_id: str = Field(min_length=1)
    role: ParticipantRole = ParticipantRole.MEMBER


class RespondToInvitationRequest(BaseModel):
    status: Literal["accepted", "declined"]


class HabitStats(BaseModel):
    total_days: int
    completed_days: int
    success_rate: float
    current_streak: int
    longest_streak: int


class ContributorSummary(BaseModel):
    user_id: str
    contribution_score: int


class GroupGoalStats(BaseModel):
    total_participants: int
    active_participants: int
    pending_invitations: int
    top_contributors: List[ContributorSummary]


class GoalPage(BaseModel):
    goals: List[Dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
