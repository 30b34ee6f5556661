"""
backend/features/goals/service.py

Goal lifecycle state machine: create, edit, step and habit-day mutations,
complete / archive / unarchive / delete, and the goal list queries.

Every transition follows the same shape: load the aggregate, check
permission and state, build the ledger effects from the goal as it was,
mutate, persist the whole document, then hand the effects to
StatsLedger.apply. Ledger failures surface as LedgerWriteError after the
goal write has already happened.
"""

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from backend.core.config import settings
from backend.core.errors import InvalidOperationError, NotFoundError, ValidationError
from backend.core.logging import log_event
from backend.features.goals import effects as goal_effects
from backend.features.goals import habits
from backend.features.goals.permissions import require_contributor, require_manager, require_owner
from backend.features.goals.progress import compute_progress, rating_delta
from backend.features.goals.store import GoalStore
from backend.features.media.image_store import ImageStore, image_store, store_upload
from backend.features.stats.ledger import StatsLedger, stats_ledger
from backend.features.stats.store import ProfileStore
from backend.models.goal import (
    Activity,
    ActivityType,
    CreateGoalRequest,
    Goal,
    GoalBase,
    GoalFilter,
    GoalPage,
    GoalType,
    GroupGoal,
    HabitStats,
    SoloGoal,
    Step,
    StepInput,
    UpdateGoalRequest,
)
from backend.models.stats import LedgerEffect


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# A null in an update clears these optional fields; nulls for any other field are ignored.
CLEARABLE_FIELDS = frozenset(
    name for name, field in GoalBase.model_fields.items() if not field.is_required() and field.default is None
)


def build_steps(inputs: List[StepInput]) -> List[Step]:
    steps: List[Step] = []
    seen = set()
    for item in inputs:
        step_id = item.id or str(uuid.uuid4())
        if step_id in seen:
            raise ValidationError(f"Duplicate step id: {step_id}")
        seen.add(step_id)
        steps.append(Step(id=step_id, text=item.text, is_completed=item.is_completed))
    return steps


def resolve_value(value: Optional[int]) -> int:
    if value is None:
        return settings.DEFAULT_GOAL_VALUE
    if not settings.MIN_GOAL_VALUE <= value <= settings.MAX_GOAL_VALUE:
        raise ValidationError(
            f"Goal value must be between {settings.MIN_GOAL_VALUE} and {settings.MAX_GOAL_VALUE}"
        )
    return value


def check_page(page: int, limit: int, limit_max: int) -> int:
    """Validate paging input; returns the effective limit."""
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return min(limit, limit_max)


def goal_page(goals: List[Goal], total: int, page: int, limit: int) -> GoalPage:
    total_pages = math.ceil(total / limit) if total else 0
    return GoalPage(
        goals=[goal.to_document() for goal in goals],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def filter_predicate(goal_filter: Optional[GoalFilter]):
    if goal_filter == GoalFilter.ACTIVE:
        return lambda doc: not doc["is_completed"] and not doc["is_archived"]
    if goal_filter == GoalFilter.COMPLETED:
        return lambda doc: doc["is_completed"] and not doc["is_archived"]
    if goal_filter == GoalFilter.ARCHIVED:
        return lambda doc: doc["is_archived"]
    return lambda doc: True


class GoalService:
    def __init__(
        self,
        goals: Optional[GoalStore] = None,
        ledger: Optional[StatsLedger] = None,
        images: Optional[ImageStore] = None,
        profiles: Optional[ProfileStore] = None,
    ):
        self.goals = goals or GoalStore()
        self.ledger = ledger or stats_ledger
        self.images = images or image_store
        self.profiles = profiles or ProfileStore()

    # Shared plumbing --------------------------------------------------
    def new_goal_fields(self, owner_id: str, request: CreateGoalRequest, moment: datetime) -> Dict[str, Any]:
        steps = build_steps(request.steps)
        return {
            "id": str(uuid.uuid4()),
            "owner_id": owner_id,
            "goal_name": request.goal_name,
            "category": request.category,
            "description": request.description,
            "goal_type": request.goal_type,
            "start_date": request.start_date,
            "end_date": request.end_date,
            "no_deadline": request.no_deadline,
            "habit_duration": request.habit_duration,
            "habit_days_of_week": request.habit_days_of_week,
            "image": store_upload(request.image, self.images) if request.image else None,
            "steps": steps,
            "reward": request.reward,
            "consequence": request.consequence,
            "privacy": request.privacy,
            "value": resolve_value(request.value),
            "progress": compute_progress(steps),
            "created_at": moment,
            "updated_at": moment,
        }

    def commit(
        self,
        goal: Goal,
        effects: List[LedgerEffect],
        *,
        event_type: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> Goal:
        """Persist the aggregate, then apply its ledger effects."""
        self.goals.save(goal, now=now)
        log_event("info", "goal.transition", user_id=user_id, goal_id=goal.id, event_type=event_type)
        self.ledger.apply(effects, now=now)
        return goal

    def record_created(self, goal: Goal, now: Optional[datetime] = None) -> Goal:
        self.goals.insert(goal)
        self.profiles.get_or_create(goal.owner_id, now=now)
        log_event("info", "goal.transition", user_id=goal.owner_id, goal_id=goal.id, event_type="created")
        self.ledger.apply(goal_effects.goal_created(goal.owner_id), now=now)
        return goal

    # Create / read / edit ---------------------------------------------
    def create_goal(self, owner_id: str, request: CreateGoalRequest, *, now: Optional[datetime] = None) -> SoloGoal:
        moment = now or _utcnow()
        goal = SoloGoal(**self.new_goal_fields(owner_id, request, moment))
        return self.record_created(goal, now=moment)

    def get_goal(self, goal_id: str) -> Goal:
        return self.goals.get(goal_id)

    def update_goal(
        self,
        goal_id: str,
        requester_id: str,
        request: UpdateGoalRequest,
        *,
        now: Optional[datetime] = None,
    ) -> Goal:
        goal = self.goals.get(goal_id)
        require_manager(goal, requester_id)

        patch = request.model_dump(exclude_unset=True, exclude={"steps", "image", "value"})
        patch = {k: v for k, v in patch.items() if v is not None or k in CLEARABLE_FIELDS}
        try:
            goal = type(goal).model_validate({**goal.model_dump(), **patch})
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid goal update: {exc.errors()[0]['msg']}")

        if request.value is not None:
            goal.value = resolve_value(request.value)
        if request.image is not None:
            goal.image = store_upload(request.image, self.images)
        if request.steps is not None:
            goal.steps = build_steps(request.steps)
            goal.progress = compute_progress(goal.steps)

        return self.commit(goal, [], event_type="updated", user_id=requester_id, now=now)

    # Lifecycle ----------------------------------------------------------
    def complete_goal(self, goal_id: str, requester_id: str, *, now: Optional[datetime] = None) -> Goal:
        moment = now or _utcnow()
        goal = self.goals.get(goal_id)
        require_manager(goal, requester_id)
        if goal.is_completed:
            raise InvalidOperationError("Goal is already completed")

        effects = goal_effects.goal_completed(goal)
        goal.is_completed = True
        goal.completed_date = moment
        return self.commit(goal, effects, event_type="completed", user_id=requester_id, now=moment)

    def archive_goal(self, goal_id: str, requester_id: str, *, now: Optional[datetime] = None) -> Goal:
        goal = self.goals.get(goal_id)
        require_manager(goal, requester_id)
        if goal.is_archived:
            return goal

        effects = goal_effects.goal_archived(goal)
        goal.is_archived = True
        return self.commit(goal, effects, event_type="archived", user_id=requester_id, now=now)

    def unarchive_goal(self, goal_id: str, requester_id: str, *, now: Optional[datetime] = None) -> Goal:
        goal = self.goals.get(goal_id)
        require_manager(goal, requester_id)
        if not goal.is_archived:
            return goal

        effects = goal_effects.goal_unarchived(goal)
        goal.is_archived = False
        return self.commit(goal, effects, event_type="unarchived", user_id=requester_id, now=now)

    def delete_goal(self, goal_id: str, requester_id: str, *, now: Optional[datetime] = None) -> None:
        goal = self.goals.find(goal_id)
        if goal is None:
            raise NotFoundError("Goal not found")
        require_owner(goal, requester_id)

        effects = goal_effects.goal_deleted(goal)
        if not self.goals.delete(goal_id):
            raise NotFoundError("Goal not found")
        log_event("info", "goal.transition", user_id=requester_id, goal_id=goal_id, event_type="deleted")
        self.ledger.apply(effects, now=now)

    # Steps --------------------------------------------------------------
    def create_step(self, goal_id: str, requester_id: str, text: str, *, now: Optional[datetime] = None) -> Goal:
        goal = self.goals.get(goal_id)
        require_contributor(goal, requester_id)

        goal.steps.append(Step(id=str(uuid.uuid4()), text=text))
        goal.progress = compute_progress(goal.steps)
        return self.commit(goal, [], event_type="step_created", user_id=requester_id, now=now)

    def edit_step(self, goal_id: str, requester_id: str, step_id: str, text: str, *, now: Optional[datetime] = None) -> Goal:
        goal = self.goals.get(goal_id)
        require_contributor(goal, requester_id)

        step = goal.find_step(step_id)
        if step is None:
            raise NotFoundError("Step not found")
        step.text = text
        return self.commit(goal, [], event_type="step_edited", user_id=requester_id, now=now)

    def delete_step(self, goal_id: str, requester_id: str, step_id: str, *, now: Optional[datetime] = None) -> Goal:
        goal = self.goals.get(goal_id)
        require_contributor(goal, requester_id)

        if goal.find_step(step_id) is None:
            raise NotFoundError("Step not found")
        goal.steps = [step for step in goal.steps if step.id != step_id]
        goal.progress = compute_progress(goal.steps)
        return self.commit(goal, [], event_type="step_deleted", user_id=requester_id, now=now)

    def mark_step(
        self,
        goal_id: str,
        requester_id: str,
        step_id: str,
        is_completed: bool,
        *,
        now: Optional[datetime] = None,
    ) -> Goal:
        """
        Toggle one step. Marking a step into the state it already has is a
        no-op: no activity entry, no ledger effect.

        On group goals the acting participant earns (or loses) the rating and
        closed task, and their contribution score moves by the same weight.
        """
        moment = now or _utcnow()
        goal = self.goals.get(goal_id)
        require_contributor(goal, requester_id)

        step = goal.find_step(step_id)
        if step is None:
            raise NotFoundError("Step not found")
        if step.is_completed == is_completed:
            return goal

        step.is_completed = is_completed
        goal.activity.append(
            Activity(
                activity_type=ActivityType.MARK_STEP if is_completed else ActivityType.UNMARK_STEP,
                date=moment,
                user_id=requester_id,
            )
        )
        goal.progress = compute_progress(goal.steps)

        weight = rating_delta(goal.value)
        if isinstance(goal, GroupGoal):
            participant = goal.find_participant(requester_id)
            delta = weight if is_completed else -weight
            participant.contribution_score = max(0, participant.contribution_score + delta)
            actor_id = requester_id
        else:
            actor_id = goal.owner_id

        effects = goal_effects.step_toggled(actor_id, is_completed, weight)
        return self.commit(
            goal,
            effects,
            event_type="step_completed" if is_completed else "step_uncompleted",
            user_id=requester_id,
            now=moment,
        )

    # Habits -------------------------------------------------------------
    def mark_habit_day(
        self,
        goal_id: str,
        requester_id: str,
        day: datetime,
        is_completed: bool,
        *,
        now: Optional[datetime] = None,
    ) -> Goal:
        moment = now or _utcnow()
        goal = self.goals.get(goal_id)
        require_contributor(goal, requester_id)
        if goal.goal_type != GoalType.HABIT:
            raise InvalidOperationError("This operation is only available for habit goals")

        mark = habits.mark_day(goal, day, is_completed, now=moment, user_id=requester_id)
        effects = goal_effects.habit_day_marked(
            goal.owner_id,
            mark.earns_rating,
            mark.revokes_rating,
            rating_delta(goal.value),
        )
        return self.commit(
            goal,
            effects,
            event_type="habit_day_marked" if is_completed else "habit_day_unmarked",
            user_id=requester_id,
            now=moment,
        )

    def get_habit_stats(self, goal_id: str) -> HabitStats:
        return habits.compute_stats(self.goals.get(goal_id))

    # Queries ------------------------------------------------------------
    def list_user_goals(
        self,
        user_id: str,
        goal_filter: Optional[GoalFilter] = None,
        page: int = 1,
        limit: int = 10,
    ) -> GoalPage:
        """Solo goals owned by user_id, newest first."""
        limit = check_page(page, limit, settings.GOAL_PAGE_LIMIT_MAX)
        matches = filter_predicate(goal_filter)

        def predicate(doc: dict) -> bool:
            return not doc.get("is_group") and matches(doc)

        goals = self.goals.find_many(predicate, owner_id=user_id, skip=(page - 1) * limit, limit=limit)
        total = self.goals.count(predicate, owner_id=user_id)
        return goal_page(goals, total, page, limit)

    def list_archived_goals(self, user_id: str, page: int = 1, limit: int = 10) -> GoalPage:
        """Archived goals owned by user_id, solo and group."""
        limit = check_page(page, limit, settings.GOAL_PAGE_LIMIT_MAX)
        predicate = filter_predicate(GoalFilter.ARCHIVED)
        goals = self.goals.find_many(predicate, owner_id=user_id, skip=(page - 1) * limit, limit=limit)
        total = self.goals.count(predicate, owner_id=user_id)
        return goal_page(goals, total, page, limit)


# Singleton service used by the routes
goal_service = GoalService()
