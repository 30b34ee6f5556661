"""
backend/features/goals/group_service.py

Group participant manager: roster, invitation state machine
(pending -> accepted | declined), role-based invite/remove permissions,
group stats and the group-goal queries.

A declined participant may be invited again; their roster entry returns
to pending with the new role.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from backend.core.config import settings
from backend.core.errors import ConflictError, ForbiddenError, InvalidOperationError, NotFoundError
from backend.core.logging import log_event
from backend.features.goals import effects as goal_effects
from backend.features.goals.permissions import can_invite
from backend.features.goals.service import GoalService, check_page, filter_predicate, goal_page, goal_service
from backend.features.notifications.service import NotificationService, notification_service
from backend.models.goal import (
    ContributorSummary,
    CreateGroupGoalRequest,
    GoalFilter,
    GoalPage,
    GroupGoal,
    GroupGoalStats,
    GroupSettings,
    InvitationStatus,
    Participant,
    ParticipantRole,
)
from backend.models.notification import NotificationType
from backend.models.stats import ProfileSummary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _has_status(user_id: str, status: InvitationStatus):
    def predicate(doc: dict) -> bool:
        if not doc.get("is_group"):
            return False
        return any(
            p["user_id"] == user_id and p["invitation_status"] == status.value
            for p in doc.get("participants", [])
        )

    return predicate


class GroupGoalService:
    def __init__(
        self,
        goals: Optional[GoalService] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.lifecycle = goals or goal_service
        self.notifications = notifications or notification_service

    @property
    def goals(self):
        return self.lifecycle.goals

    @property
    def ledger(self):
        return self.lifecycle.ledger

    def _load_group(self, goal_id: str) -> GroupGoal:
        goal = self.goals.get(goal_id)
        if not isinstance(goal, GroupGoal):
            raise InvalidOperationError("This operation is only available for group goals")
        return goal

    def _notify(self, recipient_id: str, notification_type: NotificationType, goal: GroupGoal, **extra) -> None:
        payload = {"goal_id": goal.id, "goal_name": goal.goal_name}
        payload.update(extra)
        self.notifications.notify(recipient_id, notification_type, payload)

    # Create / read ------------------------------------------------------
    def create_group_goal(
        self,
        owner_id: str,
        request: CreateGroupGoalRequest,
        *,
        now: Optional[datetime] = None,
    ) -> GroupGoal:
        moment = now or _utcnow()

        invitee_ids: List[str] = []
        for user_id in request.participant_ids:
            user_id = user_id.strip()
            if user_id and user_id != owner_id and user_id not in invitee_ids:
                invitee_ids.append(user_id)

        if request.group_settings is not None:
            group_settings = GroupSettings(**request.group_settings.model_dump())
        else:
            group_settings = GroupSettings(max_participants=settings.DEFAULT_MAX_PARTICIPANTS)

        if len(invitee_ids) + 1 > group_settings.max_participants:
            raise InvalidOperationError(
                f"A group goal can have at most {group_settings.max_participants} participants"
            )

        participants = [
            Participant(
                user_id=owner_id,
                role=ParticipantRole.OWNER,
                invitation_status=InvitationStatus.ACCEPTED,
                joined_at=moment,
            )
        ]
        participants.extend(
            Participant(user_id=user_id, role=ParticipantRole.MEMBER) for user_id in invitee_ids
        )

        fields = self.lifecycle.new_goal_fields(owner_id, request, moment)
        goal = GroupGoal(**fields, participants=participants, group_settings=group_settings)
        self.lifecycle.record_created(goal, now=moment)

        for user_id in invitee_ids:
            self._notify(user_id, NotificationType.GROUP_INVITE, goal, invited_by=owner_id)
        return goal

    def get_group_goal(self, goal_id: str) -> GroupGoal:
        goal = self.goals.get(goal_id)
        if not isinstance(goal, GroupGoal):
            raise NotFoundError("Group goal not found")
        return goal

    # Roster -------------------------------------------------------------
    def add_participant(
        self,
        goal_id: str,
        requester_id: str,
        user_id: str,
        role: ParticipantRole = ParticipantRole.MEMBER,
        *,
        now: Optional[datetime] = None,
    ) -> GroupGoal:
        goal = self._load_group(goal_id)

        requester = goal.find_participant(requester_id)
        if requester is None or requester.invitation_status != InvitationStatus.ACCEPTED:
            raise ForbiddenError("Only participants can invite to this goal")
        if not can_invite(goal, requester_id):
            raise ForbiddenError("You do not have permission to invite participants")

        existing = goal.find_participant(user_id)
        reinvite = existing is not None and existing.invitation_status == InvitationStatus.DECLINED
        if not reinvite and len(goal.participants) >= goal.group_settings.max_participants:
            raise InvalidOperationError(
                f"A group goal can have at most {goal.group_settings.max_participants} participants"
            )
        if existing is not None and not reinvite:
            raise ConflictError("User is already a participant")
        if role == ParticipantRole.OWNER:
            raise InvalidOperationError("A group goal has exactly one owner")

        if reinvite:
            existing.role = role
            existing.invitation_status = InvitationStatus.PENDING
            existing.joined_at = None
        else:
            goal.participants.append(Participant(user_id=user_id, role=role))

        self.lifecycle.commit(goal, [], event_type="participant_invited", user_id=requester_id, now=now)
        self._notify(user_id, NotificationType.GROUP_INVITE, goal, invited_by=requester_id)
        return goal

    def respond_to_invitation(
        self,
        goal_id: str,
        user_id: str,
        status: InvitationStatus,
        *,
        now: Optional[datetime] = None,
    ) -> GroupGoal:
        moment = now or _utcnow()
        goal = self._load_group(goal_id)

        participant = goal.find_participant(user_id)
        if participant is None:
            raise NotFoundError("Invitation not found")
        if participant.invitation_status != InvitationStatus.PENDING:
            raise InvalidOperationError("Invitation has already been answered")
        if status not in (InvitationStatus.ACCEPTED, InvitationStatus.DECLINED):
            raise InvalidOperationError("Invitation can only be accepted or declined")

        participant.invitation_status = status
        effects = []
        if status == InvitationStatus.ACCEPTED:
            participant.joined_at = moment
            effects = goal_effects.invitation_accepted(user_id)

        self.lifecycle.commit(goal, effects, event_type=f"invitation_{status.value}", user_id=user_id, now=moment)
        if status == InvitationStatus.ACCEPTED:
            self._notify(goal.owner_id, NotificationType.INVITE_ACCEPTED, goal, accepted_user_id=user_id)
        return goal

    def remove_participant(
        self,
        goal_id: str,
        requester_id: str,
        user_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> GroupGoal:
        goal = self._load_group(goal_id)

        target = goal.find_participant(user_id)
        if target is None:
            raise NotFoundError("Participant not found")
        if target.role == ParticipantRole.OWNER:
            raise InvalidOperationError("The goal owner cannot be removed")

        requester = goal.find_participant(requester_id)
        is_manager = (
            requester is not None
            and requester.invitation_status == InvitationStatus.ACCEPTED
            and requester.role in (ParticipantRole.OWNER, ParticipantRole.ADMIN)
        )
        if not is_manager and requester_id != user_id:
            raise ForbiddenError("Only the owner or an admin can remove other participants")

        effects = goal_effects.participant_removed(target)
        goal.participants = [p for p in goal.participants if p.user_id != user_id]
        return self.lifecycle.commit(goal, effects, event_type="participant_removed", user_id=requester_id, now=now)

    # Views --------------------------------------------------------------
    def get_group_goal_stats(self, goal_id: str) -> GroupGoalStats:
        goal = self._load_group(goal_id)
        accepted = goal.accepted_participants()
        pending = [p for p in goal.participants if p.invitation_status == InvitationStatus.PENDING]
        # sorted() is stable, so ties keep roster order
        ranked = sorted(accepted, key=lambda p: p.contribution_score, reverse=True)
        return GroupGoalStats(
            total_participants=len(goal.participants),
            active_participants=len(accepted),
            pending_invitations=len(pending),
            top_contributors=[
                ContributorSummary(user_id=p.user_id, contribution_score=p.contribution_score)
                for p in ranked[: settings.TOP_CONTRIBUTORS_LIMIT]
            ],
        )

    def list_group_goals(
        self,
        user_id: str,
        goal_filter: Optional[GoalFilter] = None,
        page: int = 1,
        limit: int = 10,
    ) -> GoalPage:
        """Group goals where user_id is an accepted participant."""
        limit = check_page(page, limit, settings.GOAL_PAGE_LIMIT_MAX)
        member = _has_status(user_id, InvitationStatus.ACCEPTED)
        matches = filter_predicate(goal_filter)

        def predicate(doc: dict) -> bool:
            return member(doc) and matches(doc)

        goals = self.goals.find_many(predicate, skip=(page - 1) * limit, limit=limit)
        total = self.goals.count(predicate)
        return goal_page(goals, total, page, limit)

    def list_group_invitations(self, user_id: str) -> List[GroupGoal]:
        return self.goals.find_many(_has_status(user_id, InvitationStatus.PENDING))

    def search_users_for_invite(
        self,
        requester_id: str,
        query: str,
        limit: int = 10,
        exclude_user_ids: Sequence[str] = (),
        goal_id: Optional[str] = None,
    ) -> List[ProfileSummary]:
        if not query or not query.strip():
            raise InvalidOperationError("Search query is required")
        if limit < 1:
            raise InvalidOperationError("limit must be >= 1")
        limit = min(limit, settings.USER_SEARCH_LIMIT_MAX)

        excluded = {requester_id, *exclude_user_ids}
        if goal_id:
            goal = self.get_group_goal(goal_id)
            excluded.update(p.user_id for p in goal.participants)

        results = self.lifecycle.profiles.search(query, limit, exclude=excluded)
        log_event(
            "info",
            "group.user_search",
            user_id=requester_id,
            goal_id=goal_id,
            extra={"results": len(results)},
        )
        return results


group_goal_service = GroupGoalService()
