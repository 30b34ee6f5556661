"""
backend/tests/test_group_goals.py
Group goals: roster, invitation state machine, permissions, contribution
scoring and group stats.
"""

from datetime import datetime, timezone

import pytest

from backend.core.errors import ConflictError, ForbiddenError, InvalidOperationError, NotFoundError
from backend.features.goals.group_service import group_goal_service
from backend.features.goals.service import goal_service
from backend.features.notifications.service import notification_service
from backend.features.stats.ledger import stats_ledger
from backend.models.goal import (
    CreateGoalRequest,
    CreateGroupGoalRequest,
    GroupSettingsInput,
    InvitationStatus,
    ParticipantRole,
    StepInput,
)
from backend.models.notification import NotificationType

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _group(owner="owner", invitees=("bob", "carol"), **settings_overrides) -> CreateGroupGoalRequest:
    return CreateGroupGoalRequest(
        goal_name="Ship the app",
        category="work",
        start_date=NOW,
        steps=[StepInput(text="Design"), StepInput(text="Build")],
        value=100,
        participant_ids=list(invitees),
        group_settings=GroupSettingsInput(**settings_overrides) if settings_overrides else None,
    )


def _create(**kwargs):
    return group_goal_service.create_group_goal("owner", _group(**kwargs), now=NOW)


def _accept(goal_id, user_id):
    return group_goal_service.respond_to_invitation(goal_id, user_id, InvitationStatus.ACCEPTED, now=NOW)


def _active(user_id):
    return stats_ledger.get_stats(user_id, now=NOW).active_goals_now


class TestCreateGroupGoal:
    def test_owner_accepted_invitees_pending(self):
        goal = _create()

        roles = {(p.user_id, p.role, p.invitation_status) for p in goal.participants}
        assert roles == {
            ("owner", ParticipantRole.OWNER, InvitationStatus.ACCEPTED),
            ("bob", ParticipantRole.MEMBER, InvitationStatus.PENDING),
            ("carol", ParticipantRole.MEMBER, InvitationStatus.PENDING),
        }
        assert goal.find_participant("owner").joined_at == NOW

    def test_only_creator_counters_move(self):
        _create()
        assert _active("owner") == 1
        assert _active("bob") == 0
        assert stats_ledger.get_stats("owner", now=NOW).goals_created_this_month == 1

    def test_invitees_are_notified(self):
        goal = _create()
        page = notification_service.list_notifications("bob")
        assert page.total == 1
        assert page.items[0].type == NotificationType.GROUP_INVITE
        assert page.items[0].metadata["goal_id"] == goal.id

    def test_duplicate_and_self_invites_are_dropped(self):
        goal = _create(invitees=("bob", "bob", "owner"))
        assert [p.user_id for p in goal.participants] == ["owner", "bob"]

    def test_too_many_invitees(self):
        with pytest.raises(InvalidOperationError):
            _create(invitees=("a", "b", "c"), max_participants=3)


class TestInvitations:
    def test_accept_and_decline_scenario(self):
        goal = _create()

        _accept(goal.id, "bob")
        group_goal_service.respond_to_invitation(goal.id, "carol", InvitationStatus.DECLINED, now=NOW)

        assert _active("bob") == 1
        assert _active("carol") == 0
        stats = group_goal_service.get_group_goal_stats(goal.id)
        assert stats.active_participants == 2
        assert stats.pending_invitations == 0
        assert stats.total_participants == 3

    def test_owner_is_notified_on_accept(self):
        goal = _create()
        _accept(goal.id, "bob")

        items = notification_service.list_notifications("owner").items
        assert [n.type for n in items] == [NotificationType.INVITE_ACCEPTED]
        assert items[0].metadata["accepted_user_id"] == "bob"
        assert items[0].message.startswith("bob joined")

    def test_notification_failure_does_not_block_invitations(self, monkeypatch):
        def broken_insert(notification):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(notification_service.store, "insert", broken_insert)
        goal = _create(invitees=("bob",))
        group_goal_service.add_participant(goal.id, "owner", "carol", now=NOW)
        _accept(goal.id, "bob")
        monkeypatch.undo()

        stored = goal_service.get_goal(goal.id)
        assert stored.find_participant("bob").invitation_status == InvitationStatus.ACCEPTED
        assert stored.find_participant("carol").invitation_status == InvitationStatus.PENDING
        assert _active("bob") == 1
        assert notification_service.list_notifications("owner").total == 0

    def test_answering_twice_fails(self):
        goal = _create()
        _accept(goal.id, "bob")
        with pytest.raises(InvalidOperationError):
            group_goal_service.respond_to_invitation(goal.id, "bob", InvitationStatus.DECLINED, now=NOW)

    def test_no_invitation(self):
        goal = _create()
        with pytest.raises(NotFoundError):
            _accept(goal.id, "stranger")
        with pytest.raises(NotFoundError):
            _accept("missing", "bob")


class TestAddParticipant:
    def test_cap_is_enforced(self):
        goal = _create(invitees=("bob",), max_participants=3)

        group_goal_service.add_participant(goal.id, "owner", "carol", now=NOW)
        with pytest.raises(InvalidOperationError):
            group_goal_service.add_participant(goal.id, "owner", "dave", now=NOW)

    def test_existing_participant_conflicts(self):
        goal = _create()
        with pytest.raises(ConflictError):
            group_goal_service.add_participant(goal.id, "owner", "bob", now=NOW)

    def test_declined_user_can_be_invited_again(self):
        goal = _create()
        group_goal_service.respond_to_invitation(goal.id, "carol", InvitationStatus.DECLINED, now=NOW)

        goal = group_goal_service.add_participant(goal.id, "owner", "carol", ParticipantRole.ADMIN, now=NOW)
        carol = goal.find_participant("carol")
        assert carol.invitation_status == InvitationStatus.PENDING
        assert carol.role == ParticipantRole.ADMIN
        assert len(goal.participants) == 3

    def test_non_participant_is_forbidden(self):
        goal = _create()
        with pytest.raises(ForbiddenError):
            group_goal_service.add_participant(goal.id, "stranger", "dave", now=NOW)

    def test_pending_participant_is_forbidden(self):
        goal = _create()
        with pytest.raises(ForbiddenError):
            group_goal_service.add_participant(goal.id, "bob", "dave", now=NOW)

    def test_member_needs_setting_to_invite(self):
        goal = _create()
        _accept(goal.id, "bob")
        with pytest.raises(ForbiddenError):
            group_goal_service.add_participant(goal.id, "bob", "dave", now=NOW)

        open_goal = _create(allow_members_to_invite=True)
        _accept(open_goal.id, "bob")
        updated = group_goal_service.add_participant(open_goal.id, "bob", "dave", now=NOW)
        assert updated.find_participant("dave").invitation_status == InvitationStatus.PENDING

    def test_new_participant_is_notified(self):
        goal = _create(invitees=())
        group_goal_service.add_participant(goal.id, "owner", "dave", now=NOW)
        assert notification_service.list_notifications("dave").total == 1

    def test_second_owner_is_rejected(self):
        goal = _create()
        with pytest.raises(InvalidOperationError):
            group_goal_service.add_participant(goal.id, "owner", "dave", ParticipantRole.OWNER, now=NOW)

    def test_solo_goal_is_rejected(self):
        solo = goal_service.create_goal(
            "owner",
            CreateGoalRequest(goal_name="Solo", category="x", start_date=NOW),
            now=NOW,
        )
        with pytest.raises(InvalidOperationError):
            group_goal_service.add_participant(solo.id, "owner", "dave", now=NOW)


class TestRemoveParticipant:
    def test_owner_is_never_removable(self):
        goal = _create()
        _accept(goal.id, "bob")
        group_goal_service.add_participant(goal.id, "owner", "admin", ParticipantRole.ADMIN, now=NOW)
        _accept(goal.id, "admin")

        for requester in ("owner", "admin", "bob"):
            with pytest.raises(InvalidOperationError):
                group_goal_service.remove_participant(goal.id, requester, "owner", now=NOW)

    def test_member_cannot_remove_others(self):
        goal = _create()
        _accept(goal.id, "bob")
        with pytest.raises(ForbiddenError):
            group_goal_service.remove_participant(goal.id, "bob", "carol", now=NOW)

    def test_member_can_leave(self):
        goal = _create()
        _accept(goal.id, "bob")

        goal = group_goal_service.remove_participant(goal.id, "bob", "bob", now=NOW)
        assert goal.find_participant("bob") is None
        assert _active("bob") == 0

    def test_removing_pending_invitee_leaves_counters(self):
        goal = _create()
        group_goal_service.remove_participant(goal.id, "owner", "carol", now=NOW)
        assert _active("carol") == 0
        assert _active("owner") == 1

    def test_unknown_participant(self):
        goal = _create()
        with pytest.raises(NotFoundError):
            group_goal_service.remove_participant(goal.id, "owner", "stranger", now=NOW)


class TestContribution:
    def test_acting_participant_earns_the_step(self):
        goal = _create()
        _accept(goal.id, "bob")

        goal = goal_service.mark_step(goal.id, "bob", goal.steps[0].id, True, now=NOW)

        assert goal.progress == 50
        assert goal.find_participant("bob").contribution_score == 10
        bob = stats_ledger.get_stats("bob", now=NOW)
        assert bob.closed_tasks == 1
        assert bob.rating == 10
        assert stats_ledger.get_stats("owner", now=NOW).rating == 0

    def test_uncompleting_lowers_contribution(self):
        goal = _create()
        _accept(goal.id, "bob")
        step_id = goal.steps[0].id

        goal_service.mark_step(goal.id, "bob", step_id, True, now=NOW)
        goal = goal_service.mark_step(goal.id, "bob", step_id, False, now=NOW)
        assert goal.find_participant("bob").contribution_score == 0

    def test_contribution_never_goes_negative(self):
        goal = _create()
        _accept(goal.id, "bob")
        step_id = goal.steps[0].id

        goal_service.mark_step(goal.id, "owner", step_id, True, now=NOW)
        goal = goal_service.mark_step(goal.id, "bob", step_id, False, now=NOW)
        assert goal.find_participant("bob").contribution_score == 0
        assert goal.find_participant("owner").contribution_score == 10

    def test_pending_invitee_cannot_toggle(self):
        goal = _create()
        with pytest.raises(ForbiddenError):
            goal_service.mark_step(goal.id, "bob", goal.steps[0].id, True, now=NOW)

    def test_top_contributors_order(self):
        goal = _create(invitees=("bob", "carol", "dave"))
        for user_id in ("bob", "carol", "dave"):
            _accept(goal.id, user_id)
        goal_service.create_step(goal.id, "owner", "Test", now=NOW)
        goal = goal_service.get_goal(goal.id)

        goal_service.mark_step(goal.id, "carol", goal.steps[0].id, True, now=NOW)
        goal_service.mark_step(goal.id, "carol", goal.steps[1].id, True, now=NOW)
        goal_service.mark_step(goal.id, "dave", goal.steps[2].id, True, now=NOW)

        stats = group_goal_service.get_group_goal_stats(goal.id)
        assert [c.user_id for c in stats.top_contributors] == ["carol", "dave", "owner", "bob"]
        assert [c.contribution_score for c in stats.top_contributors] == [20, 10, 0, 0]


class TestGroupLifecycle:
    def test_member_cannot_complete(self):
        goal = _create()
        _accept(goal.id, "bob")
        with pytest.raises(ForbiddenError):
            goal_service.complete_goal(goal.id, "bob", now=NOW)

    def test_completion_counts_for_owner_only(self):
        goal = _create()
        _accept(goal.id, "bob")
        goal_service.complete_goal(goal.id, "owner", now=NOW)

        owner = stats_ledger.get_stats("owner", now=NOW)
        assert owner.completed_goals == 1
        assert owner.active_goals_now == 0
        assert _active("bob") == 1

    def test_admin_can_archive(self):
        goal = _create()
        group_goal_service.add_participant(goal.id, "owner", "admin", ParticipantRole.ADMIN, now=NOW)
        _accept(goal.id, "admin")
        assert goal_service.archive_goal(goal.id, "admin", now=NOW).is_archived is True

    def test_only_owner_deletes(self):
        goal = _create()
        group_goal_service.add_participant(goal.id, "owner", "admin", ParticipantRole.ADMIN, now=NOW)
        _accept(goal.id, "admin")
        with pytest.raises(NotFoundError):
            goal_service.delete_goal(goal.id, "admin", now=NOW)


class TestGroupQueries:
    def test_my_group_goals_and_invitations(self):
        first = _create()
        second = _create()
        _accept(first.id, "bob")

        mine = group_goal_service.list_group_goals("bob")
        assert [g["id"] for g in mine.goals] == [first.id]
        invitations = group_goal_service.list_group_invitations("bob")
        assert [g.id for g in invitations] == [second.id]

    def test_get_group_goal_rejects_solo(self):
        solo = goal_service.create_goal(
            "owner",
            CreateGoalRequest(goal_name="Solo", category="x", start_date=NOW),
            now=NOW,
        )
        with pytest.raises(NotFoundError):
            group_goal_service.get_group_goal(solo.id)


class TestUserSearch:
    def _profiles(self):
        profiles = stats_ledger.profile_store
        profiles.update("u1", display_name="Alice Smith")
        profiles.update("u2", display_name="alicia keys")
        profiles.update("u3", display_name="Bob")
        profiles.update("me", display_name="Alice Me")

    def test_case_insensitive_and_excludes_requester(self):
        self._profiles()
        results = group_goal_service.search_users_for_invite("me", "ALIC")
        assert {r.user_id for r in results} == {"u1", "u2"}

    def test_excludes_explicit_ids_and_participants(self):
        self._profiles()
        goal = group_goal_service.create_group_goal("owner", _group(invitees=("u1",)), now=NOW)

        results = group_goal_service.search_users_for_invite("me", "alic", goal_id=goal.id)
        assert [r.user_id for r in results] == ["u2"]

        results = group_goal_service.search_users_for_invite("me", "alic", exclude_user_ids=["u2"])
        assert [r.user_id for r in results] == ["u1"]

    def test_blank_query(self):
        with pytest.raises(InvalidOperationError):
            group_goal_service.search_users_for_invite("me", "   ")

    def test_limit(self):
        self._profiles()
        assert len(group_goal_service.search_users_for_invite("me", "a", limit=1)) == 1

    def test_missing_goal(self):
        with pytest.raises(NotFoundError):
            group_goal_service.search_users_for_invite("me", "alic", goal_id="missing")
