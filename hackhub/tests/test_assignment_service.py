"""
Tests for the Assignment Orchestrator

End-to-end behaviour of manual, random and smart assignment plus
reassign/unassign against an in-memory database.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select

from hackhub.exceptions import (
    NotFoundError,
    AssignmentWindowClosedError,
    InsufficientTasksError,
    NoEligibleParticipantsError,
    DuplicatePairError,
    QuotaExceededError,
    InvalidStateTransitionError,
    ParticipantNotVerifiedError,
)
from hackhub.orm.audit_log import AuditLog, AuditAction
from hackhub.orm.hackathon import HackathonStatus
from hackhub.orm.task_assignment import TaskAssignment, AssignmentMethod, AssignmentStatus
from hackhub.services import assignment_ledger as ledger
from hackhub.services.assignment_service import AssignmentOrchestrator
from hackhub.services.notification_service import REASSIGNED_LABEL

from conftest import make_user, make_hackathon, make_task, RecordingNotifier


async def all_entries(db):
    result = await db.execute(select(TaskAssignment).order_by(TaskAssignment.id))
    return list(result.scalars().all())


async def audit_actions(db):
    result = await db.execute(select(AuditLog.action).order_by(AuditLog.id))
    return [row[0] for row in result.all()]


async def assert_counters_match_ledger(db, tasks):
    for task in tasks:
        live = await ledger.count_for_task(db, task.id)
        assert await ledger.task_counters(db, task.id) == (live, live > 0)


# ============================================================================
# Manual
# ============================================================================

class TestManualAssignment:
    @pytest.mark.asyncio
    async def test_assigns_and_notifies(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        entry = await orchestrator.assign_manual(
            hackathon.id, tasks[0].id, participants[0].id, admin_user.id, source_ip="10.0.0.1"
        )

        assert entry.assignment_method == AssignmentMethod.MANUAL
        assert entry.assigned_by == admin_user.id
        assert entry.match_score is None
        assert await ledger.task_counters(db_session, tasks[0].id) == (1, True)
        assert notifier.sent == [(participants[0].id, tasks[0].id, AssignmentMethod.MANUAL)]

        result = await db_session.execute(select(AuditLog))
        audit = result.scalar_one()
        assert audit.action == AuditAction.TASK_ASSIGNED
        assert audit.assignment_id == entry.id
        assert audit.target_user_id == participants[0].id
        assert audit.ip_address == "10.0.0.1"
        assert audit.details == {"method": "manual"}

    @pytest.mark.asyncio
    async def test_duplicate_pair(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        hackathon.tasks_per_participant = 3
        await db_session.commit()
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)

        with pytest.raises(DuplicatePairError):
            await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)

        assert len(await all_entries(db_session)) == 1
        assert await ledger.task_counters(db_session, tasks[0].id) == (1, True)

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)

        with pytest.raises(QuotaExceededError):
            await orchestrator.assign_manual(hackathon.id, tasks[1].id, participants[0].id, admin_user.id)

        assert len(await all_entries(db_session)) == 1

    @pytest.mark.asyncio
    async def test_unverified_participant(self, db_session, hackathon, tasks, admin_user, notifier):
        pending = await make_user(db_session, "pending@test.com", verified=False)
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(ParticipantNotVerifiedError):
            await orchestrator.assign_manual(hackathon.id, tasks[0].id, pending.id, admin_user.id)

    @pytest.mark.asyncio
    async def test_missing_references(self, db_session, hackathon, tasks, participants, admin_user, judge_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.assign_manual(999, tasks[0].id, participants[0].id, admin_user.id)
        assert exc_info.value.code == "HACKATHON_NOT_FOUND"

        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.assign_manual(hackathon.id, 999, participants[0].id, admin_user.id)
        assert exc_info.value.code == "TASK_NOT_FOUND"

        # Judges are not participants
        with pytest.raises(NotFoundError) as exc_info:
            await orchestrator.assign_manual(hackathon.id, tasks[0].id, judge_user.id, admin_user.id)
        assert exc_info.value.code == "PARTICIPANT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_task_from_other_hackathon(self, db_session, hackathon, participants, admin_user, now, notifier):
        other = await make_hackathon(db_session, admin_user, now)
        foreign_task = await make_task(db_session, other, "Elsewhere")
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(NotFoundError):
            await orchestrator.assign_manual(hackathon.id, foreign_task.id, participants[0].id, admin_user.id)


# ============================================================================
# Gate
# ============================================================================

class TestAssignmentGate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["assign_random", "assign_smart"])
    async def test_closed_window_writes_nothing(self, db_session, admin_user, participants, now, notifier, method):
        closed = await make_hackathon(db_session, admin_user, now, window_open=False)
        task = await make_task(db_session, closed, "Any")
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=1)

        with pytest.raises(AssignmentWindowClosedError):
            await getattr(orchestrator, method)(closed.id, admin_user.id)

        assert await all_entries(db_session) == []
        assert await ledger.task_counters(db_session, task.id) == (0, False)
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_inactive_hackathon(self, db_session, admin_user, participants, now, notifier):
        draft = await make_hackathon(db_session, admin_user, now, status=HackathonStatus.draft)
        task = await make_task(db_session, draft, "Any")
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(AssignmentWindowClosedError):
            await orchestrator.assign_manual(draft.id, task.id, participants[0].id, admin_user.id)

        assert await all_entries(db_session) == []

    @pytest.mark.asyncio
    async def test_explicit_clock(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        too_late = hackathon.assignment_end_date + timedelta(minutes=1)

        with pytest.raises(AssignmentWindowClosedError):
            await orchestrator.assign_random(hackathon.id, admin_user.id, now=too_late)


# ============================================================================
# Batch
# ============================================================================

class TestRandomAssignment:
    @pytest.mark.asyncio
    async def test_fills_every_quota(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        hackathon.tasks_per_participant = 2
        await db_session.commit()
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=11)

        result = await orchestrator.assign_random(hackathon.id, admin_user.id)

        assert result.assignments_count == 6
        assert result.skipped_duplicates == 0
        entries = await all_entries(db_session)
        pairs = [(e.participant_id, e.task_id) for e in entries]
        assert len(pairs) == len(set(pairs))
        for participant in participants:
            assert sum(1 for e in entries if e.participant_id == participant.id) == 2
        assert all(e.assignment_method == AssignmentMethod.RANDOM for e in entries)
        await assert_counters_match_ledger(db_session, tasks)
        assert len(notifier.sent) == 6
        assert await audit_actions(db_session) == [AuditAction.TASK_ASSIGNED] * 6

    @pytest.mark.asyncio
    async def test_respects_existing_entries(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        hackathon.tasks_per_participant = 2
        await db_session.commit()
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=5)
        await orchestrator.assign_manual(hackathon.id, tasks[2].id, participants[0].id, admin_user.id)

        result = await orchestrator.assign_random(hackathon.id, admin_user.id)

        # Alice already held one task, so she gets one more
        assert result.assignments_count == 5
        counts = await ledger.counts_by_participant(db_session, hackathon.id)
        assert counts == {p.id: 2 for p in participants}
        await assert_counters_match_ledger(db_session, tasks)

    @pytest.mark.asyncio
    async def test_pool_exhaustion_is_partial(self, db_session, admin_user, now, notifier):
        hackathon = await make_hackathon(db_session, admin_user, now, tasks_per_participant=2)
        only_task = await make_task(db_session, hackathon, "Solo")
        solo = await make_user(db_session, "solo@test.com")
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=3)

        result = await orchestrator.assign_random(hackathon.id, admin_user.id)

        assert result.requested == 1
        assert [(e.participant_id, e.task_id) for e in result.created] == [(solo.id, only_task.id)]

    @pytest.mark.asyncio
    async def test_rerun_at_quota_is_idempotent(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=9)
        first = await orchestrator.assign_random(hackathon.id, admin_user.id)
        assert first.assignments_count == 3

        second = await orchestrator.assign_random(hackathon.id, admin_user.id)
        third = await orchestrator.assign_random(hackathon.id, admin_user.id)

        assert second.assignments_count == 0
        assert third.assignments_count == 0
        assert len(await all_entries(db_session)) == 3
        await assert_counters_match_ledger(db_session, tasks)

    @pytest.mark.asyncio
    async def test_unverified_and_inactive_are_skipped(self, db_session, hackathon, tasks, admin_user, notifier):
        await make_user(db_session, "pending@test.com", verified=False)
        await make_user(db_session, "gone@test.com", active=False)
        keen = await make_user(db_session, "keen@test.com")
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=2)

        result = await orchestrator.assign_random(hackathon.id, admin_user.id)

        assert [e.participant_id for e in result.created] == [keen.id]

    @pytest.mark.asyncio
    async def test_no_tasks(self, db_session, hackathon, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(InsufficientTasksError):
            await orchestrator.assign_random(hackathon.id, admin_user.id)

    @pytest.mark.asyncio
    async def test_no_participants(self, db_session, hackathon, tasks, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(NoEligibleParticipantsError):
            await orchestrator.assign_random(hackathon.id, admin_user.id)

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_batch(self, db_session, hackathon, tasks, participants, admin_user):
        orchestrator = AssignmentOrchestrator(db_session, notifier=RecordingNotifier(fail=True), seed=4)

        result = await orchestrator.assign_random(hackathon.id, admin_user.id)

        assert result.assignments_count == 3
        assert len(await all_entries(db_session)) == 3


class TestSmartAssignment:
    @pytest.mark.asyncio
    async def test_best_match_wins_and_score_is_stored(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        result = await orchestrator.assign_smart(hackathon.id, admin_user.id)

        by_participant = {e.participant_id: e for e in result.created}
        alice, bob, carol = participants
        # Alice {react, node}: Backend {node, react} scores 1.0
        assert by_participant[alice.id].task_id == tasks[1].id
        assert by_participant[alice.id].match_score == 1.0
        # Bob {python, ml}: Model {python, ml} scores 1.0
        assert by_participant[bob.id].task_id == tasks[2].id
        # Carol {css}: Frontend {react, css} scores 0.5
        assert by_participant[carol.id].task_id == tasks[0].id
        assert by_participant[carol.id].match_score == 0.5

        result = await db_session.execute(
            select(AuditLog.details).where(AuditLog.target_user_id == alice.id)
        )
        assert result.scalar_one() == {"method": "smart", "match_score": 1.0}

    @pytest.mark.asyncio
    async def test_to_dict_summary(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        summary = (await orchestrator.assign_smart(hackathon.id, admin_user.id)).to_dict()

        assert summary["method"] == "smart"
        assert summary["assignments_count"] == 3
        assert summary["requested"] == 3
        assert all(a["assignment_method"] == "smart" for a in summary["assignments"])

    @pytest.mark.asyncio
    async def test_concurrent_insert_is_skipped_and_counted(
        self, db_session, hackathon, tasks, participants, admin_user, notifier, monkeypatch
    ):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        alice = participants[0]
        # Another run already gave Alice her best match
        await orchestrator.assign_manual(hackathon.id, tasks[1].id, alice.id, admin_user.id)

        async def snapshot_before_that_run(db, hackathon_id):
            return {}

        async def no_pairs_yet(db, hackathon_id):
            return set()

        monkeypatch.setattr(ledger, "counts_by_participant", snapshot_before_that_run)
        monkeypatch.setattr(ledger, "existing_pairs", no_pairs_yet)

        result = await orchestrator.assign_smart(hackathon.id, admin_user.id)

        assert result.requested == 3
        assert result.skipped_duplicates == 1
        assert result.assignments_count == 2
        assert alice.id not in {e.participant_id for e in result.created}
        assert len(await all_entries(db_session)) == 3
        assert len(notifier.sent) == 3
        assert (await audit_actions(db_session)).count(AuditAction.TASK_ASSIGNED) == 3
        await assert_counters_match_ledger(db_session, tasks)


# ============================================================================
# Reassign / unassign
# ============================================================================

class TestReassign:
    @pytest.mark.asyncio
    async def test_moves_entry_and_audits(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)
        notifier.sent.clear()

        moved = await orchestrator.reassign(entry.id, participants[1].id, admin_user.id)

        assert moved.id == entry.id
        assert moved.participant_id == participants[1].id
        assert await ledger.task_counters(db_session, tasks[0].id) == (1, True)
        assert notifier.sent == [(participants[1].id, tasks[0].id, REASSIGNED_LABEL)]

        result = await db_session.execute(
            select(AuditLog).where(AuditLog.action == AuditAction.TASK_REASSIGNED)
        )
        audit = result.scalar_one()
        assert audit.details == {
            "old_participant_id": participants[0].id,
            "new_participant_id": participants[1].id,
        }

    @pytest.mark.asyncio
    async def test_new_participant_already_holds_task(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)
        await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[1].id, admin_user.id)

        with pytest.raises(DuplicatePairError):
            await orchestrator.reassign(entry.id, participants[1].id, admin_user.id)

    @pytest.mark.asyncio
    async def test_new_participant_at_quota(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)
        await orchestrator.assign_manual(hackathon.id, tasks[1].id, participants[1].id, admin_user.id)

        with pytest.raises(QuotaExceededError):
            await orchestrator.reassign(entry.id, participants[1].id, admin_user.id)

    @pytest.mark.asyncio
    async def test_unverified_new_participant(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        pending = await make_user(db_session, "pending@test.com", verified=False)
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)

        with pytest.raises(ParticipantNotVerifiedError):
            await orchestrator.reassign(entry.id, pending.id, admin_user.id)

    @pytest.mark.asyncio
    async def test_submitted_entry_is_locked(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)
        await ledger.update_status(db_session, entry, AssignmentStatus.SUBMITTED)
        await db_session.commit()

        with pytest.raises(InvalidStateTransitionError):
            await orchestrator.reassign(entry.id, participants[1].id, admin_user.id)

    @pytest.mark.asyncio
    async def test_missing_assignment(self, db_session, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(NotFoundError):
            await orchestrator.reassign(404, participants[0].id, admin_user.id)


class TestUnassign:
    @pytest.mark.asyncio
    async def test_removes_entry_and_releases_task(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)

        removed = await orchestrator.unassign(entry.id, admin_user.id)

        assert removed["id"] == entry.id
        assert await all_entries(db_session) == []
        assert await ledger.task_counters(db_session, tasks[0].id) == (0, False)
        assert await audit_actions(db_session) == [AuditAction.TASK_ASSIGNED, AuditAction.TASK_UNASSIGNED]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [
        AssignmentStatus.SUBMITTED,
        AssignmentStatus.LATE,
    ])
    async def test_touched_entries_cannot_be_removed(self, db_session, hackathon, tasks, participants, admin_user, notifier, status):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)
        await ledger.update_status(db_session, entry, status)
        await db_session.commit()

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await orchestrator.unassign(entry.id, admin_user.id)

        assert status.value in exc_info.value.message
        assert len(await all_entries(db_session)) == 1
        assert await ledger.task_counters(db_session, tasks[0].id) == (1, True)

    @pytest.mark.asyncio
    async def test_slot_can_be_reused_after_unassign(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)
        entry = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)
        await orchestrator.unassign(entry.id, admin_user.id)

        again = await orchestrator.assign_manual(hackathon.id, tasks[0].id, participants[0].id, admin_user.id)

        assert again.id is not None
        assert await ledger.task_counters(db_session, tasks[0].id) == (1, True)


class TestReads:
    @pytest.mark.asyncio
    async def test_listings(self, db_session, hackathon, tasks, participants, admin_user, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier, seed=8)
        await orchestrator.assign_random(hackathon.id, admin_user.id)

        by_hackathon = await orchestrator.list_for_hackathon(hackathon.id)
        mine = await orchestrator.list_for_participant(participants[1].id)

        assert len(by_hackathon) == 3
        assert [e.participant_id for e in mine] == [participants[1].id]
        assert mine[0].task is not None

    @pytest.mark.asyncio
    async def test_unknown_hackathon(self, db_session, notifier):
        orchestrator = AssignmentOrchestrator(db_session, notifier=notifier)

        with pytest.raises(NotFoundError):
            await orchestrator.list_for_hackathon(12345)
