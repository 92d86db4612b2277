"""
Assignment Orchestrator

Entry point for every ledger mutation: manual, random and skill-matched
assignment, reassignment and unassignment.

Flow for a batch run:
    load hackathon -> capacity gate -> candidate selection -> strategy
    -> per pair: ledger insert (SAVEPOINT) + counter + audit, COMMIT
    -> notification (best-effort, after commit)

Guarantees:
- Precondition failures raise before anything is written
- A pair rejected by the unique constraint (concurrent run) is skipped
  and counted, never fatal for the batch
- Each created entry is committed on its own, so a crash mid-batch
  leaves only whole entries behind
- Audit and notification failures never surface to the caller
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.config.settings import Settings
from hackhub.exceptions import (
    NotFoundError,
    AssignmentWindowClosedError,
    DuplicatePairError,
    QuotaExceededError,
    ParticipantNotVerifiedError,
)
from hackhub.orm.audit_log import AuditAction
from hackhub.orm.hackathon import Hackathon
from hackhub.orm.task import Task
from hackhub.orm.task_assignment import TaskAssignment, AssignmentMethod
from hackhub.orm.user import User, UserRole
from hackhub.services import assignment_ledger as ledger
from hackhub.services import candidate_selector
from hackhub.services.allocation_strategies import AllocationStrategy, get_strategy
from hackhub.services.audit_service import log_assignment_event
from hackhub.services.capacity_policy import can_assign, remaining_quota
from hackhub.services.notification_service import (
    NotificationSender,
    get_notification_sender,
    REASSIGNED_LABEL,
)
from hackhub.state_machines.assignment_state import AssignmentStateMachine

logger = logging.getLogger(__name__)


@dataclass
class BatchAssignmentResult:
    """Outcome of one random or smart batch run."""
    hackathon_id: int
    method: AssignmentMethod
    requested: int = 0
    created: List[TaskAssignment] = field(default_factory=list)
    skipped_duplicates: int = 0

    @property
    def assignments_count(self) -> int:
        return len(self.created)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hackathon_id": self.hackathon_id,
            "method": self.method.value,
            "requested": self.requested,
            "assignments_count": self.assignments_count,
            "skipped_duplicates": self.skipped_duplicates,
            "assignments": [entry.to_dict() for entry in self.created],
        }


class AssignmentOrchestrator:
    """
    Coordinates policy, selection, strategy and ledger for one session.

    The orchestrator commits; callers must not hold an open unit of work
    they expect to roll back afterwards.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationSender] = None,
        seed: Optional[int] = None
    ):
        self.db = db
        self.notifier = notifier or get_notification_sender()
        self.seed = seed if seed is not None else Settings.ASSIGNMENT_RANDOM_SEED

    # =========================================================================
    # Loading and guards
    # =========================================================================

    async def _load_hackathon(self, hackathon_id: int) -> Hackathon:
        hackathon = await self.db.get(Hackathon, hackathon_id)
        if not hackathon:
            raise NotFoundError("Hackathon", hackathon_id)
        return hackathon

    async def _load_participant(self, participant_id: int) -> User:
        participant = await self.db.get(User, participant_id)
        if not participant or participant.role != UserRole.participant:
            raise NotFoundError("Participant", participant_id)
        return participant

    async def _load_assignment(self, assignment_id: int) -> TaskAssignment:
        assignment = await ledger.get_assignment(self.db, assignment_id)
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def _check_gate(self, hackathon: Hackathon, now: datetime):
        if not can_assign(hackathon, now):
            logger.warning(
                f"[ASSIGNMENT REJECTED] hackathon={hackathon.id} status={hackathon.status} "
                f"window closed at {now.isoformat()}"
            )
            raise AssignmentWindowClosedError(hackathon.id)

    async def _notify(self, participant: User, task: Task, hackathon: Hackathon, method: Any):
        try:
            await self.notifier.send_task_assigned_notice(participant, task, hackathon, method)
        except Exception as e:
            logger.error(
                f"[NOTIFY FAILED] participant={participant.id} task={task.id}: "
                f"{type(e).__name__}: {e}"
            )

    # =========================================================================
    # Manual
    # =========================================================================

    async def assign_manual(
        self,
        hackathon_id: int,
        task_id: int,
        participant_id: int,
        actor_id: int,
        now: Optional[datetime] = None,
        source_ip: Optional[str] = None
    ) -> TaskAssignment:
        """
        Assign one specific task to one specific participant.

        Raises:
            NotFoundError: hackathon, task (in this hackathon) or participant missing
            AssignmentWindowClosedError: gate closed
            ParticipantNotVerifiedError: participant email not verified
            DuplicatePairError: participant already holds the task
            QuotaExceededError: participant already at tasks_per_participant
        """
        now = now or datetime.utcnow()
        logger.info(
            f"[ASSIGNMENT START] manual hackathon={hackathon_id} task={task_id} "
            f"participant={participant_id} actor={actor_id}"
        )

        hackathon = await self._load_hackathon(hackathon_id)
        self._check_gate(hackathon, now)

        task = await self.db.get(Task, task_id)
        if not task or task.hackathon_id != hackathon.id:
            raise NotFoundError("Task", task_id)

        participant = await self._load_participant(participant_id)
        if not participant.is_email_verified:
            raise ParticipantNotVerifiedError(participant.id)

        existing = set()
        if await ledger.exists(self.db, hackathon.id, task.id, participant.id):
            existing.add((participant.id, task.id))
        held = await ledger.count_for_participant(self.db, hackathon.id, participant.id)

        strategy = get_strategy(
            AssignmentMethod.MANUAL,
            tasks_per_participant=hackathon.tasks_per_participant
        )
        strategy.allocate(
            [candidate_selector.to_participant_candidate(participant)],
            [candidate_selector.to_task_candidate(task)],
            existing,
            lambda candidate: remaining_quota(hackathon, held),
        )

        entry = await ledger.insert(
            self.db,
            hackathon_id=hackathon.id,
            task_id=task.id,
            participant_id=participant.id,
            method=strategy.method,
            assigned_by=actor_id,
            assigned_at=now,
        )
        await log_assignment_event(
            self.db, AuditAction.TASK_ASSIGNED, entry, actor_id,
            details={"method": strategy.method.value},
            source_ip=source_ip,
        )
        await self.db.commit()

        logger.info(f"[ASSIGNMENT SUCCESS] id={entry.id} task={task.id} -> participant={participant.id}")
        await self._notify(participant, task, hackathon, strategy.method)
        return entry

    # =========================================================================
    # Batch (random / smart)
    # =========================================================================

    async def assign_random(
        self,
        hackathon_id: int,
        actor_id: int,
        now: Optional[datetime] = None,
        source_ip: Optional[str] = None
    ) -> BatchAssignmentResult:
        strategy = get_strategy(AssignmentMethod.RANDOM, seed=self.seed)
        return await self._run_batch(hackathon_id, actor_id, strategy, now, source_ip)

    async def assign_smart(
        self,
        hackathon_id: int,
        actor_id: int,
        now: Optional[datetime] = None,
        source_ip: Optional[str] = None
    ) -> BatchAssignmentResult:
        strategy = get_strategy(AssignmentMethod.SMART)
        return await self._run_batch(hackathon_id, actor_id, strategy, now, source_ip)

    async def _run_batch(
        self,
        hackathon_id: int,
        actor_id: int,
        strategy: AllocationStrategy,
        now: Optional[datetime],
        source_ip: Optional[str]
    ) -> BatchAssignmentResult:
        now = now or datetime.utcnow()
        method = strategy.method
        logger.info(f"[ASSIGNMENT START] {method.value} batch hackathon={hackathon_id} actor={actor_id}")

        hackathon = await self._load_hackathon(hackathon_id)
        self._check_gate(hackathon, now)

        tasks = await candidate_selector.eligible_tasks(self.db, hackathon.id)
        counts = await ledger.counts_by_participant(self.db, hackathon.id)
        participants = await candidate_selector.eligible_participants(self.db, hackathon, counts)
        seen = await ledger.existing_pairs(self.db, hackathon.id)

        pairs = strategy.allocate(
            participants,
            tasks,
            seen,
            lambda candidate: remaining_quota(hackathon, counts.get(candidate.user_id, 0)),
        )

        result = BatchAssignmentResult(hackathon_id=hackathon.id, method=method, requested=len(pairs))
        if not pairs:
            logger.info(f"[ASSIGNMENT DONE] {method.value} hackathon={hackathon.id} nothing to assign")
            return result

        users = await self._users_by_id({pair.participant.user_id for pair in pairs})
        task_rows = await self._tasks_by_id({pair.task.task_id for pair in pairs})

        for pair in pairs:
            participant_id, task_id = pair.key
            try:
                entry = await ledger.insert(
                    self.db,
                    hackathon_id=hackathon.id,
                    task_id=task_id,
                    participant_id=participant_id,
                    method=method,
                    assigned_by=actor_id,
                    match_score=pair.match_score,
                    assigned_at=now,
                )
            except DuplicatePairError:
                # Lost a race with a concurrent run; the pair exists either way
                result.skipped_duplicates += 1
                continue

            details = {"method": method.value}
            if pair.match_score is not None:
                details["match_score"] = pair.match_score
            await log_assignment_event(
                self.db, AuditAction.TASK_ASSIGNED, entry, actor_id,
                details=details,
                source_ip=source_ip,
            )
            await self.db.commit()
            result.created.append(entry)

            await self._notify(users[participant_id], task_rows[task_id], hackathon, method)

        logger.info(
            f"[ASSIGNMENT DONE] {method.value} hackathon={hackathon.id} "
            f"created={result.assignments_count} skipped={result.skipped_duplicates}"
        )
        return result

    async def _users_by_id(self, ids) -> Dict[int, User]:
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def _tasks_by_id(self, ids) -> Dict[int, Task]:
        result = await self.db.execute(select(Task).where(Task.id.in_(ids)))
        return {task.id: task for task in result.scalars().all()}

    # =========================================================================
    # Reassign / unassign
    # =========================================================================

    async def reassign(
        self,
        assignment_id: int,
        new_participant_id: int,
        actor_id: int,
        now: Optional[datetime] = None,
        source_ip: Optional[str] = None
    ) -> TaskAssignment:
        """
        Hand an untouched entry to a different participant.

        Raises:
            NotFoundError: assignment or new participant missing
            AssignmentWindowClosedError: gate closed
            InvalidStateTransitionError: entry already submitted, late or evaluated
            ParticipantNotVerifiedError: new participant not verified
            DuplicatePairError: new participant already holds the task
            QuotaExceededError: new participant already at quota
        """
        now = now or datetime.utcnow()
        assignment = await self._load_assignment(assignment_id)
        hackathon = assignment.hackathon

        self._check_gate(hackathon, now)
        AssignmentStateMachine(assignment).ensure_mutable("reassign")

        new_participant = await self._load_participant(new_participant_id)
        if not new_participant.is_email_verified:
            raise ParticipantNotVerifiedError(new_participant.id)

        old_participant_id = assignment.participant_id
        if await ledger.exists(
            self.db, hackathon.id, assignment.task_id, new_participant.id,
            exclude_assignment_id=assignment.id
        ):
            raise DuplicatePairError(assignment.task_id, new_participant.id)

        if new_participant.id != old_participant_id:
            held = await ledger.count_for_participant(self.db, hackathon.id, new_participant.id)
            if remaining_quota(hackathon, held) <= 0:
                raise QuotaExceededError(new_participant.id, hackathon.tasks_per_participant)

        await ledger.move_to_participant(self.db, assignment, new_participant.id, assigned_at=now)
        await log_assignment_event(
            self.db, AuditAction.TASK_REASSIGNED, assignment, actor_id,
            details={
                "old_participant_id": old_participant_id,
                "new_participant_id": new_participant.id,
            },
            source_ip=source_ip,
        )
        await self.db.commit()

        logger.info(
            f"[REASSIGN SUCCESS] id={assignment.id} task={assignment.task_id} "
            f"{old_participant_id} -> {new_participant.id}"
        )
        await self._notify(new_participant, assignment.task, hackathon, REASSIGNED_LABEL)
        return assignment

    async def unassign(
        self,
        assignment_id: int,
        actor_id: int,
        now: Optional[datetime] = None,
        source_ip: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Delete an untouched entry and release its task slot.

        Returns the removed entry as a dict.

        Raises:
            NotFoundError: assignment missing
            InvalidStateTransitionError: entry already submitted, late or evaluated
        """
        assignment = await self._load_assignment(assignment_id)
        removed = assignment.to_dict()

        await ledger.delete(self.db, assignment)
        # The row is gone; the audit entry keeps its ids
        await log_assignment_event(
            self.db, AuditAction.TASK_UNASSIGNED, assignment, actor_id,
            details={"method": removed["assignment_method"], "status": removed["status"]},
            source_ip=source_ip,
            timestamp=now,
        )
        await self.db.commit()

        logger.info(f"[UNASSIGN SUCCESS] id={assignment_id} task={removed['task_id']}")
        return removed

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_for_hackathon(self, hackathon_id: int) -> List[TaskAssignment]:
        await self._load_hackathon(hackathon_id)
        return await ledger.list_for_hackathon(self.db, hackathon_id)

    async def list_for_participant(self, participant_id: int) -> List[TaskAssignment]:
        return await ledger.list_for_participant(self.db, participant_id)
