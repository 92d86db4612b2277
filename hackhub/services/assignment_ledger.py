"""
Assignment Ledger Service

Source of truth for who holds which task.

Guarantees:
- Uniqueness of (hackathon, task, participant) is enforced by the storage
  unique constraint; the IntegrityError is translated to DuplicatePairError
- Each insert runs in its own SAVEPOINT, so a rejected pair never poisons
  the surrounding batch transaction
- Task.assigned_count / Task.is_assigned change only via single atomic
  UPDATE statements tied to the ledger mutation that caused them
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import select, func, update, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hackhub.exceptions import DuplicatePairError
from hackhub.orm.task import Task
from hackhub.orm.task_assignment import TaskAssignment, AssignmentMethod, AssignmentStatus
from hackhub.state_machines.assignment_state import AssignmentStateMachine

logger = logging.getLogger(__name__)


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig if error.orig is not None else error).lower()
    return "unique" in message or "uq_assignment_hackathon_task_participant" in message


# =============================================================================
# Queries
# =============================================================================

async def exists(
    db: AsyncSession,
    hackathon_id: int,
    task_id: int,
    participant_id: int,
    exclude_assignment_id: Optional[int] = None
) -> bool:
    query = select(TaskAssignment.id).where(
        TaskAssignment.hackathon_id == hackathon_id,
        TaskAssignment.task_id == task_id,
        TaskAssignment.participant_id == participant_id
    )
    if exclude_assignment_id is not None:
        query = query.where(TaskAssignment.id != exclude_assignment_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def count_for_participant(db: AsyncSession, hackathon_id: int, participant_id: int) -> int:
    result = await db.execute(
        select(func.count(TaskAssignment.id)).where(
            TaskAssignment.hackathon_id == hackathon_id,
            TaskAssignment.participant_id == participant_id
        )
    )
    return result.scalar() or 0


async def counts_by_participant(db: AsyncSession, hackathon_id: int) -> Dict[int, int]:
    """Ledger entry count per participant for one hackathon."""
    result = await db.execute(
        select(TaskAssignment.participant_id, func.count(TaskAssignment.id))
        .where(TaskAssignment.hackathon_id == hackathon_id)
        .group_by(TaskAssignment.participant_id)
    )
    return {participant_id: count for participant_id, count in result.all()}


async def existing_pairs(db: AsyncSession, hackathon_id: int) -> Set[Tuple[int, int]]:
    """Set of (participant_id, task_id) already in the ledger for this hackathon."""
    result = await db.execute(
        select(TaskAssignment.participant_id, TaskAssignment.task_id)
        .where(TaskAssignment.hackathon_id == hackathon_id)
    )
    return {(participant_id, task_id) for participant_id, task_id in result.all()}


async def count_for_task(db: AsyncSession, task_id: int) -> int:
    result = await db.execute(
        select(func.count(TaskAssignment.id)).where(TaskAssignment.task_id == task_id)
    )
    return result.scalar() or 0


async def task_counters(db: AsyncSession, task_id: int) -> Tuple[int, bool]:
    """Current (assigned_count, is_assigned) straight from storage."""
    result = await db.execute(
        select(Task.assigned_count, Task.is_assigned).where(Task.id == task_id)
    )
    row = result.one()
    return row.assigned_count, bool(row.is_assigned)


async def get_assignment(db: AsyncSession, assignment_id: int) -> Optional[TaskAssignment]:
    result = await db.execute(
        select(TaskAssignment)
        .options(
            selectinload(TaskAssignment.hackathon),
            selectinload(TaskAssignment.task),
            selectinload(TaskAssignment.participant),
        )
        .where(TaskAssignment.id == assignment_id)
    )
    return result.scalar_one_or_none()


async def list_for_hackathon(db: AsyncSession, hackathon_id: int) -> List[TaskAssignment]:
    """All entries for a hackathon, newest first."""
    result = await db.execute(
        select(TaskAssignment)
        .options(selectinload(TaskAssignment.task), selectinload(TaskAssignment.participant))
        .where(TaskAssignment.hackathon_id == hackathon_id)
        .order_by(TaskAssignment.assigned_at.desc(), TaskAssignment.id.desc())
    )
    return list(result.scalars().all())


async def list_for_participant(db: AsyncSession, participant_id: int) -> List[TaskAssignment]:
    result = await db.execute(
        select(TaskAssignment)
        .options(selectinload(TaskAssignment.task), selectinload(TaskAssignment.hackathon))
        .where(TaskAssignment.participant_id == participant_id)
        .order_by(TaskAssignment.assigned_at.desc(), TaskAssignment.id.desc())
    )
    return list(result.scalars().all())


# =============================================================================
# Task counters
#
# In-memory Task instances are not refreshed; re-select to read the counters.
# =============================================================================

async def increment_task_counter(db: AsyncSession, task_id: int):
    await db.execute(
        update(Task)
        .where(Task.id == task_id)
        .values(assigned_count=Task.assigned_count + 1, is_assigned=True)
        .execution_options(synchronize_session=False)
    )


async def decrement_task_counter(db: AsyncSession, task_id: int):
    # SET expressions see the pre-update row, hence "> 1" for the flag
    await db.execute(
        update(Task)
        .where(Task.id == task_id)
        .values(
            assigned_count=case((Task.assigned_count > 0, Task.assigned_count - 1), else_=0),
            is_assigned=Task.assigned_count > 1,
        )
        .execution_options(synchronize_session=False)
    )


# =============================================================================
# Mutations
# =============================================================================

async def insert(
    db: AsyncSession,
    hackathon_id: int,
    task_id: int,
    participant_id: int,
    method: AssignmentMethod,
    assigned_by: int,
    match_score: Optional[float] = None,
    assigned_at: Optional[datetime] = None
) -> TaskAssignment:
    """
    Insert one ledger entry and bump the task counter in one SAVEPOINT.

    Raises:
        DuplicatePairError: the unique triple already exists
    """
    entry = TaskAssignment(
        hackathon_id=hackathon_id,
        task_id=task_id,
        participant_id=participant_id,
        assignment_method=method,
        assigned_by=assigned_by,
        assigned_at=assigned_at or datetime.utcnow(),
        status=AssignmentStatus.ASSIGNED,
        match_score=match_score,
    )

    try:
        async with db.begin_nested():
            db.add(entry)
            await db.flush()
            await increment_task_counter(db, task_id)
    except IntegrityError as e:
        if not _is_unique_violation(e):
            logger.error(f"[LEDGER DB ERROR] {e}")
            raise
        logger.warning(
            f"[LEDGER DUPLICATE] hackathon={hackathon_id} task={task_id} participant={participant_id}"
        )
        raise DuplicatePairError(task_id, participant_id)

    return entry


async def move_to_participant(
    db: AsyncSession,
    assignment: TaskAssignment,
    new_participant_id: int,
    assigned_at: Optional[datetime] = None
) -> TaskAssignment:
    """
    Hand an entry to another participant, keeping the same row.

    Raises:
        InvalidStateTransitionError: entry is no longer 'assigned'
        DuplicatePairError: new participant already holds the task
    """
    AssignmentStateMachine(assignment).ensure_mutable("reassign")

    task_id = assignment.task_id
    try:
        async with db.begin_nested():
            assignment.participant_id = new_participant_id
            assignment.assigned_at = assigned_at or datetime.utcnow()
            await db.flush()
    except IntegrityError as e:
        if not _is_unique_violation(e):
            raise
        raise DuplicatePairError(task_id, new_participant_id)

    return assignment


async def update_status(
    db: AsyncSession,
    assignment: TaskAssignment,
    new_status: AssignmentStatus,
    submission_id: Optional[int] = None,
    score: Optional[int] = None,
    remarks: Optional[str] = None
) -> TaskAssignment:
    AssignmentStateMachine(assignment).transition(
        new_status,
        submission_id=submission_id,
        score=score,
        remarks=remarks,
    )
    await db.flush()
    return assignment


async def delete(db: AsyncSession, assignment: TaskAssignment):
    """
    Remove an untouched entry and release its task slot.

    Raises:
        InvalidStateTransitionError: status is submitted, late or evaluated
    """
    AssignmentStateMachine(assignment).ensure_mutable("unassign")

    task_id = assignment.task_id
    await decrement_task_counter(db, task_id)
    await db.delete(assignment)
    await db.flush()
