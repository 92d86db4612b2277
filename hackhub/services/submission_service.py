"""
Submission Service

Participant submissions and judge evaluation. Both drive the ledger
entry through its state machine:

    assigned -> submitted | late -> evaluated
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.config.settings import Settings
from hackhub.exceptions import (
    NotFoundError,
    NotAssignmentOwnerError,
    SubmissionClosedError,
    InvalidScoreError,
)
from hackhub.orm.audit_log import AuditAction
from hackhub.orm.submission import Submission
from hackhub.orm.task_assignment import AssignmentStatus
from hackhub.services import assignment_ledger as ledger
from hackhub.services.audit_service import record_audit
from hackhub.services.capacity_policy import is_late
from hackhub.state_machines.assignment_state import AssignmentStateMachine

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100


async def create_submission(
    db: AsyncSession,
    assignment_id: int,
    participant_id: int,
    submission_url: str,
    description: str,
    now: Optional[datetime] = None,
    source_ip: Optional[str] = None
) -> Submission:
    """
    Record a participant's work for one of their assignments.

    A submission after the deadline is marked late when
    FEATURE_ALLOW_LATE_SUBMISSION is on and rejected otherwise.

    Raises:
        NotFoundError: assignment missing
        NotAssignmentOwnerError: assignment belongs to someone else
        SubmissionClosedError: hackathon not active, or deadline passed with late submissions off
        InvalidStateTransitionError: assignment already submitted
    """
    now = now or datetime.utcnow()

    assignment = await ledger.get_assignment(db, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment", assignment_id)
    if assignment.participant_id != participant_id:
        raise NotAssignmentOwnerError(assignment_id)

    hackathon = assignment.hackathon
    if not hackathon.can_submit(now, allow_late=Settings.FEATURE_ALLOW_LATE_SUBMISSION):
        raise SubmissionClosedError(hackathon.id)
    late = is_late(hackathon, now)

    new_status = AssignmentStatus.LATE if late else AssignmentStatus.SUBMITTED
    AssignmentStateMachine(assignment).validate_transition(new_status)

    submission = Submission(
        assignment_id=assignment.id,
        participant_id=participant_id,
        task_id=assignment.task_id,
        hackathon_id=hackathon.id,
        submission_url=submission_url,
        description=description,
        submitted_at=now,
        is_late=late,
    )
    db.add(submission)
    await db.flush()

    await ledger.update_status(db, assignment, new_status, submission_id=submission.id)
    await record_audit(
        db,
        action=AuditAction.SUBMISSION_CREATED,
        actor_id=participant_id,
        hackathon_id=hackathon.id,
        task_id=assignment.task_id,
        assignment_id=assignment.id,
        details={"submission_id": submission.id, "is_late": late},
        source_ip=source_ip,
        timestamp=now,
    )
    await db.commit()

    logger.info(
        f"[SUBMISSION CREATED] id={submission.id} assignment={assignment.id} "
        f"participant={participant_id} late={late}"
    )
    return submission


async def evaluate_submission(
    db: AsyncSession,
    submission_id: int,
    judge_id: int,
    score: int,
    feedback: Optional[str] = None,
    now: Optional[datetime] = None,
    source_ip: Optional[str] = None
) -> Submission:
    """
    Score a submission and close its assignment.

    Raises:
        InvalidScoreError: score outside 0..100
        NotFoundError: submission or its assignment missing
        InvalidStateTransitionError: assignment already evaluated
    """
    if score is None or score < MIN_SCORE or score > MAX_SCORE:
        raise InvalidScoreError(score)
    now = now or datetime.utcnow()

    result = await db.execute(select(Submission).where(Submission.id == submission_id))
    submission = result.scalar_one_or_none()
    if not submission:
        raise NotFoundError("Submission", submission_id)

    assignment = await ledger.get_assignment(db, submission.assignment_id)
    if not assignment:
        raise NotFoundError("Assignment", submission.assignment_id)

    await ledger.update_status(
        db, assignment, AssignmentStatus.EVALUATED,
        score=score,
        remarks=feedback,
    )

    submission.score = score
    submission.feedback = feedback
    submission.evaluated_by = judge_id
    submission.evaluated_at = now
    await db.flush()

    await record_audit(
        db,
        action=AuditAction.SUBMISSION_EVALUATED,
        actor_id=judge_id,
        target_user_id=submission.participant_id,
        hackathon_id=submission.hackathon_id,
        task_id=submission.task_id,
        assignment_id=assignment.id,
        details={"submission_id": submission.id, "score": score},
        source_ip=source_ip,
        timestamp=now,
    )
    await db.commit()

    logger.info(f"[SUBMISSION EVALUATED] id={submission.id} judge={judge_id} score={score}")
    return submission
