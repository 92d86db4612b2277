"""
hackhub/services/audit_service.py
Centralized audit trail helper for assignment and submission events

Entries are append-only. Writing one is best-effort: a failed audit write
is logged and swallowed so the action it describes still commits.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.orm.audit_log import AuditLog, AuditAction
from hackhub.orm.task_assignment import TaskAssignment

logger = logging.getLogger(__name__)


async def record_audit(
    db: AsyncSession,
    action: AuditAction,
    actor_id: int,
    target_user_id: Optional[int] = None,
    hackathon_id: Optional[int] = None,
    task_id: Optional[int] = None,
    assignment_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    source_ip: Optional[str] = None,
    timestamp: Optional[datetime] = None
) -> Optional[AuditLog]:
    """
    Append one audit entry inside a SAVEPOINT.

    The caller owns the commit, so the entry lands in the same transaction
    as the action it records.

    Args:
        db: Database session
        action: What happened
        actor_id: User who performed the action
        target_user_id: Participant affected (optional)
        hackathon_id / task_id / assignment_id: Scope ids (optional)
        details: JSON-serializable context (optional)
        source_ip: Client IP (optional)

    Returns:
        The AuditLog entry, or None if the write failed
    """
    entry = AuditLog(
        action=action,
        performed_by=actor_id,
        target_user_id=target_user_id,
        hackathon_id=hackathon_id,
        task_id=task_id,
        assignment_id=assignment_id,
        details=details,
        ip_address=source_ip,
        timestamp=timestamp or datetime.utcnow(),
    )

    try:
        async with db.begin_nested():
            db.add(entry)
            await db.flush()
    except SQLAlchemyError as e:
        logger.error(f"[AUDIT FAILED] action={action.value} actor={actor_id}: {e}")
        return None

    logger.debug(f"Audit logged: {action.value} by {actor_id} assignment={assignment_id}")
    return entry


async def log_assignment_event(
    db: AsyncSession,
    action: AuditAction,
    assignment: TaskAssignment,
    actor_id: int,
    details: Optional[Dict[str, Any]] = None,
    source_ip: Optional[str] = None,
    timestamp: Optional[datetime] = None
) -> Optional[AuditLog]:
    """Audit an event scoped to one ledger entry."""
    return await record_audit(
        db,
        action=action,
        actor_id=actor_id,
        target_user_id=assignment.participant_id,
        hackathon_id=assignment.hackathon_id,
        task_id=assignment.task_id,
        assignment_id=assignment.id,
        details=details,
        source_ip=source_ip,
        timestamp=timestamp,
    )
