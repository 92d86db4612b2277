"""
Task Assignment Routes

API endpoints for assigning hackathon tasks to participants.
Mutations are admin only; batch runs are rate limited.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.config.settings import Settings
from hackhub.database import get_db
from hackhub.exceptions import AssignmentError
from hackhub.orm.task_assignment import TaskAssignment
from hackhub.orm.user import User
from hackhub.rbac import require_admin, require_participant, require_judge_or_admin
from hackhub.schemas.assignments import (
    ManualAssignmentRequest, BatchAssignmentRequest, ReassignRequest,
    AssignmentEnvelope, BatchAssignmentEnvelope, AssignmentListEnvelope,
)
from hackhub.services.assignment_service import AssignmentOrchestrator
from hackhub.utils.helpers import get_client_ip

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/assignments", tags=["assignments"])
limiter = Limiter(key_func=get_remote_address)


def _assignment_payload(entry: TaskAssignment) -> Dict[str, Any]:
    """Entry dict plus whichever relationships were eagerly loaded."""
    data = entry.to_dict()
    unloaded = inspect(entry).unloaded
    for name in ("task", "participant", "hackathon"):
        if name not in unloaded:
            related = getattr(entry, name)
            data[name] = related.to_dict() if related is not None else None
    return data


async def _fail(db: AsyncSession, e: AssignmentError, context: Optional[str] = None):
    await db.rollback()
    logger.warning(f"[ASSIGNMENT ERROR] {context or ''} {e.code}: {e.message}")
    raise HTTPException(status_code=e.status_code, detail=e.to_dict())


# ============================================================================
# Assign
# ============================================================================

@router.post("/assign/manual", response_model=AssignmentEnvelope, status_code=status.HTTP_201_CREATED)
async def assign_manual(
    request: Request,
    body: ManualAssignmentRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Assign one task to one participant."""
    orchestrator = AssignmentOrchestrator(db)
    try:
        entry = await orchestrator.assign_manual(
            hackathon_id=body.hackathon_id,
            task_id=body.task_id,
            participant_id=body.participant_id,
            actor_id=current_user.id,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await _fail(db, e, "manual")

    return {
        "success": True,
        "message": "Task assigned successfully",
        "data": {"assignment": entry.to_dict()},
    }


@router.post("/assign/random", response_model=BatchAssignmentEnvelope, status_code=status.HTTP_201_CREATED)
@limiter.limit(Settings.BATCH_ASSIGN_RATE_LIMIT)
async def assign_random(
    request: Request,  # Required by slowapi
    body: BatchAssignmentRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Fill every participant's quota with uniformly random tasks."""
    orchestrator = AssignmentOrchestrator(db)
    try:
        result = await orchestrator.assign_random(
            hackathon_id=body.hackathon_id,
            actor_id=current_user.id,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await _fail(db, e, "random")

    return {
        "success": True,
        "message": f"Successfully assigned {result.assignments_count} tasks randomly",
        "data": result.to_dict(),
    }


@router.post("/assign/smart", response_model=BatchAssignmentEnvelope, status_code=status.HTTP_201_CREATED)
@limiter.limit(Settings.BATCH_ASSIGN_RATE_LIMIT)
async def assign_smart(
    request: Request,  # Required by slowapi
    body: BatchAssignmentRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Fill every participant's quota with their best skill-matched tasks."""
    orchestrator = AssignmentOrchestrator(db)
    try:
        result = await orchestrator.assign_smart(
            hackathon_id=body.hackathon_id,
            actor_id=current_user.id,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await _fail(db, e, "smart")

    return {
        "success": True,
        "message": f"Successfully assigned {result.assignments_count} tasks using smart algorithm",
        "data": result.to_dict(),
    }


# ============================================================================
# Read
# ============================================================================

@router.get("/hackathon/{hackathon_id}", response_model=AssignmentListEnvelope)
async def get_assignments_by_hackathon(
    hackathon_id: int,
    current_user: User = Depends(require_judge_or_admin),
    db: AsyncSession = Depends(get_db)
):
    orchestrator = AssignmentOrchestrator(db)
    try:
        entries = await orchestrator.list_for_hackathon(hackathon_id)
    except AssignmentError as e:
        await _fail(db, e, "list")

    return {
        "success": True,
        "data": {"assignments": [_assignment_payload(entry) for entry in entries]},
    }


@router.get("/my-assignments", response_model=AssignmentListEnvelope)
async def get_my_assignments(
    current_user: User = Depends(require_participant),
    db: AsyncSession = Depends(get_db)
):
    orchestrator = AssignmentOrchestrator(db)
    entries = await orchestrator.list_for_participant(current_user.id)
    return {
        "success": True,
        "data": {"assignments": [_assignment_payload(entry) for entry in entries]},
    }


# ============================================================================
# Reassign / unassign
# ============================================================================

@router.put("/{assignment_id}/reassign", response_model=AssignmentEnvelope)
async def reassign_task(
    assignment_id: int,
    request: Request,
    body: ReassignRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    orchestrator = AssignmentOrchestrator(db)
    try:
        entry = await orchestrator.reassign(
            assignment_id=assignment_id,
            new_participant_id=body.new_participant_id,
            actor_id=current_user.id,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await _fail(db, e, "reassign")

    return {
        "success": True,
        "message": "Task reassigned successfully",
        "data": {"assignment": entry.to_dict()},
    }


@router.delete("/{assignment_id}", response_model=AssignmentEnvelope)
async def unassign_task(
    assignment_id: int,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    orchestrator = AssignmentOrchestrator(db)
    try:
        removed = await orchestrator.unassign(
            assignment_id=assignment_id,
            actor_id=current_user.id,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await _fail(db, e, "unassign")

    return {
        "success": True,
        "message": "Task unassigned successfully",
        "data": {"assignment": removed},
    }
