"""
Submission Routes

Participants submit work for their own assignments; judges and admins
score it.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.exceptions import AssignmentError
from hackhub.orm.user import User
from hackhub.rbac import require_participant, require_judge_or_admin
from hackhub.schemas.assignments import AssignmentEnvelope
from hackhub.schemas.submissions import SubmissionCreateRequest, EvaluationRequest
from hackhub.services import submission_service
from hackhub.utils.helpers import get_client_ip

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.post("/", response_model=AssignmentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_submission(
    request: Request,
    body: SubmissionCreateRequest,
    current_user: User = Depends(require_participant),
    db: AsyncSession = Depends(get_db)
):
    # Read before any rollback expires current_user
    user_id = current_user.id
    try:
        submission = await submission_service.create_submission(
            db,
            assignment_id=body.assignment_id,
            participant_id=user_id,
            submission_url=body.submission_url,
            description=body.description,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await db.rollback()
        logger.warning(f"Submission rejected for user {user_id}: {e.code}")
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

    return {
        "success": True,
        "message": "Submission created successfully",
        "data": {"submission": submission.to_dict()},
    }


@router.post("/{submission_id}/evaluate", response_model=AssignmentEnvelope)
async def evaluate_submission(
    submission_id: int,
    request: Request,
    body: EvaluationRequest,
    current_user: User = Depends(require_judge_or_admin),
    db: AsyncSession = Depends(get_db)
):
    try:
        submission = await submission_service.evaluate_submission(
            db,
            submission_id=submission_id,
            judge_id=current_user.id,
            score=body.score,
            feedback=body.feedback,
            source_ip=get_client_ip(request),
        )
    except AssignmentError as e:
        await db.rollback()
        logger.warning(f"Evaluation rejected for submission {submission_id}: {e.code}")
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

    return {
        "success": True,
        "message": "Submission evaluated successfully",
        "data": {"submission": submission.to_dict()},
    }
