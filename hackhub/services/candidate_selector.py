"""
Candidate Selector

Produces the task pool and participant pool for a batch assignment.

Ordering is deterministic (primary key ascending) so that seeded random
runs and skill-matched tie-breaks are reproducible.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.config.settings import Settings
from hackhub.exceptions import InsufficientTasksError, NoEligibleParticipantsError
from hackhub.orm.hackathon import Hackathon, HackathonParticipant
from hackhub.orm.task import Task
from hackhub.orm.user import User, UserRole
from hackhub.services.allocation_strategies import ParticipantCandidate, TaskCandidate
from hackhub.services.capacity_policy import remaining_quota

logger = logging.getLogger(__name__)


def to_participant_candidate(user: User) -> ParticipantCandidate:
    return ParticipantCandidate(
        user_id=user.id,
        name=user.display_name(),
        email=user.email,
        skills=user.skill_list,
    )


def to_task_candidate(task: Task) -> TaskCandidate:
    return TaskCandidate(task_id=task.id, title=task.title, tags=task.tag_list)


async def eligible_tasks(db: AsyncSession, hackathon_id: int) -> List[TaskCandidate]:
    """
    Every task of the hackathon. Tasks already held by someone stay in the
    pool; only per-participant uniqueness limits who can get them.

    Raises:
        InsufficientTasksError: the hackathon has no tasks
    """
    result = await db.execute(
        select(Task).where(Task.hackathon_id == hackathon_id).order_by(Task.id)
    )
    tasks = [to_task_candidate(task) for task in result.scalars().all()]

    if not tasks:
        raise InsufficientTasksError(hackathon_id)
    return tasks


async def eligible_participants(
    db: AsyncSession,
    hackathon: Hackathon,
    assigned_counts: Dict[int, int],
    enrolled_only: Optional[bool] = None
) -> List[ParticipantCandidate]:
    """
    Active, email-verified participants whose remaining quota is above zero.

    Args:
        hackathon: hackathon being assigned
        assigned_counts: ledger entry count per participant for this hackathon
        enrolled_only: restrict to enrolled users (defaults to ASSIGN_ENROLLED_ONLY)

    Returns:
        Participants still needing tasks; empty when everyone is at quota

    Raises:
        NoEligibleParticipantsError: no verified participant exists at all
    """
    if enrolled_only is None:
        enrolled_only = Settings.ASSIGN_ENROLLED_ONLY

    query = select(User).where(
        User.role == UserRole.participant,
        User.is_email_verified == True,  # noqa: E712
        User.is_active == True,  # noqa: E712
    )
    if enrolled_only:
        query = query.join(
            HackathonParticipant,
            HackathonParticipant.user_id == User.id
        ).where(HackathonParticipant.hackathon_id == hackathon.id)

    result = await db.execute(query.order_by(User.id))
    pool = result.scalars().all()

    if not pool:
        raise NoEligibleParticipantsError(hackathon.id)

    # Everyone at quota: nothing to do, not an error
    participants = [
        to_participant_candidate(user)
        for user in pool
        if remaining_quota(hackathon, assigned_counts.get(user.id, 0)) > 0
    ]

    logger.info(
        f"[CANDIDATES] hackathon={hackathon.id} participants_needing_tasks={len(participants)}"
    )
    return participants
