"""
Capacity Policy

Pure functions deciding whether a hackathon currently permits task
assignment and how many task slots a participant still needs.

No database access, no side effects, never raises. Callers reject the
action when the gate is closed.
"""
from datetime import datetime

from hackhub.orm.hackathon import HackathonStatus


def can_assign(hackathon, now: datetime) -> bool:
    """
    True iff the hackathon is active and now falls inside the
    assignment window (both ends inclusive).
    """
    if hackathon is None or hackathon.status != HackathonStatus.active:
        return False
    if hackathon.assignment_start_date is None or hackathon.assignment_end_date is None:
        return False
    return hackathon.assignment_start_date <= now <= hackathon.assignment_end_date


def remaining_quota(hackathon, assigned_count: int) -> int:
    """Task slots a participant still needs: max(0, tasks_per_participant - assigned)."""
    return max(0, (hackathon.tasks_per_participant or 0) - (assigned_count or 0))


def is_late(hackathon, submitted_at: datetime) -> bool:
    return submitted_at > hackathon.submission_deadline
