"""
Assignment Ledger ORM Model

Every participant <-> task assignment in a hackathon.

Storage guarantees:
- UNIQUE(hackathon_id, task_id, participant_id): a participant never
  holds the same task twice within one hackathon, even when two batch
  runs race each other
- Status lifecycle: assigned -> submitted | late -> evaluated
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Dict

from sqlalchemy import (
    Column, Integer, Text, Float, DateTime, ForeignKey,
    Index, UniqueConstraint, CheckConstraint, Enum
)
from sqlalchemy.orm import relationship

from hackhub.orm.base import Base, isoformat_or_none


class AssignmentMethod(PyEnum):
    MANUAL = "manual"
    RANDOM = "random"
    SMART = "smart"


class AssignmentStatus(PyEnum):
    ASSIGNED = "assigned"
    SUBMITTED = "submitted"
    LATE = "late"
    EVALUATED = "evaluated"


class TaskAssignment(Base):
    __tablename__ = "task_assignments"

    id = Column(Integer, primary_key=True, index=True)
    hackathon_id = Column(
        Integer,
        ForeignKey("hackathons.id", ondelete="RESTRICT"),
        nullable=False
    )
    task_id = Column(
        Integer,
        ForeignKey("tasks.id", ondelete="RESTRICT"),
        nullable=False
    )
    participant_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    assignment_method = Column(
        Enum(AssignmentMethod, create_constraint=True, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    assigned_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    status = Column(
        Enum(AssignmentStatus, create_constraint=True, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AssignmentStatus.ASSIGNED
    )

    # Smart assignment only
    match_score = Column(Float, nullable=True)

    # Back-reference only; submissions.assignment_id carries the FK
    submission_id = Column(Integer, nullable=True)
    score = Column(Integer, nullable=True)
    remarks = Column(Text, nullable=True)

    hackathon = relationship("Hackathon")
    task = relationship("Task")
    participant = relationship("User", foreign_keys=[participant_id])

    __table_args__ = (
        UniqueConstraint("hackathon_id", "task_id", "participant_id", name="uq_assignment_hackathon_task_participant"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_assignment_score_range"),
        Index("idx_assignments_hackathon_participant", "hackathon_id", "participant_id"),
        Index("idx_assignments_task", "task_id"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "hackathon_id": self.hackathon_id,
            "task_id": self.task_id,
            "participant_id": self.participant_id,
            "assignment_method": self.assignment_method.value if self.assignment_method else None,
            "assigned_by": self.assigned_by,
            "assigned_at": isoformat_or_none(self.assigned_at),
            "status": self.status.value if self.status else None,
            "match_score": self.match_score,
            "submission_id": self.submission_id,
            "score": self.score,
            "remarks": self.remarks,
        }

    def __repr__(self):
        return (
            f"<TaskAssignment(id={self.id}, hackathon={self.hackathon_id}, "
            f"task={self.task_id}, participant={self.participant_id}, status={self.status})>"
        )
