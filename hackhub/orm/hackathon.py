"""
hackhub/orm/hackathon.py
Hackathon event window and enrollment

A hackathon owns its task pool and the schedule that gates assignment
and submission:

    assignment_start_date < assignment_end_date < submission_deadline
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey,
    UniqueConstraint, Index, Enum as SQLEnum, event
)
from sqlalchemy.orm import relationship

from hackhub.orm.base import Base, TimestampedModel, isoformat_or_none


class HackathonStatus(str, Enum):
    draft = "draft"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class Hackathon(TimestampedModel):
    __tablename__ = "hackathons"

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    assignment_start_date = Column(DateTime, nullable=False)
    assignment_end_date = Column(DateTime, nullable=False)
    submission_deadline = Column(DateTime, nullable=False)

    status = Column(
        SQLEnum(HackathonStatus),
        nullable=False,
        default=HackathonStatus.draft,
        index=True
    )
    max_participants = Column(Integer, nullable=False, default=100)
    tasks_per_participant = Column(Integer, nullable=False, default=1)

    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    tasks = relationship(
        "Task",
        back_populates="hackathon",
        cascade="all, delete-orphan",
        order_by="Task.id"
    )
    enrollments = relationship(
        "HackathonParticipant",
        back_populates="hackathon",
        cascade="all, delete-orphan"
    )

    def validate_schedule(self):
        """Raise ValueError when the schedule invariants do not hold."""
        if self.tasks_per_participant is not None and self.tasks_per_participant < 1:
            raise ValueError("tasks_per_participant must be at least 1")
        if self.assignment_start_date and self.assignment_end_date:
            if self.assignment_end_date <= self.assignment_start_date:
                raise ValueError("assignment_end_date must be after assignment_start_date")
        if self.assignment_end_date and self.submission_deadline:
            if self.submission_deadline <= self.assignment_end_date:
                raise ValueError("submission_deadline must be after assignment_end_date")

    def is_active(self) -> bool:
        return self.status == HackathonStatus.active

    def can_assign_tasks(self, now: Optional[datetime] = None) -> bool:
        from hackhub.services.capacity_policy import can_assign
        return can_assign(self, now or datetime.utcnow())

    def can_submit(self, now: Optional[datetime] = None, allow_late: bool = False) -> bool:
        """Active and either before the deadline or accepting late work."""
        now = now or datetime.utcnow()
        return self.is_active() and (allow_late or now <= self.submission_deadline)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value if self.status else None,
            "assignment_start_date": isoformat_or_none(self.assignment_start_date),
            "assignment_end_date": isoformat_or_none(self.assignment_end_date),
            "submission_deadline": isoformat_or_none(self.submission_deadline),
            "max_participants": self.max_participants,
            "tasks_per_participant": self.tasks_per_participant,
        }

    def __repr__(self):
        return f"<Hackathon(id={self.id}, title='{self.title}', status={self.status})>"


class HackathonParticipant(Base):
    """Enrollment of a participant in a hackathon."""
    __tablename__ = "hackathon_participants"

    id = Column(Integer, primary_key=True, index=True)
    hackathon_id = Column(
        Integer,
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    enrolled_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    hackathon = relationship("Hackathon", back_populates="enrollments")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("hackathon_id", "user_id", name="uq_hackathon_participant"),
        Index("idx_hackathon_participants_user", "user_id"),
    )


@event.listens_for(Hackathon, "before_insert")
@event.listens_for(Hackathon, "before_update")
def validate_hackathon_schedule(mapper, connection, target):
    target.validate_schedule()
