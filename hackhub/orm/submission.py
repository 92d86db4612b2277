"""
hackhub/orm/submission.py
Participant submission for one assignment, plus its evaluation
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from hackhub.orm.base import Base, isoformat_or_none


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(
        Integer,
        ForeignKey("task_assignments.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True
    )
    participant_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="RESTRICT"), nullable=False)
    hackathon_id = Column(Integer, ForeignKey("hackathons.id", ondelete="RESTRICT"), nullable=False)

    submission_url = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    is_late = Column(Boolean, nullable=False, default=False)

    # Evaluation
    score = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    evaluated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    evaluated_at = Column(DateTime, nullable=True)

    assignment = relationship("TaskAssignment", foreign_keys=[assignment_id])

    __table_args__ = (
        Index("idx_submissions_participant_hackathon", "participant_id", "hackathon_id"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "assignment_id": self.assignment_id,
            "participant_id": self.participant_id,
            "task_id": self.task_id,
            "hackathon_id": self.hackathon_id,
            "submission_url": self.submission_url,
            "description": self.description,
            "submitted_at": isoformat_or_none(self.submitted_at),
            "is_late": self.is_late,
            "evaluation": {
                "score": self.score,
                "feedback": self.feedback,
                "evaluated_by": self.evaluated_by,
                "evaluated_at": isoformat_or_none(self.evaluated_at),
            } if self.evaluated_at else None,
        }
