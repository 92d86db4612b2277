"""
hackhub/orm/task.py
Task belonging to exactly one hackathon

assigned_count / is_assigned are a cache of the assignment ledger.
They are only ever changed through atomic UPDATE statements in
hackhub.services.assignment_ledger.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey,
    Index, CheckConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from hackhub.orm.base import Base
from hackhub.core.db_types import StringList, normalize_string_list


class TaskDifficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    hackathon_id = Column(
        Integer,
        ForeignKey("hackathons.id", ondelete="CASCADE"),
        nullable=False
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    difficulty = Column(SQLEnum(TaskDifficulty), nullable=False, default=TaskDifficulty.medium)
    tags = Column(StringList, nullable=False, default=list)
    points = Column(Integer, nullable=False, default=100)

    assigned_count = Column(Integer, nullable=False, default=0)
    is_assigned = Column(Boolean, nullable=False, default=False)

    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    hackathon = relationship("Hackathon", back_populates="tasks")

    __table_args__ = (
        CheckConstraint("assigned_count >= 0", name="ck_task_assigned_count_non_negative"),
        Index("idx_tasks_hackathon", "hackathon_id"),
        Index("idx_tasks_hackathon_assigned", "hackathon_id", "is_assigned"),
    )

    @property
    def tag_list(self) -> list:
        return normalize_string_list(self.tags)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hackathon_id": self.hackathon_id,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty.value if self.difficulty else None,
            "tags": self.tag_list,
            "points": self.points,
            "assigned_count": self.assigned_count,
            "is_assigned": self.is_assigned,
        }

    def __repr__(self):
        return f"<Task(id={self.id}, hackathon={self.hackathon_id}, title='{self.title}')>"
