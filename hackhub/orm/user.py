"""
hackhub/orm/user.py
User model with role and skill profile

Participants carry a skill list used by skill-matched assignment.
Only email-verified participants are eligible for task assignment.
"""
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from enum import Enum

from hackhub.orm.base import TimestampedModel
from hackhub.core.db_types import StringList, normalize_string_list


class UserRole(str, Enum):
    """Platform roles"""
    admin = "admin"
    judge = "judge"
    participant = "participant"


class User(TimestampedModel):
    """
    Platform user.

    KEY FIELDS FOR ASSIGNMENT:
    - role: only "participant" users receive tasks
    - skills: free-form skill tags matched against task tags
    - is_email_verified: unverified participants are never assigned
    """
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.participant, index=True)

    skills = Column(StringList, nullable=False, default=list)

    # Account Status
    is_email_verified = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    @property
    def skill_list(self) -> list:
        return normalize_string_list(self.skills)

    def display_name(self) -> str:
        """Return name if available, otherwise email."""
        return self.full_name if self.full_name else self.email

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value if self.role else None,
            "skills": self.skill_list,
            "is_email_verified": self.is_email_verified,
            "is_active": self.is_active,
        }

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
