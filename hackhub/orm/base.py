"""
hackhub/orm/base.py
Declarative base and shared column helpers for the assignment models
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    """Serialize a nullable timestamp for to_dict payloads."""
    return value.isoformat() if value else None


class TimestampedModel(Base):
    """
    Abstract base for long-lived records (users, hackathons).

    Ledger rows and audit entries keep their own event timestamps
    instead of created/updated columns.
    """
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
