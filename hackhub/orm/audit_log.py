"""
hackhub/orm/audit_log.py
Append-only audit trail for assignment and submission events
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, DateTime, Index, Enum

from hackhub.orm.base import Base, isoformat_or_none
from hackhub.core.db_types import UniversalJSON


class AuditAction(PyEnum):
    TASK_ASSIGNED = "task_assigned"
    TASK_REASSIGNED = "task_reassigned"
    TASK_UNASSIGNED = "task_unassigned"
    SUBMISSION_CREATED = "submission_created"
    SUBMISSION_EVALUATED = "submission_evaluated"


class AuditLog(Base):
    """
    Immutable audit log entry.

    Ids are stored without foreign keys so that an entry outlives the
    assignment it describes (unassign deletes the ledger row).
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    action = Column(
        Enum(AuditAction, create_constraint=True, values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    performed_by = Column(Integer, nullable=False)
    target_user_id = Column(Integer, nullable=True)
    hackathon_id = Column(Integer, nullable=True)
    task_id = Column(Integer, nullable=True)
    assignment_id = Column(Integer, nullable=True)
    details = Column(UniversalJSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_audit_performed_by_timestamp", "performed_by", "timestamp"),
        Index("idx_audit_hackathon_action", "hackathon_id", "action"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action.value if self.action else None,
            "performed_by": self.performed_by,
            "target_user_id": self.target_user_id,
            "hackathon_id": self.hackathon_id,
            "task_id": self.task_id,
            "assignment_id": self.assignment_id,
            "details": self.details,
            "ip_address": self.ip_address,
            "timestamp": isoformat_or_none(self.timestamp),
        }
