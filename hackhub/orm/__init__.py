from .base import Base

# Core models
from .user import User, UserRole
from .hackathon import Hackathon, HackathonParticipant, HackathonStatus
from .task import Task, TaskDifficulty

# Assignment ledger
from .task_assignment import TaskAssignment, AssignmentMethod, AssignmentStatus
from .submission import Submission
from .audit_log import AuditLog, AuditAction
