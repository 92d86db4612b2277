"""
Assignment State Machine

Strict server-side status enforcement for ledger entries.

    assigned --(submission)--> submitted | late --(evaluation)--> evaluated
    assigned --(unassign)----> <deleted>

Every other transition is rejected.
"""
import logging
from typing import Dict, List, Optional

from hackhub.exceptions import InvalidStateTransitionError
from hackhub.orm.task_assignment import TaskAssignment, AssignmentStatus

logger = logging.getLogger(__name__)


class AssignmentStateMachine:
    """
    Validates and applies status changes on one TaskAssignment.

    The caller owns the database session; this class only mutates the
    in-memory entity.
    """

    # Valid state transitions: {current_state: [allowed_next_states]}
    ALLOWED_TRANSITIONS: Dict[AssignmentStatus, List[AssignmentStatus]] = {
        AssignmentStatus.ASSIGNED: [
            AssignmentStatus.SUBMITTED,
            AssignmentStatus.LATE,
        ],
        AssignmentStatus.SUBMITTED: [
            AssignmentStatus.EVALUATED,
        ],
        AssignmentStatus.LATE: [
            AssignmentStatus.EVALUATED,
        ],
        AssignmentStatus.EVALUATED: [],
    }

    # Only untouched entries may be deleted or handed to someone else
    MUTABLE_STATES = {AssignmentStatus.ASSIGNED}

    def __init__(self, assignment: TaskAssignment):
        self.assignment = assignment

    @property
    def state(self) -> AssignmentStatus:
        return self.assignment.status or AssignmentStatus.ASSIGNED

    @classmethod
    def is_valid_transition(cls, from_state: AssignmentStatus, to_state: AssignmentStatus) -> bool:
        return to_state in cls.ALLOWED_TRANSITIONS.get(from_state, [])

    def validate_transition(self, new_state: AssignmentStatus):
        """Raise unless new_state is reachable from the current state."""
        if not self.is_valid_transition(self.state, new_state):
            raise InvalidStateTransitionError(
                f"Cannot move assignment {self.assignment.id} from "
                f"{self.state.value} to {new_state.value}",
                from_state=self.state.value,
                to_state=new_state.value,
            )

    def transition(
        self,
        new_state: AssignmentStatus,
        submission_id: Optional[int] = None,
        score: Optional[int] = None,
        remarks: Optional[str] = None,
    ) -> TaskAssignment:
        """
        Move the assignment to new_state.

        Raises:
            InvalidStateTransitionError: transition not in ALLOWED_TRANSITIONS
        """
        from_state = self.state
        self.validate_transition(new_state)

        self.assignment.status = new_state
        if submission_id is not None:
            self.assignment.submission_id = submission_id
        if new_state == AssignmentStatus.EVALUATED:
            self.assignment.score = score
            self.assignment.remarks = remarks

        logger.info(
            f"[ASSIGNMENT STATE] id={self.assignment.id} {from_state.value} -> {new_state.value}"
        )
        return self.assignment

    def ensure_mutable(self, action: str = "unassign"):
        """Raise unless the assignment is still plain 'assigned'."""
        if self.state not in self.MUTABLE_STATES:
            raise InvalidStateTransitionError(
                f"Cannot {action} a task that has been {self.state.value}",
                from_state=self.state.value,
                to_state=None,
            )
