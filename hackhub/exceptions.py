"""
hackhub/exceptions.py
Typed exceptions for the task assignment core

Every exception carries:
- message: human-readable description
- code: machine-readable error code
- status_code: HTTP status used when surfaced by the API
"""
from typing import Any, Dict, Optional


class AssignmentError(Exception):
    """Base exception for assignment errors."""
    status_code: int = 400
    default_code: str = "ASSIGNMENT_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(AssignmentError):
    """Raised when a hackathon, task, participant or assignment is missing."""
    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        self.resource = resource
        self.identifier = identifier
        super().__init__(message, f"{resource.upper().replace(' ', '_')}_NOT_FOUND")


class AssignmentWindowClosedError(AssignmentError):
    """Raised when the hackathon is not active or outside its assignment window."""
    default_code = "ASSIGNMENT_WINDOW_CLOSED"

    def __init__(self, hackathon_id: int):
        super().__init__(
            f"Task assignment is not allowed for hackathon {hackathon_id} at this time. "
            "Check hackathon status and assignment window."
        )


class InsufficientTasksError(AssignmentError):
    """Raised when the hackathon has no tasks to hand out."""
    default_code = "INSUFFICIENT_TASKS"

    def __init__(self, hackathon_id: int):
        super().__init__(f"No tasks available for assignment in hackathon {hackathon_id}")


class NoEligibleParticipantsError(AssignmentError):
    """Raised when no verified participant still needs tasks."""
    default_code = "NO_ELIGIBLE_PARTICIPANTS"

    def __init__(self, hackathon_id: int):
        super().__init__(f"No participants need task assignment in hackathon {hackathon_id}")


class DuplicatePairError(AssignmentError):
    """Raised when a participant already holds the task in this hackathon."""
    status_code = 409
    default_code = "DUPLICATE_PAIR"

    def __init__(self, task_id: int, participant_id: int):
        self.task_id = task_id
        self.participant_id = participant_id
        super().__init__(f"Task {task_id} is already assigned to participant {participant_id}")


class QuotaExceededError(AssignmentError):
    """Raised when a participant already holds tasks_per_participant tasks."""
    default_code = "QUOTA_EXCEEDED"

    def __init__(self, participant_id: int, quota: int):
        super().__init__(f"Participant {participant_id} already has {quota} task(s) assigned")


class InvalidStateTransitionError(AssignmentError):
    """Raised when an assignment cannot move from its current status."""
    default_code = "STATE_TRANSITION_INVALID"

    def __init__(self, message: str, from_state: Optional[str] = None, to_state: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(message, details={"from_state": from_state, "to_state": to_state})


class ParticipantNotVerifiedError(AssignmentError):
    """Raised when the participant has not verified their email."""
    default_code = "PARTICIPANT_NOT_VERIFIED"

    def __init__(self, participant_id: int):
        super().__init__(f"Participant {participant_id} email is not verified")


class NotAssignmentOwnerError(AssignmentError):
    """Raised when a participant acts on someone else's assignment."""
    status_code = 403
    default_code = "OWNERSHIP_VIOLATION"

    def __init__(self, assignment_id: int):
        super().__init__(f"You are not authorized to submit for assignment {assignment_id}")


class SubmissionClosedError(AssignmentError):
    """Raised when the hackathon no longer accepts submissions."""
    default_code = "SUBMISSION_CLOSED"

    def __init__(self, hackathon_id: int):
        super().__init__(f"Submission deadline has passed or hackathon {hackathon_id} is not active")


class InvalidScoreError(AssignmentError):
    """Raised when an evaluation score is outside 0..100."""
    default_code = "INVALID_SCORE"

    def __init__(self, score: Any):
        super().__init__(f"Score must be between 0 and 100, got {score}")
