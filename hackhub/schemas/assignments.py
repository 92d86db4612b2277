"""
Pydantic Schemas for Task Assignment

Request and response models for manual, random and smart assignment,
reassignment and ledger listings.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Requests
# ============================================================================

class ManualAssignmentRequest(BaseModel):
    """Assign one task to one participant."""
    hackathon_id: int = Field(..., ge=1, description="Hackathon the task belongs to")
    task_id: int = Field(..., ge=1, description="Task to assign")
    participant_id: int = Field(..., ge=1, description="Participant receiving the task")


class BatchAssignmentRequest(BaseModel):
    """Random or smart batch run over a whole hackathon."""
    hackathon_id: int = Field(..., ge=1, description="Hackathon to assign tasks in")


class ReassignRequest(BaseModel):
    new_participant_id: int = Field(..., ge=1, description="Participant taking over the task")


# ============================================================================
# Responses
# ============================================================================

class AssignmentResponse(BaseModel):
    """One ledger entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    hackathon_id: int
    task_id: int
    participant_id: int
    assignment_method: str
    assigned_by: int
    assigned_at: Optional[str] = None
    status: str
    match_score: Optional[float] = None
    submission_id: Optional[int] = None
    score: Optional[int] = None
    remarks: Optional[str] = None
    task: Optional[Dict[str, Any]] = None
    participant: Optional[Dict[str, Any]] = None
    hackathon: Optional[Dict[str, Any]] = None


class AssignmentEnvelope(BaseModel):
    success: bool = True
    message: str
    data: Dict[str, Any]


class BatchAssignmentData(BaseModel):
    hackathon_id: int
    method: str
    requested: int
    assignments_count: int
    skipped_duplicates: int
    assignments: List[AssignmentResponse] = []


class BatchAssignmentEnvelope(BaseModel):
    success: bool = True
    message: str
    data: BatchAssignmentData


class AssignmentListEnvelope(BaseModel):
    success: bool = True
    data: Dict[str, List[AssignmentResponse]]
