"""
Pydantic Schemas for Submissions and Evaluation
"""
from typing import Optional
from pydantic import BaseModel, Field


class SubmissionCreateRequest(BaseModel):
    assignment_id: int = Field(..., ge=1, description="Assignment being submitted")
    submission_url: str = Field(..., min_length=1, max_length=500, description="Link to the work")
    description: str = Field(..., min_length=1, description="What was built")


class EvaluationRequest(BaseModel):
    # 0..100 enforced by the service (INVALID_SCORE)
    score: int = Field(..., description="Score from 0 to 100")
    feedback: Optional[str] = Field(None, max_length=5000)
