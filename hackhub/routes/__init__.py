"""
hackhub/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from hackhub.routes import assignments, submissions

router = APIRouter()

router.include_router(assignments.router)
router.include_router(submissions.router)
