"""
WebShield - Compliance Routes
==============================
NIS2 questionnaire: question set, submissions and the latest result.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from webshield.api.deps import Services, get_current_user, get_services
from webshield.db.records import User
from webshield.errors import handle_failures
from webshield.services.compliance import ANSWER_OPTIONS, QUESTIONS, ComplianceAssessment

router = APIRouter(prefix="/compliance", tags=["Compliance"])


class ComplianceSubmit(BaseModel):
    answers: Optional[Any] = None


@router.get("/questions")
async def get_questions():
    """The fixed NIS2 question set and answer options."""
    return {
        "questions": [dict(q) for q in QUESTIONS],
        "options": list(ANSWER_OPTIONS),
    }


@router.post("", response_model=ComplianceAssessment)
async def submit_assessment(
    data: Optional[ComplianceSubmit] = None,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Score a questionnaire submission and store it."""
    answers = data.answers if data else None
    with handle_failures("Failed to process compliance assessment", user_id=user.id):
        return await services.compliance.submit(answers, user)


@router.get("/latest", response_model=ComplianceAssessment)
async def latest_assessment(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """The user's most recent assessment with derived feedback."""
    with handle_failures("Failed to get latest compliance assessment", user_id=user.id):
        return await services.compliance.latest(user)
