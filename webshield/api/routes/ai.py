"""
WebShield - AI Advisor Routes
==============================
Premium and Pro only.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from webshield.api.deps import Services, get_services, require_ai_access
from webshield.db.records import User
from webshield.errors import ValidationError, handle_failures
from webshield.monitoring import record_ai_request

router = APIRouter(prefix="/ai", tags=["AI Advisor"])


class SecurityAdviceBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scan_results: Optional[Any] = Field(default=None, alias="scanResults")


class ComplianceAdviceBody(BaseModel):
    answers: Optional[Any] = None


class AskBody(BaseModel):
    question: Optional[str] = None
    context: Optional[str] = None


class AdviceResponse(BaseModel):
    advice: str


class AskResponse(BaseModel):
    response: str


@router.post("/security-advice", response_model=AdviceResponse)
async def security_advice(
    data: Optional[SecurityAdviceBody] = None,
    user: User = Depends(require_ai_access),
    services: Services = Depends(get_services),
):
    """Advice for a set of scan results."""
    results = data.scan_results if data else None
    if not isinstance(results, dict) or not results:
        raise ValidationError("Scan results are required")

    record_ai_request("security")
    with handle_failures("Failed to get AI security advice", user_id=user.id):
        advice = await services.advisor.security_advice(results)
    return {"advice": advice}


@router.post("/compliance-advice", response_model=AdviceResponse)
async def compliance_advice(
    data: Optional[ComplianceAdviceBody] = None,
    user: User = Depends(require_ai_access),
    services: Services = Depends(get_services),
):
    """Advice for a set of questionnaire answers."""
    answers = data.answers if data else None
    if not isinstance(answers, list) or not answers:
        raise ValidationError("Compliance assessment answers are required")

    record_ai_request("compliance")
    with handle_failures("Failed to get AI compliance advice", user_id=user.id):
        advice = await services.advisor.compliance_advice(
            [a for a in answers if isinstance(a, dict)]
        )
    return {"advice": advice}


@router.post("/ask", response_model=AskResponse)
async def ask(
    data: Optional[AskBody] = None,
    user: User = Depends(require_ai_access),
    services: Services = Depends(get_services),
):
    """Free-form security question."""
    question = data.question if data else None
    if not question or not question.strip():
        raise ValidationError("Question is required")

    record_ai_request("ask")
    with handle_failures("Failed to get AI response", user_id=user.id):
        answer = await services.advisor.ask(question, data.context)
    return {"response": answer}
