"""
WebShield - Stored Records
===========================
Backend-neutral entities returned by every storage implementation.
Serialized with camelCase keys.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from webshield.plans import Plan, normalize_plan


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _canonical_plan(value: Any) -> Any:
    plan = normalize_plan(value)
    return plan.value if plan else value


PlanName = Annotated[str, BeforeValidator(_canonical_plan)]


# ============== USERS ==============

class NewUser(Record):
    username: str
    password: str
    email: str
    name: Optional[str] = None
    plan: PlanName = Plan.BASE.value


class User(Record):
    id: int
    username: str
    password: str = Field(default="", exclude=True, repr=False)
    email: str
    name: Optional[str] = None
    plan: PlanName
    created_at: datetime


# ============== SCANS ==============

class NewScan(Record):
    user_id: int
    url: str
    score: int = Field(ge=0, le=100)
    results: Dict[str, Any]
    ai_advice: Optional[str] = None


class Scan(Record):
    id: int
    user_id: int
    url: str
    score: int
    scan_date: datetime
    results: Dict[str, Any]
    ai_advice: Optional[str] = None
    report_url: Optional[str] = None


# ============== COMPLIANCE ==============

class ComplianceAnswer(Record):
    question_id: int
    answer: str


class NewCompliance(Record):
    user_id: int
    answers: List[ComplianceAnswer]
    score: int = Field(ge=0, le=100)
    recommendations: Optional[str] = None


class Compliance(Record):
    id: int
    user_id: int
    answers: List[ComplianceAnswer]
    score: int
    recommendations: Optional[str] = None
    created_at: datetime


# ============== REPORTS ==============

class NewReport(Record):
    user_id: int
    scan_id: Optional[int] = None
    compliance_id: Optional[int] = None
    report_type: str
    file_path: str


class Report(Record):
    id: int
    user_id: int
    scan_id: Optional[int] = None
    compliance_id: Optional[int] = None
    report_type: str
    file_path: str
    created_at: datetime
