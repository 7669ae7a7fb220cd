"""
WebShield - NIS2 Compliance Service
====================================
Fixed five-question self-assessment: validation, scoring, derived
feedback and optional AI recommendations.
"""

import math
from typing import Any, Dict, List, Optional

import structlog

from webshield.db.records import Compliance, ComplianceAnswer, NewCompliance, User
from webshield.db.storage import Storage
from webshield.errors import AuthorizationError, NotFoundError, ValidationError
from webshield.monitoring import record_compliance
from webshield.plans import has_ai_access
from webshield.services.advisor import Advisor

logger = structlog.get_logger(__name__)


# ============== QUESTION SET ==============

FULLY = "Yes, fully implemented"
PARTIALLY = "Partially implemented"
PLANNING = "In planning"
NO = "No"

ANSWER_OPTIONS = [FULLY, PARTIALLY, PLANNING, NO]

ANSWER_SCORES = {
    FULLY: 100,
    PARTIALLY: 66,
    PLANNING: 33,
    NO: 0,
}

QUESTIONS = [
    {
        "id": 1,
        "category": "Security policy",
        "question": "Does your organization have a formal information security "
                    "policy that addresses NIS2 requirements?",
    },
    {
        "id": 2,
        "category": "Supply chain",
        "question": "Do you have measures in place to address supply chain security risks?",
    },
    {
        "id": 3,
        "category": "Vulnerability handling",
        "question": "Has your organization implemented vulnerability handling and "
                    "disclosure processes?",
    },
    {
        "id": 4,
        "category": "Access control",
        "question": "Do you have security policies for access control and identity management?",
    },
    {
        "id": 5,
        "category": "Incident response",
        "question": "Has your organization implemented incident response procedures?",
    },
]

QUESTION_IDS = {q["id"] for q in QUESTIONS}


# ============== FEEDBACK TABLE ==============

FEEDBACK: Dict[int, Dict[str, Optional[str]]] = {
    1: {
        "strength": "Information security policy in place",
        "improvement": "Formal information security policy",
        "short_term": "Develop a basic information security policy document",
        "medium_term": "Align security policy with NIS2 requirements and get management approval",
        "long_term": "Integrate security policy into organization-wide governance framework",
    },
    2: {
        "strength": "Supply chain security measures implemented",
        "improvement": "Supply chain security measures",
        "short_term": "Create an inventory of critical suppliers",
        "medium_term": "Develop formal supply chain risk assessment procedures",
        "long_term": "Establish continuous supply chain security monitoring and assessment",
    },
    3: {
        "strength": "Vulnerability handling processes established",
        "improvement": "Vulnerability handling processes",
        "short_term": "Implement basic vulnerability scanning on critical systems",
        "medium_term": "Establish a structured vulnerability disclosure process",
        "long_term": "Build a mature vulnerability management program with automated workflows",
    },
    4: {
        "strength": "Access control and identity management policies",
        "improvement": "Access control and identity management",
        "short_term": "Review and document current access control practices",
        "medium_term": "Implement role-based access control across all systems",
        "long_term": None,
    },
    5: {
        "strength": "Incident response procedures implemented",
        "improvement": "Incident response procedures",
        "short_term": "Create a simple incident response plan template",
        "medium_term": "Test and refine incident response procedures",
        "long_term": None,
    },
}

STRATEGIC_ACTIONS = [
    "Implement a comprehensive security monitoring and threat detection system",
    "Conduct regular third-party security assessments",
    "Develop a holistic NIS2 compliance program with regular reviews",
]

MAX_LONG_TERM_ACTIONS = 3

# Which answers put a question into each feedback list
FEEDBACK_RULES = {
    "strengths": ("strength", {FULLY}),
    "improvement_areas": ("improvement", {NO, PLANNING}),
    "short_term_actions": ("short_term", {NO}),
    "medium_term_actions": ("medium_term", {PLANNING, PARTIALLY}),
}


# ============== SCORING ==============

def validate_answers(answers: Any) -> List[ComplianceAnswer]:
    """Turn a raw answers payload into typed answers or raise ValidationError."""
    if not isinstance(answers, list) or not answers:
        raise ValidationError("Valid answers array is required")

    parsed: List[ComplianceAnswer] = []
    seen = set()
    for entry in answers:
        if not isinstance(entry, dict):
            raise ValidationError("Valid answers array is required")

        raw_id = entry.get("questionId", entry.get("question_id"))
        if isinstance(raw_id, bool):
            raw_id = None
        try:
            question_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValidationError("Each answer needs a valid questionId")

        if question_id not in QUESTION_IDS:
            raise ValidationError(f"Unknown question id: {question_id}")
        if question_id in seen:
            raise ValidationError(f"Duplicate answer for question {question_id}")

        answer = entry.get("answer")
        if not isinstance(answer, str):
            raise ValidationError("Each answer needs an answer text")

        seen.add(question_id)
        parsed.append(ComplianceAnswer(question_id=question_id, answer=answer))

    return parsed


def calculate_score(answers: List[ComplianceAnswer]) -> int:
    """
    Mean of the per-answer scores over the answers actually submitted,
    rounded half up. Unrecognized answer text counts as 0.
    """
    if not answers:
        return 0
    total = sum(ANSWER_SCORES.get(a.answer, 0) for a in answers)
    return int(math.floor(total / len(answers) + 0.5))


def derive_feedback(answers: List[ComplianceAnswer]) -> Dict[str, List[str]]:
    """Strengths, gaps and a phased action plan derived from the answers."""
    feedback: Dict[str, List[str]] = {name: [] for name in FEEDBACK_RULES}

    for answer in answers:
        texts = FEEDBACK.get(answer.question_id, {})
        for name, (key, triggers) in FEEDBACK_RULES.items():
            if answer.answer in triggers and texts.get(key):
                feedback[name].append(texts[key])

    long_term = list(STRATEGIC_ACTIONS)
    for answer in answers:
        text = FEEDBACK.get(answer.question_id, {}).get("long_term")
        if text and answer.answer != FULLY:
            long_term.append(text)
    feedback["long_term_actions"] = long_term[:MAX_LONG_TERM_ACTIONS]

    return feedback


class ComplianceAssessment(Compliance):
    """Stored assessment plus feedback recomputed from its answers."""

    strengths: List[str]
    improvement_areas: List[str]
    short_term_actions: List[str]
    medium_term_actions: List[str]
    long_term_actions: List[str]

    @classmethod
    def from_compliance(cls, compliance: Compliance) -> "ComplianceAssessment":
        return cls(
            **compliance.model_dump(),
            **derive_feedback(compliance.answers),
        )


# ============== SERVICE ==============

class ComplianceService:
    """NIS2 questionnaire handling."""

    def __init__(self, storage: Storage, advisor: Advisor):
        self.storage = storage
        self.advisor = advisor

    async def submit(self, answers: Any, user: User) -> ComplianceAssessment:
        parsed = validate_answers(answers)
        score = calculate_score(parsed)

        recommendations = None
        if has_ai_access(user.plan):
            recommendations = await self.advisor.compliance_advice(
                [a.model_dump(by_alias=True) for a in parsed]
            )

        compliance = await self.storage.create_compliance(
            NewCompliance(
                user_id=user.id,
                answers=parsed,
                score=score,
                recommendations=recommendations,
            )
        )
        record_compliance(user.plan)

        logger.info(
            "compliance_submitted",
            compliance_id=compliance.id,
            user_id=user.id,
            score=score,
            answered=len(parsed),
        )
        return ComplianceAssessment.from_compliance(compliance)

    async def latest(self, user: User) -> ComplianceAssessment:
        compliance = await self.storage.get_latest_compliance(user.id)
        if compliance is None:
            raise NotFoundError("No compliance assessment found")
        return ComplianceAssessment.from_compliance(compliance)

    async def get_owned(self, compliance_id: Optional[int], user: User) -> Compliance:
        """Assessment by id, or the user's latest when no id is given."""
        if compliance_id is not None:
            compliance = await self.storage.get_compliance(compliance_id)
        else:
            compliance = await self.storage.get_latest_compliance(user.id)

        if compliance is None:
            raise NotFoundError("Compliance assessment not found")
        if compliance.user_id != user.id:
            logger.warning(
                "compliance_access_denied",
                compliance_id=compliance.id,
                user_id=user.id,
            )
            raise AuthorizationError(
                "You don't have permission to access this compliance assessment"
            )
        return compliance


def compliance_status(score: int) -> str:
    if score >= 80:
        return "Compliant"
    if score >= 40:
        return "Partially Compliant"
    return "Non-Compliant"
