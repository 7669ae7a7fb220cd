"""
WebShield - AI Security Advisor
================================
Text advice for scan results, compliance answers and free-form questions.

Two implementations share one interface: an Anthropic-backed advisor and
a template advisor used when no API key is configured.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import structlog
from anthropic import AsyncAnthropic, APIError

from webshield.config import Settings
from webshield.errors import AdvisorError

logger = structlog.get_logger(__name__)


SYSTEM_PROMPT = (
    "You are a web security and NIS2 compliance advisor for small and "
    "medium-sized businesses. Give concise, practical, prioritized advice "
    "in plain language. Do not invent findings that are not in the input."
)


def _issues(scan_results: Dict[str, Any]) -> List[Dict[str, Any]]:
    issues = scan_results.get("issues") or scan_results.get("vulnerabilities") or []
    return [i for i in issues if isinstance(i, dict)]


def _answer_lines(answers: List[Dict[str, Any]]) -> List[str]:
    lines = []
    for entry in answers:
        qid = entry.get("questionId", entry.get("question_id"))
        lines.append(f"Question {qid}: {entry.get('answer')}")
    return lines


class Advisor(ABC):
    """Produces advisory text. Callers gate access by plan."""

    @abstractmethod
    async def security_advice(self, scan_results: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    async def compliance_advice(self, answers: List[Dict[str, Any]]) -> str:
        ...

    @abstractmethod
    async def ask(self, question: str, context: Optional[str] = None) -> str:
        ...


class TemplateAdvisor(Advisor):
    """Deterministic advice assembled from the input."""

    async def security_advice(self, scan_results: Dict[str, Any]) -> str:
        score = scan_results.get("score", 0)
        lines = [f"Your website scored {score}/100 in our security assessment."]

        issues = _issues(scan_results)
        if issues:
            lines.append("")
            lines.append("Address these findings first:")
            ordered = sorted(
                issues,
                key=lambda i: {"critical": 0, "warning": 1}.get(i.get("type"), 2),
            )
            for issue in ordered[:5]:
                lines.append(f"- [{issue.get('type', 'info')}] {issue.get('title', '')}")

        lines.extend([
            "",
            "General recommendations:",
            "1. Implement a Content Security Policy to prevent cross-site scripting.",
            "2. Mark session cookies Secure and HttpOnly.",
            "3. Keep server software and libraries up to date.",
            "4. Enable two-factor authentication for administrative access.",
            "5. Run security scans regularly to catch regressions early.",
        ])
        return "\n".join(lines)

    async def compliance_advice(self, answers: List[Dict[str, Any]]) -> str:
        weak = [
            a for a in answers
            if a.get("answer") in ("No", "In planning", "Partially implemented")
        ]
        lines = ["NIS2 readiness review based on your questionnaire answers."]
        if not weak:
            lines.append("All assessed controls are fully implemented. Keep them reviewed yearly.")
        else:
            lines.append("")
            lines.append("Controls that need attention:")
            lines.extend(f"- {line}" for line in _answer_lines(weak))
            lines.extend([
                "",
                "Start with items answered 'No': document a minimal policy or "
                "procedure, assign an owner, and set a review date.",
            ])
        return "\n".join(lines)

    async def ask(self, question: str, context: Optional[str] = None) -> str:
        prefix = f"Regarding {context}: " if context else ""
        return (
            f"{prefix}For the question \"{question.strip()}\", start from the "
            "basics: enforce HTTPS everywhere, set modern security headers, keep "
            "software patched, limit administrative access, and document an "
            "incident response plan that meets NIS2 reporting timelines."
        )


class AnthropicAdvisor(Advisor):
    """Advice generated by an Anthropic model."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def _complete(self, prompt: str, purpose: str) -> str:
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIError as e:
            logger.error("advisor_request_failed", purpose=purpose, error=str(e))
            raise AdvisorError() from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        ).strip()
        if not text:
            raise AdvisorError()

        logger.info("advisor_completed", purpose=purpose, model=self.model)
        return text

    async def security_advice(self, scan_results: Dict[str, Any]) -> str:
        findings = "\n".join(
            f"- [{i.get('type')}] {i.get('title')}: {i.get('description', '')}"
            for i in _issues(scan_results)
        ) or "- none"
        prompt = (
            f"Website: {scan_results.get('url', 'unknown')}\n"
            f"Security score: {scan_results.get('score', 0)}/100\n"
            f"HTTPS: {scan_results.get('https')}\n"
            f"Findings:\n{findings}\n\n"
            "Explain the most important risks and give step-by-step fixes."
        )
        return await self._complete(prompt, "security_advice")

    async def compliance_advice(self, answers: List[Dict[str, Any]]) -> str:
        prompt = (
            "NIS2 self-assessment answers:\n"
            + "\n".join(_answer_lines(answers))
            + "\n\nRecommend concrete next steps to reach NIS2 compliance."
        )
        return await self._complete(prompt, "compliance_advice")

    async def ask(self, question: str, context: Optional[str] = None) -> str:
        prompt = question if not context else f"Context: {context}\n\nQuestion: {question}"
        return await self._complete(prompt, "ask")


def build_advisor(config: Settings) -> Advisor:
    if config.anthropic_api_key:
        return AnthropicAdvisor(
            api_key=config.anthropic_api_key,
            model=config.ai_model,
            max_tokens=config.ai_max_tokens,
            timeout=config.ai_timeout_seconds,
        )
    logger.info("advisor_template_mode", reason="no_api_key")
    return TemplateAdvisor()
