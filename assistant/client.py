import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence

from groq import APIError, Groq

from receivables.models import AuditSummary, LedgerEntry

from .prompt import answer_locally, build_system_instruction

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"

INSIGHT_INSTRUCTION = "You are an expert Audit assistant. Provide concise, risk-focused answers."


@dataclass(frozen=True)
class Insight:
    answer: str
    source: str


class AuditAssistant:
    """One-shot questions about an audit session, answered by a hosted model."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[Groq] = None):
        self.api_key = api_key or os.getenv("GROQ_API_KEY")
        self.model = model or DEFAULT_MODEL
        self.client = client

        if self.client is None and self.api_key:
            self.client = Groq(api_key=self.api_key)

    @property
    def is_available(self) -> bool:
        return self.client is not None

    def ask(self, question: str, entries: Sequence[LedgerEntry], summary: AuditSummary) -> Insight:
        if self.client:
            answer = self._ask_groq(question, entries, summary)
            if answer:
                return Insight(answer=answer, source="groq")
        return Insight(answer=answer_locally(question, entries, summary), source="local")

    def _ask_groq(self, question: str, entries: Sequence[LedgerEntry], summary: AuditSummary) -> Optional[str]:
        context = build_system_instruction(entries, summary)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": INSIGHT_INSTRUCTION},
                    {"role": "user", "content": f"Context: {context}\n\nUser Question: {question}"}
                ],
                temperature=0.2,
                max_tokens=1024
            )
        except APIError:
            logger.exception("Groq insight request failed; answering locally")
            return None
        return (response.choices[0].message.content or "").strip() or None
