"""
Audit Assistant Package

Builds the hosted-model prompt from an audit session, answers one-shot
questions, and runs live conversational sessions behind a connector
interface.
"""

from .client import AuditAssistant, Insight
from .live import (
    AssistantError,
    GroqLiveConnector,
    LiveConfig,
    LiveConnector,
    LiveMessage,
    LiveSession,
    LiveSessionClosedError,
    LocalLiveConnector,
)
from .prompt import answer_locally, build_system_instruction

__all__ = [
    "AuditAssistant",
    "Insight",
    "AssistantError",
    "GroqLiveConnector",
    "LiveConfig",
    "LiveConnector",
    "LiveMessage",
    "LiveSession",
    "LiveSessionClosedError",
    "LocalLiveConnector",
    "answer_locally",
    "build_system_instruction",
]
