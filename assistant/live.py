"""
Live conversational sessions with the audit assistant.

Callers talk to a session through a small capability interface:
``connector.connect(config)`` opens a session, ``session.send(chunk)`` pushes
a text turn or an audio chunk, ``session.on_message(handler)`` subscribes to
replies and transcriptions, and ``session.close()`` ends it. Vendor details
stay inside the concrete connectors.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Sequence, Union

from groq import APIError, Groq

from receivables.models import AuditSummary, LedgerEntry

from .prompt import answer_locally

logger = logging.getLogger(__name__)

Chunk = Union[str, bytes]


class AssistantError(Exception):
    pass


class LiveSessionClosedError(AssistantError):
    pass


@dataclass(frozen=True)
class LiveConfig:
    system_instruction: str
    model: str = "llama-3.3-70b-versatile"
    transcription_model: str = "whisper-large-v3"
    temperature: float = 0.3
    max_tokens: int = 512


@dataclass(frozen=True)
class LiveMessage:
    role: Literal["user", "model"]
    text: str


MessageHandler = Callable[[LiveMessage], None]


class LiveSession(ABC):
    def __init__(self, config: LiveConfig):
        self.config = config
        self.transcript: list[LiveMessage] = []
        self._handlers: list[MessageHandler] = []
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def on_message(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def send(self, chunk: Chunk) -> Optional[LiveMessage]:
        """Push one turn and return the model's reply, if it produced one."""
        if not self._open:
            raise LiveSessionClosedError("Live session is closed")

        text = self._transcribe(chunk) if isinstance(chunk, bytes) else chunk.strip()
        if not text:
            return None
        self._emit(LiveMessage(role="user", text=text))

        reply = self._respond(text)
        if not reply:
            return None
        message = LiveMessage(role="model", text=reply)
        self._emit(message)
        return message

    def close(self) -> None:
        if self._open:
            self._open = False
            self._handlers.clear()
            logger.debug("Live session closed after %d messages", len(self.transcript))

    def _emit(self, message: LiveMessage) -> None:
        self.transcript.append(message)
        for handler in self._handlers:
            handler(message)

    @abstractmethod
    def _transcribe(self, audio: bytes) -> str:
        ...

    @abstractmethod
    def _respond(self, text: str) -> str:
        ...


class LiveConnector(ABC):
    @abstractmethod
    def connect(self, config: LiveConfig) -> LiveSession:
        ...


class GroqLiveSession(LiveSession):
    def __init__(self, client: Groq, config: LiveConfig):
        super().__init__(config)
        self.client = client

    def _history(self) -> list[dict]:
        messages = [{"role": "system", "content": self.config.system_instruction}]
        for message in self.transcript:
            messages.append({"role": "assistant" if message.role == "model" else "user", "content": message.text})
        return messages

    def _transcribe(self, audio: bytes) -> str:
        try:
            result = self.client.audio.transcriptions.create(
                file=("chunk.wav", audio),
                model=self.config.transcription_model,
            )
        except APIError:
            logger.exception("Groq transcription failed; dropping audio chunk")
            return ""
        return (result.text or "").strip()

    def _respond(self, text: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=self._history(),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens
            )
        except APIError:
            logger.exception("Groq chat turn failed")
            return "I could not reach the analysis service. Please repeat the question."
        return (response.choices[0].message.content or "").strip()


class GroqLiveConnector(LiveConnector):
    def __init__(self, api_key: Optional[str] = None, client: Optional[Groq] = None):
        self.client = client or Groq(api_key=api_key)

    def connect(self, config: LiveConfig) -> LiveSession:
        logger.info("Opening Groq live session with model %s", config.model)
        return GroqLiveSession(self.client, config)


class LocalLiveSession(LiveSession):
    def __init__(self, config: LiveConfig, entries: Sequence[LedgerEntry], summary: AuditSummary):
        super().__init__(config)
        self.entries = entries
        self.summary = summary

    def _transcribe(self, audio: bytes) -> str:
        # No speech-to-text offline; audio is treated as UTF-8 text.
        return audio.decode("utf-8", errors="ignore").strip()

    def _respond(self, text: str) -> str:
        return answer_locally(text, self.entries, self.summary)


class LocalLiveConnector(LiveConnector):
    """Offline sessions that answer from the audit session's own figures."""

    def __init__(self, entries: Sequence[LedgerEntry], summary: AuditSummary):
        self.entries = entries
        self.summary = summary

    def connect(self, config: LiveConfig) -> LiveSession:
        return LocalLiveSession(config, self.entries, self.summary)
