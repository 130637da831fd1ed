import logging
import threading
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional
from uuid import UUID, uuid4

from .aggregator import (
    aging_series,
    calculate_summary,
    filter_findings,
    potential_bad_debt,
    top_debtors,
)
from .errors import SessionNotFoundError
from .models import (
    AuditSession,
    FindingsResponse,
    MemorandumResponse,
    OverviewResponse,
    SessionResponse,
)
from .parser import DEFAULT_CUTOFF_DATE, parse_ledger
from .report import build_memorandum

if TYPE_CHECKING:
    from assistant.live import LiveSession

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    def __init__(self):
        self.sessions: dict[UUID, AuditSession] = {}
        self.chats: dict[UUID, "LiveSession"] = {}
        self.chat_lock = threading.Lock()


class AuditService:
    """Holds uploaded ledgers as immutable audit sessions.

    A session is built completely (parse and summary) before it is published,
    so a failed upload never leaves partial state behind. ``reset`` is the one
    way to discard a session and whatever chat is attached to it.
    """

    def __init__(self, storage: Optional[InMemorySessionStore] = None, cutoff: Optional[date] = None):
        self.storage = storage or InMemorySessionStore()
        self.cutoff = cutoff or DEFAULT_CUTOFF_DATE

    def load_ledger(self, csv_text: str, source_name: str = "ledger.csv") -> AuditSession:
        parsed = parse_ledger(csv_text, self.cutoff)
        session = AuditSession(
            id=uuid4(),
            source_name=source_name,
            cutoff_date=self.cutoff,
            loaded_at=datetime.now(timezone.utc),
            entries=tuple(parsed.entries),
            summary=calculate_summary(parsed.entries),
            skipped_rows=tuple(parsed.skipped_rows),
        )
        self.storage.sessions[session.id] = session
        logger.info(
            "Loaded ledger %s into session %s: %d entries, %d skipped, %d high risk",
            source_name, session.id, len(session.entries), len(session.skipped_rows),
            session.summary.count_high_risk,
        )
        return session

    def get_session(self, session_id: UUID) -> AuditSession:
        session = self.storage.sessions.get(session_id)
        if not session:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def reset(self, session_id: UUID) -> None:
        if self.storage.sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        chat = self.storage.chats.pop(session_id, None)
        if chat is not None:
            chat.close()
        logger.info("Reset session %s", session_id)

    def describe(self, session_id: UUID, message: str = "Session loaded") -> SessionResponse:
        session = self.get_session(session_id)
        return SessionResponse(
            session_id=session.id,
            source_name=session.source_name,
            cutoff_date=session.cutoff_date,
            loaded_at=session.loaded_at,
            entry_count=len(session.entries),
            summary=session.summary,
            skipped_rows=list(session.skipped_rows),
            message=message,
        )

    def findings(self, session_id: UUID, risk: str = "All", search: str = "") -> FindingsResponse:
        session = self.get_session(session_id)
        entries = filter_findings(session.entries, risk, search)
        return FindingsResponse(
            session_id=session.id,
            risk=risk,
            search=search,
            entries=entries,
            total_count=len(entries),
        )

    def overview(self, session_id: UUID) -> OverviewResponse:
        session = self.get_session(session_id)
        summary = session.summary
        return OverviewResponse(
            session_id=session.id,
            net_exposure=summary.net_exposure,
            potential_bad_debt=potential_bad_debt(summary),
            count_high_risk=summary.count_high_risk,
            bad_debt_provision=summary.bad_debt_provision,
            aging=aging_series(summary),
            top_debtors=top_debtors(session.entries),
        )

    def memorandum(self, session_id: UUID, prepared_on: Optional[date] = None) -> MemorandumResponse:
        session = self.get_session(session_id)
        memo = build_memorandum(session.summary, prepared_on, session.cutoff_date)
        return MemorandumResponse(
            session_id=session.id,
            title=memo.title,
            reference=memo.reference,
            prepared_on=memo.prepared_on,
            sections=memo.sections,
            text=memo.render_text(),
        )

    def attach_chat(self, session_id: UUID, chat: "LiveSession") -> None:
        self.get_session(session_id)
        previous = self.storage.chats.get(session_id)
        if previous is not None and previous is not chat:
            previous.close()
        self.storage.chats[session_id] = chat

    def get_chat(self, session_id: UUID) -> Optional["LiveSession"]:
        self.get_session(session_id)
        chat = self.storage.chats.get(session_id)
        if chat is not None and not chat.is_open:
            self.storage.chats.pop(session_id, None)
            return None
        return chat

    def open_chat(self, session_id: UUID, connect: Callable[[AuditSession], "LiveSession"]) -> "LiveSession":
        """Return the session's open chat, connecting one if there is none.

        Lookup and attach happen under the store lock, so concurrent callers
        share a single live session.
        """
        with self.storage.chat_lock:
            chat = self.get_chat(session_id)
            if chat is None:
                chat = connect(self.get_session(session_id))
                self.attach_chat(session_id, chat)
                logger.info("Opened live chat for session %s", session_id)
            return chat
