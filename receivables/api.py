import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware

from assistant import (
    AssistantError,
    AuditAssistant,
    GroqLiveConnector,
    LiveConfig,
    LiveConnector,
    LiveSession,
    LocalLiveConnector,
    build_system_instruction,
)

from .errors import LedgerFormatError, SessionNotFoundError
from .models import (
    AskRequest, AuditSession, ChatLogEntry, ChatRequest, ChatResponse, FindingsResponse,
    InsightResponse, LedgerEntry, MemorandumResponse, OverviewResponse,
    SessionResponse, UploadLedgerRequest,
)
from .service import AuditService
from .settings import Settings

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def create_app(
    service: Optional[AuditService] = None,
    settings: Optional[Settings] = None,
    assistant: Optional[AuditAssistant] = None,
    live_connector: Optional[LiveConnector] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or Settings.from_env()
    _configure_logging(settings.log_level)

    service = service or AuditService(cutoff=settings.cutoff_date)
    assistant = assistant or AuditAssistant(api_key=settings.groq_api_key, model=settings.groq_model)
    if live_connector is None and settings.groq_api_key:
        live_connector = GroqLiveConnector(api_key=settings.groq_api_key)

    app = FastAPI(
        title="AR Audit Assistant API",
        description="Accounts-receivable aging, risk stratification and audit memoranda from uploaded ledgers",
        version="1.0.0",
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def not_found(session_id: UUID) -> HTTPException:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session {session_id} not found")

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "ar-audit-assistant", "assistant": "groq" if assistant.is_available else "local"}

    @app.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, tags=["Sessions"])
    def upload_ledger(request: UploadLedgerRequest) -> SessionResponse:
        try:
            session = service.load_ledger(request.csv_text, request.source_name)
        except LedgerFormatError as e:
            logger.warning("Rejected ledger %s: %s", request.source_name, e)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return service.describe(session.id, message="Ledger loaded successfully")

    @app.get("/sessions/{session_id}", response_model=SessionResponse, tags=["Sessions"])
    def get_session(session_id: UUID) -> SessionResponse:
        try:
            return service.describe(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Sessions"])
    def reset_session(session_id: UUID) -> Response:
        try:
            service.reset(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/sessions/{session_id}/entries", response_model=list[LedgerEntry], tags=["Findings"])
    def get_entries(session_id: UUID) -> list[LedgerEntry]:
        try:
            return list(service.get_session(session_id).entries)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.get("/sessions/{session_id}/findings", response_model=FindingsResponse, tags=["Findings"])
    def get_findings(
        session_id: UUID,
        risk: Literal["All", "High", "Medium", "Low"] = "All",
        search: str = "",
    ) -> FindingsResponse:
        try:
            return service.findings(session_id, risk, search)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.get("/sessions/{session_id}/overview", response_model=OverviewResponse, tags=["Findings"])
    def get_overview(session_id: UUID) -> OverviewResponse:
        try:
            return service.overview(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.get("/sessions/{session_id}/report", response_model=MemorandumResponse, tags=["Report"])
    def get_report(session_id: UUID) -> MemorandumResponse:
        try:
            return service.memorandum(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.post("/sessions/{session_id}/insight", response_model=InsightResponse, tags=["Assistant"])
    def ask_insight(session_id: UUID, request: AskRequest) -> InsightResponse:
        try:
            session = service.get_session(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)
        insight = assistant.ask(request.question, session.entries, session.summary)
        return InsightResponse(session_id=session.id, question=request.question, answer=insight.answer, source=insight.source)

    @app.post("/sessions/{session_id}/chat", response_model=ChatResponse, tags=["Assistant"])
    def chat(session_id: UUID, request: ChatRequest) -> ChatResponse:
        def connect(session: AuditSession) -> LiveSession:
            connector = live_connector or LocalLiveConnector(session.entries, session.summary)
            return connector.connect(LiveConfig(
                system_instruction=build_system_instruction(session.entries, session.summary),
                model=settings.groq_model,
                transcription_model=settings.groq_transcription_model,
            ))

        try:
            live = service.open_chat(session_id, connect)
            reply = live.send(request.message)
        except SessionNotFoundError:
            raise not_found(session_id)
        except AssistantError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

        return ChatResponse(
            session_id=session_id,
            reply=reply.text if reply else None,
            transcript=[ChatLogEntry(role=m.role, text=m.text) for m in live.transcript],
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
