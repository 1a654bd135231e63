"""
Recruiter Chat API Router.

Chat turns, session inspection, the field schema, and one-shot
document generation for a record assembled outside the chat.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from src.config import get_settings
from src.logging_config import get_logger
from src.schemas.chat import (
    ChatRequest,
    ChatResponse,
    FieldInfo,
    GenerateRequest,
    GenerateResponse,
    SessionSnapshot,
    TranscriptItem,
)
from src.schemas.session import Session, SessionStatus
from src.services.conversation_manager import ConversationManager, TurnResult
from src.services.data_extraction import DataExtractor
from src.services.document_generator import DocumentGenerator, MissingFieldsError
from src.services.field_schema import VACANCY_FIELDS
from src.services.field_selector import completion_percentage, is_complete
from src.services.llm_client import LLMClient
from src.services.question_phraser import QuestionPhraser
from src.services.session_store import build_session_store
from src.services.skip_detector import SkipDetector
from src.services.webhook import WebhookSink

logger = get_logger(__name__)
router = APIRouter(prefix="/api/recruiter", tags=["Recruiter"])

# Shared manager instance (built at startup, or on first use)
_manager: ConversationManager | None = None


def build_conversation_manager() -> ConversationManager:
    """
    Wire the conversation manager from settings.

    Raises:
        ConfigurationError: if the OpenAI API key is not configured.
    """
    settings = get_settings()
    llm = LLMClient(settings)
    return ConversationManager(
        store=build_session_store(settings),
        extractor=DataExtractor(llm),
        skip_detector=SkipDetector(llm),
        phraser=QuestionPhraser(llm),
        generator=DocumentGenerator(llm),
        webhook=WebhookSink(settings),
        settings=settings,
    )


def init_conversation_manager() -> ConversationManager:
    global _manager
    if _manager is None:
        _manager = build_conversation_manager()
    return _manager


def get_conversation_manager() -> ConversationManager:
    return init_conversation_manager()


def _chat_response(result: TurnResult) -> ChatResponse:
    session = result.session
    return ChatResponse(
        session_id=session.id,
        message=result.message,
        is_complete=result.is_complete,
        status=session.status,
        record=session.record,
        completion_percentage=completion_percentage(session.record, session.skipped_fields),
        document=session.document if session.status == SessionStatus.COMPLETED else None,
        webhook_success=result.webhook_success,
        clarification=result.clarification,
    )


def _snapshot(session: Session) -> SessionSnapshot:
    return SessionSnapshot(
        session_id=session.id,
        status=session.status,
        record=session.record,
        last_asked_field=session.last_asked_field,
        skipped_fields=session.skipped_fields,
        completion_percentage=completion_percentage(session.record, session.skipped_fields),
        is_complete=session.status == SessionStatus.COMPLETED,
        mandatory_complete=is_complete(session.record),
        transcript=[TranscriptItem(role=e.role.value, text=e.text) for e in session.transcript],
        document=session.document,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    manager: ConversationManager = Depends(get_conversation_manager),
) -> ChatResponse:
    """Process one chat turn; omit ``sessionId`` to start a new vacancy."""
    try:
        result = await manager.handle_turn(body.session_id, body.message)
    except Exception as e:
        logger.error("chat_turn_error", session_id=body.session_id, error=str(e))
        raise HTTPException(status_code=500, detail="An internal server error occurred.")
    return _chat_response(result)


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(
    session_id: str,
    manager: ConversationManager = Depends(get_conversation_manager),
) -> SessionSnapshot:
    session = await manager.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _snapshot(session)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    manager: ConversationManager = Depends(get_conversation_manager),
) -> Response:
    if not await manager.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.get("/fields", response_model=list[FieldInfo])
async def list_fields() -> list[FieldInfo]:
    """The vacancy fields in the order they are asked."""
    return [
        FieldInfo(
            name=f.name,
            display_name=f.display_name,
            kind=f.kind,
            required=f.required,
            description=f.description,
            options=list(f.options) or None,
        )
        for f in VACANCY_FIELDS
    ]


@router.post("/generate", response_model=GenerateResponse)
async def generate_document(
    body: GenerateRequest,
    manager: ConversationManager = Depends(get_conversation_manager),
):
    """Generate a job description for a complete record without chatting."""
    try:
        document = await manager.generator.generate_strict(body.record)
    except MissingFieldsError as e:
        logger.info("generate_missing_fields", missing=[f.name for f in e.missing])
        return JSONResponse(
            status_code=400,
            content={
                "message": str(e),
                "missingFields": [f.name for f in e.missing],
            },
        )

    try:
        webhook_success = await manager.webhook.post(body.record, document.text)
    except Exception as e:
        logger.error("generate_webhook_error", error=str(e))
        webhook_success = False

    return GenerateResponse(
        document=document.text,
        used_fallback=document.used_fallback,
        webhook_success=webhook_success,
    )

