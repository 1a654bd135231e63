"""
Conversation Manager for the AI recruiter chat.

Runs one turn of the vacancy-collection conversation: classify a skip
of the pending field, extract field values, merge them into the
record, then either ask for the next missing field or generate the
job description. Every LLM-backed step has a deterministic fallback so
a turn always produces a reply.

Session status flow::

    collecting ──(nothing left to ask)──▶ pending_generation
        ▲                                     │
        └──────(user adds new details)────────┤
                                              ▼
    collecting ──(mandatory done + "yes")──▶ completed ◀──("yes")
"""

from __future__ import annotations

import asyncio
import uuid
import weakref
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from src.config import Settings, get_settings
from src.logging_config import bound_session, get_logger
from src.schemas.extraction import (
    Confirmation,
    ExtractionResult,
    ExtractionStatus,
    SkipDecision,
)
from src.schemas.session import Session, SessionStatus, TranscriptRole
from src.schemas.vacancy import FieldDescriptor
from src.services.data_extraction import REPHRASE_MESSAGE, DataExtractor
from src.services.document_generator import (
    DocumentGenerator,
    GeneratedDocument,
    fallback_document,
)
from src.services.field_schema import get_field, new_record
from src.services.field_selector import is_complete, select_next
from src.services.question_phraser import QuestionPhraser
from src.services.record_merge import merge
from src.services.session_store import SessionRepository
from src.services.skip_detector import SkipDetector
from src.services.webhook import WebhookSink

logger = get_logger(__name__)

WELCOME_MESSAGE = (
    "Hi! I'm your AI recruiter assistant. Tell me about the position you're hiring for "
    "and I'll help you put the vacancy together. What's the job title?"
)
READY_MESSAGE = (
    "Looks like we have all the details. Shall I generate the vacancy description now? "
    "You can still add or change anything."
)
COMPLETE_PREFIX = "Here is the generated vacancy description:\n\n"
WEBHOOK_FAILED_NOTE = (
    "The vacancy is ready, but we couldn't forward it to the hiring system. "
    "You can copy the description above."
)
ALREADY_COMPLETE_MESSAGE = (
    "This vacancy is already complete. Start a new conversation to create another one."
)


@dataclass
class TurnResult:
    """What the API needs to answer one chat request."""
    session: Session
    message: str
    webhook_success: Optional[bool] = None
    clarification: bool = False  # The extraction asked the user to rephrase or clarify

    @property
    def is_complete(self) -> bool:
        return self.session.status == SessionStatus.COMPLETED


class ConversationManager:
    """
    Drives the vacancy-collection conversation, one turn at a time.

    Turns on the same session are serialized with a per-session lock;
    turns on different sessions run concurrently. The session is loaded
    at the start of a turn and written back once at the end, so a turn
    that raises leaves the stored session untouched.
    """

    def __init__(
        self,
        store: SessionRepository,
        extractor: DataExtractor,
        skip_detector: SkipDetector,
        phraser: QuestionPhraser,
        generator: DocumentGenerator,
        webhook: WebhookSink,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.skip_detector = skip_detector
        self.phraser = phraser
        self.generator = generator
        self.webhook = webhook
        self.settings = settings or get_settings()
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    # -- Sessions --

    @staticmethod
    def new_session(session_id: str | None = None) -> Session:
        return Session(id=session_id or uuid.uuid4().hex, record=new_record())

    async def get_session(self, session_id: str) -> Session | None:
        return await self.store.get(session_id)

    async def delete_session(self, session_id: str) -> bool:
        async with self._lock_for(session_id):
            deleted = await self.store.delete(session_id)
        if deleted:
            logger.info("session_deleted", session_id=session_id)
        return deleted

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    # -- Turn handling --

    async def handle_turn(self, session_id: str | None, message: str | None) -> TurnResult:
        """
        Process one user message and return the assistant's reply.

        An absent or unknown ``session_id`` starts a new session.
        """
        text = (message or "").strip()
        known = bool(session_id) and await self.store.get(session_id) is not None
        sid = session_id if known else uuid.uuid4().hex

        with bound_session(sid):
            async with self._lock_for(sid):
                session = await self.store.get(sid) if known else None
                is_new = session is None
                if session is None:
                    session = self.new_session(sid)
                    logger.info("session_created")

                logger.info("turn_started", status=session.status.value, has_message=bool(text))
                result = await self._process(session, text, is_new)

                session.updated_at = datetime.now(timezone.utc)
                await self.store.put(session)
                logger.info(
                    "turn_finished",
                    status=session.status.value,
                    last_asked_field=session.last_asked_field,
                    is_complete=result.is_complete,
                )
                return result

    async def _process(self, session: Session, text: str, is_new: bool) -> TurnResult:
        if not text:
            return await self._without_message(session, is_new)

        history = session.history(self.settings.history_window)
        session.add_transcript(TranscriptRole.USER, text)

        if session.status == SessionStatus.COMPLETED:
            return self._reply(session, ALREADY_COMPLETE_MESSAGE)
        if session.status == SessionStatus.PENDING_GENERATION:
            return await self._pending_generation(session, text, history)
        return await self._collecting(session, text, history)

    async def _without_message(self, session: Session, is_new: bool) -> TurnResult:
        if is_new or not session.transcript:
            return self._reply(session, WELCOME_MESSAGE)
        if session.status == SessionStatus.COMPLETED:
            return self._reply(session, ALREADY_COMPLETE_MESSAGE)
        if session.status == SessionStatus.PENDING_GENERATION:
            return self._reply(session, READY_MESSAGE)
        # Re-ask whatever is pending without moving the ring forward
        field = get_field(session.last_asked_field) if session.last_asked_field else None
        if field is None:
            return await self._advance(session)
        return self._reply(session, await self._phrase(field))

    async def _collecting(
        self,
        session: Session,
        text: str,
        history: list[dict[str, str]],
    ) -> TurnResult:
        pending = get_field(session.last_asked_field) if session.last_asked_field else None
        skip: SkipDecision | None = None
        if pending is not None and not pending.required:
            skip = await self._detect_skip(pending, text)

        if skip is not None and skip.should_skip:
            session.record = merge(session.record, None, skip)
            if skip.target_field not in session.skipped_fields:
                session.skipped_fields.append(skip.target_field)
            return await self._advance(session)

        extraction = await self._extract(session, text, history)
        updated = merge(session.record, extraction, message=self._heuristic_input(text))

        # Early generation only for a turn that answered nothing
        if (
            updated == session.record
            and is_complete(session.record)
            and await self._confirmed(session, text, pending)
        ):
            return await self._complete(session)

        if extraction.status == ExtractionStatus.CLARIFICATION_NEEDED:
            return self._clarify(session, extraction)

        session.record = updated
        return await self._advance(session)

    async def _pending_generation(
        self,
        session: Session,
        text: str,
        history: list[dict[str, str]],
    ) -> TurnResult:
        if await self._confirmed(session, text):
            return await self._complete(session)

        extraction = await self._extract(session, text, history)
        if extraction.status == ExtractionStatus.CLARIFICATION_NEEDED:
            return self._clarify(session, extraction)

        updated = merge(session.record, extraction, message=self._heuristic_input(text))
        if updated != session.record:
            session.record = updated
            session.status = SessionStatus.COLLECTING
            logger.info("collection_resumed")
            return await self._advance(session)

        if is_complete(session.record):
            return await self._complete(session)
        return self._reply(session, READY_MESSAGE)

    async def _advance(self, session: Session) -> TurnResult:
        """Ask the next field, or move to pending_generation when none is left."""
        next_field = select_next(session.record, session.last_asked_field, session.skipped_fields)
        if next_field is None:
            session.status = SessionStatus.PENDING_GENERATION
            logger.info("collection_finished")
            return self._reply(session, READY_MESSAGE)

        session.status = SessionStatus.COLLECTING
        session.last_asked_field = next_field.name
        return self._reply(session, await self._phrase(next_field))

    async def _complete(self, session: Session) -> TurnResult:
        document = await self._generate(session.record)
        session.document = document.text
        session.status = SessionStatus.COMPLETED
        session.last_asked_field = None

        webhook_success = await self._deliver(session)
        message = COMPLETE_PREFIX + document.text
        if webhook_success is False:
            message = f"{message}\n\n{WEBHOOK_FAILED_NOTE}"

        logger.info(
            "vacancy_completed",
            used_fallback=document.used_fallback,
            webhook_success=webhook_success,
        )
        result = self._reply(session, message)
        result.webhook_success = webhook_success
        return result

    def _reply(self, session: Session, message: str) -> TurnResult:
        session.add_transcript(TranscriptRole.ASSISTANT, message)
        return TurnResult(session=session, message=message)

    def _clarify(self, session: Session, extraction: ExtractionResult) -> TurnResult:
        result = self._reply(session, extraction.commentary or REPHRASE_MESSAGE)
        result.clarification = True
        return result

    def _heuristic_input(self, text: str) -> str | None:
        return text if self.settings.feature_heuristic_autofill else None

    # -- Collaborator calls with fallbacks --

    async def _extract(
        self,
        session: Session,
        text: str,
        history: list[dict[str, str]],
    ) -> ExtractionResult:
        try:
            return await self.extractor.extract(
                session.record,
                text,
                history=history,
                last_asked_field=session.last_asked_field,
            )
        except Exception as e:
            logger.error("extraction_error", error=str(e))
            return ExtractionResult(
                status=ExtractionStatus.CLARIFICATION_NEEDED,
                updated_record=session.record,
                commentary=REPHRASE_MESSAGE,
            )

    async def _detect_skip(self, field: FieldDescriptor, text: str) -> SkipDecision:
        try:
            return await self.skip_detector.detect_skip(field, text)
        except Exception as e:
            logger.error("skip_detection_error", field=field.name, error=str(e))
            return SkipDecision(should_skip=False, target_field=field.name)

    async def _confirmed(
        self,
        session: Session,
        text: str,
        pending: FieldDescriptor | None = None,
    ) -> bool:
        try:
            answer = await self.skip_detector.classify_confirmation(text, session.record, pending)
        except Exception as e:
            logger.error("confirmation_error", error=str(e))
            return False
        return answer == Confirmation.YES

    async def _phrase(self, field: FieldDescriptor) -> str:
        try:
            return await self.phraser.phrase_question(field)
        except Exception as e:
            logger.error("question_phrasing_error", field=field.name, error=str(e))
            return field.question

    async def _generate(self, record: dict[str, Any]) -> GeneratedDocument:
        try:
            return await self.generator.generate(record)
        except Exception as e:
            logger.error("document_generation_error", error=str(e))
            return GeneratedDocument(text=fallback_document(record), used_fallback=True)

    async def _deliver(self, session: Session) -> bool | None:
        try:
            return await self.webhook.post(session.record, session.document or "", session_id=session.id)
        except Exception as e:
            logger.error("webhook_error", error=str(e))
            return False
