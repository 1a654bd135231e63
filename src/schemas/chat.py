"""
Request/response models for the recruiter chat API.

Field names are snake_case in Python and camelCase on the wire, which
is what the existing chat frontend sends and expects.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.schemas.session import SessionStatus
from src.schemas.vacancy import FieldKind


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(CamelModel):
    session_id: Optional[str] = None
    message: Optional[str] = None


class ChatResponse(CamelModel):
    session_id: str
    message: str
    is_complete: bool
    status: SessionStatus
    record: Optional[dict[str, Any]] = None
    completion_percentage: Optional[int] = None
    document: Optional[str] = None
    webhook_success: Optional[bool] = None
    clarification: bool = False


class TranscriptItem(CamelModel):
    role: str
    text: str


class SessionSnapshot(CamelModel):
    session_id: str
    status: SessionStatus
    record: dict[str, Any]
    last_asked_field: Optional[str] = None
    skipped_fields: list[str]
    completion_percentage: int
    is_complete: bool
    mandatory_complete: bool
    transcript: list[TranscriptItem]
    document: Optional[str] = None


class GenerateRequest(CamelModel):
    record: dict[str, Any]


class GenerateResponse(CamelModel):
    document: str
    used_fallback: bool
    webhook_success: Optional[bool] = None


class FieldInfo(CamelModel):
    """Public view of one vacancy field."""
    name: str
    display_name: str
    kind: FieldKind
    required: bool
    description: str
    options: Optional[list[str]] = None
