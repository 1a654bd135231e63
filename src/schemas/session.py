"""
Data models for conversation sessions.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    COLLECTING = "collecting"
    PENDING_GENERATION = "pending_generation"
    COMPLETED = "completed"


class TranscriptRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TranscriptEntry(BaseModel):
    role: TranscriptRole
    text: str


class Session(BaseModel):
    """One conversation: the vacancy being built and everything said so far."""
    id: str
    record: dict[str, Any]
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    last_asked_field: Optional[str] = None
    skipped_fields: list[str] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.COLLECTING
    document: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def add_transcript(self, role: TranscriptRole, text: str) -> None:
        """Append a transcript segment."""
        self.transcript.append(TranscriptEntry(role=role, text=text))

    def history(self, limit: int) -> list[dict[str, str]]:
        """Most recent transcript entries as chat messages."""
        if limit <= 0:
            return []
        return [
            {"role": entry.role.value, "content": entry.text}
            for entry in self.transcript[-limit:]
        ]
