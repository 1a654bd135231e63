"""
Data models for LLM extraction and classification results.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExtractionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    CLARIFICATION_NEEDED = "CLARIFICATION_NEEDED"


class ExtractionResult(BaseModel):
    """Candidate update to the vacancy record produced from one utterance."""
    status: ExtractionStatus
    updated_record: dict[str, Any] = Field(default_factory=dict)  # Full record copy, not a patch
    commentary: str = ""


class SkipClassification(str, Enum):
    SKIP = "skip"
    FILL = "fill"


class Confirmation(str, Enum):
    YES = "yes"
    NO = "no"


class SkipDecision(BaseModel):
    """Whether the user declined to answer the pending field."""
    should_skip: bool
    target_field: str
    default_value: Any = None
