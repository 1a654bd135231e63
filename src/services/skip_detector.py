"""
Skip & Confirmation Classification.

Two narrow yes/no questions put to the LLM:

- did the user decline to answer the pending field ("skip") or give
  information for it ("fill")?
- did the user confirm that the vacancy should be generated now?

The raw reply is reduced to an enum here, so the conversation logic
never looks at model text. Only a reply that starts with the positive
keyword counts as positive; everything else, including errors, falls
back to the safe answer (fill / no).
"""

from __future__ import annotations

import json
import re
from typing import Any, TypeVar

from src.logging_config import get_logger
from src.schemas.extraction import Confirmation, SkipClassification, SkipDecision
from src.schemas.vacancy import FieldDescriptor, FieldKind
from src.services.llm_client import LLMClient, LLMError

logger = get_logger(__name__)

CLASSIFICATION_MAX_TOKENS = 5

SKIP_PROMPT = """You are helping a recruiter fill in a job vacancy. The last question was about "{display_name}" ({description}).

The recruiter answered: "{message}"

Does the recruiter want to SKIP this field (they declined, said it is not needed, not applicable, or that there is nothing to add), or did they provide information to FILL it?

Answer with exactly one word: SKIP or FILL."""

CONFIRMATION_PROMPT = """You are helping a recruiter create a job vacancy. All the required details have been collected:
{record}

{pending}The recruiter's latest message: "{message}"

Is the recruiter confirming that the vacancy description should be generated now (e.g. "yes", "go ahead", "that's all, generate it")? Answer NO if they are adding or changing details.

Answer with exactly one word: YES or NO."""

PENDING_QUESTION_LINE = (
    'The last question asked was about "{display_name}": "{question}"\n'
    'A reply to that question (such as "yes" or "no") is an answer, not a confirmation.\n\n'
)

E = TypeVar("E", SkipClassification, Confirmation)


def default_for_kind(field: FieldDescriptor) -> Any:
    """Value stored when the user skips ``field``."""
    if field.kind == FieldKind.BOOLEAN:
        return False
    if field.kind == FieldKind.ARRAY:
        return []
    if field.kind == FieldKind.NUMBER:
        return None
    return ""


def parse_binary(reply: str, positive: E, negative: E) -> E:
    """Map a one-word classifier reply onto the enum; anything unclear is negative."""
    words = re.findall(r"[a-z]+", reply.lower())
    if words and words[0] == positive.value:
        return positive
    if not words or words[0] != negative.value:
        logger.warning("classification_ambiguous", reply=reply[:80])
    return negative


class SkipDetector:
    """Classifies utterances for the pending field and for final confirmation."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def classify_skip(self, field: FieldDescriptor, message: str) -> SkipClassification:
        prompt = SKIP_PROMPT.format(
            display_name=field.display_name,
            description=field.description,
            message=message,
        )
        try:
            reply = await self.llm.complete(
                [{"role": "user", "content": prompt}],
                max_tokens=CLASSIFICATION_MAX_TOKENS,
                temperature=0.0,
            )
        except LLMError as e:
            logger.warning("skip_classification_failed", field=field.name, error=str(e))
            return SkipClassification.FILL
        return parse_binary(reply, SkipClassification.SKIP, SkipClassification.FILL)

    async def detect_skip(self, field: FieldDescriptor, message: str) -> SkipDecision:
        """Decide whether ``message`` skips ``field``; defaults to not skipping."""
        classification = await self.classify_skip(field, message)
        should_skip = classification == SkipClassification.SKIP
        decision = SkipDecision(
            should_skip=should_skip,
            target_field=field.name,
            default_value=default_for_kind(field) if should_skip else None,
        )
        logger.info("skip_detected" if should_skip else "skip_not_detected", field=field.name)
        return decision

    async def classify_confirmation(
        self,
        message: str,
        record: dict[str, Any],
        pending: FieldDescriptor | None = None,
    ) -> Confirmation:
        """
        Does the user want the vacancy generated now? Errors count as NO.

        ``pending`` is the field the user was last asked about; a reply to
        that question is not a confirmation.
        """
        pending_line = ""
        if pending is not None:
            pending_line = PENDING_QUESTION_LINE.format(
                display_name=pending.display_name,
                question=pending.question,
            )
        prompt = CONFIRMATION_PROMPT.format(
            record=json.dumps(record, ensure_ascii=False),
            message=message,
            pending=pending_line,
        )
        try:
            reply = await self.llm.complete(
                [{"role": "user", "content": prompt}],
                max_tokens=CLASSIFICATION_MAX_TOKENS,
                temperature=0.0,
            )
        except LLMError as e:
            logger.warning("confirmation_classification_failed", error=str(e))
            return Confirmation.NO
        return parse_binary(reply, Confirmation.YES, Confirmation.NO)
