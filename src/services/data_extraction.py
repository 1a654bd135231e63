"""
Data Extraction Service.

Turns one recruiter utterance into a candidate update of the vacancy
record. The LLM receives the current record, the field schema and the
recent conversation, and must answer with the full updated record plus
a status. Anything that can't be parsed is treated as a request for
clarification, so a bad response never touches the record.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from src.logging_config import get_logger
from src.schemas.extraction import ExtractionResult, ExtractionStatus
from src.schemas.vacancy import FieldDescriptor
from src.services.field_schema import VACANCY_FIELDS, get_field
from src.services.llm_client import LLMClient, LLMError, strip_code_fences

logger = get_logger(__name__)

REPHRASE_MESSAGE = "I'm having a little trouble understanding. Could you please rephrase that?"

EXTRACTION_MAX_TOKENS = 2048

EXTRACTION_PROMPT = """You are a meticulous data extraction assistant. Your task is to analyze a user's message and precisely update a JSON object for a job vacancy. Follow the rules strictly.

**Rules:**
1.  **Start with an exact copy of the 'CURRENT VACANCY STATE' JSON.** Do not change any values initially.
2.  **Analyze the user's LATEST message ONLY**: "{message}"
3.  **Modify ONLY the fields the user explicitly mentions in their latest message.** All other fields MUST remain untouched.
4.  **Be precise with enums**: for 'enum' fields, map the user's input (e.g., "it", "It department") to one of the exact valid options from the schema (e.g., "IT").
5.  **Handle skips/negatives**: if the user declines a field ("not needed", "no", "none"), this is a SUCCESS. Leave the field as null or [] and report SUCCESS.
6.  **Request clarification**: if the message is too vague, unrelated to the vacancy, or you are unsure how to map it to the schema, request clarification.

**Response format**: a single JSON object:
{{
  "status": "SUCCESS" | "CLARIFICATION_NEEDED",
  "updatedVacancy": {{ ... the entire, precisely updated vacancy JSON ... }},
  "commentary": "A brief explanation. If status is CLARIFICATION_NEEDED, this is your clarifying question to the user."
}}

---
**Context:**
-   **Last question asked**: {last_question}
-   **User's message**: "{message}"

**Current vacancy state**:
{record}

**Vacancy schema**:
{schema}
---

Now, produce ONLY the JSON response."""


class MalformedExtractionError(ValueError):
    """The LLM answer couldn't be turned into an ExtractionResult."""


def parse_extraction_response(content: str) -> ExtractionResult:
    """
    Parse the raw LLM answer into an ExtractionResult.

    Raises:
        MalformedExtractionError: if the JSON is invalid or missing keys.
    """
    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise MalformedExtractionError(f"invalid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise MalformedExtractionError("response is not a JSON object")

    raw_status = parsed.get("status")
    record = parsed.get("updatedVacancy", parsed.get("updated_vacancy", parsed.get("updatedRecord")))
    if not raw_status or not isinstance(record, dict):
        raise MalformedExtractionError("response is missing 'status' or 'updatedVacancy'")

    try:
        status = ExtractionStatus(str(raw_status).strip().upper())
    except ValueError as e:
        raise MalformedExtractionError(f"unknown status {raw_status!r}") from e

    commentary = parsed.get("commentary") or ""
    return ExtractionResult(status=status, updated_record=record, commentary=str(commentary))


def _clarification(record: dict[str, Any]) -> ExtractionResult:
    return ExtractionResult(
        status=ExtractionStatus.CLARIFICATION_NEEDED,
        updated_record=record,
        commentary=REPHRASE_MESSAGE,
    )


class DataExtractor:
    """Extraction adapter; never mutates the session, only proposes an update."""

    def __init__(
        self,
        llm: LLMClient,
        fields: Sequence[FieldDescriptor] = VACANCY_FIELDS,
    ) -> None:
        self.llm = llm
        self.fields = fields

    def build_prompt(
        self,
        record: dict[str, Any],
        message: str,
        last_asked_field: Optional[str],
    ) -> str:
        last_field = get_field(last_asked_field) if last_asked_field else None
        last_question = (
            f'The last question I asked was about "{last_field.display_name}".'
            if last_field
            else "This is the first message from the user."
        )
        return EXTRACTION_PROMPT.format(
            message=message,
            last_question=last_question,
            record=json.dumps(record, indent=2, ensure_ascii=False),
            schema=json.dumps([f.prompt_schema() for f in self.fields], indent=2, ensure_ascii=False),
        )

    async def extract(
        self,
        record: dict[str, Any],
        message: str,
        history: list[dict[str, str]] | None = None,
        last_asked_field: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Ask the LLM which fields the message fills.

        Failures and unparsable answers come back as CLARIFICATION_NEEDED
        with a generic rephrase request and the record unchanged.
        """
        prompt = self.build_prompt(record, message, last_asked_field)
        messages = [
            {"role": "system", "content": "You are a precise data extraction system. Return only valid JSON."},
            *(history or []),
            {"role": "user", "content": prompt},
        ]

        try:
            content = await self.llm.complete(messages, max_tokens=EXTRACTION_MAX_TOKENS, json_mode=True)
        except LLMError as e:
            logger.error("extraction_llm_error", error=str(e))
            return _clarification(record)

        try:
            result = parse_extraction_response(content)
        except MalformedExtractionError as e:
            logger.warning("extraction_parse_failed", error=str(e), response_length=len(content))
            return _clarification(record)

        if result.status == ExtractionStatus.CLARIFICATION_NEEDED and not result.commentary.strip():
            result.commentary = REPHRASE_MESSAGE

        logger.info("extraction_complete", status=result.status.value)
        return result
