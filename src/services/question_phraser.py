"""
Question Phraser.

Asks the LLM to turn a field descriptor into one short conversational
question. Falls back to the field's static question text when the call
fails or returns nothing useful.
"""

from __future__ import annotations

from src.logging_config import get_logger
from src.schemas.vacancy import FieldDescriptor
from src.services.llm_client import LLMClient, LLMError

logger = get_logger(__name__)

QUESTION_MAX_TOKENS = 100

QUESTION_PROMPT = """You are a friendly AI recruiter. Your task is to ask the next question to fill out a job vacancy.
The field to ask about is "{display_name}".
Here is the field's description: "{description}".{options}

Please formulate a single, clear, and conversational question for the user. Keep it brief.

Example for "Primary Skills": "What are the essential skills for this role?"
Example for "Maximum Salary": "What is the maximum salary for this position?"

Now, generate a suitable question for "{display_name}":"""


class QuestionPhraser:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def phrase_question(self, field: FieldDescriptor) -> str:
        options = f"\nValid options: {', '.join(field.options)}." if field.options else ""
        prompt = QUESTION_PROMPT.format(
            display_name=field.display_name,
            description=field.description,
            options=options,
        )
        try:
            question = await self.llm.complete(
                [{"role": "user", "content": prompt}],
                max_tokens=QUESTION_MAX_TOKENS,
            )
        except LLMError as e:
            logger.warning("question_phrasing_failed", field=field.name, error=str(e))
            return field.question

        question = question.replace('"', "").strip()
        return question or field.question
