"""
Vacancy Document Generator.

Turns a completed vacancy record into a Markdown job description using
the LLM. If the LLM is unavailable, a plain description is assembled
from the mandatory fields so the recruiter always gets a document.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.logging_config import get_logger
from src.schemas.vacancy import FieldDescriptor
from src.services.field_schema import get_value
from src.services.field_selector import missing_required_fields
from src.services.llm_client import LLMClient, LLMError

logger = get_logger(__name__)

DOCUMENT_MAX_TOKENS = 1500

FALLBACK_NOTICE = (
    "_Note: the writing assistant is unavailable right now, so this is a basic "
    "description built from the details you provided._"
)

DOCUMENT_PROMPT = """You are a professional HR copywriter. Your task is to generate a comprehensive, attractive, and well-structured job description in English using the provided data. Use Markdown for formatting.

**JOB DATA:**
- **Title:** {title}
- **Department:** {department}
- **Location:** {location}
- **Employment Type:** {employment_type}
- **Company Type:** {company_type}
- **Industry Domain:** {domain}
- **Experience Range:** {experience}
- **Core Skills:** {core_skills}
- **Secondary Skills:** {secondary_skills}
- **Languages:** {languages}
- **Salary:** {salary}
- **Education Required:** {education}
- **Test Task:** {test_task}
- **Additional Info:** {additional_information}

**TASK:**
Create a job description with the following sections:

1.  **Job Title:** (Start with the title)
2.  **Location & Employment:** (e.g., "Remote, Full-time")
3.  **About the Company:** (A brief, engaging paragraph about a {company_type} company in the {domain} sector. Mention the {department} department if relevant.)
4.  **Job Summary:** (A short paragraph summarizing the role's purpose.)
5.  **Key Responsibilities:** (A bulleted list of 4-6 primary duties based on the title and core skills.)
6.  **Required Skills and Qualifications:** (Bulleted list: experience, core skills, languages, education.)
7.  **Preferred Qualifications:** (Bulleted list from the secondary skills.)
8.  **We Offer:** (Bulleted list: salary, employment type, location flexibility, and whether there's a test task.)
9.  **Additional Information:** (Anything else from the additional info field.)

Leave out any section whose data is "Not specified". Make it professional, clear, and appealing. Start directly with the job title."""

NOT_SPECIFIED = "Not specified"


class MissingFieldsError(ValueError):
    """A vacancy was submitted for generation without its mandatory fields."""

    def __init__(self, missing: list[FieldDescriptor]) -> None:
        self.missing = missing
        names = ", ".join(f.display_name for f in missing)
        super().__init__(f"Missing required fields: {names}")


@dataclass
class GeneratedDocument:
    text: str
    used_fallback: bool = False


def _text(value: Any) -> str:
    if value is None or value == "" or value == []:
        return NOT_SPECIFIED
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def _range(low: Any, high: Any, unit: str = "") -> str:
    if low is None and high is None:
        return NOT_SPECIFIED
    if high is None:
        return f"{low}+{unit}"
    if low is None:
        return f"up to {high}{unit}"
    return f"{low}-{high}{unit}"


def prompt_values(record: dict[str, Any]) -> dict[str, str]:
    location = _text(get_value(record, "location.type"))
    city = get_value(record, "location.city")
    if city:
        location = f"{location}, {city}" if location != NOT_SPECIFIED else str(city)
    return {
        "title": _text(get_value(record, "title")),
        "department": _text(get_value(record, "department")),
        "location": location,
        "employment_type": _text(get_value(record, "employment_type")),
        "company_type": _text(get_value(record, "company_type")),
        "domain": _text(get_value(record, "domain")),
        "experience": _range(get_value(record, "experience.from"), get_value(record, "experience.to"), " years"),
        "core_skills": _text(get_value(record, "core_skills")),
        "secondary_skills": _text(get_value(record, "secondary_skills")),
        "languages": _text(get_value(record, "languages")),
        "salary": _range(get_value(record, "salary.min"), get_value(record, "salary.max"), " USD"),
        "education": _text(get_value(record, "education")),
        "test_task": _text(get_value(record, "is_test_task")),
        "additional_information": _text(get_value(record, "additional_information")),
    }


def fallback_document(record: dict[str, Any]) -> str:
    """Plain description from the raw mandatory values; no LLM involved."""
    values = prompt_values(record)
    lines = [
        f"# {values['title']}",
        "",
        f"**Experience:** {values['experience']}",
        f"**Skills:** {values['core_skills']}",
    ]
    if values["department"] != NOT_SPECIFIED:
        lines.append(f"**Department:** {values['department']}")
    if values["domain"] != NOT_SPECIFIED:
        lines.append(f"**Domain:** {values['domain']}")
    lines.extend(["", FALLBACK_NOTICE])
    return "\n".join(lines)


class DocumentGenerator:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def generate(self, record: dict[str, Any]) -> GeneratedDocument:
        """Generate the job description; never raises."""
        messages = [
            {"role": "system", "content": "You are an expert HR copywriter."},
            {"role": "user", "content": DOCUMENT_PROMPT.format(**prompt_values(record))},
        ]
        try:
            text = await self.llm.complete(messages, max_tokens=DOCUMENT_MAX_TOKENS)
        except LLMError as e:
            logger.error("document_generation_failed", error=str(e))
            return GeneratedDocument(text=fallback_document(record), used_fallback=True)

        logger.info("document_generated", length=len(text))
        return GeneratedDocument(text=text)

    async def generate_strict(self, record: dict[str, Any]) -> GeneratedDocument:
        """
        Generate for a record submitted outside the chat.

        Raises:
            MissingFieldsError: if any mandatory field is unfilled.
        """
        missing = missing_required_fields(record)
        if missing:
            raise MissingFieldsError(missing)
        return await self.generate(record)
