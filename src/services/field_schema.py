"""
Vacancy Field Schema.

The ordered list of vacancy fields the recruiter chat collects. The
order here is the order questions are asked in, and the same list is
handed to the LLM as the extraction schema. Nested groups (location,
salary, experience) are addressed with dot paths.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable

from src.schemas.vacancy import FieldDescriptor, FieldKind

DEPARTMENTS: tuple[str, ...] = (
    "R&D", "Product", "IT", "Engineering", "Sales", "Marketing",
    "Customer Success", "HR", "Finance", "Legal", "Operations",
    "Business Development", "Design", "Data", "QA", "Security", "Administration",
)

LOCATION_TYPES: tuple[str, ...] = ("on_site", "hybrid", "remote")

EMPLOYMENT_TYPES: tuple[str, ...] = ("part-time", "full-time")

COMPANY_TYPES: tuple[str, ...] = ("Agency", "Outsourcing", "Outstaffing", "Product", "Startup")

DOMAINS: tuple[str, ...] = (
    "Adult", "Advertising / Marketing", "Automotive", "Blockchain / Crypto", "Dating",
    "E-commerce / Marketplace", "Education", "Fintech", "Gambling", "Gamedev",
    "Hardware / IoT", "Healthcare / MedTech", "Manufacturing", "Machine Learning / Big Data",
    "Media", "MilTech", "Mobile", "SaaS", "Security", "Telecom / Communications", "Other",
)

LANGUAGES: tuple[str, ...] = ("English", "German", "Spanish", "French", "Ukrainian", "Polish", "Other")
LANGUAGE_LEVELS: tuple[str, ...] = ("A1", "A2", "B1", "B2", "C1", "C2", "Native")


VACANCY_FIELDS: tuple[FieldDescriptor, ...] = (
    FieldDescriptor(
        name="title",
        display_name="Job Title",
        kind=FieldKind.STRING,
        required=True,
        description='The title of the position (e.g., "Frontend Developer").',
        question="What is the job title for this position?",
    ),
    FieldDescriptor(
        name="department",
        display_name="Department",
        kind=FieldKind.ENUM,
        options=DEPARTMENTS,
        required=True,
        description="The department for this position.",
        question="Which department is this position in?",
    ),
    FieldDescriptor(
        name="location.type",
        display_name="Location Type",
        kind=FieldKind.ENUM,
        options=LOCATION_TYPES,
        description="The type of work location.",
        question="Is the role on-site, hybrid or remote?",
    ),
    FieldDescriptor(
        name="location.city",
        display_name="City",
        kind=FieldKind.STRING,
        description="The city where the position is located (if not remote).",
        question="Which city is the position based in?",
    ),
    FieldDescriptor(
        name="employment_type",
        display_name="Employment Type",
        kind=FieldKind.ENUM,
        options=EMPLOYMENT_TYPES,
        description="Whether the position is full-time or part-time.",
        question="Is this a full-time or part-time position?",
    ),
    FieldDescriptor(
        name="company_type",
        display_name="Company Type",
        kind=FieldKind.ENUM,
        options=COMPANY_TYPES,
        description="The kind of company that is hiring.",
        question="What type of company is hiring (product, startup, agency, outsourcing or outstaffing)?",
    ),
    FieldDescriptor(
        name="domain",
        display_name="Domain",
        kind=FieldKind.ENUM,
        options=DOMAINS,
        required=True,
        description="The industry domain.",
        question="Which industry domain does the company work in?",
    ),
    FieldDescriptor(
        name="experience.from",
        display_name="Minimum Years of Experience",
        kind=FieldKind.NUMBER,
        required=True,
        description="The minimum number of years of professional experience required.",
        question="How many years of experience are required at minimum?",
    ),
    FieldDescriptor(
        name="experience.to",
        display_name="Maximum Years of Experience",
        kind=FieldKind.NUMBER,
        description="The maximum number of years of professional experience desired.",
        question="Is there an upper limit on years of experience?",
    ),
    FieldDescriptor(
        name="core_skills",
        display_name="Primary Skills",
        kind=FieldKind.ARRAY,
        required=True,
        description="List the primary required skills (e.g., JavaScript, React, Node.js).",
        question="What are the essential skills for this role?",
    ),
    FieldDescriptor(
        name="secondary_skills",
        display_name="Secondary Skills",
        kind=FieldKind.ARRAY,
        description="Desirable but not essential skills.",
        question="Are there any nice-to-have skills?",
    ),
    FieldDescriptor(
        name="languages",
        display_name="Languages",
        kind=FieldKind.ARRAY,
        description=(
            "Spoken languages with level, formatted as 'Language (Level)'. "
            f"Languages: {', '.join(LANGUAGES)}. Levels: {', '.join(LANGUAGE_LEVELS)}."
        ),
        question="Which languages should the candidate speak, and at what level?",
    ),
    FieldDescriptor(
        name="salary.min",
        display_name="Minimum Salary",
        kind=FieldKind.NUMBER,
        description="The minimum salary for the position (in USD).",
        question="What is the minimum salary for this position?",
    ),
    FieldDescriptor(
        name="salary.max",
        display_name="Maximum Salary",
        kind=FieldKind.NUMBER,
        description="The maximum salary for the position (in USD).",
        question="What is the maximum salary for this position?",
    ),
    FieldDescriptor(
        name="education",
        display_name="Higher Education Required",
        kind=FieldKind.BOOLEAN,
        description="Whether a university degree is required.",
        question="Is a university degree required?",
    ),
    FieldDescriptor(
        name="is_test_task",
        display_name="Test Task",
        kind=FieldKind.BOOLEAN,
        description="Whether candidates complete a test task during hiring.",
        question="Will candidates be asked to complete a test task?",
    ),
    FieldDescriptor(
        name="additional_information",
        display_name="Additional Information",
        kind=FieldKind.STRING,
        description="Anything else candidates should know about the role.",
        question="Is there anything else you'd like to add about the role?",
    ),
)

_FIELDS_BY_NAME: dict[str, FieldDescriptor] = {f.name: f for f in VACANCY_FIELDS}


def get_field(name: str) -> FieldDescriptor | None:
    return _FIELDS_BY_NAME.get(name)


def required_fields(fields: Iterable[FieldDescriptor] = VACANCY_FIELDS) -> list[FieldDescriptor]:
    return [f for f in fields if f.required]


def empty_value(field: FieldDescriptor) -> Any:
    """The template value for a field that hasn't been collected yet."""
    if field.kind == FieldKind.ARRAY:
        return []
    return None


def new_record(fields: Iterable[FieldDescriptor] = VACANCY_FIELDS) -> dict[str, Any]:
    """Build an empty vacancy record with the nested shape of the schema."""
    record: dict[str, Any] = {}
    for field in fields:
        record = set_value(record, field.name, empty_value(field))
    return record


def get_value(record: dict[str, Any] | None, path: str) -> Any:
    """Resolve a dot path, returning None when any segment is missing."""
    cursor: Any = record
    for part in path.split("."):
        if isinstance(cursor, dict) and part in cursor:
            cursor = cursor[part]
        else:
            return None
    return cursor


def set_value(record: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``record`` with ``path`` set to ``value``."""
    updated = copy.deepcopy(record)
    parts = path.split(".")
    cursor = updated
    for part in parts[:-1]:
        child = cursor.get(part)
        if not isinstance(child, dict):
            child = {}
            cursor[part] = child
        cursor = child
    cursor[parts[-1]] = copy.deepcopy(value)
    return updated


def is_unfilled(field: FieldDescriptor, value: Any) -> bool:
    """
    True when ``value`` doesn't count as an answer for ``field``.

    None, empty lists and blank strings are unfilled. Booleans are only
    unfilled when None, and numbers are filled even when zero.
    """
    if value is None:
        return True
    if field.kind == FieldKind.BOOLEAN:
        return False
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def is_filled(record: dict[str, Any], field: FieldDescriptor) -> bool:
    return not is_unfilled(field, get_value(record, field.name))
