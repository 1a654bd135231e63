"""
Record Merge Policy.

Combines the current vacancy record with one turn's skip decision or
extraction result. Filled fields are never reset by a merge: the LLM
returns the whole record each turn, and a null in its answer means
"not mentioned", not "erase".
"""

from __future__ import annotations

import re
from typing import Any, Optional

from src.logging_config import get_logger
from src.schemas.extraction import ExtractionResult, ExtractionStatus, SkipDecision
from src.schemas.vacancy import FieldDescriptor, FieldKind
from src.services.field_schema import (
    VACANCY_FIELDS,
    get_field,
    get_value,
    is_unfilled,
    set_value,
)

logger = get_logger(__name__)

_TRUE_WORDS = {"true", "yes", "y", "required", "needed"}
_FALSE_WORDS = {"false", "no", "n", "not required", "not needed", "none"}

# Heuristic auto-fill patterns
_ENGINEERING_TITLE = re.compile(r"\b(developer|engineer|programmer|devops)\b", re.IGNORECASE)
_YEARS_OF_EXPERIENCE = re.compile(r"\b(\d{1,2})\s*\+?\s*(?:years?|yrs?)\b", re.IGNORECASE)
TECH_KEYWORDS: dict[str, str] = {
    "python": "Python",
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "react": "React",
    "angular": "Angular",
    "vue": "Vue.js",
    "node": "Node.js",
    "node.js": "Node.js",
    "vue.js": "Vue.js",
    "nodejs": "Node.js",
    "java": "Java",
    "kotlin": "Kotlin",
    "swift": "Swift",
    "golang": "Go",
    "rust": "Rust",
    "php": "PHP",
    "django": "Django",
    "fastapi": "FastAPI",
    "sql": "SQL",
    "postgresql": "PostgreSQL",
    "docker": "Docker",
    "kubernetes": "Kubernetes",
    "aws": "AWS",
}


def _coerce_number(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("$", "").strip()
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return int(number) if number.is_integer() else number
    return None


def _coerce_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return None


def _coerce_enum(field: FieldDescriptor, value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    lowered = value.strip().lower()
    for option in field.options:
        if option.lower() == lowered:
            return option
    return None


def _array_item(item: Any) -> str | None:
    if isinstance(item, dict):
        # Languages sometimes come back as {"language": ..., "level": ...}
        name = item.get("language") or item.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        level = item.get("level")
        return f"{name.strip()} ({level})" if level else name.strip()
    if item is None or isinstance(item, (list, tuple)):
        return None
    return str(item).strip() or None


def _coerce_array(value: Any) -> list[str] | None:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return None
    items = []
    for raw in value:
        item = _array_item(raw)
        if item is None:
            if raw is not None and raw != "":
                logger.warning("extracted_value_rejected", value=raw)
            continue
        items.append(item)
    return items


def coerce_value(field: FieldDescriptor, value: Any) -> Any:
    """
    Validate an extracted value against the field kind.

    Returns the normalised value, or None when it can't be used.
    """
    if value is None:
        return None
    if field.kind == FieldKind.NUMBER:
        return _coerce_number(value)
    if field.kind == FieldKind.BOOLEAN:
        return _coerce_boolean(value)
    if field.kind == FieldKind.ENUM:
        return _coerce_enum(field, value)
    if field.kind == FieldKind.ARRAY:
        return _coerce_array(value)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value).strip()
    return None


def apply_skip(record: dict[str, Any], skip: SkipDecision) -> dict[str, Any]:
    if get_field(skip.target_field) is None:
        logger.warning("skip_unknown_field", field=skip.target_field)
        return record
    return set_value(record, skip.target_field, skip.default_value)


def apply_extraction(
    record: dict[str, Any],
    extracted: ExtractionResult,
) -> tuple[dict[str, Any], set[str]]:
    """Overwrite fields with filled, valid extracted values. Returns (record, touched)."""
    merged = record
    touched: set[str] = set()
    for field in VACANCY_FIELDS:
        raw = get_value(extracted.updated_record, field.name)
        if raw is None:
            continue
        value = coerce_value(field, raw)
        if value is None:
            logger.warning("extracted_value_rejected", field=field.name, value=raw)
            continue
        if is_unfilled(field, value):
            continue
        if value != get_value(merged, field.name):
            merged = set_value(merged, field.name, value)
            touched.add(field.name)
    return merged, touched


def heuristic_updates(message: str) -> dict[str, Any]:
    """Values that can be read straight off the utterance without the LLM."""
    updates: dict[str, Any] = {}
    if _ENGINEERING_TITLE.search(message):
        updates["department"] = "Engineering"

    years = _YEARS_OF_EXPERIENCE.search(message)
    if years:
        updates["experience.from"] = int(years.group(1))

    skills: list[str] = []
    for token in re.findall(r"[a-z][a-z0-9.+#]*", message.lower()):
        skill = TECH_KEYWORDS.get(token.rstrip("."))
        if skill and skill not in skills:
            skills.append(skill)
    if skills:
        updates["core_skills"] = skills
    return updates


def apply_heuristics(
    record: dict[str, Any],
    message: str,
    touched: set[str],
) -> dict[str, Any]:
    merged = record
    for path, value in heuristic_updates(message).items():
        field = get_field(path)
        if field is None or path in touched:
            continue
        if not is_unfilled(field, get_value(merged, path)):
            continue
        merged = set_value(merged, path, value)
        logger.info("heuristic_autofill", field=path)
    return merged


def merge(
    current: dict[str, Any],
    extracted: Optional[ExtractionResult],
    skip: Optional[SkipDecision] = None,
    message: Optional[str] = None,
) -> dict[str, Any]:
    """
    Produce the next record for this turn.

    1. A positive skip sets only the skipped field; extraction is ignored.
    2. A successful extraction overwrites fields it filled; nulls never erase.
    3. A clarification request leaves the record unchanged.

    When ``message`` is given, pattern-based auto-fill runs after the AI
    overwrite and only touches fields that are still empty.
    """
    if skip is not None and skip.should_skip:
        return apply_skip(current, skip)

    if extracted is None or extracted.status != ExtractionStatus.SUCCESS:
        return current

    merged, touched = apply_extraction(current, extracted)
    if message:
        merged = apply_heuristics(merged, message, touched)
    return merged
