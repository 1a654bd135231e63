"""
Data models for the vacancy field schema.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"


class FieldDescriptor(BaseModel):
    """One collectable vacancy field, addressed by a dot path (``salary.min``)."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    kind: FieldKind
    description: str
    question: str  # Static question used when the LLM can't phrase one
    required: bool = False
    options: tuple[str, ...] = ()

    def prompt_schema(self) -> dict[str, object]:
        """Shape handed to the extraction prompt."""
        data: dict[str, object] = {
            "name": self.name,
            "displayName": self.display_name,
            "type": self.kind.value,
            "required": self.required,
            "description": self.description,
        }
        if self.kind == FieldKind.ENUM:
            data["options"] = list(self.options)
        return data

