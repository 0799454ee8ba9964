# libris/models/author.py
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, field_validator


def clean_label(value: str) -> str:
    """Trim a label, rejecting labels that are empty afterwards"""
    label = value.strip()
    if not label:
        raise ValueError("label must not be empty")
    return label


class AuthorInput(BaseModel):
    label: str

    @field_validator('label')
    @classmethod
    def _clean_label(cls, value: str) -> str:
        return clean_label(value)

    def to_record(self) -> Dict[str, Any]:
        return {"label": self.label}


class Author(BaseModel):
    id: int
    label: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Author":
        return cls(id=record["id"], label=record["label"])
