# libris/models/tag.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .author import clean_label


class TagInput(BaseModel):
    label: str
    color: Optional[str] = None

    @field_validator('label')
    @classmethod
    def _clean_label(cls, value: str) -> str:
        return clean_label(value)

    def to_record(self) -> Dict[str, Any]:
        return {"label": self.label, "color": self.color}


class Tag(BaseModel):
    id: int
    label: str
    color: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Tag":
        return cls(id=record["id"], label=record["label"], color=record.get("color"))
