# libris/models/junction.py
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class BookAuthor(BaseModel):
    id: int
    id_book: int
    id_author: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BookAuthor":
        return cls(id=record["id"], id_book=record["id_book"], id_author=record["id_author"])


class BookTag(BaseModel):
    id: int
    id_book: int
    id_tag: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BookTag":
        return cls(id=record["id"], id_book=record["id_book"], id_tag=record["id_tag"])
