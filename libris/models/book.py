# libris/models/book.py
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

from ..document import DocumentType, detect_document_type
from .author import Author, AuthorInput
from .tag import Tag, TagInput

Release = Union[int, str, None]
Progress = Union[int, float, str]

# Plain fields persisted on the book record
BOOK_FIELDS = ("title", "publisher", "release", "cover", "attachment")


class BookInput(BaseModel):
    """Fields a caller supplies when creating or editing a book"""
    title: str
    publisher: Optional[str] = None
    release: Release = None
    cover: Optional[str] = None
    attachment: Optional[str] = None
    authors: List[AuthorInput] = Field(default_factory=list)
    tags: List[TagInput] = Field(default_factory=list)

    @field_validator('authors', mode='before')
    @classmethod
    def _coerce_authors(cls, value):
        return [{"label": item} if isinstance(item, str) else item for item in value or []]

    @field_validator('tags', mode='before')
    @classmethod
    def _coerce_tags(cls, value):
        return [{"label": item} if isinstance(item, str) else item for item in value or []]

    def to_record(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in BOOK_FIELDS}


class Book(BaseModel):
    id: int
    title: str
    publisher: Optional[str] = None
    release: Release = None
    cover: Optional[str] = None
    attachment: Optional[str] = None
    progress: Progress = 0
    authors: List[Author] = Field(default_factory=list)
    tags: List[Tag] = Field(default_factory=list)

    @computed_field
    @property
    def type(self) -> Optional[DocumentType]:
        return detect_document_type(self.attachment)

    @classmethod
    def from_record(
        cls,
        record: Dict[str, Any],
        authors: Optional[List[Author]] = None,
        tags: Optional[List[Tag]] = None,
    ) -> "Book":
        return cls(
            id=record["id"],
            title=record.get("title", ""),
            publisher=record.get("publisher"),
            release=record.get("release"),
            cover=record.get("cover"),
            attachment=record.get("attachment"),
            progress=record.get("progress", 0),
            authors=authors or [],
            tags=tags or [],
        )

    @property
    def author_labels(self) -> List[str]:
        return [author.label for author in self.authors]

    @property
    def tag_labels(self) -> List[str]:
        return [tag.label for tag in self.tags]
