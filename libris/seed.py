# libris/seed.py
import json
from pathlib import Path
from typing import List, Tuple, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .config import DEFAULT_SEED_PATH
from .errors import SeedError
from .models import AuthorInput, BookInput, TagInput
from .utils.logging import get_logger

logger = get_logger(__name__)

Pairing = Tuple[int, int]


class SeedData(BaseModel):
    """The bundled default dataset.

    Pairings are [book, author] / [book, tag] entries holding 1-based
    positions in the books, authors and tags arrays.
    """
    books: List[BookInput] = Field(default_factory=list)
    authors: List[AuthorInput] = Field(default_factory=list)
    tags: List[TagInput] = Field(default_factory=list)
    book_authors: List[Pairing] = Field(default_factory=list, alias="bookAuthors")
    book_tags: List[Pairing] = Field(default_factory=list, alias="bookTags")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _check_pairings(self) -> "SeedData":
        for name, pairs, others in (
            ("bookAuthors", self.book_authors, self.authors),
            ("bookTags", self.book_tags, self.tags),
        ):
            for book_pos, other_pos in pairs:
                if not 1 <= book_pos <= len(self.books):
                    raise ValueError(f"{name} entry [{book_pos}, {other_pos}] references a missing book")
                if not 1 <= other_pos <= len(others):
                    raise ValueError(f"{name} entry [{book_pos}, {other_pos}] references a missing row")
        return self


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def load_seed(source: Union[str, Path, None] = None, timeout: float = 10) -> SeedData:
    """Load and validate the seed document.

    Args:
        source: Filesystem path or http(s) URL. Defaults to the bundled file.
        timeout: Request timeout in seconds for URLs

    Returns:
        Validated SeedData

    Raises:
        SeedError: If the document cannot be fetched, parsed or validated
    """
    source = str(source or DEFAULT_SEED_PATH)
    try:
        if _is_url(source):
            logger.info("Fetching seed data from %s", source)
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        else:
            payload = json.loads(Path(source).read_text(encoding="utf-8"))
    except requests.RequestException as exc:
        raise SeedError(f"Could not fetch seed data from {source}: {exc}") from exc
    except (OSError, ValueError) as exc:
        raise SeedError(f"Could not read seed data from {source}: {exc}") from exc

    try:
        return SeedData.model_validate(payload)
    except ValidationError as exc:
        raise SeedError(f"Invalid seed data in {source}: {exc}") from exc
