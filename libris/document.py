# libris/document.py
import base64
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional, Union

PDF_MEDIA_TYPE = "application/pdf"
EPUB_MEDIA_TYPE = "application/epub+zip"

_PDF_MAGIC = b"%PDF-"
_ZIP_MAGIC = b"PK\x03\x04"
# An EPUB's first zip entry is an uncompressed file named "mimetype"
_EPUB_MIMETYPE_ENTRY = b"mimetype" + EPUB_MEDIA_TYPE.encode("ascii")


class DocumentType(str, Enum):
    PDF = "pdf"
    EPUB = "epub"


def media_type_of(attachment: str) -> Optional[str]:
    """Declared media type of a data URL ("data:<type>;base64,..."), or None"""
    if not attachment.startswith("data:"):
        return None
    header = attachment[5:].split(",", 1)[0]
    media_type = header.split(";", 1)[0].strip().lower()
    return media_type or None


def detect_document_type(attachment: Union[str, bytes, None]) -> Optional[DocumentType]:
    """Infer the document kind of a book attachment.

    Strings are data URLs and are classified by their declared media type.
    Raw bytes are classified by their signature. Anything else is None.
    """
    if not attachment:
        return None

    if isinstance(attachment, (bytes, bytearray)):
        if attachment.startswith(_PDF_MAGIC):
            return DocumentType.PDF
        if attachment.startswith(_ZIP_MAGIC) and attachment[30:30 + len(_EPUB_MIMETYPE_ENTRY)] == _EPUB_MIMETYPE_ENTRY:
            return DocumentType.EPUB
        return None

    media_type = media_type_of(attachment)
    if media_type == PDF_MEDIA_TYPE:
        return DocumentType.PDF
    if media_type is not None and media_type.startswith("application/epub"):
        return DocumentType.EPUB
    return None


_MEDIA_TYPES_BY_SUFFIX = {
    ".pdf": PDF_MEDIA_TYPE,
    ".epub": EPUB_MEDIA_TYPE,
}


def to_data_url(path: Union[str, Path]) -> str:
    """Read a file into a base64 data URL carrying its media type"""
    path = Path(path)
    media_type = _MEDIA_TYPES_BY_SUFFIX.get(path.suffix.lower())
    if media_type is None:
        media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{media_type};base64,{encoded}"
