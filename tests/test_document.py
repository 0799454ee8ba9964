# tests/test_document.py
import base64

import pytest

from libris.document import DocumentType, detect_document_type, media_type_of, to_data_url

EPUB_HEADER = b"PK\x03\x04" + b"\x00" * 26 + b"mimetypeapplication/epub+zip"


@pytest.mark.parametrize("attachment, expected", [
    ("data:application/pdf;base64,JVBERi0=", DocumentType.PDF),
    ("data:application/epub+zip;base64,UEsDBA==", DocumentType.EPUB),
    ("data:image/png;base64,iVBORw0=", None),
    (b"%PDF-1.7\n", DocumentType.PDF),
    (EPUB_HEADER, DocumentType.EPUB),
    (b"PK\x03\x04not an epub", None),
    ("", None),
    (None, None),
])
def test_detect_document_type(attachment, expected):
    assert detect_document_type(attachment) == expected


def test_media_type_of():
    assert media_type_of("data:Application/PDF;base64,AAAA") == "application/pdf"
    assert media_type_of("https://example.com/book.pdf") is None


def test_to_data_url(tmp_path):
    path = tmp_path / "book.pdf"
    path.write_bytes(b"%PDF-1.4 body")

    url = to_data_url(path)

    assert url.startswith("data:application/pdf;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == b"%PDF-1.4 body"
    assert detect_document_type(url) == DocumentType.PDF
