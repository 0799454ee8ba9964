# tests/test_repositories/test_book_repository.py
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from libris.config import OrphanPolicy
from libris.document import DocumentType
from libris.errors import CascadeDeleteError, NotFoundError, TransactionFailedError
from libris.models import BookInput
from libris.repositories import BookRepository


def test_create_and_find(book_repo, sample_book):
    """Test that a created book comes back with its authors and tags"""
    book = book_repo.find_by_id(sample_book)

    assert book.title == "Test Book"
    assert book.publisher == "Test Publisher"
    assert book.release == "2001"
    assert book.progress == 0
    assert book.type is None
    assert book.author_labels == ["Alice", "Bob"]
    assert [(tag.label, tag.color) for tag in book.tags] == [("sci-fi", "#2980b9")]


def test_create_without_associations(book_repo):
    book_id = book_repo.create({"title": "Anonymous Pamphlet", "release": 1776})

    book = book_repo.find_by_id(book_id)
    assert book.release == 1776
    assert book.authors == []
    assert book.tags == []


def test_create_requires_title(book_repo):
    with pytest.raises(ValidationError):
        book_repo.create({"publisher": "Nobody"})


def test_create_reuses_existing_authors(book_repo, sample_book):
    second = book_repo.create(BookInput(title="Sequel", authors=["Bob", "Carol"]))

    assert book_repo.find_by_id(second).author_labels == ["Bob", "Carol"]
    assert [author.label for author in book_repo.authors.list_all()] == ["Alice", "Bob", "Carol"]


def test_duplicate_labels_link_once(book_repo):
    book_id = book_repo.create({"title": "Echo", "authors": ["Same", " Same "], "tags": ["x", "x"]})

    book = book_repo.find_by_id(book_id)
    assert book.author_labels == ["Same"]
    assert book.tag_labels == ["x"]


def test_attachment_type(book_repo):
    book_id = book_repo.create({"title": "Scanned", "attachment": "data:application/pdf;base64,JVBERi0="})
    assert book_repo.find_by_id(book_id).type == DocumentType.PDF


def test_find_by_id_missing(book_repo):
    with pytest.raises(NotFoundError):
        book_repo.find_by_id(31337)


def test_list_all(book_repo, sample_book):
    other = book_repo.create({"title": "Other", "authors": ["Carol"]})

    books = book_repo.list_all()
    assert [book.id for book in books] == [sample_book, other]
    assert books[1].author_labels == ["Carol"]


def test_find_by_title(book_repo, sample_book):
    assert [book.id for book in book_repo.find_by_title("Test Book")] == [sample_book]
    assert book_repo.find_by_title("test book") == []


def test_find_by_author_label(book_repo, sample_book):
    other = book_repo.create({"title": "Other", "authors": ["Bob"]})

    assert [book.id for book in book_repo.find_by_author_label("Bob")] == [sample_book, other]
    assert [book.id for book in book_repo.find_by_author_label("Alice")] == [sample_book]
    assert book_repo.find_by_author_label("Nobody") == []


def test_find_by_tag_label(book_repo, sample_book):
    books = book_repo.find_by_tag_label("sci-fi")
    assert [book.author_labels for book in books] == [["Alice", "Bob"]]
    assert book_repo.find_by_tag_label("poetry") == []


class TestUpdate:
    def test_replaces_fields_and_associations(self, book_repo, sample_book):
        book_repo.update(sample_book, {
            "title": "Revised",
            "publisher": "New House",
            "authors": ["Alice", "Carol"],
            "tags": ["sci-fi", {"label": "space", "color": "#000"}],
        })

        book = book_repo.find_by_id(sample_book)
        assert book.title == "Revised"
        assert book.release is None
        assert book.author_labels == ["Alice", "Carol"]
        assert book.tag_labels == ["sci-fi", "space"]
        # The existing tag keeps its color
        assert book.tags[0].color == "#2980b9"

    def test_prunes_dropped_authors(self, book_repo, sample_book):
        book_repo.update(sample_book, {"title": "Test Book", "authors": ["Alice"]})

        assert book_repo.authors.find_by_label("Bob") == []

    def test_keeps_authors_of_other_books(self, book_repo, sample_book):
        book_repo.create({"title": "Other", "authors": ["Bob"]})
        book_repo.update(sample_book, {"title": "Test Book", "authors": ["Alice"]})

        assert book_repo.authors.find_by_label("Bob")

    def test_keeps_dropped_tags_by_default(self, book_repo, sample_book):
        book_repo.update(sample_book, {"title": "Test Book", "authors": ["Alice", "Bob"], "tags": []})

        assert book_repo.tags.find_by_label("sci-fi")
        assert book_repo.find_by_id(sample_book).tags == []

    def test_is_idempotent(self, book_repo, sample_book):
        """Test that saving the same associations twice creates no duplicates"""
        fields = {"title": "Test Book", "authors": ["Alice", "Bob"], "tags": ["sci-fi"]}
        book_repo.update(sample_book, fields)
        book_repo.update(sample_book, fields)

        assert len(book_repo.book_authors.find_by_book(sample_book)) == 2
        assert len(book_repo.book_tags.find_by_book(sample_book)) == 1
        assert len(book_repo.authors.list_all()) == 2

    def test_keeps_progress(self, book_repo, sample_book):
        book_repo.update_progress(sample_book, 57)
        book_repo.update(sample_book, {"title": "Renamed"})

        assert book_repo.find_by_id(sample_book).progress == 57

    def test_missing_book(self, book_repo):
        with pytest.raises(NotFoundError):
            book_repo.update(404, {"title": "Ghost", "authors": ["Casper"]})
        assert book_repo.authors.list_all() == []


def test_update_progress(book_repo, sample_book):
    book_repo.update_progress(sample_book, "epubcfi(/6/4!/4/2/1:0)")

    book = book_repo.find_by_id(sample_book)
    assert book.progress == "epubcfi(/6/4!/4/2/1:0)"
    assert book.author_labels == ["Alice", "Bob"]


def test_update_progress_missing(book_repo):
    with pytest.raises(NotFoundError):
        book_repo.update_progress(8, 10)


class TestDelete:
    def test_cascades(self, book_repo, sample_book):
        """Test that deleting a book removes its links and now-orphaned authors"""
        book_repo.delete(sample_book)

        with pytest.raises(NotFoundError):
            book_repo.find_by_id(sample_book)
        assert book_repo.book_authors.find_by_book(sample_book) == []
        assert book_repo.book_tags.find_by_book(sample_book) == []
        assert book_repo.authors.list_all() == []
        # Tags are kept unless the policy prunes them
        assert [tag.label for tag in book_repo.tags.list_all()] == ["sci-fi"]

    def test_keeps_shared_authors(self, book_repo, sample_book):
        other = book_repo.create({"title": "Other", "authors": ["Bob", "Carol"]})

        book_repo.delete(sample_book)

        assert [author.label for author in book_repo.authors.list_all()] == ["Bob", "Carol"]
        assert book_repo.find_by_id(other).author_labels == ["Bob", "Carol"]

    def test_prunes_tags_when_configured(self, store, sample_book):
        repo = BookRepository(store, OrphanPolicy(authors=False, tags=True))

        repo.delete(sample_book)

        assert repo.tags.list_all() == []
        assert [author.label for author in repo.authors.list_all()] == ["Alice", "Bob"]

    def test_missing_book(self, book_repo, sample_book):
        with pytest.raises(NotFoundError):
            book_repo.delete(sample_book + 1)
        assert len(book_repo.list_all()) == 1

    def test_failed_step_reports_progress(self, book_repo, sample_book):
        """Test that a failing step aborts the cascade and leaves earlier steps committed"""
        with patch.object(book_repo, "_delete_row", side_effect=TransactionFailedError("boom")):
            with pytest.raises(CascadeDeleteError) as exc_info:
                book_repo.delete(sample_book)

        error = exc_info.value
        assert error.book_id == sample_book
        assert error.step == "delete_book"
        assert error.completed == ["unlink", "prune"]

        book = book_repo.find_by_id(sample_book)
        assert book.authors == []
        assert book_repo.authors.list_all() == []


def test_label_searches_trim_the_query(book_repo, sample_book):
    assert [book.id for book in book_repo.find_by_author_label("  Alice ")] == [sample_book]
    assert [book.id for book in book_repo.find_by_tag_label(" sci-fi")] == [sample_book]
