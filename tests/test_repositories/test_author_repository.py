# tests/test_repositories/test_author_repository.py
import pytest
from pydantic import ValidationError

from libris.errors import ConstraintViolationError, NotFoundError
from libris.models import Author, AuthorInput
from libris.repositories import AuthorRepository


@pytest.fixture
def author_repo(store):
    return AuthorRepository(store)


def test_create_author(author_repo):
    """Test creating a new author"""
    author_id = author_repo.create(AuthorInput(label="Ursula K. Le Guin"))

    author = author_repo.find_by_id(author_id)
    assert author == Author(id=author_id, label="Ursula K. Le Guin")


def test_create_accepts_plain_label(author_repo):
    author_id = author_repo.create("  Octavia Butler ")
    assert author_repo.find_by_id(author_id).label == "Octavia Butler"


def test_blank_label_is_rejected(author_repo):
    with pytest.raises(ValidationError):
        author_repo.create("   ")


def test_duplicate_label(author_repo):
    author_repo.create("Terry Pratchett")
    with pytest.raises(ConstraintViolationError):
        author_repo.create("Terry Pratchett")


def test_find_by_label(author_repo):
    author_id = author_repo.create("Iain M. Banks")

    assert author_repo.find_by_label("Iain M. Banks") == [Author(id=author_id, label="Iain M. Banks")]
    assert author_repo.find_by_label("iain m. banks") == []


def test_find_or_create(author_repo):
    """Test that find_or_create reuses an existing label"""
    first = author_repo.find_or_create("Stanislaw Lem")
    second = author_repo.find_or_create(AuthorInput(label="Stanislaw Lem"))

    assert first == second
    assert len(author_repo.list_all()) == 1


def test_find_by_id_missing(author_repo):
    with pytest.raises(NotFoundError) as exc_info:
        author_repo.find_by_id(404)
    assert exc_info.value.key == 404


def test_rename(author_repo):
    author_id = author_repo.create("Mary Shelly")
    author_repo.update(author_id, {"label": "Mary Shelley"})

    assert author_repo.find_by_id(author_id).label == "Mary Shelley"
    assert author_repo.find_by_label("Mary Shelly") == []


def test_rename_onto_taken_label(author_repo):
    author_repo.create("Alice")
    bob = author_repo.create("Bob")

    with pytest.raises(ConstraintViolationError):
        author_repo.update(bob, {"label": "Alice"})
    assert author_repo.find_by_id(bob).label == "Bob"


def test_update_missing(author_repo):
    with pytest.raises(NotFoundError):
        author_repo.update(7, {"label": "Nobody"})


def test_find_by_book_id(book_repo, sample_book):
    authors = book_repo.authors.find_by_book_id(sample_book)
    assert [author.label for author in authors] == ["Alice", "Bob"]
    assert book_repo.authors.find_by_book_id(999) == []


def test_find_by_book_id_skips_dangling_links(book_repo, sample_book):
    alice, = book_repo.authors.find_by_label("Alice")
    book_repo.authors.delete(alice.id)

    assert [author.label for author in book_repo.authors.find_by_book_id(sample_book)] == ["Bob"]


def test_count_books(book_repo, sample_book):
    book_repo.create({"title": "Second", "authors": ["Alice"]})
    alice, = book_repo.authors.find_by_label("Alice")
    bob, = book_repo.authors.find_by_label("Bob")

    assert book_repo.authors.count_books(alice.id) == 2
    assert book_repo.authors.count_books(bob.id) == 1


def test_delete_cascade(book_repo, sample_book):
    """Test that deleting an author also unlinks it from its books"""
    alice, = book_repo.authors.find_by_label("Alice")

    assert book_repo.authors.delete_cascade(alice.id) == 1

    assert book_repo.authors.find_by_label("Alice") == []
    assert book_repo.book_authors.find_by_author(alice.id) == []
    assert book_repo.find_by_id(sample_book).author_labels == ["Bob"]


def test_delete_cascade_missing(author_repo):
    with pytest.raises(NotFoundError):
        author_repo.delete_cascade(12)


def test_delete_if_orphaned(book_repo, sample_book):
    lonely = book_repo.authors.create("Lonely")
    alice, = book_repo.authors.find_by_label("Alice")

    assert book_repo.authors.delete_if_orphaned(lonely) is True
    assert book_repo.authors.delete_if_orphaned(alice.id) is False
    assert book_repo.authors.find_by_label("Alice")
