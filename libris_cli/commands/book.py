import click
from typing import Optional, Tuple

from libris.document import to_data_url
from libris.models import BookInput
from ..utils import handle_errors, print_book


@click.group()
def book():
    """Book management commands"""
    pass


@book.command(name="list")
@click.option('--verbose/--no-verbose', default=False, help='Show every field of each book')
@click.pass_obj
@handle_errors
def list_books(obj, verbose: bool):
    """List all books with their authors"""
    books = obj.library.books.list_all()
    if not books:
        click.echo("\nNo books in the library.")
        return

    click.echo(f"\nBooks ({len(books)}):")
    for item in books:
        print_book(item, verbose)


@book.command()
@click.argument('book_id', type=int)
@click.pass_obj
@handle_errors
def show(obj, book_id: int):
    """Show a single book

    BOOK_ID is the key of the book to show.
    """
    print_book(obj.library.books.find_by_id(book_id), verbose=True)


@book.command()
@click.argument('query')
@click.option('--by', 'field', type=click.Choice(['title', 'author', 'tag']), default='title',
              help='What QUERY is matched against (exactly)')
@click.pass_obj
@handle_errors
def search(obj, query: str, field: str):
    """Find books by exact title, author label or tag label"""
    books = obj.library.books
    if field == 'author':
        results = books.find_by_author_label(query)
    elif field == 'tag':
        results = books.find_by_tag_label(query)
    else:
        results = books.find_by_title(query)

    if not results:
        click.echo(f"\nNo books found for {field} '{query}'.")
        return
    for item in results:
        print_book(item)


def _book_options(func):
    options = [
        click.option('--title', default=None, help='Book title'),
        click.option('--publisher', default=None, help='Publisher name'),
        click.option('--release', default=None, help='Release date or year'),
        click.option('--author', 'authors', multiple=True, help='Author label (repeatable)'),
        click.option('--tag', 'tags', multiple=True, help='Tag label (repeatable)'),
        click.option('--cover', type=click.Path(exists=True, dir_okay=False), default=None,
                     help='Cover image file'),
        click.option('--attachment', type=click.Path(exists=True, dir_okay=False), default=None,
                     help='PDF or EPUB file'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@book.command()
@_book_options
@click.pass_obj
@handle_errors
def add(obj, title: Optional[str], publisher: Optional[str], release: Optional[str],
        authors: Tuple[str, ...], tags: Tuple[str, ...], cover: Optional[str], attachment: Optional[str]):
    """Add a book"""
    if not title:
        raise click.UsageError("--title is required")

    book_id = obj.library.books.create(BookInput(
        title=title,
        publisher=publisher,
        release=release,
        cover=to_data_url(cover) if cover else None,
        attachment=to_data_url(attachment) if attachment else None,
        authors=list(authors),
        tags=list(tags),
    ))
    click.echo(click.style("Added book ", fg='green') + click.style(str(book_id), fg='cyan'))


@book.command()
@click.argument('book_id', type=int)
@_book_options
@click.pass_obj
@handle_errors
def edit(obj, book_id: int, title: Optional[str], publisher: Optional[str], release: Optional[str],
         authors: Tuple[str, ...], tags: Tuple[str, ...], cover: Optional[str], attachment: Optional[str]):
    """Edit a book. Options left out keep their current value.

    Giving --author or --tag replaces the whole author or tag list.
    """
    books = obj.library.books
    current = books.find_by_id(book_id)

    books.update(book_id, BookInput(
        title=title or current.title,
        publisher=publisher if publisher is not None else current.publisher,
        release=release if release is not None else current.release,
        cover=to_data_url(cover) if cover else current.cover,
        attachment=to_data_url(attachment) if attachment else current.attachment,
        authors=list(authors) if authors else current.author_labels,
        tags=list(tags) if tags else [{"label": t.label, "color": t.color} for t in current.tags],
    ))
    click.echo(click.style("Updated book ", fg='green') + click.style(str(book_id), fg='cyan'))


@book.command()
@click.argument('book_id', type=int)
@click.argument('progress')
@click.pass_obj
@handle_errors
def progress(obj, book_id: int, progress: str):
    """Record the reading position of a book"""
    value = int(progress) if progress.isdigit() else progress
    obj.library.books.update_progress(book_id, value)
    click.echo(click.style(f"Progress of book {book_id} set to ", fg='green') +
              click.style(progress, fg='cyan'))


@book.command()
@click.argument('book_id', type=int)
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_obj
@handle_errors
def delete(obj, book_id: int, yes: bool):
    """Delete a book, its links, and authors left without books"""
    books = obj.library.books
    target = books.find_by_id(book_id)
    if not yes and not click.confirm(f"Delete '{target.title}'?"):
        click.echo("Aborted.")
        return

    books.delete(book_id)
    click.echo(click.style("Deleted book ", fg='green') + click.style(target.title, fg='cyan'))
