import functools
import sys
from typing import Optional

import click
from pydantic import ValidationError

from libris.config import load_settings
from libris.errors import LibrisError
from libris.library import Library
from libris.models import Book
from libris.utils.logging import setup_logging


class CliContext:
    """Carries the group options down to the subcommands"""

    def __init__(self, database_url: Optional[str] = None, verbose: bool = False):
        self.settings = load_settings(database_url)
        self.verbose = verbose
        self._library: Optional[Library] = None
        setup_logging("DEBUG" if verbose else self.settings.log_level)

    @property
    def library(self) -> Library:
        if self._library is None:
            self._library = Library.open(self.settings)
        return self._library

    def close(self) -> None:
        if self._library is not None:
            self._library.close()
            self._library = None


def handle_errors(func):
    """Print library errors in red and exit with status 1"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (LibrisError, ValidationError) as e:
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def print_book(book: Book, verbose: bool = False) -> None:
    """Print one book as a list entry"""
    authors = ", ".join(book.author_labels) or "Unknown author"
    click.echo(click.style(f" - [{book.id}] ", fg='blue') +
              click.style(book.title, fg='cyan') +
              click.style(f" by {authors}", fg='blue'))
    if not verbose:
        return

    click.echo(f"     Publisher: {book.publisher or 'N/A'}")
    click.echo(f"     Release: {book.release or 'N/A'}")
    click.echo(f"     Type: {book.type.value if book.type else 'N/A'}")
    click.echo(f"     Progress: {book.progress}")
    if book.tags:
        click.echo("     Tags: " + ", ".join(
            click.style(tag.label, fg='yellow') for tag in book.tags
        ))
