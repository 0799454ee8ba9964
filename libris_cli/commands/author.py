import click

from ..utils import handle_errors


@click.group()
def author():
    """Author management commands"""
    pass


@author.command(name="list")
@click.pass_obj
@handle_errors
def list_authors(obj):
    """List all authors with the number of books they are linked to"""
    authors = obj.library.authors
    items = authors.list_all()
    if not items:
        click.echo("\nNo authors found.")
        return

    click.echo(f"\nAuthors ({len(items)}):")
    for item in items:
        count = authors.count_books(item.id)
        click.echo(click.style(f" - [{item.id}] ", fg='blue') +
                  click.style(item.label, fg='cyan') +
                  click.style(f" ({count} book{'s' if count != 1 else ''})", fg='blue'))


@author.command()
@click.argument('author_id', type=int)
@click.argument('label')
@click.pass_obj
@handle_errors
def rename(obj, author_id: int, label: str):
    """Change the label of an author

    LABEL must not be used by another author.
    """
    obj.library.authors.update(author_id, {"label": label})
    click.echo(click.style(f"Renamed author {author_id} to ", fg='green') + click.style(label.strip(), fg='cyan'))


@author.command()
@click.argument('author_id', type=int)
@click.pass_obj
@handle_errors
def delete(obj, author_id: int):
    """Delete an author and unlink it from every book"""
    unlinked = obj.library.authors.delete_cascade(author_id)
    click.echo(click.style(f"Deleted author {author_id}", fg='green') +
              click.style(f" (unlinked from {unlinked} book{'s' if unlinked != 1 else ''})", fg='blue'))
