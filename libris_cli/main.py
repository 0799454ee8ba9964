# libris_cli/main.py
import click
from typing import Optional

from libris.schema import ALL_COLLECTIONS
from .commands.author import author
from .commands.book import book
from .commands.tag import tag
from .utils import CliContext, handle_errors


@click.group()
@click.option('--db', 'database_url', default=None,
              help='Database URL (default: LIBRIS_DATABASE_URL or ~/.libris/library.db)')
@click.option('--verbose/--no-verbose', default=False, help='Log debug output')
@click.pass_context
def cli(ctx, database_url: Optional[str], verbose: bool):
    """Personal library manager"""
    ctx.obj = CliContext(database_url, verbose)
    ctx.call_on_close(ctx.obj.close)


@cli.command()
@click.pass_obj
@handle_errors
def init(obj):
    """Create the library and import the default books on first use"""
    library = obj.library
    counts = library.schema.collection_counts()
    click.echo(click.style("Library ready at ", fg='green') + click.style(obj.settings.database_url, fg='cyan'))
    for name in ALL_COLLECTIONS:
        click.echo(click.style(f"  {name}: ", fg='blue') + click.style(str(counts[name]), fg='cyan'))


cli.add_command(book)
cli.add_command(author)
cli.add_command(tag)


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
