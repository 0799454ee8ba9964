import click
from typing import Optional

from ..utils import handle_errors


@click.group()
def tag():
    """Tag management commands"""
    pass


@tag.command(name="list")
@click.option('--color', default=None, help='Only list tags with this color')
@click.pass_obj
@handle_errors
def list_tags(obj, color: Optional[str]):
    """List all tags"""
    tags = obj.library.tags
    items = tags.find_by_color(color) if color else tags.list_all()
    if not items:
        click.echo("\nNo tags found.")
        return

    click.echo(f"\nTags ({len(items)}):")
    for item in items:
        click.echo(click.style(f" - [{item.id}] ", fg='blue') +
                  click.style(item.label, fg='cyan') +
                  click.style(f" {item.color or ''}", fg='yellow'))


@tag.command()
@click.argument('label')
@click.option('--color', default=None, help='Display color, e.g. "#2980b9"')
@click.pass_obj
@handle_errors
def add(obj, label: str, color: Optional[str]):
    """Create a tag"""
    tag_id = obj.library.tags.create({"label": label, "color": color})
    click.echo(click.style("Added tag ", fg='green') + click.style(str(tag_id), fg='cyan'))


@tag.command()
@click.argument('tag_id', type=int)
@click.option('--label', default=None, help='New label')
@click.option('--color', default=None, help='New display color')
@click.pass_obj
@handle_errors
def edit(obj, tag_id: int, label: Optional[str], color: Optional[str]):
    """Change the label and/or color of a tag"""
    fields = {}
    if label is not None:
        fields["label"] = label
    if color is not None:
        fields["color"] = color
    if not fields:
        raise click.UsageError("Nothing to change: give --label and/or --color")

    obj.library.tags.update(tag_id, fields)
    click.echo(click.style(f"Updated tag {tag_id}", fg='green'))


@tag.command()
@click.argument('tag_id', type=int)
@click.pass_obj
@handle_errors
def delete(obj, tag_id: int):
    """Delete a tag and remove it from every book"""
    unlinked = obj.library.tags.delete_cascade(tag_id)
    click.echo(click.style(f"Deleted tag {tag_id}", fg='green') +
              click.style(f" (removed from {unlinked} book{'s' if unlinked != 1 else ''})", fg='blue'))
