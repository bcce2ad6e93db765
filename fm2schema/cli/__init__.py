"""Command-line interface for fm2schema."""

import rich_click as click

from .. import __version__
from .detect import check_command, detect_command
from .run import run_command

# Configure rich-click styling
click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_COMMAND = "bold green"
click.rich_click.STYLE_SWITCH = "bold blue"


@click.group(name="fm2schema")
@click.version_option(version=__version__, prog_name="fm2schema")
def main() -> None:
    """📄 **fm2schema** - Markdown front matter to schema-shaped output.

    Collects front matter from Markdown files, shapes it with the `x-*`
    directives of a JSON Schema, and renders the result through a template.
    """
    pass


# Add commands to the group
main.add_command(run_command)
main.add_command(detect_command)
main.add_command(check_command)


if __name__ == "__main__":
    main()


__all__ = ["main"]
