"""Command line interface.

CLI module using Typer with Rich-formatted output. ``render``, ``protect`` and
``restore`` transform content files (``-`` reads stdin) and write the result to
stdout or ``--output``; ``scan`` lists the code blocks in a file; ``validate``
and ``init`` manage configuration files; the ``options`` sub-command manages
the persisted options store.
"""

# ruff: noqa: B008

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from coderender import __version__
from coderender.config import CodeRenderConfig, RenderOptions, load_config
from coderender.editor import EditorContext, protect, restore
from coderender.exceptions import CodeRenderError, ConfigError
from coderender.options import BOOLEAN_FIELDS, OptionsStore
from coderender.processor import ContentProcessor
from coderender.shortcode import find_shortcodes
from coderender.utils import setup_logging

install_rich_traceback(show_locals=True)

console = Console()

app = typer.Typer(
    name="coderender",
    help="coderender - code block shortcode rendering and editor round-tripping",
    add_completion=False,
)

options_app = typer.Typer(
    help="Show and change the persisted render options",
    add_completion=False,
)
app.add_typer(options_app, name="options")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"coderender version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """coderender - code block shortcode rendering and editor round-tripping."""
    pass


CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to YAML config file (built-in defaults if omitted)",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
)

OUTPUT_OPTION = typer.Option(
    None,
    "--output",
    "-o",
    help="Write the result to this file instead of stdout",
)

VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Verbose logging",
)


@contextmanager
def _cli_errors(action: str, verbose: bool = False) -> Iterator[None]:
    """Translate errors raised inside a command into exit codes."""
    try:
        yield
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1) from None
    except CodeRenderError as e:
        console.print(f"[red]{action} failed:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        console.print(f"\n[yellow]{action} interrupted by user[/yellow]")
        raise typer.Exit(code=130) from None
    except OSError as e:
        console.print(f"[red]{action} failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None


def _load(config_path: Path | None) -> CodeRenderConfig:
    if config_path is None:
        return CodeRenderConfig()
    return load_config(config_path)


def _store(config: CodeRenderConfig, config_path: Path | None) -> OptionsStore:
    """Options store, with a relative path resolved next to the config file."""
    store_path = Path(config.store.path)
    if config_path is not None and not store_path.is_absolute():
        store_path = config_path.parent / store_path
    return OptionsStore(store_path, config.options)


def _read_input(input_path: Path) -> str:
    if str(input_path) == "-":
        return sys.stdin.read()
    return input_path.read_text(encoding="utf-8")


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        typer.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green][OK] Wrote:[/green] {output}")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@app.command()
def render(
    input_path: Path = typer.Argument(..., help="Content file to render ('-' for stdin)"),
    config: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
    use_store: bool = typer.Option(
        True,
        "--store/--no-store",
        help="Layer options saved in the options store over the config",
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Render code block shortcodes in a content file to HTML."""
    setup_logging(verbose=verbose)
    with _cli_errors("Rendering", verbose):
        site_config = _load(config)
        if use_store:
            base_dir = config.parent if config is not None else None
            processor = ContentProcessor.from_config(site_config, base_dir)
        else:
            processor = ContentProcessor(site_config)

        html = processor.render(_read_input(input_path))
        _write_output(html, output)


@app.command(name="protect")
def protect_command(
    input_path: Path = typer.Argument(..., help="Content file to protect ('-' for stdin)"),
    config: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
) -> None:
    """Replace code block shortcodes with editor placeholders."""
    with _cli_errors("Protecting"):
        site_config = _load(config)
        ctx = protect(EditorContext(_read_input(input_path)), site_config.shortcodes.tags)
        _write_output(ctx.content, output)


@app.command(name="restore")
def restore_command(
    input_path: Path = typer.Argument(..., help="Editor content to restore ('-' for stdin)"),
    config: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
) -> None:
    """Turn editor placeholders back into code block shortcodes."""
    with _cli_errors("Restoring"):
        site_config = _load(config)
        ctx = restore(EditorContext(_read_input(input_path)), site_config.shortcodes.tags[0])
        _write_output(ctx.content, output)


@app.command()
def scan(
    input_path: Path = typer.Argument(..., help="Content file to scan ('-' for stdin)"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """List the code block shortcodes found in a content file."""
    with _cli_errors("Scanning"):
        site_config = _load(config)
        content = _read_input(input_path)
        matches = list(find_shortcodes(content, tuple(site_config.shortcodes.tags)))

        if not matches:
            console.print("[yellow]No code blocks found[/yellow]")
            return

        table = Table(title=f"Code Blocks in {input_path}")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Tag", style="cyan", no_wrap=True)
        table.add_column("Offset", justify="right")
        table.add_column("Language", style="green")
        table.add_column("Title", style="white")
        table.add_column("Lines", justify="right")
        table.add_column("Form", style="magenta")

        for index, match in enumerate(matches, start=1):
            attrs = match.attributes
            language = attrs.get("language") or attrs.get("lang")
            lines = str(len(match.body.strip().splitlines())) if match.body else "0"
            if match.escaped:
                form = "escaped"
            elif match.self_closing:
                form = "self-closing"
            elif match.body is None:
                form = "unclosed"
            else:
                form = "paired"

            table.add_row(
                str(index),
                match.tag,
                str(match.start),
                escape(language) if language else "[dim]default[/dim]",
                escape(attrs["title"]) if attrs.get("title") else "[dim]none[/dim]",
                lines,
                form,
            )

        console.print(table)
        console.print(f"\n[dim]Found {len(matches)} code block(s)[/dim]")


@app.command()
def validate(
    config_path: Path = typer.Argument(
        ...,
        help="Path to YAML config file to validate",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Validate a coderender configuration file.

    Checks YAML syntax and validates all configuration fields against
    the schema. Displays detailed error messages if validation fails.
    """
    try:
        console.print(f"[cyan]Validating configuration:[/cyan] {config_path}")

        site_config = load_config(config_path)

        console.print("[green][OK] Configuration is valid![/green]\n")

        table = Table(title="Configuration Summary")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Name", site_config.name)
        table.add_row("Description", site_config.description or "[dim]none[/dim]")
        table.add_row("Shortcode Tags", ", ".join(site_config.shortcodes.tags))
        table.add_row("Default Language", site_config.shortcodes.default_language)
        table.add_row("Theme", site_config.options.theme)
        table.add_row("Options Store", site_config.store.path)
        table.add_row("Enhancer", "Yes" if site_config.enhancer.enabled else "No")
        table.add_row(
            "Plugins",
            str(len(site_config.plugins.plugins)) if site_config.plugins.enabled else "disabled",
        )

        console.print(table)

    except ConfigError as e:
        console.print("[red][FAIL] Configuration validation failed:[/red]\n")
        console.print(escape(str(e)))
        raise typer.Exit(code=1) from None


@app.command()
def init(
    output_path: Path | None = typer.Argument(
        None,
        help="Output path for generated config file (default: coderender.yaml)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing file",
    ),
) -> None:
    """Create a new coderender configuration file interactively.

    Prompts for basic configuration options and generates a minimal
    YAML config file.
    """
    if output_path is None:
        output_path = Path("coderender.yaml")

    if output_path.exists() and not force:
        console.print(f"[red]Error:[/red] File already exists: {output_path}")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(code=1)

    try:
        console.print("[cyan]Create a new coderender configuration[/cyan]\n")

        name = typer.prompt("Site name (e.g., 'my-blog')")
        description = typer.prompt("Description (optional)", default="")
        theme = typer.prompt("Theme ('default' or 'dark')", default="default")
        line_numbers = typer.confirm("Show line numbers by default?", default=False)

        config_template = {
            "name": name,
            "description": description,
            "options": {
                "theme": theme,
                "line_numbers": line_numbers,
                "copy_button": True,
                "word_wrap": False,
                "font_size": 14,
                "tab_size": 4,
            },
            "shortcodes": {
                "tags": ["code_block", "acr_code"],
                "default_language": "text",
            },
            "store": {
                "path": ".coderender_options.yaml",
            },
        }

        with output_path.open("w", encoding="utf-8") as f:
            f.write("# coderender configuration\n")
            f.write(f"# Generated for: {name}\n\n")
            yaml.dump(config_template, f, default_flow_style=False, sort_keys=False)

        console.print(f"\n[green][OK] Configuration created:[/green] {output_path}")
        console.print("\n[dim]Next steps:[/dim]")
        console.print(f"  1. Edit {output_path} to customize settings")
        console.print(f"  2. Run: coderender validate {output_path}")
        console.print(f"  3. Run: coderender render post.html --config {output_path}")

    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=130) from None

    except OSError as e:
        console.print(f"[red]Error creating configuration:[/red] {e}")
        raise typer.Exit(code=1) from None


@options_app.command("show")
def options_show(config: Path | None = CONFIG_OPTION) -> None:
    """Show effective options next to their defaults."""
    with _cli_errors("Reading options"):
        site_config = _load(config)
        store = _store(site_config, config)
        current = store.load()

        table = Table(title=f"Render Options ({store.path})")
        table.add_column("Option", style="cyan", no_wrap=True)
        table.add_column("Value", style="white")
        table.add_column("Default", style="dim")

        for key in RenderOptions.model_fields:
            value = getattr(current, key)
            default = getattr(store.defaults, key)
            shown = _format_value(value)
            if value != default:
                shown = f"[bold]{shown}[/bold]"
            table.add_row(key, shown, _format_value(default))

        console.print(table)


@options_app.command("get")
def options_get(
    key: str = typer.Argument(..., help="Option name"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Print the current value of one option."""
    with _cli_errors("Reading options"):
        site_config = _load(config)
        try:
            value = _store(site_config, config).get(key)
        except KeyError:
            console.print(f"[red]Unknown option:[/red] {key}")
            raise typer.Exit(code=1) from None
        typer.echo(_format_value(value))


@options_app.command("set")
def options_set(
    key: str = typer.Argument(..., help="Option name"),
    value: str = typer.Argument(..., help="New value (YAML scalar, e.g. true, 16, dark)"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Validate and save a single option."""
    with _cli_errors("Saving options"):
        site_config = _load(config)
        store = _store(site_config, config)
        # Text options take the argument verbatim; others parse as YAML scalars
        field = RenderOptions.model_fields.get(key)
        parsed: Any = value
        if field is not None and field.annotation is not str:
            try:
                parsed = yaml.safe_load(value)
            except yaml.YAMLError:
                parsed = value

        try:
            options = store.set(key, parsed)
        except KeyError:
            console.print(f"[red]Unknown option:[/red] {key}")
            raise typer.Exit(code=1) from None

        console.print(f"[green][OK][/green] {key} = {_format_value(getattr(options, key))}")


@options_app.command("update")
def options_update(
    theme: str | None = typer.Option(None, "--theme", help="Color theme"),
    font_size: str | None = typer.Option(None, "--font-size", help="Font size in pixels"),
    tab_size: str | None = typer.Option(None, "--tab-size", help="Tab width"),
    enable: list[str] = typer.Option(
        [],
        "--enable",
        "-e",
        help=f"Checked option (repeatable): {', '.join(BOOLEAN_FIELDS)}",
    ),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Submit the settings form.

    Works like the settings page: text fields start out holding the stored
    values, and every checkbox not passed with --enable is switched off.
    """
    unknown = [name for name in enable if name not in BOOLEAN_FIELDS]
    if unknown:
        console.print(f"[red]Unknown option:[/red] {', '.join(unknown)}")
        raise typer.Exit(code=1)

    with _cli_errors("Saving options"):
        site_config = _load(config)
        store = _store(site_config, config)
        current = store.load()

        form: dict[str, str] = {
            "theme": current.theme if theme is None else theme,
            "font_size": str(current.font_size) if font_size is None else font_size,
            "tab_size": str(current.tab_size) if tab_size is None else tab_size,
        }
        form.update(dict.fromkeys(enable, "1"))

        options = store.update_from_form(form)
        console.print("[green][OK] Options saved[/green]")
        for key, value in options.model_dump().items():
            console.print(f"  {key} = {_format_value(value)}")


@options_app.command("reset")
def options_reset(config: Path | None = CONFIG_OPTION) -> None:
    """Restore the default options."""
    with _cli_errors("Resetting options"):
        site_config = _load(config)
        _store(site_config, config).reset()
        console.print("[green][OK] Options reset to defaults[/green]")


if __name__ == "__main__":
    app()
