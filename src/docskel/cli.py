"""Command-line interface for docskel."""

import logging
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from docskel import __version__
from docskel.config.init import (
    copy_default_templates,
    ensure_docskel_dir,
    ensure_home_docskel_dir,
)
from docskel.config.loader import (
    get_home_config_path,
    get_local_config_path,
    home_config_exists,
    load_config,
    local_config_exists,
    save_config,
)
from docskel.config.schema import DEFAULT_CONFIG, DocskelConfig
from docskel.console import console
from docskel.errors import DocskelError, ValidationFailureError
from docskel.library import TemplateFilter, TemplateLibrary
from docskel.rendering.values import kind_of
from docskel.templates.base import Template
from docskel.validation import ValidationResult

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool, level: str | None) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else (level or "WARNING"),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=Console(stderr=True))],
        force=True,
    )


def _fail(exc: DocskelError) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]Error: {escape(str(exc))}[/red]")
    if isinstance(exc, ValidationFailureError):
        for issue in exc.issues:
            console.print(f"  [red]- {issue.path}: {escape(issue.message)}[/red]")
    raise SystemExit(1) from exc


def _load_library() -> TemplateLibrary:
    return TemplateLibrary.from_config(load_config())


def _get_source_label(template: Template) -> str:
    """Get a label indicating whether a template is global or project-local."""
    if template.source is None:
        return ""
    source_str = str(template.source)
    if ".docskel/templates" in source_str:
        if str(Path.cwd()) in source_str:
            return "(local)"
        return "(global)"
    return ""


def version_callback(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console.print(f"docskel [bold cyan]{__version__}[/bold cyan]")
    ctx.exit()


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Docskel - render SDLC document skeletons from inheritable templates."""
    _configure_logging(verbose, load_config().log_level)

    if ctx.invoked_subcommand is None:
        console.print("[bold]docskel[/bold] - SDLC document skeletons")
        console.print("\nRun [cyan]docskel --help[/cyan] for available commands.")


# -- init -----------------------------------------------------------------


def show_current_config() -> None:
    """Display the current effective configuration."""
    config = load_config()
    console.print("\n[bold]Current Effective Configuration:[/bold]")
    console.print(f"  [dim]Global: {get_home_config_path()}[/dim]")
    console.print(f"  [dim]Local: {get_local_config_path()}[/dim]")
    console.print()

    for key, value in config.to_dict().items():
        console.print(f"  {key}: {value}")

    console.print()
    if home_config_exists():
        console.print("  [green]Global config: exists[/green]")
    else:
        console.print("  [dim]Global config: not found[/dim]")
    if local_config_exists():
        console.print("  [green]Local config: exists[/green]")
    else:
        console.print("  [dim]Local config: not found[/dim]")


def _report_copied(copied: list[str], target: str) -> None:
    if copied:
        n = len(copied)
        console.print(f"[green]Copied {n} default templates to {target}[/green]")


@main.command()
@click.option(
    "--global",
    "-g",
    "global_config",
    is_flag=True,
    help="Create or update global config (~/.docskel/config.yaml).",
)
@click.option(
    "--local",
    "-l",
    "local_config",
    is_flag=True,
    help="Create local project config (./.docskel/config.yaml).",
)
@click.option(
    "--show",
    is_flag=True,
    help="Show current effective configuration and exit.",
)
def init(global_config: bool, local_config: bool, show: bool) -> None:
    """Initialize docskel configuration and default templates.

    Without flags, creates the global config if it is missing and copies the
    bundled templates to ~/.docskel/templates/.

    Config locations:
      - Global: ~/.docskel/config.yaml (user defaults)
      - Local: ./.docskel/config.yaml (project overrides)
    """
    if show:
        show_current_config()
        return

    if local_config:
        ensure_docskel_dir()
        local_path = get_local_config_path()
        if local_config_exists():
            console.print(f"[dim]Local config already exists at {local_path}[/dim]")
        else:
            # Empty overrides: everything inherits from the global config
            save_config(DocskelConfig(), local_path)
            console.print(f"[green]Created local config at {local_path}[/green]")
        _report_copied(copy_default_templates(local=True), "./.docskel/templates/")
        return

    ensure_home_docskel_dir()
    home_path = get_home_config_path()
    if home_config_exists() and not global_config:
        console.print(f"[green]Global configuration found at {home_path}[/green]")
        console.print(
            "[dim]Use 'docskel init --global' to reset global settings.[/dim]"
        )
    elif home_config_exists():
        console.print(f"[yellow]Global config already exists at {home_path}[/yellow]")
        if click.confirm("Overwrite with default configuration?", default=False):
            save_config(DEFAULT_CONFIG, home_path)
            console.print(f"[green]Wrote default config to {home_path}[/green]")
        else:
            console.print("\nNo changes made.")
    else:
        save_config(DEFAULT_CONFIG, home_path)
        console.print(f"[green]Created global config at {home_path}[/green]")

    _report_copied(copy_default_templates(local=False), "~/.docskel/templates/")


# -- template -------------------------------------------------------------


@main.group(invoke_without_command=True)
@click.pass_context
def template(ctx: click.Context) -> None:
    """Inspect and validate templates.

    Use subcommands: docskel template list, show, chain, vars, validate
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@template.command("list")
@click.option("--category", help="Only templates in this category.")
@click.option("--phase", help="Only templates for this phase.")
@click.option("--tag", "tags", multiple=True, help="Only templates with any of these tags.")
@click.option("--verbose", "-v", is_flag=True, help="Show template details.")
def template_list(
    category: str | None, phase: str | None, tags: tuple[str, ...], verbose: bool
) -> None:
    """List available templates."""
    library = _load_library()
    templates = library.list_templates(
        TemplateFilter(category=category, phase=phase, tags=tags)
    )

    if not templates:
        console.print("[yellow]No templates found.[/yellow]")
        console.print(
            "[dim]Run 'docskel init' to copy default templates to "
            "~/.docskel/templates/[/dim]"
        )
        return

    console.print("[bold]Available Templates:[/bold]\n")
    for tmpl in templates:
        source_label = _get_source_label(tmpl)
        console.print(f"  [cyan]{tmpl.id}[/cyan] {tmpl.name} {source_label}")
        if verbose:
            if tmpl.description:
                console.print(f"    {tmpl.description.strip()}")
            details = f"Category: {tmpl.category} | Version: {tmpl.version}"
            if tmpl.phase:
                details += f" | Phase: {tmpl.phase}"
            if tmpl.parent:
                details += f" | Parent: {tmpl.parent}"
            console.print(f"    [dim]{details}[/dim]")
            if tmpl.tags:
                console.print(f"    [dim]Tags: {', '.join(tmpl.tags)}[/dim]")
            console.print()


@template.command("show")
@click.argument("template_id")
@click.option("--raw", is_flag=True, help="Show the template without its ancestors merged in.")
def template_show(template_id: str, raw: bool) -> None:
    """Show a template as YAML, merged with its ancestors."""
    library = _load_library()
    try:
        tmpl = library.require(template_id) if raw else library.resolve(template_id)
    except DocskelError as e:
        _fail(e)
    click.echo(yaml.safe_dump(tmpl.to_dict(), default_flow_style=False, sort_keys=False))


@template.command("chain")
@click.argument("template_id")
def template_chain(template_id: str) -> None:
    """Show the inheritance chain of a template, leaf to root."""
    library = _load_library()
    try:
        chain = library.resolver.get_inheritance_chain(template_id)
    except DocskelError as e:
        _fail(e)
    console.print(" -> ".join(f"[cyan]{tid}[/cyan]" for tid in chain))


@template.command("vars")
@click.argument("template_id")
def template_vars(template_id: str) -> None:
    """List the variables a template declares or references."""
    library = _load_library()
    try:
        manifest = library.variable_manifest(template_id)
    except DocskelError as e:
        _fail(e)

    if not manifest:
        console.print("[dim]Template uses no variables.[/dim]")
        return

    console.print(f"[bold]Variables of {template_id}:[/bold]\n")
    for spec in manifest:
        required = "required" if spec.required else "optional"
        console.print(f"  [cyan]{spec.name}[/cyan] ({spec.type}, {required})")
        if spec.description:
            console.print(f"    {spec.description}")
        if spec.default is not None:
            console.print(f"    [dim]Default: {spec.default}[/dim]")


def _print_result(template_id: str, result: ValidationResult) -> None:
    if result.valid:
        console.print(f"[green]✓ {template_id}[/green]")
    else:
        console.print(f"[red]✗ {template_id}[/red]")
    for issue in result.errors:
        console.print(f"    [red]{issue.path}: {escape(issue.message)}[/red]")
    for issue in result.warnings:
        console.print(f"    [yellow]{issue.path}: {escape(issue.message)}[/yellow]")


@template.command("validate")
@click.argument("template_id", required=False)
def template_validate(template_id: str | None) -> None:
    """Validate one template, or every template when no id is given."""
    library = _load_library()
    ids = [template_id] if template_id else library.ids()

    if not ids:
        console.print("[yellow]No templates found.[/yellow]")
        return

    failures = 0
    for tid in ids:
        try:
            result = library.validate_template(tid)
        except DocskelError as e:
            if template_id:
                _fail(e)
            console.print(f"[red]✗ {tid}: {escape(str(e))}[/red]")
            failures += 1
            continue
        _print_result(tid, result)
        if not result.valid:
            failures += 1

    if failures:
        raise SystemExit(1)


# -- render ---------------------------------------------------------------


def _coerce_value(raw: str, declared_type: str | None) -> Any:
    """Interpret a --var value according to the declared variable type.

    Values of undeclared or string variables are kept verbatim.
    """
    if declared_type in (None, "string", "date"):
        return raw
    if declared_type == "array" and not raw.lstrip().startswith("["):
        return [part.strip() for part in raw.split(",") if part.strip()]
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _set_dotted(env: dict[str, Any], key: str, value: Any) -> None:
    *parents, leaf = key.split(".")
    current = env
    for part in parents:
        child = current.get(part)
        if kind_of(child) != "mapping":
            child = {}
            current[part] = child
        current = child
    current[leaf] = value


def _parse_var(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{item}'", ctx, param)
        pairs.append((key.strip(), value))
    return pairs


@main.command()
@click.argument("template_id")
@click.option(
    "--var",
    "variables",
    multiple=True,
    callback=_parse_var,
    help="Variable as key=value; dotted keys nest. Repeatable.",
)
@click.option(
    "--vars-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with variable values. --var entries override it.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the rendered document to this file.",
)
@click.option(
    "--no-validate",
    is_flag=True,
    help="Skip checking variables against the template's declarations.",
)
def render(
    template_id: str,
    variables: list[tuple[str, str]],
    vars_file: Path | None,
    output: Path | None,
    no_validate: bool,
) -> None:
    """Render a template to a document."""
    config = load_config()
    library = TemplateLibrary.from_config(config)

    try:
        tmpl = library.resolve(template_id)
    except DocskelError as e:
        _fail(e)

    env: dict[str, Any] = {}
    if vars_file is not None:
        try:
            with vars_file.open() as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            console.print(f"[red]Invalid vars file {vars_file}: {escape(str(e))}[/red]")
            raise SystemExit(1) from None
        if data is not None and not isinstance(data, dict):
            console.print(f"[red]Vars file {vars_file} must contain a mapping[/red]")
            raise SystemExit(1)
        env.update(data or {})

    declared = {spec.name: spec.type for spec in tmpl.variables}
    for key, raw in variables:
        _set_dotted(env, key, _coerce_value(raw, declared.get(key)))

    validate = bool(config.validate) and not no_validate
    try:
        document = library.render_template(template_id, env, validate=validate)
    except DocskelError as e:
        _fail(e)

    if output is None:
        click.echo(document)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(document, encoding="utf-8")
    console.print(f"[green]Rendered {template_id} to {output}[/green]")
