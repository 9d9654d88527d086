"""Command-line interface for sitefactory.

This module defines the CLI commands using Click framework.

Commands:
- build: Assemble a template, theme, and components and run Hugo.
- list: List available templates, themes, and components.
- validate: Validate template configuration.
- new template: Generate a new template skeleton.
- new component: Generate a components.yml entry for a component.
- init: Choose a template, theme, and components, save them, and build.
"""

from __future__ import annotations

import json
import logging
import os
import signal
from contextlib import contextmanager
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .build import CONFIG_FILE, BuildOrchestrator, load_config
from .components import COMPONENTS_FILE, load_template
from .errors import ExternalToolError, FactoryError, ValidationError
from .generator import HugoRunner
from .listing import list_components, list_templates, list_themes, status_icon
from .models import BuildRequest, BuildResult, Environment, StatusKind
from .scaffold import (
    COMPONENT_STATUSES,
    TEMPLATE_TYPES,
    ComponentExistsError,
    TemplateExistsError,
    add_component,
    component_config,
    generate_template,
)
from .schema import ValidationReport, validate_components, validate_template
from .utils import format_size, parse_component_list

LOG_LEVEL_ENV = "SITEFACTORY_LOG_LEVEL"
LOG_FILE_ENV = "SITEFACTORY_LOG_FILE"
LOG_LEVELS = ("debug", "info", "warning", "error")


@click.group()
@click.version_option(version=__version__, prog_name="sitefactory")
def cli():
    """Assemble Hugo sites from templates, themes, and components."""


@cli.command()
@click.option("--template", "-t", help="Template to build (default from settings)")
@click.option("--theme", help="Theme to apply (default from settings)")
@click.option(
    "--components",
    "-c",
    multiple=True,
    help="Components to include (comma separated, repeatable)",
)
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output directory")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Settings file (defaults to sitefactory.yaml)",
)
@click.option("--minify", is_flag=True, help="Minify generator output")
@click.option("--draft", is_flag=True, help="Include draft content")
@click.option("--future", is_flag=True, help="Include future-dated content")
@click.option("--base-url", help="Override baseURL in the site configuration")
@click.option(
    "--environment",
    "-e",
    type=click.Choice([env.value for env in Environment]),
    help="Build environment",
)
@click.option("--no-clean", is_flag=True, help="Keep existing files in the output directory")
@click.option("--timeout", type=float, help="Generator timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help=f"Log level (overrides {LOG_LEVEL_ENV})",
)
def build(
    template: str | None,
    theme: str | None,
    components: tuple[str, ...],
    output: Path | None,
    config_path: Path | None,
    minify: bool,
    draft: bool,
    future: bool,
    base_url: str | None,
    environment: str | None,
    no_clean: bool,
    timeout: float | None,
    verbose: bool,
    log_level: str | None,
):
    """Build a site from a template, theme, and components."""
    _configure_logging(log_level, verbose)
    project_root = Path.cwd()
    config = load_config(project_root, config_path)

    try:
        request = BuildRequest(
            template=template or str(config["template"]),
            theme=theme or str(config["theme"]),
            components=parse_component_list(components or config.get("components")),
            output=output or Path(str(config["output"])),
            environment=Environment.parse(environment or config["environment"]),
            minify=minify,
            draft=draft,
            future=future,
            base_url=base_url or config.get("base_url") or None,
            verbose=verbose,
            clean=not no_clean,
            timeout=timeout if timeout is not None else config.get("generator_timeout"),
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from None
    if verbose:
        _echo_request(request)

    _run_build(project_root, config, request, verbose)


@cli.command(name="list")
@click.argument(
    "kind",
    type=click.Choice(["all", "templates", "themes", "components"]),
    default="all",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format",
)
@click.option("--verbose", "-v", is_flag=True, help="Show extra details")
def list_command(kind: str, output_format: str, verbose: bool):
    """List available templates, themes, and components."""
    project_root = Path.cwd()
    config = load_config(project_root)
    results = {}
    if kind in ("all", "templates"):
        results["templates"] = list_templates(
            project_root / str(config["templates_dir"]), verbose
        )
    if kind in ("all", "themes"):
        results["themes"] = list_themes(project_root / str(config["themes_dir"]), verbose)
    if kind in ("all", "components"):
        results["components"] = list_components(
            project_root / str(config["components_dir"]), verbose
        )

    if output_format == "json":
        click.echo(json.dumps(results, indent=2))
        return
    if output_format == "yaml":
        click.echo(yaml.safe_dump(results, sort_keys=False, allow_unicode=True), nl=False)
        return
    for section, items in results.items():
        click.echo(click.style(f"{section.capitalize()} ({len(items)})", bold=True))
        if not items:
            click.echo("  (none)")
        for item in items:
            line = f"  {item['name']}"
            if item.get("version"):
                line += f" ({item['version']})"
            if item.get("description"):
                line += f" - {item['description']}"
            if item.get("status") == "invalid":
                line += click.style(" [invalid]", fg="red")
            click.echo(line)
            for component in item.get("components", []):
                icon = status_icon(component["status"])
                click.echo(f"    {icon} {component['name']} ({component['status']})")


@cli.command()
@click.argument("template", required=False)
@click.option("--verbose", "-v", is_flag=True, help="Show informational messages")
def validate(template: str | None, verbose: bool):
    """Validate one template, or every template when none is given."""
    project_root = Path.cwd()
    config = load_config(project_root)
    templates_dir = project_root / str(config["templates_dir"])
    if template:
        targets = [templates_dir / template]
    else:
        targets = []
        if templates_dir.is_dir():
            targets = sorted(p for p in templates_dir.iterdir() if p.is_dir())
        if not targets:
            raise click.ClickException(f"No templates found in {templates_dir}")

    report = ValidationReport()
    for target in targets:
        report.extend(validate_template(target, project_root))

    for message in report.errors:
        click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    for message in report.warnings:
        click.echo(click.style(f"! {message}", fg="yellow"))
    if verbose:
        for message in report.info:
            click.echo(f"  {message}")
    summary = f"{len(report.errors)} errors, {len(report.warnings)} warnings"
    if not report.valid:
        click.echo(click.style(f"Validation failed: {summary}", fg="red", bold=True), err=True)
        raise SystemExit(1)
    click.echo(click.style(f"Validation passed: {summary}", fg="green"))


@cli.group()
def new():
    """Generate new templates and components."""


@new.command(name="template")
@click.argument("name")
@click.option(
    "--type",
    "template_type",
    type=click.Choice(TEMPLATE_TYPES),
    default=None,
    help="Template type (selects declared components)",
)
@click.option("--description", help="Template description")
@click.option("--author", help="Template author")
@click.option("--theme", default="compose", show_default=True, help="Theme for hugo.toml")
@click.option("--force", is_flag=True, help="Overwrite an existing template")
@click.option("--interactive", "-i", is_flag=True, help="Prompt for missing values")
def new_template(
    name: str,
    template_type: str | None,
    description: str | None,
    author: str | None,
    theme: str,
    force: bool,
    interactive: bool,
):
    """Generate a new template skeleton."""
    project_root = Path.cwd()
    config = load_config(project_root)

    if interactive:
        if template_type is None:
            template_type = _ask(
                questionary.select(
                    "Template type:",
                    choices=list(TEMPLATE_TYPES),
                    default="default",
                    style=_questionary_style(),
                )
            )
        if description is None:
            description = _ask(
                questionary.text(
                    "Description:",
                    default=f"{name} template",
                    style=_questionary_style(),
                )
            )

    try:
        target = generate_template(
            project_root / str(config["templates_dir"]),
            name,
            template_type=template_type or "default",
            description=description,
            author=author,
            theme=theme,
            force=force,
        )
    except TemplateExistsError as exc:
        raise click.ClickException(f"{exc}. Use --force to overwrite.") from None
    click.echo(f"Template '{name}' created at {target}")


@new.command(name="component")
@click.argument("name")
@click.option(
    "--version", "version", default="^1.0.0", show_default=True, help="Version requirement"
)
@click.option(
    "--status",
    type=click.Choice(COMPONENT_STATUSES),
    default="experimental",
    show_default=True,
    help="Component status",
)
@click.option("--description", help="Component description")
@click.option("--repository", help="Upstream repository URL")
@click.option("--submodule", is_flag=True, help="Source files live in components/NAME")
@click.option(
    "--static-file", "static_files", multiple=True, help="Static file to copy (repeatable)"
)
@click.option("--layout", "layouts", multiple=True, help="Layout file provided (repeatable)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    help="Output format when printing the entry",
)
@click.option("--template", "-t", help="Add the entry to this template's components.yml")
@click.option("--force", is_flag=True, help="Replace an existing entry of the same name")
def new_component(
    name: str,
    version: str,
    status: str,
    description: str | None,
    repository: str | None,
    submodule: bool,
    static_files: tuple[str, ...],
    layouts: tuple[str, ...],
    output_format: str,
    template: str | None,
    force: bool,
):
    """Generate a components.yml entry for a new component."""
    entry = component_config(
        name,
        version=version,
        status=status,
        description=description,
        repository=repository,
        submodule=submodule,
        static_files=static_files,
        layouts=layouts,
    )
    if template is None:
        if output_format == "json":
            click.echo(json.dumps(entry, indent=2))
        else:
            click.echo(yaml.safe_dump(entry, sort_keys=False, allow_unicode=True), nl=False)
        return

    project_root = Path.cwd()
    config = load_config(project_root)
    template_dir = project_root / str(config["templates_dir"]) / template
    try:
        path = add_component(template_dir, entry, force=force)
    except ComponentExistsError as exc:
        raise click.ClickException(f"{exc}. Use --force to replace it.") from None
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    except ValidationError as exc:
        raise click.ClickException(f"{exc.message}: {'; '.join(exc.issues)}") from None
    click.echo(f"Component '{name}' added to {path}")


@cli.command()
@click.argument("output", required=False, type=click.Path(path_type=Path))
@click.option("--template", "-t", help="Template to use")
@click.option("--theme", help="Theme to apply")
@click.option(
    "--components",
    "-c",
    multiple=True,
    help="Components to include (comma separated, repeatable)",
)
@click.option("--no-interactive", is_flag=True, help="Use options and saved settings only")
@click.option("--no-build", is_flag=True, help="Save settings without building")
@click.option("--force", is_flag=True, help=f"Overwrite an existing {CONFIG_FILE}")
def init(
    output: Path | None,
    template: str | None,
    theme: str | None,
    components: tuple[str, ...],
    no_interactive: bool,
    no_build: bool,
    force: bool,
):
    """Pick a template, theme, and components, save them, and build the site."""
    project_root = Path.cwd()
    settings_path = project_root / CONFIG_FILE
    config = load_config(project_root)
    templates_dir = project_root / str(config["templates_dir"])
    selected = parse_component_list(components) if components else None

    if no_interactive:
        if settings_path.exists() and not force:
            raise click.ClickException(
                f"{CONFIG_FILE} already exists. Use --force to overwrite."
            )
        template = template or str(config["template"])
        theme = theme or str(config["theme"])
        if selected is None:
            selected = parse_component_list(config.get("components"))
        output = output or Path(str(config["output"]))
    else:
        template = template or _choose(
            "Template:",
            [item["name"] for item in list_templates(templates_dir)],
            str(config["template"]),
        )
        theme = theme or _choose(
            "Theme:",
            [item["name"] for item in list_themes(project_root / str(config["themes_dir"]))],
            str(config["theme"]),
        )
        if selected is None:
            selected = _choose_components(templates_dir / template)
        if output is None:
            output = Path(
                _ask(
                    questionary.text(
                        "Output directory:",
                        default=str(config["output"]),
                        style=_questionary_style(),
                    )
                )
            )
        if settings_path.exists() and not force:
            if not _ask(
                questionary.confirm(
                    f"Overwrite {CONFIG_FILE}?", default=True, style=_questionary_style()
                )
            ):
                raise click.Abort()

    settings = {}
    if settings_path.exists():
        loaded = yaml.safe_load(settings_path.read_text(encoding="utf-8")) or {}
        if isinstance(loaded, dict):
            settings.update(loaded)
    settings.update(
        template=template,
        theme=theme,
        components=sorted(selected),
        output=str(output),
    )
    settings_path.write_text(
        yaml.safe_dump(settings, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
    click.echo(f"Settings saved to {settings_path}")
    if no_build:
        return

    config = load_config(project_root)
    try:
        request = BuildRequest(
            template=template,
            theme=theme,
            components=selected,
            output=output,
            environment=Environment.parse(config["environment"]),
            base_url=config.get("base_url") or None,
            timeout=config.get("generator_timeout"),
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from None
    _run_build(project_root, config, request, verbose=False)


def _run_build(
    project_root: Path, config: dict, request: BuildRequest, verbose: bool
) -> None:
    """Validate the template's components.yml, build, and report."""
    templates_dir = project_root / str(config["templates_dir"])
    orchestrator = BuildOrchestrator(
        project_root,
        templates_dir=templates_dir,
        themes_dir=project_root / str(config["themes_dir"]),
        components_dir=project_root / str(config["components_dir"]),
        generator=HugoRunner(
            executable=str(config["generator"]),
            project_root=project_root,
        ),
    )
    components_file = templates_dir / request.template / COMPONENTS_FILE
    try:
        validate_components(components_file).raise_for_errors(components_file)
        with _terminate_as_interrupt():
            result = orchestrator.run(request)
    except FactoryError as exc:
        _echo_failure(exc)
        raise SystemExit(1) from None
    _echo_result(result, verbose)


def _ask(question):
    """Ask a questionary question; a cancelled prompt aborts the command."""
    answer = question.ask()
    if answer is None:
        raise click.Abort()
    return answer


def _choose(message: str, names: list[str], default: str) -> str:
    if not names:
        return _ask(questionary.text(message, default=default, style=_questionary_style()))
    return _ask(
        questionary.select(
            message,
            choices=names,
            default=default if default in names else None,
            style=_questionary_style(),
        )
    )


def _choose_components(template_dir: Path) -> frozenset[str]:
    """Offer the template's components; stable ones start checked."""
    try:
        template = load_template(template_dir)
    except FactoryError as exc:
        raise click.ClickException(exc.message) from None
    if not template.components:
        return frozenset()
    choices = []
    for component in template.components.values():
        kind = component.status.kind
        choices.append(
            questionary.Choice(
                f"{component.name} ({component.status.raw or kind.value})",
                value=component.name,
                disabled="planned" if kind is StatusKind.PLANNED else None,
                checked=kind is StatusKind.STABLE,
            )
        )
    answer = _ask(
        questionary.checkbox("Components:", choices=choices, style=_questionary_style())
    )
    return frozenset(answer)


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def _configure_logging(level: str | None, verbose: bool) -> None:
    """Configure the sitefactory logger from flags and environment."""
    name = level or os.environ.get(LOG_LEVEL_ENV) or ("debug" if verbose else "warning")
    numeric = getattr(logging, name.upper(), None)
    if not isinstance(numeric, int):
        raise click.BadParameter(f"Unknown log level: {name}", param_hint=LOG_LEVEL_ENV)

    logger = logging.getLogger("sitefactory")
    logger.setLevel(numeric)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(stream)
    log_file = os.environ.get(LOG_FILE_ENV)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
    logger.propagate = False


@contextmanager
def _terminate_as_interrupt():
    """Treat SIGTERM like Ctrl-C so the generator subprocess is reaped."""

    def _handler(signum, frame):
        raise KeyboardInterrupt

    try:
        previous = signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # Not in the main thread; leave signal handling alone.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _echo_request(request: BuildRequest) -> None:
    click.echo(click.style("Build configuration:", fg="yellow"))
    click.echo(f"  Template: {request.template}")
    click.echo(f"  Theme: {request.theme}")
    components = ", ".join(sorted(request.components)) or "none"
    click.echo(f"  Components: {components}")
    click.echo(f"  Output: {request.output}")
    click.echo(f"  Environment: {request.environment.value}")
    click.echo(f"  Minify: {request.minify}  Draft: {request.draft}  Future: {request.future}")
    click.echo(f"  Base URL: {request.base_url or 'not set'}")


def _echo_failure(exc: FactoryError) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    if exc.state is not None:
        click.echo(click.style(f"  Stage: {exc.state.value}", fg="yellow"), err=True)
    if isinstance(exc, ValidationError):
        for issue in exc.issues:
            click.echo(f"    - {issue}", err=True)
    if isinstance(exc, ExternalToolError):
        if exc.exit_code is not None:
            click.echo(f"  Exit code: {exc.exit_code}", err=True)
        if exc.stderr:
            tail = exc.stderr.strip().splitlines()[-10:]
            for line in tail:
                click.echo(f"    {line}", err=True)


def _echo_result(result: BuildResult, verbose: bool) -> None:
    for warning in result.warnings:
        click.echo(click.style(f"Warning: {warning.message}", fg="yellow"), err=True)
    if verbose:
        click.echo(f"Included components: {', '.join(result.included) or 'none'}")
        for name, reason in result.excluded:
            click.echo(f"Excluded {name}: {reason}")
    if result.stats_available:
        stats = f"{result.file_count} files, {format_size(result.total_size or 0)}"
    else:
        stats = "statistics unavailable"
    count = len(result.warnings)
    noun = "warning" if count == 1 else "warnings"
    click.echo(
        f"Built '{result.template}' into {result.output_dir} "
        f"({result.files_copied} files copied; {stats}; {count} {noun})"
    )


def main():
    """Entry point for the CLI application."""
    cli()
