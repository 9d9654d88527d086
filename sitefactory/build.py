"""Site assembly for sitefactory.

This module contains the build orchestrator that turns a BuildRequest into a
materialized Hugo site. It loads project settings, resolves components,
copies files, composes the site configuration, runs the generator, and
summarizes the output.

Key functions:
- BuildOrchestrator: Runs the pipeline for one request.
- build_site: Convenience wrapper around a fresh orchestrator.
- load_config: Loads project settings from sitefactory.yaml.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .components import ComponentRegistry, Resolution, load_template
from .config import ConfigComposer, ConfigOverrides
from .errors import BuildIOError, FactoryError, NotFoundError
from .generator import HugoRunner
from .materialize import FileMaterializer, Materialization
from .models import (
    BuildRequest,
    BuildResult,
    BuildState,
    BuildWarning,
    TemplateDescriptor,
    WarningKind,
)
from .protocols import SiteGenerator
from .utils import directory_stats, ensure_clean_dir, escapes_root

logger = logging.getLogger(__name__)

CONFIG_FILE = "sitefactory.yaml"
SITE_CONFIG_FILE = "hugo.toml"

DEFAULT_CONFIG = {
    "templates_dir": "templates",
    "themes_dir": "themes",
    "components_dir": "components",
    "template": "default",
    "theme": "compose",
    "components": [],
    "output": "site",
    "environment": "development",
    "base_url": "",
    "generator": "hugo",
    "generator_timeout": 300,
}


def load_config(project_root: Path, config_path: Path | None = None) -> dict[str, Any]:
    """Load project settings from sitefactory.yaml.

    Args:
        project_root: Root directory of the project.
        config_path: Optional explicit settings file (overrides the default
            location).

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    path = config_path or project_root / CONFIG_FILE
    config = DEFAULT_CONFIG.copy()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


class BuildOrchestrator:
    """Sequences one build from request to result.

    The pipeline is strictly linear. The state attribute records the last
    state reached, so after a fatal error it names the step that failed.

    Attributes:
        project_root: Root holding templates/, themes/ and components/.
        templates_dir: Directory containing template directories.
        themes_dir: Directory containing theme directories.
        components_dir: Directory containing component sources.
        generator: External generator runner.
        registry: Component inclusion resolver.
        composer: Site configuration composer.
        state: Last pipeline state reached.
    """

    def __init__(
        self,
        project_root: Path,
        templates_dir: Path | None = None,
        themes_dir: Path | None = None,
        components_dir: Path | None = None,
        generator: SiteGenerator | None = None,
        registry: ComponentRegistry | None = None,
        composer: ConfigComposer | None = None,
    ):
        self.project_root = project_root
        self.templates_dir = templates_dir or project_root / "templates"
        self.themes_dir = themes_dir or project_root / "themes"
        self.components_dir = components_dir or project_root / "components"
        self.generator = generator or HugoRunner(project_root=project_root)
        self.registry = registry or ComponentRegistry()
        self.composer = composer or ConfigComposer()
        self.materializer = FileMaterializer(project_root, self.themes_dir)
        self.state = BuildState.INITIALIZED

    def run(self, request: BuildRequest) -> BuildResult:
        """Run the full pipeline for one request.

        Args:
            request: Validated build request.

        Returns:
            BuildResult describing the materialized site.

        Raises:
            NotFoundError: If the template or theme directory is missing.
            BuildIOError: If the output directory cannot be prepared or written.
            ValidationError: If components.yml is malformed.
            ExternalToolError: If the generator fails, times out, or is aborted.
        """
        self.state = BuildState.INITIALIZED
        output_dir = self._resolve_output(request.output)
        template_dir = self.templates_dir / request.template
        result = BuildResult(output_dir=output_dir, template=request.template)
        try:
            self._prepare_output(output_dir, template_dir, request.clean)
            self._advance(BuildState.OUTPUT_PREPARED)

            template, resolution = self._load(template_dir, request)
            result.included = resolution.included_names
            result.excluded = resolution.excluded_names
            result.warnings.extend(resolution.warnings)
            self._advance(BuildState.TEMPLATE_LOADED)

            materialized = Materialization()
            materialized.files_copied = self.materializer.copy_template(
                template.root, output_dir
            )
            self._advance(BuildState.TREE_COPIED)

            self.materializer.copy_components(resolution.included, output_dir, materialized)
            self.materializer.copy_theme(request.theme, output_dir, materialized)
            result.files_copied = materialized.files_copied
            result.warnings.extend(materialized.warnings)
            self._advance(BuildState.COMPONENTS_PROCESSED)

            result.warnings.extend(self._compose_config(template, request, output_dir))
            self._advance(BuildState.CONFIG_COMPOSED)

            outcome = self.generator.run(output_dir, request)
            result.generator_exit_code = outcome.exit_code
            self._advance(BuildState.GENERATOR_INVOKED)

            self._summarize(output_dir, result)
            self._advance(BuildState.SUMMARY_COMPUTED)
        except FactoryError as exc:
            exc.state = self.state
            logger.debug("Build halted in state %s: %s", self.state.value, exc)
            raise

        self._advance(BuildState.DONE)
        result.state = self.state
        return result

    def _advance(self, state: BuildState) -> None:
        logger.debug("Build state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _resolve_output(self, output: Path) -> Path:
        output = Path(output).expanduser()
        if not output.is_absolute():
            output = self.project_root / output
        return output.resolve()

    def _prepare_output(self, output_dir: Path, template_dir: Path, clean: bool) -> None:
        project_root = self.project_root.resolve()
        if output_dir == project_root or output_dir in project_root.parents:
            raise BuildIOError(
                output_dir, "Refusing to use a directory containing the project as output"
            )
        sources = (template_dir, self.templates_dir, self.themes_dir, self.components_dir)
        for source in sources:
            resolved = source.resolve()
            if output_dir == resolved or output_dir in resolved.parents:
                raise BuildIOError(
                    output_dir, f"Refusing to use a directory containing {source} as output"
                )
            if resolved in output_dir.parents:
                raise BuildIOError(output_dir, f"Output directory must not be inside {source}")
        try:
            if clean:
                ensure_clean_dir(output_dir)
            else:
                output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildIOError(
                output_dir, f"Cannot prepare output directory: {exc}", exc
            ) from exc

    def _load(
        self, template_dir: Path, request: BuildRequest
    ) -> tuple[TemplateDescriptor, Resolution]:
        if not _is_plain_name(request.template) or not template_dir.is_dir():
            raise NotFoundError("template", request.template, template_dir)
        template = load_template(template_dir)
        resolution = self.registry.resolve(template, request.components)
        logger.info(
            "Template '%s': %d included, %d excluded components",
            template.name,
            len(resolution.included),
            len(resolution.excluded),
        )
        self._check_theme(request.theme, resolution)
        return template, resolution

    def _check_theme(self, theme: str, resolution: Resolution) -> None:
        candidates = [self.themes_dir / theme]
        for component in resolution.included:
            if component.is_theme and Path(component.source_path).name == theme:
                candidates.append(self.project_root / component.source_path)
        if not _is_plain_name(theme) or not any(path.is_dir() for path in candidates):
            raise NotFoundError("theme", theme, candidates[0])

    def _compose_config(
        self, template: TemplateDescriptor, request: BuildRequest, output_dir: Path
    ) -> list[BuildWarning]:
        if template.base_config is None:
            message = (
                f"Template '{template.name}' has no {SITE_CONFIG_FILE}; "
                "skipping configuration"
            )
            logger.warning(message)
            return [BuildWarning(WarningKind.CONFIG_MISSING, message, SITE_CONFIG_FILE)]

        overrides = ConfigOverrides(
            theme=request.theme,
            base_url=request.base_url,
            environment=request.environment,
        )
        composition = self.composer.compose(template.base_config, overrides)
        target = output_dir / SITE_CONFIG_FILE
        try:
            target.write_text(composition.text, encoding="utf-8")
        except OSError as exc:
            raise BuildIOError(target, f"Cannot write site configuration: {exc}", exc) from exc

        warnings = []
        if composition.error:
            message = (
                f"{SITE_CONFIG_FILE} of template '{template.name}' could not be parsed; "
                f"copied without overrides ({composition.error})"
            )
            warnings.append(
                BuildWarning(WarningKind.CONFIG_UNPARSEABLE, message, SITE_CONFIG_FILE)
            )
        for key in composition.skipped:
            message = f"No '{key}' assignment in {SITE_CONFIG_FILE}; override skipped"
            logger.warning(message)
            warnings.append(BuildWarning(WarningKind.CONFIG_PATCH_SKIPPED, message, key))
        return warnings

    def _summarize(self, output_dir: Path, result: BuildResult) -> None:
        try:
            result.file_count, result.total_size = directory_stats(output_dir)
        except OSError as exc:
            message = f"Build statistics unavailable: {exc}"
            logger.warning(message)
            result.stats_available = False
            result.file_count = None
            result.total_size = None
            result.warnings.append(
                BuildWarning(WarningKind.STATS_UNAVAILABLE, message, str(output_dir))
            )


def _is_plain_name(name: str) -> bool:
    """True for a single directory name such as a template or theme name."""
    return name not in ("", ".", "..") and Path(name).name == name and not escapes_root(name)


def build_site(
    project_root: Path,
    request: BuildRequest,
    generator: SiteGenerator | None = None,
    config: dict[str, Any] | None = None,
) -> BuildResult:
    """Build a site with a fresh orchestrator.

    Args:
        project_root: Root directory of the project.
        request: Validated build request.
        generator: Optional generator runner (defaults to Hugo).
        config: Optional project settings (defaults to load_config()).

    Returns:
        BuildResult of the run.
    """
    config = config or load_config(project_root)
    orchestrator = BuildOrchestrator(
        project_root,
        templates_dir=project_root / config.get("templates_dir", "templates"),
        themes_dir=project_root / config.get("themes_dir", "themes"),
        components_dir=project_root / config.get("components_dir", "components"),
        generator=generator
        or HugoRunner(
            executable=str(config.get("generator") or "hugo"),
            project_root=project_root,
        ),
    )
    return orchestrator.run(request)
