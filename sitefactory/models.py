"""Data model for the template assembly pipeline.

This module holds the immutable descriptors read from a template directory,
the request that drives a build, and the result a build returns.

Key classes:
- ComponentStatus: Closed status variant (stable, experimental, planned,
  deprecated, or unknown with the original string kept).
- ComponentDescriptor / TemplateDescriptor: Snapshot of one template.
- BuildRequest / BuildResult: Input and terminal outcome of one build.
- BuildWarning: A non-fatal condition surfaced alongside a successful build.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any


class StatusKind(Enum):
    STABLE = "stable"
    EXPERIMENTAL = "experimental"
    PLANNED = "planned"
    DEPRECATED = "deprecated"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ComponentStatus:
    """Declared maturity of a component.

    Attributes:
        kind: One of the known StatusKind values, or UNKNOWN.
        raw: The status string exactly as written in components.yml.
    """

    kind: StatusKind
    raw: str

    @classmethod
    def parse(cls, value: Any) -> ComponentStatus:
        """Parse a status value from YAML.

        Unrecognised or missing values map to StatusKind.UNKNOWN and keep the
        original text so it can be reported.
        """
        raw = "" if value is None else str(value)
        normalized = raw.strip().lower()
        for kind in StatusKind:
            if kind is not StatusKind.UNKNOWN and kind.value == normalized:
                return cls(kind, raw)
        return cls(StatusKind.UNKNOWN, raw)

    @property
    def is_unknown(self) -> bool:
        return self.kind is StatusKind.UNKNOWN

    def __str__(self) -> str:
        if self.is_unknown:
            return self.raw or "unknown"
        return self.kind.value


@dataclass(frozen=True)
class ComponentDescriptor:
    """One component declared by a template.

    Attributes:
        name: Unique component name within the template.
        version: Semantic version requirement string.
        status: Parsed status variant.
        description: Human readable summary.
        repository: Optional upstream repository URL.
        source_path: Optional path (relative to the project root) holding the
            component's files; may point at a themes/ or components/ subtree.
        static_files: Relative static-file paths to copy for the component.
        layouts: Relative layout-file paths the component provides.
        configuration: Free-form configuration mapping.
    """

    name: str
    version: str = ""
    status: ComponentStatus = field(
        default_factory=lambda: ComponentStatus(StatusKind.UNKNOWN, "")
    )
    description: str = ""
    repository: str | None = None
    source_path: str | None = None
    static_files: tuple[str, ...] = ()
    layouts: tuple[str, ...] = ()
    configuration: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def is_theme(self) -> bool:
        """True when the source path lives under a top-level themes/ directory."""
        if not self.source_path:
            return False
        parts = Path(self.source_path).parts
        return bool(parts) and parts[0] == "themes"


@dataclass(frozen=True)
class TemplateDescriptor:
    """Immutable snapshot of one template directory.

    Attributes:
        name: Template name.
        root: Template directory on disk.
        version: Template version.
        description: Template description.
        author: Template author.
        min_generator_version: Minimum Hugo version hint (hugo.minVersion).
        generator_extended: Whether the extended Hugo build is needed.
        base_config: Text of the template's hugo.toml, or None when absent.
        components: Read-only mapping of component name to descriptor, in
            declaration order.
        build_hints: Opaque pass-through generator hints from build:.
    """

    name: str
    root: Path
    version: str = ""
    description: str = ""
    author: str = ""
    min_generator_version: str | None = None
    generator_extended: bool = False
    base_config: str | None = None
    components: Mapping[str, ComponentDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )
    build_hints: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )


class Environment(Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"

    @classmethod
    def parse(cls, value: str | Environment) -> Environment:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(env.value for env in cls)
            raise ValueError(
                f"Unknown environment '{value}' (expected one of: {choices})"
            ) from None


@dataclass(frozen=True)
class BuildRequest:
    """Already-validated input for one build.

    Attributes:
        template: Template name (directory under the templates dir).
        theme: Theme name (directory under the themes dir).
        components: Explicitly requested component names.
        output: Output directory.
        environment: Target environment.
        minify: Pass --minify to the generator.
        draft: Pass --buildDrafts to the generator.
        future: Pass --buildFuture to the generator.
        base_url: Optional baseURL override.
        verbose: Verbose reporting requested by the caller.
        clean: Empty the output directory before materializing.
        timeout: Generator timeout in seconds (None disables it).
    """

    template: str
    theme: str
    output: Path
    components: frozenset[str] = frozenset()
    environment: Environment = Environment.DEVELOPMENT
    minify: bool = False
    draft: bool = False
    future: bool = False
    base_url: str | None = None
    verbose: bool = False
    clean: bool = True
    timeout: float | None = 300.0


class WarningKind(Enum):
    ASSET_MISSING = "asset-missing"
    ASSET_REJECTED = "asset-rejected"
    CONFIG_PATCH_SKIPPED = "config-patch-skipped"
    CONFIG_MISSING = "config-missing"
    CONFIG_UNPARSEABLE = "config-unparseable"
    UNKNOWN_STATUS = "unknown-status"
    DEPRECATED_COMPONENT = "deprecated-component"
    STATS_UNAVAILABLE = "stats-unavailable"


@dataclass(frozen=True)
class BuildWarning:
    """A non-fatal condition observed during a build."""

    kind: WarningKind
    message: str
    subject: str = ""

    def __str__(self) -> str:
        return self.message


class BuildState(Enum):
    INITIALIZED = "initialized"
    OUTPUT_PREPARED = "output-prepared"
    TEMPLATE_LOADED = "template-loaded"
    TREE_COPIED = "tree-copied"
    COMPONENTS_PROCESSED = "components-processed"
    CONFIG_COMPOSED = "config-composed"
    GENERATOR_INVOKED = "generator-invoked"
    SUMMARY_COMPUTED = "summary-computed"
    DONE = "done"


@dataclass
class BuildResult:
    """Result of a completed build.

    Attributes:
        output_dir: Directory the site was materialized into.
        template: Name of the template that was built.
        included: Included component names, in template order.
        excluded: (name, reason) pairs for excluded components.
        files_copied: Files placed by the materializer.
        file_count: Files found in the output after the generator ran.
        total_size: Total bytes found in the output after the generator ran.
        stats_available: False when the summary walk failed.
        generator_exit_code: Exit status of the external generator.
        warnings: Non-fatal conditions collected during the build.
        state: Terminal pipeline state.
    """

    output_dir: Path
    template: str
    included: list[str] = field(default_factory=list)
    excluded: list[tuple[str, str]] = field(default_factory=list)
    files_copied: int = 0
    file_count: int | None = None
    total_size: int | None = None
    stats_available: bool = True
    generator_exit_code: int | None = None
    warnings: list[BuildWarning] = field(default_factory=list)
    state: BuildState = BuildState.INITIALIZED

    def warnings_of(self, kind: WarningKind) -> list[BuildWarning]:
        return [w for w in self.warnings if w.kind is kind]
