"""Template validation for sitefactory.

components.yml files are checked against a bundled JSON schema and a set of
semantic rules. Every issue is collected before anything is reported.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Iterator, Tuple

from jsonschema import Draft202012Validator

from .components import COMPONENTS_FILE, CONFIG_FILE, read_components_file
from .errors import ValidationError
from .models import ComponentStatus, StatusKind
from .utils import escapes_root

_SCHEMA_RESOURCE = "components.schema.json"
_SCHEMA_PACKAGE = "sitefactory.resources"

RECOMMENDED_DIRS = ("content", "static", "archetypes")
VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


@lru_cache(maxsize=1)
def _load_schema() -> dict[str, Any]:
    resource = resources.files(_SCHEMA_PACKAGE) / _SCHEMA_RESOURCE
    with resource.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(_load_schema())


def iter_schema_errors(payload: dict[str, Any]) -> Iterator[Tuple[str, str]]:
    """Yield (path, message) pairs for schema issues in a components mapping."""
    validator = _validator()
    errors = sorted(
        validator.iter_errors(payload),
        key=lambda error: [str(item) for item in error.absolute_path],
    )
    for error in errors:
        path = ".".join(str(item) for item in error.absolute_path)
        yield path, error.message


@dataclass
class ValidationReport:
    """Errors, warnings, and notes gathered for one or more templates."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    info: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def extend(self, other: ValidationReport) -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.info.extend(other.info)

    def raise_for_errors(self, source: Path | str) -> None:
        """Raise a ValidationError carrying every error, if there are any."""
        if self.errors:
            raise ValidationError(source, self.errors)


def validate_components(path: Path, project_root: Path | None = None) -> ValidationReport:
    """Validate one components.yml file.

    Args:
        path: Path to components.yml.
        project_root: Root that component source paths are relative to. When
            given, source paths and static files are checked on disk.

    Returns:
        ValidationReport for the file.
    """
    report = ValidationReport()
    if not path.exists():
        report.warnings.append(f"Components file not found: {path}")
        return report
    try:
        payload = read_components_file(path)
    except ValidationError as exc:
        report.errors.extend(f"{path}: {issue}" for issue in exc.issues)
        return report

    for location, message in iter_schema_errors(payload):
        where = location or "<root>"
        report.errors.append(f"{path}: {where}: {message}")

    meta = payload.get("template")
    if not isinstance(meta, dict):
        report.warnings.append(f"{path}: template metadata section is missing")
    else:
        if not meta.get("version"):
            report.warnings.append(f"{path}: template version is recommended")
        if not meta.get("description"):
            report.warnings.append(f"{path}: template description is recommended")

    components = payload.get("components")
    if not components:
        report.warnings.append(f"{path}: no components defined")
    elif isinstance(components, dict):
        for name, spec in components.items():
            if isinstance(spec, dict):
                _check_component(str(name), spec, report, project_root)

    hugo = payload.get("hugo")
    if isinstance(hugo, dict):
        min_version = hugo.get("minVersion")
        if min_version and not VERSION_RE.match(str(min_version)):
            report.warnings.append(
                f"{path}: hugo.minVersion should follow semantic versioning: {min_version}"
            )
    if report.valid:
        report.info.append(f"{path}: components configuration is valid")
    return report


def _check_component(
    name: str, spec: dict[str, Any], report: ValidationReport, project_root: Path | None
) -> None:
    status = ComponentStatus.parse(spec.get("status"))
    if status.is_unknown and spec.get("status"):
        report.warnings.append(f"Component '{name}' has unknown status: {status.raw}")
    if not spec.get("version"):
        report.warnings.append(f"Component '{name}' missing version information")
    if not spec.get("description"):
        report.warnings.append(f"Component '{name}' missing description")

    source_path = spec.get("sourcePath", spec.get("submodule_path"))
    if status.kind is StatusKind.PLANNED and source_path:
        report.warnings.append(
            f"Component '{name}' is marked as planned but has a source path"
        )
    if status.kind is StatusKind.STABLE and not source_path and not spec.get("static_files"):
        report.warnings.append(
            f"Component '{name}' is marked as stable but has no source path or files"
        )

    static_files = spec.get("static_files") or []
    if not isinstance(static_files, list):
        static_files = []
    if source_path and escapes_root(str(source_path).strip("/")):
        report.errors.append(f"Component '{name}' source path leaves the project: {source_path}")
        return
    escaping = [e for e in static_files if escapes_root(str(e).strip("/"))]
    for entry in escaping:
        report.errors.append(
            f"Component '{name}' static file leaves its source directory: {entry}"
        )

    if project_root is None or not source_path:
        return
    source_dir = project_root / str(source_path)
    if not source_dir.exists():
        report.warnings.append(
            f"Component '{name}' source path does not exist: {source_path}"
        )
        return
    for entry in static_files:
        if entry in escaping:
            continue
        if not (source_dir / str(entry).strip("/")).exists():
            report.warnings.append(
                f"Component '{name}' static file not found: {entry} (in {source_path})"
            )


def validate_template(template_dir: Path, project_root: Path | None = None) -> ValidationReport:
    """Validate a template directory's structure and components.yml."""
    report = ValidationReport()
    name = template_dir.name
    if not template_dir.is_dir():
        report.errors.append(f"Template directory not found: {template_dir}")
        return report

    if not (template_dir / CONFIG_FILE).exists():
        report.errors.append(f"Template '{name}' missing required file: {CONFIG_FILE}")
    else:
        text = (template_dir / CONFIG_FILE).read_text(encoding="utf-8")
        if "title" not in text and "baseURL" not in text:
            report.warnings.append(
                f"Template '{name}' {CONFIG_FILE} seems incomplete (no title or baseURL)"
            )
    if not (template_dir / COMPONENTS_FILE).exists():
        report.warnings.append(f"Template '{name}' missing {COMPONENTS_FILE} (recommended)")

    for directory in RECOMMENDED_DIRS:
        path = template_dir / directory
        if not path.exists():
            report.warnings.append(
                f"Template '{name}' missing recommended directory: {directory}"
            )
        elif not path.is_dir():
            report.errors.append(
                f"Template '{name}' has {directory} as file, expected directory"
            )

    components_path = template_dir / COMPONENTS_FILE
    if components_path.exists():
        report.extend(validate_components(components_path, project_root))
    return report
