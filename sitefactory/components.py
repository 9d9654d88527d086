"""Template and component loading for sitefactory.

This module reads a template's components.yml into an immutable
TemplateDescriptor and decides, for a set of requested names, which of its
components take part in a build.

Key components:
- load_template: Build a TemplateDescriptor from a template directory.
- ComponentRegistry: Resolves component inclusion for a request.
- Resolution: Outcome of a resolve() call.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .errors import ValidationError
from .models import (
    BuildWarning,
    ComponentDescriptor,
    ComponentStatus,
    StatusKind,
    TemplateDescriptor,
    WarningKind,
)

logger = logging.getLogger(__name__)

COMPONENTS_FILE = "components.yml"
CONFIG_FILE = "hugo.toml"

PLANNED_REASON = "planned - not yet implementable"
NOT_REQUESTED_REASON = "not requested and not stable"


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys."""


def _construct_unique_mapping(loader: _UniqueKeyLoader, node, deep=False):
    loader.flatten_mapping(node)
    seen = set()
    for key_node, _value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in seen:
            raise yaml.constructor.ConstructorError(
                "while constructing a mapping",
                node.start_mark,
                f"found duplicate key {key!r}",
                key_node.start_mark,
            )
        seen.add(key)
    return loader.construct_mapping(node, deep=deep)


_UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_unique_mapping
)


def read_components_file(path: Path) -> dict[str, Any]:
    """Parse a components.yml file.

    Args:
        path: Path to components.yml.

    Returns:
        The parsed mapping (empty when the file is empty).

    Raises:
        ValidationError: If the YAML is malformed, has duplicate keys, or is not
            a mapping at the top level.
    """
    with open(path, encoding="utf-8") as f:
        try:
            payload = yaml.load(f, Loader=_UniqueKeyLoader)
        except yaml.YAMLError as exc:
            raise ValidationError(path, [f"Invalid YAML: {exc}"]) from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError(path, ["Top level of components.yml must be a mapping"])
    return payload


def load_template(template_dir: Path) -> TemplateDescriptor:
    """Load a template directory into an immutable descriptor.

    A template without components.yml is valid and declares no components.
    The hugo.toml text is kept verbatim as the base configuration.

    Args:
        template_dir: Directory of the template.

    Returns:
        TemplateDescriptor snapshot of the template.

    Raises:
        ValidationError: If components.yml is structurally invalid.
    """
    components_path = template_dir / COMPONENTS_FILE
    payload: dict[str, Any] = {}
    if components_path.exists():
        payload = read_components_file(components_path)
    else:
        logger.debug("No %s in %s", COMPONENTS_FILE, template_dir)

    issues: list[str] = []
    meta = _section(payload, "template", issues)
    hugo = _section(payload, "hugo", issues)
    build = _section(payload, "build", issues)
    raw_components = _section(payload, "components", issues)

    components: dict[str, ComponentDescriptor] = {}
    for name, spec in raw_components.items():
        if spec is None:
            spec = {}
        if not isinstance(spec, dict):
            issues.append(f"Component '{name}' must be a mapping")
            continue
        try:
            components[str(name)] = _parse_component(str(name), spec)
        except (TypeError, ValueError) as exc:
            issues.append(f"Component '{name}': {exc}")
    if issues:
        raise ValidationError(components_path, issues)

    config_path = template_dir / CONFIG_FILE
    base_config = None
    if config_path.exists():
        base_config = config_path.read_text(encoding="utf-8")

    min_version = hugo.get("minVersion")
    return TemplateDescriptor(
        name=str(meta.get("name") or template_dir.name),
        root=template_dir,
        version=str(meta.get("version") or ""),
        description=str(meta.get("description") or ""),
        author=str(meta.get("author") or ""),
        min_generator_version=str(min_version) if min_version else None,
        generator_extended=bool(hugo.get("extended", False)),
        base_config=base_config,
        components=MappingProxyType(components),
        build_hints=MappingProxyType(dict(build)),
    )


def _section(payload: dict[str, Any], key: str, issues: list[str]) -> dict[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        issues.append(f"Section '{key}' must be a mapping")
        return {}
    return value


def _string_list(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, list):
        raise TypeError(f"'{field_name}' must be a list")
    return tuple(str(item) for item in value)


def _parse_component(name: str, spec: dict[str, Any]) -> ComponentDescriptor:
    configuration = spec.get("configuration") or {}
    if not isinstance(configuration, dict):
        raise TypeError("'configuration' must be a mapping")
    source_path = spec.get("sourcePath", spec.get("submodule_path"))
    repository = spec.get("repository")
    return ComponentDescriptor(
        name=name,
        version=str(spec.get("version") or ""),
        status=ComponentStatus.parse(spec.get("status")),
        description=str(spec.get("description") or ""),
        repository=str(repository) if repository else None,
        source_path=str(source_path).strip("/") if source_path else None,
        static_files=_string_list(spec.get("static_files"), "static_files"),
        layouts=_string_list(spec.get("layouts"), "layouts"),
        configuration=MappingProxyType(dict(configuration)),
    )


@dataclass
class Resolution:
    """Outcome of resolving components for one request.

    Attributes:
        included: Included components, in template order.
        excluded: (component, reason) pairs, in template order.
        warnings: Non-fatal notes (unknown or deprecated statuses).
    """

    included: list[ComponentDescriptor] = field(default_factory=list)
    excluded: list[tuple[ComponentDescriptor, str]] = field(default_factory=list)
    warnings: list[BuildWarning] = field(default_factory=list)

    @property
    def included_names(self) -> list[str]:
        return [c.name for c in self.included]

    @property
    def excluded_names(self) -> list[tuple[str, str]]:
        return [(c.name, reason) for c, reason in self.excluded]


class ComponentRegistry:
    """Decides which of a template's components take part in a build.

    Decisions depend only on the requested names and each component's status,
    so the registry keeps no state between calls.
    """

    def resolve(
        self, template: TemplateDescriptor, requested: Iterable[str] = ()
    ) -> Resolution:
        """Resolve component inclusion.

        Rules, in precedence order:
        1. planned components are always excluded, even when requested;
        2. otherwise a component is included when nothing was requested, when
           it was requested by name, or when it is stable;
        3. anything else is excluded.

        Args:
            template: Template whose components are resolved.
            requested: Explicitly requested component names.

        Returns:
            Resolution with included/excluded components and warnings.
        """
        wanted = frozenset(requested)
        result = Resolution()
        for component in template.components.values():
            reason = self.exclusion_reason(component, wanted)
            if reason is None:
                result.included.append(component)
            else:
                result.excluded.append((component, reason))
            result.warnings.extend(self._status_warnings(component, reason is None))

        unknown = sorted(wanted.difference(template.components))
        if unknown:
            logger.info(
                "Requested components not declared by template '%s': %s",
                template.name,
                ", ".join(unknown),
            )
        return result

    @staticmethod
    def exclusion_reason(
        component: ComponentDescriptor, requested: frozenset[str]
    ) -> str | None:
        """Return why a component is excluded, or None if it is included."""
        kind = component.status.kind
        if kind is StatusKind.PLANNED:
            return PLANNED_REASON
        if not requested or component.name in requested or kind is StatusKind.STABLE:
            return None
        return NOT_REQUESTED_REASON

    @staticmethod
    def _status_warnings(
        component: ComponentDescriptor, included: bool
    ) -> list[BuildWarning]:
        kind = component.status.kind
        if kind is StatusKind.UNKNOWN:
            return [
                BuildWarning(
                    WarningKind.UNKNOWN_STATUS,
                    f"Component '{component.name}' has unknown status "
                    f"'{component.status.raw}'",
                    component.name,
                )
            ]
        if kind is StatusKind.DEPRECATED and included:
            return [
                BuildWarning(
                    WarningKind.DEPRECATED_COMPONENT,
                    f"Component '{component.name}' is deprecated",
                    component.name,
                )
            ]
        return []


def summarize_components(
    components: Mapping[str, ComponentDescriptor],
) -> list[dict[str, Any]]:
    """Flatten component descriptors into plain dicts for display."""
    rows = []
    for component in components.values():
        rows.append(
            {
                "name": component.name,
                "version": component.version,
                "status": str(component.status),
                "description": component.description,
                "source_path": component.source_path,
                "static_files": list(component.static_files),
            }
        )
    return rows
