"""New-template generation for sitefactory.

Templates are created from the skeleton bundled in sitefactory/resources.
Files ending in .jinja are rendered with Jinja2; everything else is copied
verbatim (archetypes contain Hugo template syntax and must not be rendered).

Component entries are generated as plain mappings that can be printed or
added to a template's components.yml.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import tomlkit
import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .components import COMPONENTS_FILE, read_components_file
from .errors import ValidationError
from .models import StatusKind
from .utils import ensure_clean_dir, titleize

# Path to the bundled template skeleton
_SKELETON_DIR = Path(__file__).parent / "resources" / "skeleton"

TEMPLATE_TYPES = ("default", "educational", "academic", "enterprise")
COMPONENT_STATUSES = tuple(kind.value for kind in StatusKind if kind is not StatusKind.UNKNOWN)

_THEME_COMPONENT = {
    "version": "^4.0.0",
    "status": "stable",
    "description": "Clean and modern Hugo theme",
    "repository": "https://github.com/onweru/compose.git",
    "sourcePath": "themes/compose",
    "configuration": {"theme": "compose"},
}

_TYPE_COMPONENTS: dict[str, dict[str, dict[str, Any]]] = {
    "default": {},
    "educational": {
        "quiz-engine": {
            "version": "^1.0.0",
            "status": "stable",
            "description": "Interactive quiz system for educational content",
            "sourcePath": "components/quiz-engine",
            "static_files": ["quiz/", "js/quiz.js", "css/quiz.css"],
        },
    },
    "academic": {
        "citations": {
            "version": "^0.1.0",
            "status": "planned",
            "description": "Academic citation system",
            "static_files": ["js/citations.js", "css/citations.css"],
            "layouts": ["shortcodes/cite.html", "partials/citations/"],
        },
    },
    "enterprise": {
        "analytics": {
            "version": "^0.1.0",
            "status": "planned",
            "description": "Analytics tracking component",
            "static_files": ["js/analytics.js"],
            "layouts": ["partials/analytics.html"],
        },
        "auth": {
            "version": "^0.1.0",
            "status": "planned",
            "description": "Authentication system component",
            "static_files": ["js/auth.js", "css/auth.css"],
            "layouts": ["shortcodes/login.html", "partials/auth/"],
        },
    },
}


class TemplateExistsError(Exception):
    """Raised when the target template directory already exists."""


class ComponentExistsError(Exception):
    """Raised when a template already declares the component."""


def components_config(
    name: str,
    template_type: str = "default",
    description: str | None = None,
    author: str | None = None,
    include_theme: bool = True,
) -> dict[str, Any]:
    """Build the components.yml mapping for a new template."""
    if template_type not in _TYPE_COMPONENTS:
        raise ValueError(f"Unknown template type: {template_type}")
    components: dict[str, Any] = {}
    if include_theme:
        components["compose-theme"] = dict(_THEME_COMPONENT)
    for component_name, spec in _TYPE_COMPONENTS[template_type].items():
        components[component_name] = dict(spec)
    return {
        "template": {
            "name": name,
            "version": "1.0.0",
            "description": description or f"{name} template",
            "author": author or "",
            "license": "MIT",
        },
        "components": components,
        "hugo": {"minVersion": "0.110.0", "extended": False},
        "build": {
            "writeStats": True,
            "noJSConfigInAssets": False,
            "useResourceCacheWhen": "fallback",
        },
    }


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_SKELETON_DIR)),
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["toml"] = lambda value: tomlkit.string(str(value)).as_string()
    return env


def generate_template(
    templates_dir: Path,
    name: str,
    template_type: str = "default",
    description: str | None = None,
    author: str | None = None,
    theme: str = "compose",
    base_url: str = "http://localhost:1313/",
    force: bool = False,
) -> Path:
    """Create a new template directory from the bundled skeleton.

    Args:
        templates_dir: Directory holding templates.
        name: New template name.
        template_type: One of TEMPLATE_TYPES; selects declared components.
        description: Template description.
        author: Template author.
        theme: Theme assigned in hugo.toml.
        base_url: baseURL assigned in hugo.toml.
        force: Overwrite an existing template directory.

    Returns:
        Path to the created template.

    Raises:
        TemplateExistsError: If the template exists and force is False.
        ValueError: If template_type is unknown.
    """
    target = templates_dir / name
    if target.exists() and any(target.iterdir()):
        if not force:
            raise TemplateExistsError(f"Template '{name}' already exists at {target}")
    config = components_config(name, template_type, description, author)
    ensure_clean_dir(target)

    context = {
        "name": name,
        "title": f"{titleize(name)} Site",
        "description": config["template"]["description"],
        "author": author or "Site Author",
        "theme": theme,
        "base_url": base_url,
        "created": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    }
    env = _environment()
    for src_path in sorted(_SKELETON_DIR.rglob("*")):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SKELETON_DIR)
        if src_path.suffix == ".jinja":
            dest_path = target / rel_path.with_suffix("")
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            rendered = env.get_template(rel_path.as_posix()).render(**context)
            dest_path.write_text(rendered, encoding="utf-8")
        else:
            dest_path = target / rel_path
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src_path, dest_path)

    (target / "components.yml").write_text(
        yaml.safe_dump(config, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
    return target


def component_config(
    name: str,
    version: str = "^1.0.0",
    status: str = "experimental",
    description: str | None = None,
    repository: str | None = None,
    submodule: bool = False,
    static_files: Iterable[str] = (),
    layouts: Iterable[str] = (),
) -> dict[str, dict[str, Any]]:
    """Build a components.yml entry for one component.

    Empty values are left out, so the result can be pasted under the
    components: section as is.

    Raises:
        ValueError: If status is not a known component status.
    """
    if status not in COMPONENT_STATUSES:
        raise ValueError(f"Unknown component status: {status}")
    spec = {
        "version": version,
        "status": status,
        "description": description or f"{name} component",
        "repository": repository,
        "sourcePath": f"components/{name}" if submodule else None,
        "static_files": list(static_files),
        "layouts": list(layouts),
    }
    return {name: {key: value for key, value in spec.items() if value not in (None, [])}}


def add_component(
    template_dir: Path, entry: dict[str, dict[str, Any]], force: bool = False
) -> Path:
    """Add a component entry to a template's components.yml.

    The file is rewritten with PyYAML, so comments in it are not kept.

    Raises:
        FileNotFoundError: If the template directory does not exist.
        ComponentExistsError: If a component of that name is declared and
            force is False.
        ValidationError: If the existing components.yml cannot be parsed.
    """
    if not template_dir.is_dir():
        raise FileNotFoundError(f"Template directory not found: {template_dir}")
    path = template_dir / COMPONENTS_FILE
    payload = read_components_file(path) if path.exists() else {}
    components = payload.get("components") or {}
    if not isinstance(components, dict):
        raise ValidationError(path, ["Section 'components' must be a mapping"])
    for name in entry:
        if name in components and not force:
            raise ComponentExistsError(
                f"Component '{name}' already declared in {path}"
            )
    components.update(entry)
    payload["components"] = components
    path.write_text(
        yaml.safe_dump(payload, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
    return path
