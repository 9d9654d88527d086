"""Discovery of templates, themes, and components in a project.

Each listing is a plain list of dicts so the CLI can print it as a table or
dump it as JSON or YAML.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .components import COMPONENTS_FILE, load_template, summarize_components
from .errors import ValidationError

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    "stable": "✅",
    "experimental": "🧪",
    "planned": "📋",
    "deprecated": "❌",
}


def _subdirectories(root: Path) -> list[Path]:
    if not root.is_dir():
        return []
    return sorted(
        (p for p in root.iterdir() if p.is_dir() and not p.name.startswith(".")),
        key=lambda p: p.name,
    )


def list_templates(templates_dir: Path, verbose: bool = False) -> list[dict[str, Any]]:
    """List templates with their metadata and declared components.

    A template whose components.yml cannot be loaded is still listed, with
    status 'invalid' and the problems attached.
    """
    items = []
    for path in _subdirectories(templates_dir):
        item: dict[str, Any] = {"name": path.name, "status": "available"}
        if (path / COMPONENTS_FILE).exists():
            try:
                template = load_template(path)
            except ValidationError as exc:
                item["status"] = "invalid"
                item["issues"] = exc.issues
            else:
                item["version"] = template.version
                item["description"] = template.description
                rows = summarize_components(template.components)
                if verbose:
                    item["components"] = rows
                    item["author"] = template.author
                    item["min_hugo_version"] = template.min_generator_version
                    item["hugo_extended"] = template.generator_extended
                else:
                    item["components"] = [
                        {"name": row["name"], "status": row["status"]} for row in rows
                    ]
        items.append(item)
    return items


def list_themes(themes_dir: Path, verbose: bool = False) -> list[dict[str, Any]]:
    """List theme directories; verbose adds the theme.toml name if present."""
    items = []
    for path in _subdirectories(themes_dir):
        item: dict[str, Any] = {"name": path.name, "status": "available"}
        if verbose:
            item["has_theme_toml"] = (path / "theme.toml").exists()
            item["has_layouts"] = (path / "layouts").is_dir()
        items.append(item)
    return items


def list_components(components_dir: Path, verbose: bool = False) -> list[dict[str, Any]]:
    """List component directories; verbose reads component.json metadata."""
    items = []
    for path in _subdirectories(components_dir):
        item: dict[str, Any] = {"name": path.name, "status": "available"}
        metadata_path = path / "component.json"
        if verbose and metadata_path.exists():
            try:
                metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Cannot read %s: %s", metadata_path, exc)
            else:
                if isinstance(metadata, dict):
                    for key in ("description", "version", "status"):
                        if key in metadata:
                            item[key] = metadata[key]
        items.append(item)
    return items


def status_icon(status: str) -> str:
    return STATUS_ICONS.get(status, "❓")
