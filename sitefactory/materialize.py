"""File materialization for sitefactory.

This module places files into the output directory: the template tree first,
then the assets of each included component, then the requested theme.

Key components:
- FileMaterializer: Copies template trees and component assets.
- Materialization: Counts and warnings collected while copying.

Per-file problems inside component processing are recorded as warnings and
never abort the remaining copies. Only an unreadable template tree or an
unwritable output root is fatal.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .errors import BuildIOError
from .models import BuildWarning, ComponentDescriptor, WarningKind
from .utils import escapes_root, ignore_filter, is_ignored_path, is_within

logger = logging.getLogger(__name__)

STATIC_DIR = "static"
THEMES_DIR = "themes"


@dataclass
class Materialization:
    """Outcome of one materialize() call.

    Attributes:
        files_copied: Number of files written to the output.
        warnings: Non-fatal per-file problems.
        themes: Theme directory names placed under output/themes.
    """

    files_copied: int = 0
    warnings: list[BuildWarning] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)

    def warn_missing(self, component: str, message: str) -> None:
        logger.warning(message)
        self.warnings.append(
            BuildWarning(WarningKind.ASSET_MISSING, message, component)
        )

    def warn_rejected(self, component: str, message: str) -> None:
        logger.warning(message)
        self.warnings.append(
            BuildWarning(WarningKind.ASSET_REJECTED, message, component)
        )


class FileMaterializer:
    """Copies a template and its included components into an output directory.

    Component source paths are resolved against the project root, so they may
    point at shared themes/ or components/ trees outside the template.

    Attributes:
        project_root: Root directory holding templates/, themes/, components/.
        themes_dir: Directory holding requested themes.
    """

    def __init__(self, project_root: Path, themes_dir: Path | None = None):
        self.project_root = project_root
        self.themes_dir = themes_dir or project_root / THEMES_DIR

    def materialize(
        self,
        template_root: Path,
        output_root: Path,
        components: Iterable[ComponentDescriptor] = (),
        theme: str | None = None,
    ) -> Materialization:
        """Copy the template tree, component assets, and theme.

        Args:
            template_root: Template directory to copy.
            output_root: Destination directory.
            components: Included components, in template order.
            theme: Requested theme name, copied from the themes dir.

        Returns:
            Materialization with copy counts and warnings.

        Raises:
            BuildIOError: If the template tree cannot be read or the output
                root cannot be written.
        """
        result = Materialization()
        result.files_copied += self.copy_template(template_root, output_root)
        self.copy_components(components, output_root, result)
        if theme:
            self.copy_theme(theme, output_root, result)
        return result

    def copy_template(self, template_root: Path, output_root: Path) -> int:
        """Copy the template tree, skipping VCS, cache, and OS metadata paths.

        Returns:
            Number of files copied.
        """
        copied: list[str] = []

        def _copy(src: str, dst: str) -> str:
            written = shutil.copy2(src, dst)
            copied.append(dst)
            return written

        try:
            output_root.mkdir(parents=True, exist_ok=True)
            shutil.copytree(
                template_root,
                output_root,
                ignore=ignore_filter,
                copy_function=_copy,
                dirs_exist_ok=True,
            )
        except shutil.Error as exc:
            raise BuildIOError(template_root, f"Failed to copy template: {exc}", exc) from exc
        except OSError as exc:
            raise BuildIOError(
                output_root, f"Failed to materialize template: {exc}", exc
            ) from exc
        logger.debug("Copied %d template files from %s", len(copied), template_root)
        return len(copied)

    def copy_components(
        self,
        components: Iterable[ComponentDescriptor],
        output_root: Path,
        result: Materialization,
    ) -> None:
        """Copy the assets of each component into the output."""
        for component in components:
            if not component.source_path:
                logger.debug("Component '%s' has no source path", component.name)
                continue
            if escapes_root(component.source_path):
                result.warn_rejected(
                    component.name,
                    f"Component '{component.name}' source path {component.source_path} "
                    "leaves the project; skipped",
                )
                continue
            if component.is_theme:
                self._copy_theme_component(component, output_root, result)
            else:
                self._copy_static_files(component, output_root, result)

    def copy_theme(self, theme: str, output_root: Path, result: Materialization) -> None:
        """Copy a requested theme unless a component already placed it."""
        if theme in result.themes:
            return
        source = self.themes_dir / theme
        if not source.is_dir():
            logger.debug("Theme directory %s not present; skipping", source)
            return
        result.files_copied += self._copy_tree(
            source, output_root / THEMES_DIR / theme, theme, result
        )
        result.themes.append(theme)

    def _copy_theme_component(
        self, component: ComponentDescriptor, output_root: Path, result: Materialization
    ) -> None:
        source = self.project_root / component.source_path
        theme_name = Path(component.source_path).name
        if not source.is_dir():
            # Unfetched theme checkouts are expected.
            logger.debug(
                "Theme source %s for '%s' does not exist; skipping",
                source,
                component.name,
            )
            return
        dest = output_root / THEMES_DIR / theme_name
        result.files_copied += self._copy_tree(source, dest, component.name, result)
        if theme_name not in result.themes:
            result.themes.append(theme_name)

    def _copy_static_files(
        self, component: ComponentDescriptor, output_root: Path, result: Materialization
    ) -> None:
        source_root = self.project_root / component.source_path
        static_root = output_root / STATIC_DIR
        for entry in component.static_files:
            relative = entry.strip("/")
            if not relative:
                continue
            if is_ignored_path(Path(relative)):
                continue
            source = source_root / relative
            dest = static_root / relative
            if (
                escapes_root(relative)
                or not is_within(dest, static_root)
                or not is_within(source, source_root)
            ):
                result.warn_rejected(
                    component.name,
                    f"Component '{component.name}' static file {entry} "
                    f"resolves outside its source or {STATIC_DIR}/; skipped",
                )
                continue
            if not source.exists():
                result.warn_missing(
                    component.name,
                    f"Component '{component.name}' static file not found: "
                    f"{entry} (in {component.source_path})",
                )
                continue
            if source.is_dir():
                result.files_copied += self._copy_tree(
                    source, dest, component.name, result
                )
                continue
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, dest)
            except OSError as exc:
                result.warn_missing(
                    component.name,
                    f"Component '{component.name}' static file {entry} "
                    f"could not be copied: {exc}",
                )
                continue
            result.files_copied += 1

    def _copy_tree(
        self, source: Path, dest: Path, owner: str, result: Materialization
    ) -> int:
        copied: list[str] = []

        def _copy(src: str, dst: str) -> str:
            written = shutil.copy2(src, dst)
            copied.append(dst)
            return written

        try:
            shutil.copytree(
                source,
                dest,
                ignore=ignore_filter,
                copy_function=_copy,
                dirs_exist_ok=True,
            )
        except (shutil.Error, OSError) as exc:
            result.warn_missing(owner, f"Failed to copy {source} for '{owner}': {exc}")
        return len(copied)
