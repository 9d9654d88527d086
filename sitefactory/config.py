"""Site configuration composition for sitefactory.

The template's hugo.toml is parsed into a tomlkit document, the build-time
overrides are applied to the document model, and the result is serialized
back. Comments, ordering, and nested tables of the base configuration survive
untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import Table

from .models import Environment

logger = logging.getLogger(__name__)

THEME_KEY = "theme"
BASE_URL_KEY = "baseURL"


@dataclass(frozen=True)
class ConfigOverrides:
    """Build-time overrides applied to the base configuration."""

    theme: str | None = None
    base_url: str | None = None
    environment: Environment = Environment.DEVELOPMENT


@dataclass
class Composition:
    """Result of composing a configuration.

    Attributes:
        text: Serialized configuration.
        applied: Keys whose value was changed or inserted.
        skipped: Keys whose override had no assignment to replace.
        error: Parse error when the base configuration is not valid TOML; the
            text is then the base configuration, unmodified.
    """

    text: str
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: str | None = None


class ConfigComposer:
    """Derives the target site configuration from a template's base config.

    Attributes:
        insert_missing: When True, an override whose key is absent from the base
            configuration is inserted. When False the override is skipped and
            reported, matching the historical line-substitution behaviour.
        source: Label used in log messages.
    """

    def __init__(self, insert_missing: bool = True, source: str = "hugo.toml"):
        self.insert_missing = insert_missing
        self.source = source

    def compose(self, base_config: str, overrides: ConfigOverrides) -> Composition:
        """Apply overrides to a base configuration.

        Args:
            base_config: TOML text of the template's configuration.
            overrides: Theme, base URL, and environment for this build.

        Returns:
            Composition with the new text and the keys applied or skipped.
            Invalid TOML is not fatal: the base text comes back unchanged with
            error set.
        """
        try:
            document = tomlkit.parse(base_config)
        except TOMLKitError as exc:
            logger.warning("%s is not valid TOML; overrides not applied: %s", self.source, exc)
            return Composition(text=base_config, error=f"Invalid TOML: {exc}")

        result = Composition(text="")
        if overrides.theme:
            self._assign(document, THEME_KEY, overrides.theme, result)
        if overrides.base_url:
            self._assign(document, BASE_URL_KEY, overrides.base_url, result)
        if overrides.environment is Environment.PRODUCTION:
            self._apply_production(document, result)

        result.text = tomlkit.dumps(document)
        return result

    def _assign(self, document, key: str, value, result: Composition) -> None:
        if key not in document:
            if not self.insert_missing:
                logger.debug("No '%s' assignment to replace; skipping", key)
                result.skipped.append(key)
                return
            document[key] = value
            result.applied.append(key)
            return
        if _plain(document[key]) == value:
            return
        document[key] = value
        result.applied.append(key)

    def _apply_production(self, document, result: Composition) -> None:
        self._assign(document, "enableRobotsTXT", True, result)
        if "params" not in document:
            if not self.insert_missing:
                result.skipped.append("params.environment")
                return
            document["params"] = tomlkit.table()
        params = document["params"]
        if not isinstance(params, Table):
            logger.warning("'params' is not a table; production block not applied")
            result.skipped.append("params.environment")
            return
        if params.get("environment") != Environment.PRODUCTION.value:
            params["environment"] = Environment.PRODUCTION.value
            result.applied.append("params.environment")


def _plain(item):
    """Unwrap a tomlkit item to its Python value for comparison."""
    unwrap = getattr(item, "unwrap", None)
    return unwrap() if unwrap is not None else item


def read_assignment(config_text: str, key: str):
    """Return the value of a top-level key in TOML text, or None."""
    document = tomlkit.parse(config_text)
    if key not in document:
        return None
    return _plain(document[key])
