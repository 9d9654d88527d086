import pytest
import tomlkit

from sitefactory.config import ConfigComposer, ConfigOverrides, read_assignment
from sitefactory.models import Environment

from conftest import DEFAULT_HUGO, MINIMAL_HUGO


def test_theme_override_replaces_assignment():
    composition = ConfigComposer().compose(MINIMAL_HUGO, ConfigOverrides(theme="compose"))
    assert read_assignment(composition.text, "theme") == "compose"
    assert composition.applied == ["theme"]
    assert read_assignment(composition.text, "title") == "Minimal Site"


def test_no_overrides_returns_base_unchanged():
    composition = ConfigComposer().compose(DEFAULT_HUGO, ConfigOverrides())
    assert composition.text == DEFAULT_HUGO
    assert composition.applied == []


def test_matching_override_is_a_no_op():
    composition = ConfigComposer().compose(DEFAULT_HUGO, ConfigOverrides(theme="compose"))
    assert composition.text == DEFAULT_HUGO
    assert composition.applied == []


def test_compose_is_idempotent():
    composer = ConfigComposer()
    overrides = ConfigOverrides(
        theme="docs", base_url="https://example.com/", environment=Environment.PRODUCTION
    )
    once = composer.compose(DEFAULT_HUGO, overrides).text
    twice = composer.compose(once, overrides)
    assert twice.text == once
    assert twice.applied == []


def test_comments_and_tables_survive():
    composition = ConfigComposer().compose(
        DEFAULT_HUGO, ConfigOverrides(theme="docs", base_url="https://example.com/")
    )
    assert composition.text.startswith("# Default template configuration")
    document = tomlkit.parse(composition.text)
    assert document["baseURL"] == "https://example.com/"
    assert document["theme"] == "docs"
    assert document["params"]["description"] == "Test site"
    assert document["params"]["social"]["github"] == ""


def test_missing_key_is_inserted_at_top_level():
    base = 'title = "No theme"\n\n[params]\n  description = "x"\n'
    composition = ConfigComposer().compose(base, ConfigOverrides(theme="compose"))
    document = tomlkit.parse(composition.text)
    assert document["theme"] == "compose"
    assert "theme" not in document["params"]
    assert composition.applied == ["theme"]


def test_missing_key_is_skipped_without_insertion():
    base = 'title = "No theme"\n'
    composer = ConfigComposer(insert_missing=False)
    composition = composer.compose(base, ConfigOverrides(theme="compose", base_url="https://x/"))
    assert composition.text == base
    assert composition.skipped == ["theme", "baseURL"]


def test_production_block():
    composition = ConfigComposer().compose(
        DEFAULT_HUGO, ConfigOverrides(environment=Environment.PRODUCTION)
    )
    document = tomlkit.parse(composition.text).unwrap()
    assert document["enableRobotsTXT"] is True
    assert document["params"]["environment"] == "production"
    assert document["params"]["description"] == "Test site"
    assert composition.applied == ["enableRobotsTXT", "params.environment"]


def test_production_creates_params_table():
    composition = ConfigComposer().compose(
        MINIMAL_HUGO, ConfigOverrides(environment=Environment.PRODUCTION)
    )
    document = tomlkit.parse(composition.text)
    assert document["params"]["environment"] == "production"


def test_development_leaves_params_alone():
    composition = ConfigComposer().compose(
        MINIMAL_HUGO, ConfigOverrides(environment=Environment.DEVELOPMENT)
    )
    assert "params" not in tomlkit.parse(composition.text)


def test_invalid_toml_is_returned_unchanged():
    broken = "title = = broken\n"
    composition = ConfigComposer().compose(broken, ConfigOverrides(theme="x"))
    assert composition.text == broken
    assert composition.error.startswith("Invalid TOML")
    assert composition.applied == []


def test_valid_toml_has_no_error():
    composition = ConfigComposer().compose(MINIMAL_HUGO, ConfigOverrides(theme="x"))
    assert composition.error is None

def test_read_assignment_missing_key():
    assert read_assignment(MINIMAL_HUGO, "missing") is None
