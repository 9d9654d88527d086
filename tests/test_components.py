import pytest

from sitefactory.components import (
    NOT_REQUESTED_REASON,
    PLANNED_REASON,
    ComponentRegistry,
    load_template,
    summarize_components,
)
from sitefactory.errors import ValidationError
from sitefactory.models import ComponentStatus, StatusKind, WarningKind

from conftest import write


def _template(tmp_path, components_yaml):
    root = tmp_path / "tpl"
    write(root / "components.yml", components_yaml)
    return load_template(root)


def test_status_parse_known_unknown_and_missing():
    assert ComponentStatus.parse("stable").kind is StatusKind.STABLE
    assert ComponentStatus.parse(" Experimental ").kind is StatusKind.EXPERIMENTAL
    beta = ComponentStatus.parse("beta")
    assert beta.is_unknown
    assert beta.raw == "beta"
    assert str(beta) == "beta"
    missing = ComponentStatus.parse(None)
    assert missing.is_unknown
    assert str(missing) == "unknown"


def test_load_template_reads_metadata_and_order(project):
    template = load_template(project / "templates" / "default")
    assert template.name == "default"
    assert template.version == "1.0.0"
    assert template.min_generator_version == "0.110.0"
    assert template.generator_extended is False
    assert list(template.components) == ["compose-theme", "quiz-engine", "charts", "citations"]
    quiz = template.components["quiz-engine"]
    assert quiz.source_path == "components/quiz-engine"
    assert quiz.static_files == ("js/quiz.js", "css/quiz.css")
    assert template.components["compose-theme"].is_theme
    assert not quiz.is_theme
    assert template.base_config.startswith("# Default template configuration")
    assert template.build_hints["writeStats"] is True


def test_load_template_without_components_file(project):
    template = load_template(project / "templates" / "minimal")
    assert template.name == "minimal"
    assert dict(template.components) == {}
    assert "Minimal Site" in template.base_config


def test_load_template_accepts_submodule_path(tmp_path):
    template = _template(
        tmp_path,
        "components:\n  theme:\n    status: stable\n    submodule_path: themes/compose/\n",
    )
    assert template.components["theme"].source_path == "themes/compose"
    assert template.components["theme"].is_theme


def test_malformed_yaml_is_a_validation_error(tmp_path):
    with pytest.raises(ValidationError) as exc_info:
        _template(tmp_path, "components: [unclosed\n")
    assert "Invalid YAML" in exc_info.value.issues[0]


def test_duplicate_keys_are_rejected(tmp_path):
    with pytest.raises(ValidationError):
        _template(
            tmp_path,
            "components:\n  a:\n    status: stable\n  a:\n    status: planned\n",
        )


def test_structural_issues_are_reported_together(tmp_path):
    with pytest.raises(ValidationError) as exc_info:
        _template(
            tmp_path,
            "hugo: nope\ncomponents:\n  a:\n    status: stable\n    static_files: js/a.js\n"
            "  b: just-a-string\n",
        )
    issues = exc_info.value.issues
    assert len(issues) == 3
    assert any("hugo" in issue for issue in issues)
    assert any("'a'" in issue and "static_files" in issue for issue in issues)
    assert any("'b'" in issue for issue in issues)


def test_top_level_must_be_mapping(tmp_path):
    with pytest.raises(ValidationError):
        _template(tmp_path, "- a\n- b\n")


def test_planned_is_never_included(project):
    template = load_template(project / "templates" / "default")
    registry = ComponentRegistry()
    for requested in (set(), {"citations"}, {"citations", "charts"}):
        resolution = registry.resolve(template, requested)
        assert "citations" not in resolution.included_names
        assert ("citations", PLANNED_REASON) in resolution.excluded_names


def test_explicit_request_includes_stable_and_requested(project):
    template = load_template(project / "templates" / "default")
    resolution = ComponentRegistry().resolve(template, {"quiz-engine"})
    assert resolution.included_names == ["compose-theme", "quiz-engine"]
    assert ("charts", NOT_REQUESTED_REASON) in resolution.excluded_names

    resolution = ComponentRegistry().resolve(template, {"charts"})
    assert resolution.included_names == ["compose-theme", "quiz-engine", "charts"]


def test_empty_request_includes_everything_but_planned(project):
    template = load_template(project / "templates" / "default")
    resolution = ComponentRegistry().resolve(template, ())
    assert resolution.included_names == ["compose-theme", "quiz-engine", "charts"]
    assert resolution.excluded_names == [("citations", PLANNED_REASON)]


def test_empty_request_on_stable_and_planned_only(tmp_path):
    template = _template(
        tmp_path,
        "components:\n"
        "  a:\n    status: stable\n"
        "  b:\n    status: planned\n"
        "  c:\n    status: stable\n",
    )
    resolution = ComponentRegistry().resolve(template)
    assert resolution.included_names == ["a", "c"]
    assert [name for name, _ in resolution.excluded_names] == ["b"]


def test_included_and_excluded_partition_the_template(project):
    template = load_template(project / "templates" / "default")
    resolution = ComponentRegistry().resolve(template, {"charts", "nope"})
    names = resolution.included_names + [n for n, _ in resolution.excluded_names]
    assert sorted(names) == sorted(template.components)


def test_resolve_is_pure(project):
    template = load_template(project / "templates" / "default")
    registry = ComponentRegistry()
    first = registry.resolve(template, {"charts"})
    second = registry.resolve(template, {"charts"})
    assert first.included_names == second.included_names
    assert first.excluded_names == second.excluded_names


def test_unknown_status_warns_and_follows_request(tmp_path):
    template = _template(
        tmp_path,
        "components:\n  odd:\n    status: beta\n  base:\n    status: stable\n",
    )
    registry = ComponentRegistry()

    resolution = registry.resolve(template, {"base"})
    assert "odd" not in resolution.included_names
    assert [w.kind for w in resolution.warnings] == [WarningKind.UNKNOWN_STATUS]

    resolution = registry.resolve(template, {"odd"})
    assert "odd" in resolution.included_names
    assert resolution.warnings[0].subject == "odd"


def test_deprecated_warns_only_when_included(tmp_path):
    template = _template(
        tmp_path,
        "components:\n  old:\n    status: deprecated\n  base:\n    status: stable\n",
    )
    registry = ComponentRegistry()
    assert registry.resolve(template, {"base"}).warnings == []
    resolution = registry.resolve(template, {"old"})
    assert [w.kind for w in resolution.warnings] == [WarningKind.DEPRECATED_COMPONENT]


def test_summarize_components_flattens(project):
    template = load_template(project / "templates" / "default")
    rows = summarize_components(template.components)
    assert rows[1]["name"] == "quiz-engine"
    assert rows[1]["status"] == "stable"
    assert rows[1]["static_files"] == ["js/quiz.js", "css/quiz.css"]
