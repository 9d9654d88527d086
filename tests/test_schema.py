import pytest

from sitefactory.errors import ValidationError
from sitefactory.schema import iter_schema_errors, validate_components, validate_template

from conftest import write


def test_default_template_is_valid(project):
    report = validate_template(project / "templates" / "default", project)
    assert report.valid, report.errors
    # citations is planned and has no files on disk; no source path means no check
    assert not any("citations" in w and "not found" in w for w in report.warnings)
    assert any("components configuration is valid" in note for note in report.info)


def test_schema_errors_are_collected():
    payload = {
        "template": {},
        "components": {"a": {"description": "no status"}, "b": {"status": 3}},
    }
    errors = list(iter_schema_errors(payload))
    paths = [path for path, _ in errors]
    assert paths == ["components.a", "components.b.status", "template"]


def test_missing_status_is_an_error(tmp_path):
    path = write(
        tmp_path / "components.yml",
        "template:\n  name: t\ncomponents:\n  a:\n    version: 1.0.0\n",
    )
    report = validate_components(path)
    assert not report.valid
    assert any("'status' is a required property" in e for e in report.errors)
    with pytest.raises(ValidationError) as exc_info:
        report.raise_for_errors(path)
    assert exc_info.value.issues == report.errors


def test_semantic_warnings(tmp_path):
    path = write(
        tmp_path / "components.yml",
        "template:\n  name: t\n"
        "components:\n"
        "  odd:\n    status: beta\n"
        "  plan:\n    status: planned\n    version: 1\n    description: x\n"
        "    sourcePath: components/plan\n"
        "  bare:\n    status: stable\n    version: 1\n    description: x\n"
        "hugo:\n  minVersion: latest\n",
    )
    report = validate_components(path)
    assert report.valid
    text = "\n".join(report.warnings)
    assert "unknown status: beta" in text
    assert "'odd' missing version" in text
    assert "planned but has a source path" in text
    assert "stable but has no source path" in text
    assert "semantic versioning" in text
    assert "template version is recommended" in text


def test_files_on_disk_are_checked(project):
    (project / "components" / "charts" / "js" / "charts.js").unlink()
    report = validate_components(project / "templates" / "default" / "components.yml", project)
    assert report.valid
    assert any("static file not found: js/charts.js" in w for w in report.warnings)


def test_malformed_yaml_is_an_error(tmp_path):
    path = write(tmp_path / "components.yml", "components: [oops\n")
    report = validate_components(path)
    assert not report.valid
    assert "Invalid YAML" in report.errors[0]


def test_missing_components_file_is_a_warning(tmp_path):
    report = validate_components(tmp_path / "components.yml")
    assert report.valid
    assert report.warnings


def test_template_structure(project):
    report = validate_template(project / "templates" / "minimal")
    assert report.valid
    assert any("missing components.yml" in w for w in report.warnings)
    assert any("recommended directory: static" in w for w in report.warnings)

    write(project / "templates" / "broken" / "static", "not a dir")
    report = validate_template(project / "templates" / "broken")
    assert any("missing required file: hugo.toml" in e for e in report.errors)
    assert any("static as file" in e for e in report.errors)

    report = validate_template(project / "templates" / "absent")
    assert report.errors == [f"Template directory not found: {project / 'templates' / 'absent'}"]


def test_paths_leaving_their_root_are_errors(project):
    path = write(
        project / "templates" / "risky" / "components.yml",
        "template:\n  name: risky\n  version: 1.0.0\n  description: x\n"
        "components:\n"
        "  leak:\n    status: stable\n    version: 1\n    description: x\n"
        "    sourcePath: components/quiz-engine\n"
        "    static_files:\n      - js/quiz.js\n      - ../../secret.txt\n"
        "  away:\n    status: stable\n    version: 1\n    description: x\n"
        "    sourcePath: ../elsewhere\n",
    )
    report = validate_components(path, project)
    assert not report.valid
    leaving = "static file leaves its source directory: ../../secret.txt"
    assert any(leaving in e for e in report.errors)
    assert any("'away' source path leaves the project" in e for e in report.errors)
    assert not any("secret.txt" in w for w in report.warnings)
