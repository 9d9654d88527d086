import json

from sitefactory.listing import list_components, list_templates, list_themes, status_icon

from conftest import write


def test_list_templates(project):
    items = list_templates(project / "templates")
    assert [item["name"] for item in items] == ["default", "minimal"]
    default = items[0]
    assert default["version"] == "1.0.0"
    assert default["components"][0] == {"name": "compose-theme", "status": "stable"}
    assert items[1] == {"name": "minimal", "status": "available"}


def test_list_templates_verbose_and_invalid(project):
    write(project / "templates" / "broken" / "components.yml", "components: [oops\n")
    items = {item["name"]: item for item in list_templates(project / "templates", verbose=True)}
    assert items["broken"]["status"] == "invalid"
    assert items["broken"]["issues"]
    assert items["default"]["min_hugo_version"] == "0.110.0"
    assert items["default"]["components"][1]["source_path"] == "components/quiz-engine"


def test_list_themes_and_components(project):
    assert list_themes(project / "themes") == [{"name": "compose", "status": "available"}]
    verbose = list_themes(project / "themes", verbose=True)[0]
    assert verbose["has_theme_toml"] and verbose["has_layouts"]

    write(
        project / "components" / "charts" / "component.json",
        json.dumps({"description": "Charts", "version": "0.2.0", "other": 1}),
    )
    write(project / "components" / "quiz-engine" / "component.json", "{not json")
    items = {item["name"]: item for item in list_components(project / "components", verbose=True)}
    assert items["charts"]["description"] == "Charts"
    assert "other" not in items["charts"]
    assert items["quiz-engine"] == {"name": "quiz-engine", "status": "available"}


def test_missing_directories_list_nothing(tmp_path):
    assert list_templates(tmp_path / "none") == []
    assert list_themes(tmp_path / "none") == []


def test_status_icon():
    assert status_icon("stable") == "✅"
    assert status_icon("beta") == "❓"
