from pathlib import Path

import pytest

from sitefactory.generator import GeneratorOutcome

DEFAULT_COMPONENTS = """\
template:
  name: default
  version: 1.0.0
  description: Default test template
  author: tests
components:
  compose-theme:
    version: ^4.0.0
    status: stable
    description: Clean and modern Hugo theme
    sourcePath: themes/compose
  quiz-engine:
    version: ^1.0.0
    status: stable
    description: Interactive quizzes
    sourcePath: components/quiz-engine
    static_files:
      - js/quiz.js
      - css/quiz.css
  charts:
    version: ^0.2.0
    status: experimental
    description: Chart widgets
    sourcePath: components/charts
    static_files:
      - js/charts.js
  citations:
    version: ^0.1.0
    status: planned
    description: Academic citation system
    static_files:
      - js/citations.js
hugo:
  minVersion: 0.110.0
  extended: false
build:
  writeStats: true
"""

DEFAULT_HUGO = """\
# Default template configuration
baseURL = 'http://localhost:1313/'
languageCode = 'en-us'
title = 'Default Site'
theme = 'compose'

[params]
  description = "Test site"

  [params.social]
    github = ""
"""

MINIMAL_HUGO = """\
baseURL = "http://localhost:1313/"
languageCode = "en-us"
title = "Minimal Site"
theme = "plain"
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def create_project(root: Path) -> Path:
    templates = root / "templates"
    default = templates / "default"
    write(default / "components.yml", DEFAULT_COMPONENTS)
    write(default / "hugo.toml", DEFAULT_HUGO)
    write(default / "content" / "_index.md", "# Home\n")
    write(default / "archetypes" / "default.md", "---\ntitle: x\n---\n")
    write(default / ".git" / "HEAD", "ref: refs/heads/main\n")
    write(default / "node_modules" / "pkg" / "index.js", "module.exports = 1;\n")
    write(default / ".DS_Store", "junk")

    minimal = templates / "minimal"
    write(minimal / "hugo.toml", MINIMAL_HUGO)
    write(minimal / "content" / "_index.md", "# Minimal\n")

    write(root / "themes" / "compose" / "theme.toml", 'name = "Compose"\n')
    write(root / "themes" / "compose" / "layouts" / "index.html", "<html></html>\n")
    write(root / "components" / "quiz-engine" / "js" / "quiz.js", "console.log('quiz');\n")
    write(root / "components" / "quiz-engine" / "css" / "quiz.css", ".quiz{}\n")
    write(root / "components" / "charts" / "js" / "charts.js", "console.log('charts');\n")
    return root


class FakeGenerator:
    """Records calls and writes a tiny public/ tree instead of running Hugo."""

    def __init__(self, exit_code: int = 0):
        self.exit_code = exit_code
        self.calls = []

    def run(self, cwd, request):
        self.calls.append((cwd, request))
        write(Path(cwd) / "public" / "index.html", "<html>built</html>")
        return GeneratorOutcome(command=["hugo"], exit_code=self.exit_code)


@pytest.fixture
def project(tmp_path):
    return create_project(tmp_path / "project")


@pytest.fixture
def fake_generator():
    return FakeGenerator()
