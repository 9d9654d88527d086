import os
from pathlib import Path

import pytest

from sitefactory import utils


def test_ignore_filter_and_ignored_paths():
    names = [".git", "content", "node_modules", ".DS_Store", "Thumbs.db", "hugo.toml"]
    assert utils.ignore_filter("/tmp", names) == {".git", "node_modules", ".DS_Store", "Thumbs.db"}
    assert utils.is_ignored_path(Path("js/.git/config"))
    assert not utils.is_ignored_path(Path("js/quiz.js"))


def test_ensure_clean_dir(tmp_path):
    target = tmp_path / "build"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "old.txt").write_text("old", encoding="utf-8")
    (target / "top.txt").write_text("top", encoding="utf-8")
    utils.ensure_clean_dir(target)
    assert list(target.iterdir()) == []

    fresh = tmp_path / "fresh" / "dir"
    utils.ensure_clean_dir(fresh)
    assert fresh.is_dir()

    blocker = tmp_path / "file.txt"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(NotADirectoryError):
        utils.ensure_clean_dir(blocker)


def test_directory_stats(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "one.txt").write_bytes(b"12345")
    (tmp_path / "two.txt").write_bytes(b"123")
    assert utils.directory_stats(tmp_path) == (2, 8)
    with pytest.raises(FileNotFoundError):
        utils.directory_stats(tmp_path / "missing")


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_directory_stats_skips_symlinks(tmp_path):
    (tmp_path / "real.txt").write_bytes(b"abc")
    os.symlink(tmp_path / "real.txt", tmp_path / "link.txt")
    assert utils.directory_stats(tmp_path) == (1, 3)


def test_parse_component_list():
    assert utils.parse_component_list(None) == frozenset()
    assert utils.parse_component_list("a, b c") == {"a", "b", "c"}
    assert utils.parse_component_list(("a,b", "c", "")) == {"a", "b", "c"}


def test_titleize_and_format_size():
    assert utils.titleize("my-docs_site") == "My Docs Site"
    assert utils.titleize("---") == "Untitled"
    assert utils.format_size(512) == "512 B"
    assert utils.format_size(1536) == "1.5 KB"
    assert utils.format_size(5 * 1024 * 1024) == "5.0 MB"



@pytest.mark.parametrize(
    "relative, expected",
    [
        ("js/quiz.js", False),
        ("quiz/", False),
        ("js/..hidden.js", False),
        ("../../secret.txt", True),
        ("js/../../secret.txt", True),
        ("..\\secret.txt", True),
        ("/etc/passwd", True),
    ],
)
def test_escapes_root(relative, expected):
    assert utils.escapes_root(relative) is expected


def test_is_within_follows_symlinks(tmp_path):
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    outside = tmp_path / "outside.txt"
    outside.write_text("x")
    (root / "link.txt").symlink_to(outside)
    assert utils.is_within(root / "sub" / "file.txt", root)
    assert not utils.is_within(root / ".." / "outside.txt", root)
    assert not utils.is_within(root / "link.txt", root)
