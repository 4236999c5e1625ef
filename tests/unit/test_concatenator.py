import datetime
import os

import pytest

from repo_concat.concatenator import (
    OUTPUT_SUBDIR,
    concatenate_files,
    estimate_tokens,
    format_duration,
    generate_output_filename,
    render_tree,
    write_output,
)
from repo_concat.models import SourceConfig

NOW = datetime.datetime(2024, 3, 5, 14, 7, 9)


def test_concatenate_files_format(make_tree):
    root = make_tree({"src/main.go": "package main\n", "README": "no newline"})
    files = [os.path.join(root, "src", "main.go"), os.path.join(root, "README")]

    content = concatenate_files(files, root, now=NOW)

    assert content == (
        "# Repository Concatenation\n"
        "# Generated on: 2024-03-05 14:07:09\n"
        "# Total files: 2\n\n"
        "# File: src/main.go\n"
        "```\n"
        "package main\n"
        "```\n\n"
        "# File: README\n"
        "```\n"
        "no newline\n"
        "```\n\n"
    )


def test_concatenate_skips_unreadable_files(make_tree, caplog):
    root = make_tree({"a.txt": "a\n"})
    files = [os.path.join(root, "a.txt"), os.path.join(root, "gone.txt")]

    content = concatenate_files(files, root, now=NOW)

    assert "# File: a.txt" in content
    assert "gone.txt" not in content
    assert "Failed to read file gone.txt" in caplog.text


def test_concatenate_keeps_crlf_and_undecodable_bytes(make_tree, tmp_path):
    root = make_tree({"win.txt": b"line1\r\nline2\r\n", "latin1.txt": b"caf\xe9\n"})
    files = [os.path.join(root, "win.txt"), os.path.join(root, "latin1.txt")]

    content = concatenate_files(files, root, now=NOW)
    path = write_output(content, str(tmp_path / "out"), "out.txt")

    with open(path, "rb") as f:
        raw = f.read()
    assert b"# File: win.txt\n```\nline1\r\nline2\r\n```\n" in raw
    assert b"# File: latin1.txt\n```\ncaf\xe9\n```\n" in raw


@pytest.mark.parametrize(
    "source, expected",
    [
        (SourceConfig(url="https://github.com/acme/widgets.git"), "widgets-concat-20240305-140709.txt"),
        (SourceConfig(url="https://github.com/acme"), "repository-concat-20240305-140709.txt"),
    ],
)
def test_generate_output_filename_for_urls(source, expected):
    assert generate_output_filename(source, now=NOW) == expected


def test_generate_output_filename_for_local_path(tmp_path):
    project = tmp_path / "my-project"
    project.mkdir()

    name = generate_output_filename(SourceConfig(path=str(project) + "/"), now=NOW)

    assert name == "my-project-concat-20240305-140709.txt"


def test_write_output_creates_subdirectory(tmp_path):
    path = write_output("hello", str(tmp_path), "out.txt")

    assert path == os.path.join(str(tmp_path), OUTPUT_SUBDIR, "out.txt")
    with open(path, encoding="utf-8") as f:
        assert f.read() == "hello"


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("one two three") == 4
    assert estimate_tokens("a b c d e f") == 8


@pytest.mark.parametrize(
    "seconds, text",
    [
        (0.2, "just now"),
        (1, "1 second"),
        (42, "42 seconds"),
        (60, "1 minute"),
        (150, "2 minutes"),
        (3600, "1 hour"),
        (7300, "2 hours"),
    ],
)
def test_format_duration(seconds, text):
    assert format_duration(seconds) == text


def test_render_tree_full(make_tree):
    root = make_tree({"src/main.go": "m", "src/lib/util.go": "u", "README.md": "r", ".git/HEAD": "h"})

    lines = render_tree(root)

    assert lines == [
        "📄 README.md",
        "📁 src/",
        "  📁 lib/",
        "    📄 util.go",
        "  📄 main.go",
    ]


def test_render_tree_respects_max_depth(make_tree):
    root = make_tree({"a/b/c/d.txt": "d"})

    assert render_tree(root, max_depth=1) == ["📁 a/", "  📁 b/"]


def test_render_tree_only_relevant(make_tree):
    root = make_tree({"src/main.go": "m", "docs/guide.md": "g", "top.go": "t"})

    lines = render_tree(root, relevant=[os.path.join(root, "src", "main.go")])

    assert lines == ["📁 src/", "  📄 main.go"]
