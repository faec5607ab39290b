from __future__ import annotations

import json
from pathlib import Path

from projvars.core import properties as P
from projvars.core.engine import ResolutionEngine
from projvars.sinks.report import render_all_table, render_primary_list, render_property_list
from projvars.sinks.sinks import EnvSink, JSONFileSink, KeyValueFileSink, format_env_line, merge_values
from projvars.sources.overrides import MappingSource


def test_key_value_file_sink_sorted_and_quoted(tmp_path: Path) -> None:
    path = tmp_path / "out" / "project.env"
    KeyValueFileSink(path).write({"PROJECT_VERSION": "1.0", "PROJECT_NAME": 'say "hi"'})
    assert path.read_text(encoding="utf-8") == 'PROJECT_NAME="say \\"hi\\""\nPROJECT_VERSION="1.0"\n'
    assert not (tmp_path / "out" / "project.env.tmp").exists()


def test_key_value_file_sink_merges_existing(tmp_path: Path) -> None:
    path = tmp_path / "project.env"
    path.write_text('OTHER="keep"\nPROJECT_VERSION="0.1"\n', encoding="utf-8")
    KeyValueFileSink(path, overwrite="none").write({"PROJECT_VERSION": "1.0", "PROJECT_NAME": "n"})
    assert path.read_text(encoding="utf-8") == 'OTHER="keep"\nPROJECT_NAME="n"\nPROJECT_VERSION="0.1"\n'
    KeyValueFileSink(path, overwrite="main").write({"PROJECT_VERSION": "1.0"})
    assert 'PROJECT_VERSION="1.0"' in path.read_text(encoding="utf-8")


def test_json_file_sink_merges_existing(tmp_path: Path) -> None:
    path = tmp_path / "project.json"
    path.write_text(json.dumps({"PROJECT_VERSION": "0.1", "EXTRA": "x"}), encoding="utf-8")
    JSONFileSink(path).write({"PROJECT_VERSION": "1.0"})
    assert json.loads(path.read_text(encoding="utf-8")) == {"EXTRA": "x", "PROJECT_VERSION": "1.0"}
    JSONFileSink(path, overwrite="alternative").write({"PROJECT_VERSION": "2.0"})
    assert json.loads(path.read_text(encoding="utf-8"))["PROJECT_VERSION"] == "1.0"


def test_env_sink_respects_overwrite_mode() -> None:
    environ = {"PROJECT_NAME": "old"}
    EnvSink(environ, overwrite="none").write({"PROJECT_NAME": "new", "PROJECT_VERSION": "1"})
    assert environ == {"PROJECT_NAME": "old", "PROJECT_VERSION": "1"}
    EnvSink(environ, overwrite="all").write({"PROJECT_NAME": "new"})
    assert environ["PROJECT_NAME"] == "new"


def test_merge_values_and_format_env_line() -> None:
    assert merge_values({"A": "1"}, {"A": "2", "B": "3"}, "all") == {"A": "2", "B": "3"}
    assert merge_values({"A": "1"}, {"A": "2"}, "alternative") == {"A": "1"}
    assert format_env_line("K", "a\\b") == 'K="a\\\\b"'


def _resolved():
    sources = [
        MappingSource("cli", {"VERSION": "1.0"}),
        MappingSource("file", {"VERSION": "0.9", "NAME": "proj|x"}),
    ]
    return ResolutionEngine(sources).resolve()


def test_render_primary_list() -> None:
    text = render_primary_list(_resolved(), only=[P.VERSION])
    assert text == "- PROJECT_VERSION: `1.0` (cli)\n"


def test_render_all_table_marks_primary_and_escapes() -> None:
    text = render_all_table(_resolved())
    lines = text.splitlines()
    assert lines[0] == "| Property | cli | file | derived |"
    version_row = next(line for line in lines if line.startswith("| PROJECT_VERSION "))
    assert version_row == "| PROJECT_VERSION | **`1.0`** | `0.9` |  |"
    name_row = next(line for line in lines if line.startswith("| PROJECT_NAME "))
    assert "proj\\|x" in name_row
    assert len(lines) == 2 + len(P.ALL_PROPERTIES)


def test_render_property_list() -> None:
    text = render_property_list(prefix="X_")
    assert "| X_VERSION | x |" in text
    assert "| X_BUILD_ARCH |  |" in text


def test_multiline_values_survive_a_rewrite(tmp_path: Path) -> None:
    path = tmp_path / "project.env"
    assert format_env_line("K", "a\nb") == 'K="a\\nb"'
    KeyValueFileSink(path).write({"PROJECT_DESCRIPTION": "first\nsecond"})
    assert path.read_text(encoding="utf-8").count("\n") == 1
    KeyValueFileSink(path).write({"PROJECT_VERSION": "1.0"})
    assert path.read_text(encoding="utf-8") == 'PROJECT_DESCRIPTION="first\\nsecond"\nPROJECT_VERSION="1.0"\n'
