import json
from pathlib import Path

from projvars.core.licenses import (
    detect_licenses_in_tree,
    match_license_text,
    normalize_spdx_expression,
    spdx_ids_in_expression,
)

MIT_TEXT = """MIT License

Copyright (c) 2024 Someone

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND.
"""


def test_license_file_detected(tmp_path: Path):
    (tmp_path / "LICENSE").write_text(MIT_TEXT, encoding="utf-8")
    matches = detect_licenses_in_tree(tmp_path)
    assert [m.spdx_id for m in matches] == ["MIT"]
    assert matches[0].method == "license_file"
    assert matches[0].path == "LICENSE"


def test_manifest_and_license_file_are_ranked(tmp_path: Path):
    (tmp_path / "LICENSE").write_text(MIT_TEXT, encoding="utf-8")
    (tmp_path / "package.json").write_text(json.dumps({"license": "MIT OR Apache-2.0"}), encoding="utf-8")
    matches = detect_licenses_in_tree(tmp_path)
    assert [m.spdx_id for m in matches] == ["MIT", "Apache-2.0"]
    assert matches[0].confidence == 1.0
    assert matches[1].method == "manifest"


def test_reuse_licenses_dir(tmp_path: Path):
    licenses = tmp_path / "LICENSES"
    licenses.mkdir()
    (licenses / "Apache-2.0.txt").write_text("...", encoding="utf-8")
    (licenses / "CC0-1.0.txt").write_text("...", encoding="utf-8")
    (licenses / "not-a-license.txt").write_text("...", encoding="utf-8")
    matches = detect_licenses_in_tree(tmp_path)
    assert [m.spdx_id for m in matches] == ["Apache-2.0", "CC0-1.0"]
    assert all(m.method == "reuse" for m in matches)


def test_spdx_headers_counted_and_vendor_dirs_skipped(tmp_path: Path):
    src = tmp_path / "src"
    src.mkdir()
    for i in range(3):
        (src / f"m{i}.py").write_text("# SPDX-License-Identifier: MIT\nx = 1\n", encoding="utf-8")
    vendor = tmp_path / "node_modules" / "dep"
    vendor.mkdir(parents=True)
    (vendor / "index.js").write_text("/* SPDX-License-Identifier: GPL-3.0-only */\n", encoding="utf-8")
    matches = detect_licenses_in_tree(tmp_path)
    assert [m.spdx_id for m in matches] == ["MIT"]
    assert matches[0].method == "spdx_header"
    assert matches[0].confidence == 0.9


def test_pyproject_license_table(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\nlicense = {text = "BSD-3-Clause"}\n', encoding="utf-8")
    assert [m.spdx_id for m in detect_licenses_in_tree(tmp_path)] == ["BSD-3-Clause"]


def test_empty_or_missing_tree(tmp_path: Path):
    assert detect_licenses_in_tree(tmp_path) == []
    assert detect_licenses_in_tree(tmp_path / "missing") == []


def test_normalize_spdx_expression():
    assert normalize_spdx_expression("MIT") == "MIT"
    assert normalize_spdx_expression("(MIT or Apache-2.0) and BSD-3-Clause") == "(MIT OR Apache-2.0) AND BSD-3-Clause"
    assert normalize_spdx_expression("GPL-2.0-or-later WITH Classpath-exception-2.0") == (
        "GPL-2.0-or-later WITH Classpath-exception-2.0"
    )
    assert normalize_spdx_expression("LicenseRef-Proprietary") == "LicenseRef-Proprietary"
    assert normalize_spdx_expression("MIT AND") is None
    assert normalize_spdx_expression("(MIT") is None
    assert normalize_spdx_expression("Whatever-1.0") is None
    assert normalize_spdx_expression("") is None


def test_spdx_ids_in_expression_drops_operators_and_exceptions():
    assert spdx_ids_in_expression("(MIT OR Apache-2.0) AND MIT") == ["MIT", "Apache-2.0"]
    assert spdx_ids_in_expression("GPL-2.0-or-later WITH Classpath-exception-2.0") == ["GPL-2.0-or-later"]


def test_match_license_text():
    assert match_license_text(MIT_TEXT) == "MIT"
    assert match_license_text("just some words") is None
