# licenses.py
# SPDX-License-Identifier: MIT
"""
License detection for a local project tree.

Produces a ranked list of SPDX identifiers, most confident first, from:

1. REUSE-style ``LICENSES/<SPDX-ID>.<ext>`` files.
2. Manifest declarations (package.json, Cargo.toml, pyproject.toml).
3. License files at the project root (``LICENSE*``, ``LICENCE*``,
   ``COPYING*``, ``UNLICENSE``) matched via anchor phrases.
4. ``SPDX-License-Identifier`` headers in source files, ranked by frequency.
"""

from __future__ import annotations

import json
import os
import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .log import get_logger

log = get_logger(__name__)

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Py3.10 fallback
    import tomli as tomllib  # type: ignore[no-redef]

__all__ = [
    "DEFAULT_THRESHOLD",
    "LicenseMatch",
    "detect_licenses_in_tree",
    "match_license_text",
    "normalize_spdx_expression",
    "spdx_ids_in_expression",
]

DEFAULT_THRESHOLD = 0.8
MAX_LICENSE_BYTES = 128 * 1024
MAX_SPDX_SCAN_FILES = 200
MAX_SPDX_SCAN_BYTES = 32 * 1024

LICENSE_FILE_PREFIXES = ("LICENSE", "LICENCE", "COPYING", "UNLICENSE")
REUSE_LICENSE_EXTENSIONS = (".txt", ".md", ".rst", ".html", ".htm", ".license")

SKIP_DIRS = frozenset({
    ".git",
    "vendor",
    "third_party",
    "third-party",
    "deps",
    "node_modules",
    "submodules",
    "dist",
    "build",
    "target",
    "LICENSES",
})

SPDX_HEADER_RE = re.compile(
    r"SPDX-License-Identifier:\s*([^\s*]+(?:[ \t]+[^\s*]+)*)",
    re.IGNORECASE,
)
LICENSE_REF_RE = re.compile(
    r"^(?:LicenseRef|DocumentRef-[A-Za-z0-9\.\-]+:LicenseRef)-[A-Za-z0-9\.\-]+$"
)

# SPDX id -> phrases that must appear in a license text. More specific
# licenses carry longer phrases; ties between matches go to the longer set.
ANCHOR_PHRASES: Dict[str, tuple[str, ...]] = {
    "MIT": (
        "permission is hereby granted, free of charge",
        "the software is provided as is",
    ),
    "Apache-2.0": (
        "apache license, version 2.0, january 2004",
        "apache.org/licenses/license-2.0",
    ),
    "BSD-3-Clause": (
        "redistribution and use in source and binary forms, with or without modification",
        "neither the name of",
    ),
    "BSD-2-Clause": (
        "redistribution and use in source and binary forms, with or without modification",
        "this software is provided by the copyright holders",
    ),
    "MPL-2.0": (
        "mozilla public license version 2.0",
        "exhibit a - source code form license notice",
    ),
    "GPL-3.0-or-later": (
        "gnu general public license",
        "either version 3 of the license, or (at your option) any later version",
    ),
    "GPL-2.0-or-later": (
        "gnu general public license",
        "either version 2 of the license, or (at your option) any later version",
    ),
    "GPL-3.0-only": (
        "gnu general public license",
        "version 3, 29 june 2007",
    ),
    "GPL-2.0-only": (
        "gnu general public license",
        "version 2, june 1991",
    ),
    "LGPL-3.0-only": (
        "gnu lesser general public license",
        "version 3, 29 june 2007",
    ),
    "AGPL-3.0-only": (
        "gnu affero general public license",
        "version 3, 19 november 2007",
    ),
    "EPL-2.0": (
        "eclipse public license - v 2.0",
        "eclipse.org/legal/epl-2.0",
    ),
    "CC0-1.0": (
        "cc0 1.0 universal",
        "creative commons corporation is not a law firm",
    ),
    "BSL-1.0": (
        "boost software license - version 1.0",
        "permission is hereby granted, free of charge, to any person or organization",
    ),
    "Unlicense": (
        "this is free and unencumbered software released into the public domain",
    ),
    "ISC": (
        "permission to use, copy, modify, and/or distribute this software for any purpose",
        "the software is provided as is and the author disclaims",
    ),
    "CC-BY-4.0": (
        "creative commons attribution 4.0 international public license",
    ),
    "CC-BY-SA-4.0": (
        "creative commons attribution-sharealike 4.0 international",
    ),
}

SPDX_LICENSE_IDS = set(ANCHOR_PHRASES) | {
    "0BSD",
    "AGPL-3.0-or-later",
    "Apache-1.1",
    "BSD-2-Clause-Patent",
    "BSD-3-Clause-Clear",
    "BSD-4-Clause",
    "CC-BY-3.0",
    "CC-BY-NC-4.0",
    "CC-BY-NC-SA-4.0",
    "CC-BY-ND-4.0",
    "CC-BY-SA-3.0",
    "CERN-OHL-P-2.0",
    "CERN-OHL-S-2.0",
    "CERN-OHL-W-2.0",
    "EUPL-1.2",
    "GFDL-1.3-or-later",
    "LGPL-2.1-only",
    "LGPL-2.1-or-later",
    "LGPL-3.0-or-later",
    "MIT-0",
    "OFL-1.1",
    "Zlib",
}

SPDX_LICENSE_EXCEPTIONS = {
    "Autoconf-exception-3.0",
    "Bison-exception-2.2",
    "Classpath-exception-2.0",
    "GCC-exception-3.1",
    "GPL-3.0-linking-exception",
    "LLVM-exception",
    "OpenSSL-exception",
    "WxWindows-exception-3.1",
}

# Base confidences per detection method.
CONFIDENCE_REUSE = 1.0
CONFIDENCE_MANIFEST = 0.95
CONFIDENCE_HEADER_BASE = 0.5
CONFIDENCE_HEADER_SHARE = 0.4


@dataclass(frozen=True, slots=True)
class LicenseMatch:
    """One detected license.

    Attributes:
        spdx_id (str): SPDX license identifier.
        confidence (float): 0.0 to 1.0; higher is more certain.
        method (str): ``reuse``, ``manifest``, ``license_file`` or
            ``spdx_header``.
        path (str | None): Project-relative path that gave the evidence.
    """

    spdx_id: str
    confidence: float
    method: str
    path: str | None = None


class _TreeReader:
    """Read files below a project root with normalized, sorted paths."""

    def __init__(self, root: Path):
        self.root = root

    def iter_root_files(self) -> Iterable[tuple[str, Path]]:
        try:
            entries = sorted(self.root.iterdir())
        except OSError:
            return
        for entry in entries:
            if entry.is_file():
                yield entry.name, entry

    def iter_files(self) -> Iterable[tuple[str, Path]]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                yield path.relative_to(self.root).as_posix(), path

    def read_text(self, path: Path, limit: int) -> str | None:
        try:
            with path.open("rb") as fh:
                data = fh.read(limit)
        except OSError:
            return None
        return data.decode("utf-8-sig", errors="ignore")


def detect_licenses_in_tree(
    root_dir: str | Path,
    *,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[LicenseMatch]:
    """
    Detect the licenses of a local project tree.

    Args:
        root_dir (str | Path): Project root.
        threshold (float): Minimum confidence for a match to be reported.

    Returns:
        list[LicenseMatch]: One entry per SPDX id, best first. Equal
        confidences keep discovery order.
    """
    root = Path(root_dir).expanduser()
    if not root.is_dir():
        return []
    reader = _TreeReader(root)
    found: Dict[str, LicenseMatch] = {}
    for detector in (_detect_reuse_dir, _detect_from_manifests, _detect_from_license_files, _detect_spdx_headers):
        for match in detector(reader):
            if match.confidence < threshold:
                continue
            current = found.get(match.spdx_id)
            if current is None or match.confidence > current.confidence:
                found[match.spdx_id] = match
    ranked = sorted(found.values(), key=lambda m: -m.confidence)
    if ranked:
        log.info(
            "License detection (%s): %s",
            root,
            ", ".join(f"{m.spdx_id} via {m.method} ({m.confidence:.2f})" for m in ranked),
        )
    return ranked


def _detect_reuse_dir(reader: _TreeReader) -> List[LicenseMatch]:
    """``LICENSES/MIT.txt`` style files name their SPDX id."""
    licenses_dir = reader.root / "LICENSES"
    if not licenses_dir.is_dir():
        return []
    matches = []
    for path in sorted(licenses_dir.iterdir()):
        if not path.is_file():
            continue
        name = path.name
        for ext in REUSE_LICENSE_EXTENSIONS:
            if name.lower().endswith(ext):
                name = name[: -len(ext)]
                break
        if _is_license_token(name):
            matches.append(LicenseMatch(name, CONFIDENCE_REUSE, "reuse", f"LICENSES/{path.name}"))
    return matches


def _detect_from_manifests(reader: _TreeReader) -> List[LicenseMatch]:
    """Inspect common package manifests for declared licenses."""
    handlers: tuple[tuple[str, Callable[[str], Optional[str]]], ...] = (
        ("package.json", _license_from_package_json),
        ("Cargo.toml", _license_from_cargo_toml),
        ("pyproject.toml", _license_from_pyproject_toml),
    )
    root_files = {name.lower(): (name, path) for name, path in reader.iter_root_files()}
    matches: List[LicenseMatch] = []
    for manifest, handler in handlers:
        entry = root_files.get(manifest.lower())
        if entry is None:
            continue
        name, path = entry
        text = reader.read_text(path, MAX_LICENSE_BYTES)
        if not text:
            continue
        expr = handler(text)
        if not expr:
            continue
        for spdx_id in spdx_ids_in_expression(expr):
            matches.append(LicenseMatch(spdx_id, CONFIDENCE_MANIFEST, "manifest", name))
    return matches


def _license_from_package_json(text: str) -> str | None:
    try:
        data = json.loads(text)
    except ValueError:
        return None
    value = data.get("license") if isinstance(data, dict) else None
    return normalize_spdx_expression(value) if isinstance(value, str) else None


def _load_toml(text: str) -> Dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return {}


def _license_from_cargo_toml(text: str) -> str | None:
    package = _load_toml(text).get("package") or {}
    value = package.get("license")
    return normalize_spdx_expression(value) if isinstance(value, str) else None


def _license_from_pyproject_toml(text: str) -> str | None:
    project = _load_toml(text).get("project") or {}
    value = project.get("license")
    if isinstance(value, dict):
        value = value.get("text")
    if isinstance(value, str):
        return normalize_spdx_expression(value) or match_license_text(value)
    return None


def _detect_from_license_files(reader: _TreeReader) -> List[LicenseMatch]:
    """Match root license files against the anchor phrases."""
    matches: List[LicenseMatch] = []
    for name, path in reader.iter_root_files():
        if not name.upper().startswith(LICENSE_FILE_PREFIXES):
            continue
        text = reader.read_text(path, MAX_LICENSE_BYTES)
        if not text:
            continue
        for spdx_id, score in score_license_text(text):
            matches.append(LicenseMatch(spdx_id, score, "license_file", name))
    return matches


def _detect_spdx_headers(reader: _TreeReader) -> List[LicenseMatch]:
    """Count SPDX-License-Identifier headers within a file and byte budget."""
    counts: Counter[str] = Counter()
    first_path: Dict[str, str] = {}
    scanned = 0
    for rel_path, path in reader.iter_files():
        if scanned >= MAX_SPDX_SCAN_FILES:
            break
        scanned += 1
        text = reader.read_text(path, MAX_SPDX_SCAN_BYTES)
        if not text:
            continue
        match = SPDX_HEADER_RE.search(text)
        if not match:
            continue
        expr = normalize_spdx_expression(match.group(1))
        if not expr:
            continue
        for spdx_id in spdx_ids_in_expression(expr):
            counts[spdx_id] += 1
            first_path.setdefault(spdx_id, rel_path)
    total = sum(counts.values())
    return [
        LicenseMatch(spdx_id, round(CONFIDENCE_HEADER_BASE + CONFIDENCE_HEADER_SHARE * count / total, 4), "spdx_header", first_path[spdx_id])
        for spdx_id, count in counts.most_common()
    ]


def score_license_text(text: str) -> List[tuple[str, float]]:
    """Score ``text`` against every anchor set.

    The score is the fraction of a license's anchor phrases found in the
    text. Results are sorted by score, then by anchor specificity.
    """
    normalized = " ".join(text.lower().replace('"', "").replace("'", "").split())
    scored = []
    for spdx_id, phrases in ANCHOR_PHRASES.items():
        hits = sum(1 for phrase in phrases if phrase in normalized)
        if not hits:
            continue
        specificity = sum(len(phrase) for phrase in phrases)
        scored.append((spdx_id, hits / len(phrases), specificity))
    scored.sort(key=lambda item: (-item[1], -item[2]))
    return [(spdx_id, score) for spdx_id, score, _ in scored]


def match_license_text(text: str, threshold: float = 1.0) -> str | None:
    """Return the best SPDX id for a license text, or None below ``threshold``."""
    for spdx_id, score in score_license_text(text):
        if score >= threshold:
            return spdx_id
    return None


def normalize_spdx_expression(expr: str) -> str | None:
    """Normalize an SPDX expression, validating structure and tokens."""
    expr = (expr or "").strip()
    if not expr:
        return None
    tokens = _tokenize_spdx(expr)
    if not tokens:
        return None
    return _validate_spdx_tokens(tokens)


def spdx_ids_in_expression(expr: str) -> List[str]:
    """``MIT OR Apache-2.0`` -> ``["MIT", "Apache-2.0"]`` (exceptions dropped)."""
    ids: List[str] = []
    previous = ""
    for token in _tokenize_spdx(expr):
        if previous.upper() != "WITH" and _is_license_token(token) and token not in ids:
            ids.append(token)
        previous = token
    return ids


def _tokenize_spdx(expr: str) -> List[str]:
    """Split an SPDX expression into operators, parens and operands."""
    return re.findall(r"[()]|[^\s()]+", expr)


def _validate_spdx_tokens(tokens: List[str]) -> str | None:
    """Validate tokenized SPDX expressions and return a normalized string."""
    depth = 0
    expect_operand = True
    output: List[str] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if expect_operand:
            if token == "(":
                depth += 1
                output.append("(")
                i += 1
                continue
            if not _is_license_token(token):
                return None
            output.append(token)
            i += 1
            if i < len(tokens) and tokens[i].upper() == "WITH":
                if i + 1 >= len(tokens) or not _is_license_exception(tokens[i + 1]):
                    return None
                output.extend(["WITH", tokens[i + 1]])
                i += 2
            expect_operand = False
            continue
        upper = token.upper()
        if upper in ("AND", "OR"):
            output.append(upper)
            expect_operand = True
        elif token == ")" and depth > 0:
            depth -= 1
            output.append(")")
        else:
            return None
        i += 1
    if expect_operand or depth != 0:
        return None
    return " ".join(output).replace("( ", "(").replace(" )", ")")


def _is_license_token(token: str) -> bool:
    base = token[:-1] if token.endswith("+") else token
    return base in SPDX_LICENSE_IDS or bool(LICENSE_REF_RE.match(token))


def _is_license_exception(token: str) -> bool:
    return token in SPDX_LICENSE_EXCEPTIONS or bool(LICENSE_REF_RE.match(token))
