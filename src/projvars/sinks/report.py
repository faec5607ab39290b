# report.py
# SPDX-License-Identifier: MIT
"""Markdown reports of retrieved values and of the property schema."""
from __future__ import annotations

from collections.abc import Iterable
from typing import List, Optional

from ..core.engine import DERIVED_SOURCE_NAME, ResolvedPropertyMap
from ..core.properties import ALL_PROPERTIES, DEFAULT_KEY_PREFIX, Property

__all__ = ["render_primary_list", "render_all_table", "render_property_list"]


def _cell(value: Optional[str]) -> str:
    if value is None:
        return ""
    return "`" + value.replace("|", "\\|").replace("`", "'") + "`"


def render_primary_list(
    resolved: ResolvedPropertyMap,
    *,
    prefix: Optional[str] = DEFAULT_KEY_PREFIX,
    only: Optional[Iterable[Property]] = None,
) -> str:
    """One bullet per resolved property with its primary value and source."""
    allowed = set(only) if only is not None else None
    lines = []
    for prop in resolved:
        if allowed is not None and prop not in allowed:
            continue
        entry = resolved.get(prop)
        assert entry is not None
        lines.append(f"- {prop.output_key(prefix)}: {_cell(entry.value)} ({entry.source})")
    return "\n".join(lines) + "\n"


def render_all_table(
    resolved: ResolvedPropertyMap,
    *,
    prefix: Optional[str] = DEFAULT_KEY_PREFIX,
    only: Optional[Iterable[Property]] = None,
) -> str:
    """Markdown table with one row per property and one column per source.

    The primary value of each row is set in bold. Properties without any value
    are listed with empty cells.
    """
    columns: List[str] = list(resolved.source_names) + [DERIVED_SOURCE_NAME]
    allowed = set(only) if only is not None else None
    header = "| Property | " + " | ".join(columns) + " |"
    rule = "| --- | " + " | ".join("---" for _ in columns) + " |"
    rows = [header, rule]
    for prop in ALL_PROPERTIES:
        if allowed is not None and prop not in allowed:
            continue
        entry = resolved.get(prop)
        cells = []
        for column in columns:
            values = [c for c in resolved.candidates(prop) if c.source == column]
            rendered = []
            for candidate in values:
                text = _cell(candidate.value)
                if entry is not None and candidate is entry.primary:
                    text = f"**{text}**"
                rendered.append(text)
            cells.append("<br>".join(rendered))
        rows.append(f"| {prop.output_key(prefix)} | " + " | ".join(cells) + " |")
    return "\n".join(rows) + "\n"


def render_property_list(*, prefix: Optional[str] = DEFAULT_KEY_PREFIX) -> str:
    """The property schema: key, whether required by default, description."""
    lines = ["| Key | D | Description |", "| --- | --- | --- |"]
    for prop in ALL_PROPERTIES:
        flag = "x" if prop.default_required else ""
        lines.append(f"| {prop.output_key(prefix)} | {flag} | {prop.description} |")
    return "\n".join(lines) + "\n"
