# env.py
# SPDX-License-Identifier: MIT
"""Process environment source: ``PROJECT_*`` variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Optional

from ..core.interfaces import SourceKind
from ..core.properties import DEFAULT_KEY_PREFIX
from .overrides import MappingSource

__all__ = ["EnvSource"]


def EnvSource(environ: Optional[Mapping[str, str]] = None, *, prefix: Optional[str] = DEFAULT_KEY_PREFIX) -> MappingSource:
    """Snapshot ``environ`` (``os.environ`` by default) and match prefixed keys only."""
    snapshot = dict(os.environ if environ is None else environ)
    return MappingSource(
        name="env",
        values=snapshot,
        kind=SourceKind.ENV,
        prefix=prefix,
        accept_bare_keys=False,
    )
