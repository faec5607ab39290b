# license.py
# SPDX-License-Identifier: MIT
"""License source: SPDX identifiers detected in the project tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..core import properties as P
from ..core.interfaces import SourceKind
from ..core.licenses import DEFAULT_THRESHOLD, LicenseMatch, detect_licenses_in_tree
from ..core.properties import Property

__all__ = ["LicenseSource"]


@dataclass(slots=True)
class LicenseSource:
    """``LICENSE`` is the best match, ``LICENSES`` all matches joined by ``, ``.

    Detection runs once, on the first retrieval.
    """

    root: Path
    threshold: float = DEFAULT_THRESHOLD
    name: str = "license"
    kind: str = SourceKind.LICENSE
    alternative: bool = False
    _matches: Optional[List[LicenseMatch]] = field(default=None, init=False, repr=False)

    @property
    def matches(self) -> List[LicenseMatch]:
        if self._matches is None:
            self._matches = detect_licenses_in_tree(self.root, threshold=self.threshold)
        return self._matches

    def retrieve(self, prop: Property) -> Optional[str]:
        if prop not in (P.LICENSE, P.LICENSES):
            return None
        matches = self.matches
        if not matches:
            return None
        if prop == P.LICENSE:
            return matches[0].spdx_id
        return ", ".join(m.spdx_id for m in matches)
