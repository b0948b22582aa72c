"""Semantic version triples parsed from free-form tool output.

``claude --version`` prints ``2.0.14 (Claude Code)``, ``kubectl`` prints
``Client Version: v1.31.2``, release feeds print ``v1.31.2`` or
``1.3.0-beta.1+build5``.  Only the first ``X.Y.Z`` triple is kept;
pre-release and build suffixes are dropped, so versions that differ only
in metadata compare equal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_TRIPLE_RE = re.compile(r"(?<![\d.])(\d+)\.(\d+)\.(\d+)")


@dataclass(frozen=True, order=True)
class Version:
    """A (major, minor, patch) triple with numeric ordering."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(text: str | None) -> Version | None:
    """Extract the first X.Y.Z triple from *text*.

    Returns None for empty, missing, or non-numeric input.
    """
    if not text:
        return None
    m = _TRIPLE_RE.search(text)
    if not m:
        return None
    return Version(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def needs_update(installed: Version, latest: Version) -> bool:
    """True iff *installed* is strictly older than *latest*."""
    return installed < latest
