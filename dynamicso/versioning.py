from __future__ import annotations

import re

_VERSION_RE = re.compile(r"\d+\.\d+\.\d+", re.ASCII)


def is_valid_version(version: str | None) -> bool:
    if version is None or not version.strip():
        return False
    return _VERSION_RE.fullmatch(version) is not None


def compare_versions(v1: str, v2: str) -> int:
    """Compare dotted numeric versions; negative, zero or positive like ``cmp``.

    Missing trailing components count as zero, so ``1.0`` equals ``1.0.0``.
    """
    parts1 = [int(p) for p in v1.split(".")]
    parts2 = [int(p) for p in v2.split(".")]
    width = max(len(parts1), len(parts2))
    parts1 += [0] * (width - len(parts1))
    parts2 += [0] * (width - len(parts2))
    for a, b in zip(parts1, parts2):
        if a != b:
            return a - b
    return 0


def base_version(version: str) -> str:
    """Strip the registry dedup suffix (``3.16.0-1a2b3c`` -> ``3.16.0``)."""
    return version.split("-", 1)[0]
