"""Resolve files that live next to the application (log file, channel map)."""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

CHANNEL_MAP_NAME = "channels.yaml"


@lru_cache(maxsize=1)
def _candidate_roots() -> Tuple[Path, ...]:
    roots = []
    if getattr(sys, "frozen", False):
        # frozen build: bundled resources first, then the executable's folder
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            roots.append(Path(meipass).resolve())
        roots.append(Path(sys.executable).resolve().parent)
    roots.append(Path(__file__).resolve().parent.parent)
    unique = []
    for root in roots:
        if root not in unique:
            unique.append(root)
    return tuple(unique)


def resource_path(*parts: str, prefer_write: bool = False, must_exist: bool = False) -> Path:
    """Resolve ``parts`` against the application roots.

    ``prefer_write`` tries the executable's folder first (writable in frozen
    builds); ``must_exist`` skips roots where the file is missing.
    """
    roots = list(_candidate_roots())
    if prefer_write and getattr(sys, "frozen", False):
        roots.insert(0, Path(sys.executable).resolve().parent)
    for root in roots:
        candidate = root.joinpath(*parts)
        if not must_exist or candidate.exists():
            return candidate
    return roots[0].joinpath(*parts)


def default_channel_map() -> Optional[Path]:
    """The bundled ``channels.yaml`` if there is one."""
    path = resource_path(CHANNEL_MAP_NAME, must_exist=True)
    return path if path.exists() else None
