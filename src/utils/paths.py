"""Locating the dashboard's project root and config file."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Optional


# Files that mark the project root
SENTINELS = ("pyproject.toml", "config.yaml")


def _search_roots(start: Optional[Path]) -> Iterator[Path]:
    """Yield start, working directory and module location, each with its parents."""
    origins = [Path(start).resolve()] if start is not None else []
    origins += [Path.cwd(), Path(__file__).resolve().parent]
    for origin in origins:
        yield origin
        yield from origin.parents


def find_project_root(start: Optional[Path] = None) -> Path:
    """Locate the project root.

    DASHBOARD_ROOT wins when it names an existing directory; otherwise the
    first directory holding one of SENTINELS is used, falling back to the
    working directory.
    """
    env_root = os.getenv("DASHBOARD_ROOT")
    if env_root:
        candidate = Path(env_root).expanduser().resolve()
        if candidate.is_dir():
            return candidate

    return next(
        (p for p in _search_roots(start) if any((p / s).exists() for s in SENTINELS)),
        Path.cwd(),
    )


def resolve_config_path(path_str: str, root: Optional[Path] = None) -> Path:
    """Resolve a config file path.

    Absolute paths and paths that exist relative to the working directory are
    returned as-is; otherwise the path is joined with the project root.
    """
    path = Path(path_str).expanduser()
    if path.is_absolute() or path.exists():
        return path
    return ((root or find_project_root()) / path).resolve()
