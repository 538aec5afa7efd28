"""Project metadata used to stamp structured log records."""

import tomllib
from functools import lru_cache
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any

DISTRIBUTION = "crudkit"


def find_pyproject(start: Path, max_up: int = 5) -> Path | None:
    p = start
    for _ in range(max_up):
        candidate = p / "pyproject.toml"
        if candidate.exists():
            return candidate
        if p.parent == p:
            break
        p = p.parent
    return None


def get_pyproject_value(key: str, start: Path | None = None, max_up: int = 5, default: Any = None) -> Any:
    """
    Value for a dot-separated `key` ("project.version") in the nearest pyproject.toml,
    or `default` when the file or key is missing.
    """
    pyproject = find_pyproject(start or Path(__file__).resolve().parent, max_up=max_up)
    if pyproject is None:
        return default
    try:
        with pyproject.open("rb") as f:
            cur: Any = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return default

    for part in key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


@lru_cache
def get_project_name() -> str:
    return get_pyproject_value("project.name", default=DISTRIBUTION)


@lru_cache
def get_project_version() -> str:
    """Installed distribution version, then pyproject's, then "0.0.0"."""
    try:
        return importlib_metadata.version(DISTRIBUTION)
    except importlib_metadata.PackageNotFoundError:
        return get_pyproject_value("project.version", default="0.0.0")
