"""Project-level configuration from pyproject.toml.

Reads the [tool.threadsave] section to provide the default database path
and retention window for the CLI.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DB = "./checkpoints.db"


@dataclass(frozen=True)
class ThreadsaveConfig:
    """Configuration from [tool.threadsave] in pyproject.toml."""

    db: str | None = None
    retention_days: int | None = None


def find_pyproject(start: Path | None = None) -> Path | None:
    """Walk up from start directory to find pyproject.toml."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def load_config(start: Path | None = None) -> ThreadsaveConfig:
    """Load [tool.threadsave] from the nearest pyproject.toml.

    Returns default config if no pyproject.toml or no [tool.threadsave] section.
    """
    path = find_pyproject(start)
    if path is None:
        return ThreadsaveConfig()

    if sys.version_info >= (3, 11):
        import tomllib
    else:
        try:
            import tomli as tomllib
        except ImportError:
            return ThreadsaveConfig()

    with open(path, "rb") as f:
        data = tomllib.load(f)

    section = data.get("tool", {}).get("threadsave", {})
    if not section:
        return ThreadsaveConfig()

    retention_days = section.get("retention_days")
    return ThreadsaveConfig(
        db=section.get("db"),
        retention_days=int(retention_days) if retention_days is not None else None,
    )


def resolve_db(db: str | None, start: Path | None = None) -> str:
    """--db flag, else [tool.threadsave].db, else ./checkpoints.db."""
    if db is not None:
        return db
    return load_config(start).db or DEFAULT_DB
