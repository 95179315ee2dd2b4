"""Audit configuration loaded from `.formaudit.toml`."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

CONFIG_FILENAME = ".formaudit.toml"


@dataclass(frozen=True)
class AuditConfig:
    strict: bool = False
    repository: Path | None = None
    formula_dir: str = "Formula"
    git_ref: str = "HEAD"
    git_timeout: float = 10.0
    history: bool = True

    def override(self, **changes: Any) -> "AuditConfig":
        """Return a copy with the non-None `changes` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def load_config(path: Path) -> AuditConfig:
    """
    Load audit settings from the `[audit]` table of a TOML file.

    Relative `repository` paths resolve against the config file's directory.
    """
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    section = _coerce_dict(data.get("audit"))

    strict = section.get("strict", False)
    if not isinstance(strict, bool):
        raise ValueError("audit.strict must be a boolean")

    history = section.get("history", True)
    if not isinstance(history, bool):
        raise ValueError("audit.history must be a boolean")

    repository = None
    raw_repository = section.get("repository")
    if raw_repository is not None:
        if not isinstance(raw_repository, str) or not raw_repository.strip():
            raise ValueError("audit.repository must be a non-empty string")
        repository = (path.parent / raw_repository.strip()).resolve()

    formula_dir = str(section.get("formula_dir", "Formula")).strip() or "Formula"
    git_ref = str(section.get("git_ref", "HEAD")).strip() or "HEAD"

    git_timeout = float(section.get("git_timeout", 10.0))
    if git_timeout <= 0:
        raise ValueError("audit.git_timeout must be positive")

    return AuditConfig(
        strict=strict,
        repository=repository,
        formula_dir=formula_dir,
        git_ref=git_ref,
        git_timeout=git_timeout,
        history=history,
    )


def find_config(start: Path) -> Path | None:
    """Find a `.formaudit.toml` by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
