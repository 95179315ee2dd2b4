"""
Revision source adapters.

A revision source answers one question: what did this file look like at the
last commit? Files without history, and any retrieval failure, are reported as
UNTRACKED so one flaky lookup never aborts an audit run.
"""

from __future__ import annotations

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Untracked(Enum):
    UNTRACKED = "untracked"

    def __repr__(self) -> str:
        return "UNTRACKED"


UNTRACKED = Untracked.UNTRACKED

# Fragments of `git show` stderr meaning "no such path at this revision"
_MISSING_PATH_MARKERS = ("does not exist in", "exists on disk, but not in")


class RevisionSource(Protocol):
    def fetch_last_committed(self, path: Path) -> str | Untracked:
        """Return the committed text of `path`, or UNTRACKED."""
        ...


class GitRevisionSource:
    """Reads committed file content with `git show <ref>:<path>`."""

    def __init__(self, repository: Path | None = None, ref: str = "HEAD", timeout: float = 10.0):
        self.repository = repository.resolve() if repository else None
        self.ref = ref
        self.timeout = timeout

    def _git(self, cwd: Path, *args: str) -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            timeout=self.timeout,
        )

    def _toplevel(self, path: Path) -> Path | None:
        if self.repository is not None:
            return self.repository
        result = self._git(path.parent, "rev-parse", "--show-toplevel")
        if result.returncode != 0:
            logger.warning("%s is not inside a git repository", path)
            return None
        return Path(result.stdout.decode("utf-8").strip()).resolve()

    def fetch_last_committed(self, path: Path) -> str | Untracked:
        path = path.resolve()
        try:
            toplevel = self._toplevel(path)
            if toplevel is None:
                return UNTRACKED
            relpath = path.relative_to(toplevel).as_posix()
            result = self._git(toplevel, "show", f"{self.ref}:{relpath}")
        except ValueError:
            logger.warning("%s is outside repository %s", path, self.repository)
            return UNTRACKED
        except subprocess.TimeoutExpired:
            logger.warning("git timed out after %ss reading history of %s", self.timeout, path)
            return UNTRACKED
        except OSError as exc:
            logger.warning("Cannot run git for %s: %s", path, exc)
            return UNTRACKED

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            if any(marker in stderr for marker in _MISSING_PATH_MARKERS):
                logger.debug("%s has no committed revision", relpath)
            else:
                logger.warning("git show %s:%s failed: %s", self.ref, relpath, stderr)
            return UNTRACKED

        return result.stdout.decode("utf-8", errors="replace")


class CachedRevisionSource:
    """Memoises another source per path for the duration of a run."""

    def __init__(self, source: RevisionSource):
        self.source = source
        self._cache: dict[Path, str | Untracked] = {}

    def fetch_last_committed(self, path: Path) -> str | Untracked:
        key = path.resolve()
        if key not in self._cache:
            self._cache[key] = self.source.fetch_last_committed(path)
        return self._cache[key]


class StaticRevisionSource:
    """Serves committed text from a mapping; paths not in it are untracked."""

    def __init__(self, committed: dict[Path, str] | None = None):
        self.committed = {p.resolve(): text for p, text in (committed or {}).items()}

    def fetch_last_committed(self, path: Path) -> str | Untracked:
        return self.committed.get(path.resolve(), UNTRACKED)
