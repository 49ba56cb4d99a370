"""
FileSelector - Find the file the agent just modified.

Scans the project tree (bounded depth, excluded globs pruned) for recognized
source files modified inside the lookback window and picks the newest one.
Ties are broken by relative path so the choice is stable across runs.
"""

from __future__ import annotations

import fnmatch
import os
import time
from pathlib import Path
from typing import Callable, Iterable

import structlog

from quality_gate.models import FileContext

logger = structlog.get_logger()

# Tolerate small clock differences (network filesystems, containers)
CLOCK_SKEW_SECONDS = 2.0


class FileSelector:
    """
    Picks the single most recently modified relevant file.
    """

    def __init__(
        self,
        root: Path,
        language_for: Callable[[Path], str | None],
        lookback_seconds: float = 60.0,
        max_depth: int = 8,
        exclude: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = root
        self.language_for = language_for
        self.lookback_seconds = lookback_seconds
        self.max_depth = max_depth
        self.exclude = tuple(exclude)
        self.clock = clock

    def select(self, now: float | None = None) -> FileContext | None:
        """Newest recognized file inside the lookback window, or None."""
        if now is None:
            now = self.clock()
        window_start = now - self.lookback_seconds
        candidates: list[tuple[float, str, Path, str]] = []
        scanned = 0

        for path, relpath in self._walk():
            language = self.language_for(path)
            if language is None:
                continue
            scanned += 1

            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            if mtime < window_start or mtime > now + CLOCK_SKEW_SECONDS:
                continue
            candidates.append((mtime, relpath, path, language))

        if not candidates:
            logger.debug("No recently modified file", scanned=scanned, lookback=self.lookback_seconds)
            return None

        # Newest wins; equal mtimes resolve to the lexically smallest path
        mtime, relpath, path, language = min(candidates, key=lambda c: (-c[0], c[1]))
        logger.debug(
            "Selected file",
            file=relpath,
            language=language,
            candidates=len(candidates),
        )
        return FileContext(path=path, root=self.root, language=language, mtime=mtime)

    def context_for(self, path: Path) -> FileContext | None:
        """
        Build a FileContext for an explicitly named file.

        The extension and exclusion filters still apply; the lookback window does not.
        """
        path = path if path.is_absolute() else self.root / path
        path = path.resolve()
        if not path.is_file():
            logger.debug("Named file does not exist", file=str(path))
            return None

        try:
            relpath = path.relative_to(self.root).as_posix()
        except ValueError:
            relpath = path.name
        if self.is_excluded(relpath):
            logger.debug("Named file is excluded", file=relpath)
            return None

        language = self.language_for(path)
        if language is None:
            return None
        return FileContext(path=path, root=self.root, language=language, mtime=path.stat().st_mtime)

    def is_excluded(self, relpath: str) -> bool:
        """True if any path component or the whole relative path matches an exclude glob."""
        parts = relpath.split("/")
        for pattern in self.exclude:
            if fnmatch.fnmatch(relpath, pattern):
                return True
            if any(fnmatch.fnmatch(part, pattern) for part in parts):
                return True
        return False

    def _walk(self) -> Iterable[tuple[Path, str]]:
        """Yield (path, relative posix path) for candidate files, depth-bounded."""

        def _on_error(error: OSError) -> None:
            logger.debug("Skipping unreadable directory", path=error.filename, error=str(error))

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_on_error):
            current = Path(dirpath)
            rel_dir = current.relative_to(self.root).as_posix()
            depth = 0 if rel_dir == "." else rel_dir.count("/") + 1

            if depth >= self.max_depth:
                dirnames[:] = []
            else:
                # Prune in place; sorted for a deterministic walk
                dirnames[:] = sorted(
                    d for d in dirnames if not self.is_excluded(_join(rel_dir, d))
                )

            for filename in filenames:
                relpath = _join(rel_dir, filename)
                if self.is_excluded(relpath):
                    continue
                yield current / filename, relpath


def _join(rel_dir: str, name: str) -> str:
    return name if rel_dir == "." else f"{rel_dir}/{name}"

