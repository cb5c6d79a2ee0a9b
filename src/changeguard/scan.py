"""Source file discovery shared by the preflight and impact analyzers."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path

from changeguard.config import ScanConfig

logger = logging.getLogger("changeguard.scan")


def collect_files(root: str | Path, config: ScanConfig | None = None) -> list[Path]:
    """Collect all scannable source files, respecting exclusion patterns."""
    root = Path(root).resolve()
    if config is None:
        config = ScanConfig()

    files = []
    max_size = config.max_file_size_kb * 1024
    extensions = {ext.lower() for ext in config.extensions}

    # Read .gitignore if available
    all_exclude = config.exclude_patterns + _read_gitignore(root)

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)

        # Filter out excluded directories
        dirnames[:] = [
            d
            for d in dirnames
            if not _should_exclude(os.path.join(rel_dir, d) if rel_dir != "." else d, all_exclude)
        ]

        for filename in filenames:
            rel_path = (
                os.path.join(rel_dir, filename) if rel_dir != "." else filename
            )
            if _should_exclude(rel_path, all_exclude):
                continue
            if Path(filename).suffix.lower() not in extensions:
                continue

            full_path = Path(dirpath) / filename
            try:
                if full_path.stat().st_size > max_size:
                    logger.debug(f"Skipping large file {rel_path}")
                    continue
            except OSError:
                continue

            files.append(full_path)

    return sorted(files)


def read_source(path: Path) -> str | None:
    """Read a source file as text, or None if it cannot be read."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return None


def is_test_file(rel_path: str) -> bool:
    return "test" in rel_path.lower()


def _should_exclude(path: str, patterns: list[str]) -> bool:
    """Check if a path matches any exclusion pattern."""
    path_parts = Path(path).parts
    for pattern in patterns:
        # Check against full path
        if fnmatch.fnmatch(path, pattern):
            return True
        # Check against any path component
        for part in path_parts:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def _read_gitignore(root: Path) -> list[str]:
    """Read .gitignore patterns from the project root."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []

    patterns = []
    try:
        for line in gitignore.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                if line.endswith("/"):
                    line = line[:-1]
                patterns.append(line)
    except OSError:
        pass
    return patterns
