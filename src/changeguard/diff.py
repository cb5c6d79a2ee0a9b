"""Git diff parsing - the input layer for diff-based impact analysis.

Parses the output of `git diff` into per-file changes, and fetches the
pre-change text of a file so before/after comparisons can run on it.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger("changeguard.diff")

GIT_TIMEOUT = 30


@dataclass
class DiffHunk:
    """A single hunk from a unified diff."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[str] = field(default_factory=list)


@dataclass
class FileDiff:
    """Changes to a single file."""
    path: str
    status: str  # 'added', 'modified', 'deleted', 'renamed'
    old_path: str | None = None  # For renames
    hunks: list[DiffHunk] = field(default_factory=list)
    added_lines: int = 0
    deleted_lines: int = 0

    @property
    def changed_lines(self) -> list[str]:
        """Added and removed lines (without the +/- marker)."""
        lines = []
        for hunk in self.hunks:
            for line in hunk.lines:
                if line.startswith(("+", "-")):
                    lines.append(line[1:])
        return lines

    @property
    def added_text(self) -> str:
        return "\n".join(
            line[1:]
            for hunk in self.hunks
            for line in hunk.lines
            if line.startswith("+")
        )


HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def _parse_hunk_header(line: str) -> DiffHunk | None:
    match = HUNK_HEADER_RE.match(line)
    if not match:
        return None
    return DiffHunk(
        old_start=int(match.group(1)),
        old_count=int(match.group(2) or "1"),
        new_start=int(match.group(3)),
        new_count=int(match.group(4) or "1"),
    )


def _apply_header(file_diff: FileDiff, line: str) -> None:
    """Update `file_diff` from an extended header line (before the first hunk)."""
    if line.startswith("new file"):
        file_diff.status = "added"
    elif line.startswith("deleted file"):
        file_diff.status = "deleted"
    elif line.startswith("rename from "):
        file_diff.old_path = line[len("rename from "):]
        file_diff.status = "renamed"
    elif line.startswith("+++ b/"):
        file_diff.path = line[len("+++ b/"):]


def parse_diff(diff_text: str) -> list[FileDiff]:
    """Parse unified diff text into structured FileDiff objects.

    File headers are only recognized before a file's first hunk, so hunk
    content that happens to start with "--- a/" or "+++ b/" is kept as a
    removed or added line.
    """
    files: list[FileDiff] = []
    current_file: FileDiff | None = None
    current_hunk: DiffHunk | None = None

    for line in diff_text.splitlines():
        if line.startswith("diff --git"):
            path = line.rpartition(" b/")[2] if " b/" in line else ""
            current_file = FileDiff(path=path, status="modified")
            files.append(current_file)
            current_hunk = None
            continue
        if current_file is None:
            continue

        hunk = _parse_hunk_header(line) if line.startswith("@@") else None
        if hunk is not None:
            current_hunk = hunk
            current_file.hunks.append(hunk)
        elif current_hunk is None:
            _apply_header(current_file, line)
        else:
            current_hunk.lines.append(line)
            if line.startswith("+"):
                current_file.added_lines += 1
            elif line.startswith("-"):
                current_file.deleted_lines += 1

    return files


def get_git_diff(root: Path, base: str = "main") -> str:
    """Get the git diff between the current branch and base."""
    try:
        result = subprocess.run(
            ["git", "diff", f"{base}...HEAD"],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
        if result.returncode == 0:
            return result.stdout
        # Fallback: diff against base directly
        logger.debug(f"git diff {base}...HEAD failed, falling back to git diff {base}")
        result = subprocess.run(
            ["git", "diff", base],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
        return result.stdout
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.warning(f"Could not run git diff: {e}")
        return ""


def get_file_at_ref(root: Path, ref: str, path: str) -> str | None:
    """Return the content of `path` at git revision `ref`, or None."""
    try:
        result = subprocess.run(
            ["git", "show", f"{ref}:{path}"],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.warning(f"Could not run git show: {e}")
        return None
    if result.returncode != 0:
        return None
    return result.stdout
