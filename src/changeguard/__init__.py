"""ChangeGuard - heuristic preflight, impact and dry-run checks for code changes."""

__version__ = "0.1.0"
