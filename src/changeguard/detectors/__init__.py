"""Pluggable detectors that turn text, commands and paths into findings."""

from changeguard.detectors.registry import (
    DetectionContext,
    DetectorDefinition,
    DetectorRegistry,
    detector,
)

__all__ = [
    "DetectionContext",
    "DetectorDefinition",
    "DetectorRegistry",
    "detector",
    "get_default_registry",
]


def get_default_registry() -> DetectorRegistry:
    """Create a DetectorRegistry populated with all built-in detectors."""
    from changeguard.detectors import commands, filesystem, patterns

    registry = DetectorRegistry()
    for func in (
        patterns.security_patterns,
        patterns.module_surface,
        patterns.debug_output,
        commands.dangerous_command,
        commands.command_available,
        filesystem.path_exists,
        filesystem.path_writable,
    ):
        registry.register(func)
    return registry
