"""The three analyzers: preflight checks, impact analysis and dry-run simulation."""

from changeguard.analyzers.impact import ImpactAnalyzer, ImpactResult
from changeguard.analyzers.preflight import PreflightChecker, PreflightResult
from changeguard.analyzers.simulation import SimulationPlan, SimulationReport, Simulator

__all__ = [
    "ImpactAnalyzer",
    "ImpactResult",
    "PreflightChecker",
    "PreflightResult",
    "SimulationPlan",
    "SimulationReport",
    "Simulator",
]
