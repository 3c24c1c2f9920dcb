"""Resolve the Nx applications affected by changes since a reference commit."""

from .errors import NxAffectedError
from .orchestrator import AffectedResult, Orchestrator, run_pipeline

__all__ = ["AffectedResult", "NxAffectedError", "Orchestrator", "run_pipeline"]
