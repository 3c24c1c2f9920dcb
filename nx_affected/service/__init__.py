"""HTTP service mode for nx-affected."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
