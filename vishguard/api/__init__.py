"""HTTP adapter for the pipeline."""

from .main import create_app

__all__ = ["create_app"]
