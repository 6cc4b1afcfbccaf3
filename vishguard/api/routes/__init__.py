"""API routes package."""

from . import analyze
