"""Input staging into local artifacts."""

from .stager import ArtifactStager, sanitize_name

__all__ = ["ArtifactStager", "sanitize_name"]
