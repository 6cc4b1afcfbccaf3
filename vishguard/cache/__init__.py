"""Result cache keyed by content fingerprint."""

from .verdict_cache import VerdictCache

__all__ = ["VerdictCache"]
