"""Verdict aggregation."""

from .aggregator import VerdictAggregator, band_for_score

__all__ = ["VerdictAggregator", "band_for_score"]
