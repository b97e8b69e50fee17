"""Workout analytics: pace model and summary averages."""

from .compute import average_positive, compute_summary, format_split, pace_from_watts, pace_series

__all__ = ["pace_from_watts", "pace_series", "average_positive", "compute_summary", "format_split"]
