"""Timeline synthesis: workout + album -> enriched workout."""

from .timeline import assign_offsets, build_charts, scale_offset, scale_tracks, synthesize

__all__ = ["synthesize", "assign_offsets", "build_charts", "scale_offset", "scale_tracks"]
