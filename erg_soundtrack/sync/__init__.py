"""Concept2 logbook discovery of new workout exports."""

from .logbook import LogbookClient, discover_workouts, generate_workout_id, parse_comment

__all__ = ["LogbookClient", "discover_workouts", "generate_workout_id", "parse_comment"]
