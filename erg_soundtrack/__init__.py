"""Rowing workout enrichment: erg telemetry synchronized with an album's track timeline.

Modules:
- io: TCX / FIT workout exports to WorkoutRecord
- models: Typed domain objects
- catalog: iTunes album resolution with interactive disambiguation
- metrics: Pace model and summary averages
- aggregation: Track timeline synthesis
- storage: Catalog cache, registry and output artifacts
- sync: Concept2 logbook discovery
- run_all: Batch orchestration
- cli: Command line interface
"""

__version__ = "1.0.0"

__all__ = [
    "io",
    "models",
    "catalog",
    "metrics",
    "aggregation",
    "storage",
    "sync",
    "run_all",
    "cli",
]
