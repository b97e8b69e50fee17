"""Persistence: catalog cache, workout registry and output artifacts."""

from .cache import CatalogCache, cache_key
from .export import export_summaries_csv, workouts_to_json, write_workouts_json
from .registry import load_registry, save_registry

__all__ = [
    "CatalogCache",
    "cache_key",
    "write_workouts_json",
    "workouts_to_json",
    "export_summaries_csv",
    "load_registry",
    "save_registry",
]
