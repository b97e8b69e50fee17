"""Central config: pipeline constants plus the on-disk layout of a data directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Catalog cache
CACHE_TTL_MS: int = 7 * 24 * 60 * 60 * 1000  # 7 days

# iTunes Search API
ITUNES_BASE_URL: str = "https://itunes.apple.com"
SEARCH_LIMIT: int = 20
SEARCH_AGAIN_LIMIT: int = 25
HTTP_TIMEOUT_S: float = 15.0
COVER_ART_SIZE: str = "1000x1000bb"

# Concept2 logbook
LOGBOOK_BASE_URL: str = "https://log.concept2.com/api"
DOWNLOAD_PAUSE_S: float = 0.5
DEFAULT_MONTHS_BACK: int = 6

# Concept2 pace model: watts = 2.80 / (pace / 500) ** 3
PACE_CONSTANT: float = 2.8
PACE_DISTANCE_M: float = 500.0


@dataclass
class PipelineConfig:
    """Paths and credentials for one run, rooted at a data directory.

    Layout:
      <data_dir>/workouts.json            registry
      <data_dir>/raw/                     downloaded exports
      <data_dir>/cache/itunes-cache.json  catalog cache
      <output_path>                       generated workouts artifact
    """

    data_dir: Path = Path("data")
    output_path: Path = Path("data/generated-workouts.json")
    logbook_token: Optional[str] = None
    interactive: bool = True

    @property
    def raw_dir(self) -> Path:
        return self.data_dir / "raw"

    @property
    def registry_path(self) -> Path:
        return self.data_dir / "workouts.json"

    @property
    def cache_path(self) -> Path:
        return self.data_dir / "cache" / "itunes-cache.json"

    def ensure_directories(self) -> None:
        self.raw_dir.mkdir(parents=True, exist_ok=True)
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        data_dir = Path(os.environ.get("ERG_SOUNDTRACK_DATA_DIR", "data"))
        output = os.environ.get("ERG_SOUNDTRACK_OUTPUT")
        return cls(
            data_dir=data_dir,
            output_path=Path(output) if output else data_dir / "generated-workouts.json",
            logbook_token=os.environ.get("CONCEPT2_ACCESS_TOKEN") or None,
        )


# Global configuration instance
config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    """Get the global configuration, reading the environment on first use."""
    global config
    if config is None:
        config = PipelineConfig.from_env()
    return config


def reset_config() -> PipelineConfig:
    """Re-read configuration from the environment."""
    global config
    config = PipelineConfig.from_env()
    return config
