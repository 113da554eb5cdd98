"""Configuration models for the quality engine.

Values come from (lowest to highest precedence) field defaults, environment
variables prefixed ``QUALITY_`` (nested with ``__``), an optional YAML file and
explicit keyword arguments.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Runtime knobs for one engine instance."""

    timeout_ms: int = Field(default=30000, gt=0)
    skip_plugins: List[str] = Field(default_factory=list)
    concurrent: bool = False
    cache_enabled: bool = True
    cache_ttl_seconds: float = Field(default=300, gt=0)
    cache_max_entries: int = Field(default=100, ge=1)
    max_risks: int = Field(default=10, ge=1)
    batch_size: int = Field(default=100, ge=1)
    batch_fan_out: int = Field(default=4, ge=1)
    report_path: str = ".quality/reports/index.html"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="QUALITY_", env_nested_delimiter="__")

    environment: str = "dev"
    log_level: str = "INFO"
    log_format: str = "console"  # console | json
    engine: EngineConfig = EngineConfig()

    def __init__(self, _env_file: Optional[str] = None, **values: Any) -> None:
        file_values: Dict[str, Any] = {}
        if _env_file:
            cfg_path = Path(_env_file)
            if cfg_path.exists():
                loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
                if isinstance(loaded, dict):
                    file_values = loaded
        merged = {**file_values, **values}
        super().__init__(**merged)


__all__ = ["EngineConfig", "Settings"]
