"""Configuration models using Pydantic."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeoConfig(BaseModel):
    """Geolocation provider and batching configuration."""

    single_url: str = "http://ip-api.com/json"
    batch_url: str = "http://ip-api.com/batch"
    single_timeout: float = Field(default=3.0, gt=0)
    batch_timeout: float = Field(default=10.0, gt=0)
    batch_size: int = Field(default=100, ge=1, le=100)  # ip-api accepts 100 per batch
    max_in_flight_chunks: int = Field(default=1, ge=1)  # 1 = strictly sequential chunks


class ConcurrencyConfig(BaseModel):
    """Concurrency configuration."""

    max_concurrency: int = Field(default=10, ge=1, le=1000)


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    structured: bool = False


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NODEGEO_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    geo: GeoConfig = Field(default_factory=GeoConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from YAML file."""
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open() as f:
            data = yaml.safe_load(f)

        return cls(**data) if data else cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create configuration from dictionary."""
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()
