"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class CascadeConfig(BaseSettings):
    """Cascading selector configuration."""

    model_config = {"env_prefix": "CITIZENLY_CASCADE_"}

    graphs_dir: str | None = None
    address_graph: str = "psgc_address"


class PSGCConfig(BaseSettings):
    """PSGC geographic data source configuration."""

    model_config = {"env_prefix": "CITIZENLY_PSGC_"}

    provider: str = "mock"
    base_url: str = "http://localhost:3000"
    timeout_seconds: int = 10
    max_retries: int = 1
    search_limit: int = 10


class ClassificationConfig(BaseSettings):
    """Sectoral classification configuration."""

    model_config = {"env_prefix": "CITIZENLY_CLASSIFICATION_"}

    rules_path: str | None = None


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "CITIZENLY_"}

    debug: bool = False
    log_level: str = "INFO"

    cascade: CascadeConfig = Field(default_factory=CascadeConfig)
    psgc: PSGCConfig = Field(default_factory=PSGCConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
