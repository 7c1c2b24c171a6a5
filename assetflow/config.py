from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .utils.retry import RetryPolicy


class OrchestratorConfig(BaseModel):
    """Scheduling settings for a pipeline run."""

    max_concurrency: int = Field(default=1, ge=1)
    retry: RetryPolicy = RetryPolicy()


class AssetPathsConfig(BaseModel):
    """Location of the export bundle and the asset output trees.

    All names except ``project_root`` are relative to ``project_root``.
    """

    project_root: Path = Path(".")
    export_zip: str = "export.zip"
    export_dir: str = "export"
    assets_dir: str = "assets"
    frontend_assets_dir: str = "frontend/src/assets"


class AssetflowConfig(BaseModel):
    """Top-level configuration model."""

    log_level: str = "INFO"
    orchestrator: OrchestratorConfig = OrchestratorConfig()
    assets: AssetPathsConfig = AssetPathsConfig()


def load_config(path: Optional[str] = None) -> AssetflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to ASSETFLOW_CONFIG env
            variable or 'assetflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("ASSETFLOW_CONFIG", "assetflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = AssetflowConfig(**data)
    else:
        config = AssetflowConfig()

    env_root = os.getenv("ASSETFLOW_PROJECT_ROOT")
    if env_root:
        config.assets.project_root = Path(env_root)
    env_level = os.getenv("ASSETFLOW_LOG_LEVEL")
    if env_level:
        config.log_level = env_level
    return config
