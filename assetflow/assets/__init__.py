"""Asset-processing pipeline built on the assetflow orchestrator."""

from __future__ import annotations

from .paths import AssetPaths
from .pipeline import IMAGE_STAGES, AssetPipeline
from .steps import AssetSteps, rename_buildings
from .validator import AssetValidator

__all__ = [
    "AssetPaths",
    "AssetPipeline",
    "AssetSteps",
    "AssetValidator",
    "IMAGE_STAGES",
    "rename_buildings",
]
