"""Filesystem layout of the export bundle and the generated assets."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..config import AssetPathsConfig


class AssetPaths:
    """Resolve every input and output location from one project root."""

    def __init__(self, config: Optional[AssetPathsConfig] = None) -> None:
        self.config = config or AssetPathsConfig()
        self.project_root = Path(self.config.project_root).expanduser().resolve()

    def absolute(self, relative: str) -> Path:
        return self.project_root / relative

    # Source (extracted export bundle)
    @property
    def export_zip(self) -> Path:
        return self.absolute(self.config.export_zip)

    @property
    def export_dir(self) -> Path:
        return self.absolute(self.config.export_dir)

    @property
    def export_database(self) -> Path:
        return self.export_dir / "database" / "database.json"

    @property
    def export_images(self) -> Path:
        return self.export_dir / "images"

    # Backend asset storage
    @property
    def assets_dir(self) -> Path:
        return self.absolute(self.config.assets_dir)

    @property
    def assets_images(self) -> Path:
        return self.assets_dir / "images"

    @property
    def assets_database(self) -> Path:
        return self.assets_dir / "database"

    @property
    def assets_manual(self) -> Path:
        return self.assets_dir / "manual"

    @property
    def ui_images_dir(self) -> Path:
        return self.assets_images / "ui"

    @property
    def database_json(self) -> Path:
        return self.assets_database / "database.json"

    @property
    def database_groups(self) -> Path:
        return self.assets_database / "database-groups.json"

    @property
    def database_white(self) -> Path:
        return self.assets_database / "database-white.json"

    @property
    def database_repack(self) -> Path:
        return self.assets_database / "database-repack.json"

    @property
    def database_zip(self) -> Path:
        return self.assets_database / "database.zip"

    @property
    def build_menu_rename(self) -> Path:
        return self.assets_dir / "manual-buildMenuRename.json"

    # Frontend deployment targets
    @property
    def frontend_assets(self) -> Path:
        return self.absolute(self.config.frontend_assets_dir)

    @property
    def frontend_images(self) -> Path:
        return self.frontend_assets / "images"

    @property
    def frontend_database(self) -> Path:
        return self.frontend_assets / "database"

    @property
    def frontend_database_json(self) -> Path:
        return self.frontend_database / "database.json"

    @property
    def frontend_database_zip(self) -> Path:
        return self.frontend_database / "database.zip"

    @property
    def all_database_files(self) -> List[Path]:
        return [
            self.database_json,
            self.database_groups,
            self.database_white,
            self.database_repack,
        ]

    def ensure_directories(self) -> None:
        for directory in (
            self.assets_dir,
            self.assets_images,
            self.assets_database,
            self.ui_images_dir,
            self.frontend_assets,
            self.frontend_images,
            self.frontend_database,
        ):
            directory.mkdir(parents=True, exist_ok=True)
