"""Step actions of the asset-processing pipeline.

Each action is a zero-argument coroutine returning ``True`` on success.
Validation problems return ``False``; unexpected I/O errors propagate so the
retry controller records them as the step's failure reason.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import zipfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from ..execute import invoke_action
from .paths import AssetPaths
from .validator import AssetValidator

logger = logging.getLogger(__name__)

# An image-stage generator receives the processed database path.
Generator = Callable[[Path], Any]
StepAction = Callable[[], Awaitable[bool]]


class AssetSteps:
    """Binds the pipeline's file operations to one project layout."""

    def __init__(
        self,
        paths: AssetPaths,
        validator: Optional[AssetValidator] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.paths = paths
        self._log = log or logger
        self.validator = validator or AssetValidator(paths, self._log)

    # ------------------------------------------------------------------
    async def extract_export(self) -> bool:
        self._log.info("Extracting export bundle...")
        await asyncio.to_thread(self._extract_export)
        self._log.info("✓ Export extracted successfully")
        return True

    def _extract_export(self) -> None:
        if not self.validator.safe_remove_directory(self.paths.export_dir):
            raise OSError(f"Could not clear {self.paths.export_dir}")
        with zipfile.ZipFile(self.paths.export_zip) as archive:
            archive.extractall(self.paths.project_root)

    # ------------------------------------------------------------------
    async def replace_images(self) -> bool:
        self._log.info("Replacing images...")
        await asyncio.to_thread(self._replace_images)
        self._log.info("✓ Images replaced successfully")
        return True

    def _replace_images(self) -> None:
        if not self.paths.export_images.is_dir():
            raise FileNotFoundError(
                f"Exported images not found: {self.paths.export_images}"
            )
        if not self.validator.safe_remove_directory(self.paths.assets_images):
            raise OSError(f"Could not clear {self.paths.assets_images}")
        self.paths.assets_images.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(self.paths.export_images), str(self.paths.assets_images))
        if self.paths.assets_manual.is_dir():
            shutil.copytree(
                self.paths.assets_manual, self.paths.assets_images, dirs_exist_ok=True
            )

    # ------------------------------------------------------------------
    async def generate_database(self) -> bool:
        self._log.info("Generating database...")
        valid = await asyncio.to_thread(
            self.validator.validate_database, self.paths.export_database
        )
        if not valid:
            return False
        renamed = await asyncio.to_thread(self._generate_database)
        if renamed:
            self._log.info(f"Renamed {renamed} building(s)")
        self._log.info("✓ Database generated successfully")
        return True

    def _generate_database(self) -> int:
        database = json.loads(self.paths.export_database.read_text(encoding="utf-8"))
        renamed = 0
        if self.paths.build_menu_rename.is_file():
            renames = json.loads(
                self.paths.build_menu_rename.read_text(encoding="utf-8")
            )
            renamed = rename_buildings(database, renames)
        self.paths.database_json.parent.mkdir(parents=True, exist_ok=True)
        self.paths.database_json.write_text(json.dumps(database), encoding="utf-8")
        return renamed

    # ------------------------------------------------------------------
    async def replace_database(self) -> bool:
        self._log.info("Replacing database files...")
        await asyncio.to_thread(self._package_database)

        source_json = (
            self.paths.database_repack
            if self.paths.database_repack.is_file()
            else self.paths.database_json
        )
        copies = (
            (self.paths.database_zip, self.paths.frontend_database_zip),
            (source_json, self.paths.frontend_database_json),
        )
        for source, destination in copies:
            if not self.validator.safe_copy_file(source, destination):
                return False
        self._log.info("✓ Database files replaced successfully")
        return True

    def _package_database(self) -> None:
        self.paths.ensure_directories()
        with zipfile.ZipFile(
            self.paths.database_zip, "w", compression=zipfile.ZIP_DEFLATED
        ) as archive:
            archive.write(self.paths.database_json, arcname=self.paths.database_json.name)

    # ------------------------------------------------------------------
    def generator_step(
        self,
        label: str,
        generator: Generator,
        release_memory: Optional[Callable[[], Any]] = None,
    ) -> StepAction:
        """Wrap an image-stage generator as a step action.

        ``release_memory`` runs after a failed attempt; image stages hold
        large decoded textures.
        """

        async def action() -> bool:
            self._log.info(f"Generating {label}...")
            try:
                result = await invoke_action(lambda: generator(self.paths.database_json))
            except Exception:
                self._release(label, release_memory)
                raise
            if result is False:
                self._release(label, release_memory)
                return False
            self._log.info(f"✓ {label.capitalize()} generated successfully")
            return True

        return action

    def _release(self, label: str, release_memory: Optional[Callable[[], Any]]) -> None:
        if release_memory is not None:
            release_memory()
            self._log.info(f"Released memory after {label} generation failure")


def rename_buildings(database: Dict[str, Any], renames: Dict[str, str]) -> int:
    """Apply display-name overrides keyed by building ``prefabId``.

    Returns the number of buildings renamed.
    """
    count = 0
    for building in database.get("buildings", []):
        new_name = renames.get(building.get("prefabId"))
        if new_name and building.get("name") != new_name:
            building["name"] = new_name
            count += 1
    return count
