"""Validation and guarded filesystem helpers for asset processing."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Optional

from .paths import AssetPaths

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

REQUIRED_DATABASE_KEYS = (
    "elements",
    "buildMenuCategories",
    "buildMenuItems",
    "uiSprites",
    "spriteModifiers",
    "buildings",
)


class AssetValidator:
    """Query helpers that report problems through the log and return ``bool``."""

    def __init__(self, paths: AssetPaths, log: Optional[logging.Logger] = None) -> None:
        self.paths = paths
        self._log = log or logger

    def validate_inputs(self) -> bool:
        self._log.info("Validating input files...")
        if not self.paths.export_zip.is_file():
            self._log.error(f"Missing required file: export zip at {self.paths.export_zip}")
            return False
        self._log.info(f"✓ Found export zip at {self.paths.export_zip}")
        return True

    def validate_project_root(self) -> bool:
        if not self.paths.project_root.is_dir():
            self._log.error(f"Cannot access project directory: {self.paths.project_root}")
            return False
        self._log.info("✓ Project directory accessible")
        return True

    def validate_database(self, database_path: Path) -> bool:
        """Check that ``database_path`` holds a database with all required sections."""
        self._log.info(f"Validating database file: {database_path}")
        if not database_path.is_file():
            self._log.error(f"Database file not found: {database_path}")
            return False
        try:
            database = json.loads(database_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self._log.error(f"Database validation failed: {e}")
            return False

        if not isinstance(database, dict):
            self._log.error("Database root must be a JSON object")
            return False
        for key in REQUIRED_DATABASE_KEYS:
            if not isinstance(database.get(key), list):
                self._log.error(f"Database missing or invalid property: {key}")
                return False

        self._log.info(
            f"✓ Database structure valid ({len(database['elements'])} elements, "
            f"{len(database['buildings'])} buildings)"
        )
        return True

    def validate_image_file(self, image_path: Path) -> bool:
        if not image_path.is_file():
            self._log.warning(f"Image file not found: {image_path}")
            return False
        try:
            with image_path.open("rb") as f:
                header = f.read(len(PNG_SIGNATURE))
        except OSError as e:
            self._log.error(f"Image validation failed for {image_path}: {e}")
            return False
        if not header:
            self._log.warning(f"Image file is empty: {image_path}")
            return False
        if header != PNG_SIGNATURE:
            self._log.warning(f"File is not a valid PNG: {image_path}")
            return False
        return True

    def safe_copy_file(self, source: Path, destination: Path) -> bool:
        if not source.is_file():
            self._log.error(f"Source file does not exist: {source}")
            return False
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as e:
            self._log.error(f"Failed to copy file {source} → {destination}: {e}")
            return False
        self._log.debug(f"Copied {source} → {destination}")
        return True

    def safe_remove_directory(self, directory: Path) -> bool:
        try:
            if directory.exists():
                shutil.rmtree(directory)
                self._log.debug(f"Removed directory: {directory}")
        except OSError as e:
            self._log.error(f"Failed to remove directory {directory}: {e}")
            return False
        return True

    def cleanup_on_error(self) -> None:
        """Remove the partially extracted export bundle."""
        self._log.warning("Performing cleanup due to error...")
        if self.paths.export_dir.exists() and self.safe_remove_directory(
            self.paths.export_dir
        ):
            self._log.info(f"Cleaned up: {self.paths.export_dir}")

    def preflight_check(self) -> bool:
        self._log.info("Running pre-flight checks...")
        for check in (self.validate_inputs, self.validate_project_root):
            if not check():
                self._log.error("Pre-flight check failed")
                return False
        self._log.info("✓ All pre-flight checks passed")
        return True
