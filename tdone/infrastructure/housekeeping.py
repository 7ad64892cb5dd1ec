import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple


class HousekeepingService:
    """Service for removing download junk and directories left empty after a move."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def cleanup_junk_files(self, directory: Path, extensions: Iterable[str]) -> Tuple[int, List[Path]]:
        """Recursively removes files with the given extensions.

        Returns (removed_count, paths_that_could_not_be_removed).
        """
        suffixes = {(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions}
        removed = 0
        failed: List[Path] = []
        self.logger.info(f"Cleaning up extraneous files in {directory}")
        for root, dirs, files in os.walk(directory):
            for file in files:
                path = Path(root) / file
                if path.suffix.lower() not in suffixes:
                    continue
                try:
                    path.unlink()
                    removed += 1
                    self.logger.debug(f"Removed junk file: {path}")
                except OSError as exc:
                    failed.append(path)
                    self.logger.warning(f"Could not remove {path}: {exc}")
        return removed, failed

    def prune_empty_dirs(self, directory: Path) -> int:
        """Removes empty directories bottom-up, including directory itself.

        Directories that only contained other empty directories go too.
        """
        self.logger.info(f"Cleaning up empty directories in {directory}")
        if not directory.is_dir():
            return 0
        removed = 0
        for root, dirs, files in os.walk(directory, topdown=False):
            path = Path(root)
            try:
                next(path.iterdir())
                continue
            except StopIteration:
                pass
            except OSError as exc:
                self.logger.warning(f"Could not inspect {path}: {exc}")
                continue
            try:
                path.rmdir()
                removed += 1
            except OSError as exc:
                self.logger.warning(f"Could not remove empty directory {path}: {exc}")
        return removed
