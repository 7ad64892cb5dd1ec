import os
from pathlib import Path
from typing import List, Generator
from tdone.domain.models import MediaBatch


class FileScanner:
    """Recursively scans for video files in a directory."""

    def __init__(self, extensions: List[str]):
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]

    def scan(self, root_dir: Path) -> Generator[Path, None, None]:
        """Scans the directory and yields video file paths."""
        for root, dirs, files in os.walk(str(root_dir)):
            root_path = Path(root)

            # Ensure deterministic traversal: sort directories and files
            dirs.sort()
            files.sort()

            for file_name in files:
                file_path = root_path / file_name
                if file_path.suffix.lower() in self.extensions:
                    yield file_path

    def build_batch(self, root_dir: Path) -> MediaBatch:
        return MediaBatch(source_dir=Path(root_dir), files=tuple(self.scan(root_dir)))
