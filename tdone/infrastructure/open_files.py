import logging
import subprocess
from pathlib import Path


class OpenFileProbe:
    """Wrapper around lsof to tell whether the downloader still holds a file open."""

    def __init__(self, process_name: str = "transmission", binary: str = "lsof"):
        self.process_name = process_name
        self.binary = binary
        self.logger = logging.getLogger(__name__)
        self._available = True

    def _build_command(self, file_path: Path) -> list:
        # -a: AND the filters, -c: command name prefix, -w: no warnings
        return [self.binary, "-a", "-c", self.process_name, "-w", str(file_path)]

    def is_open(self, file_path: Path) -> bool:
        if not self._available:
            return False
        try:
            result = subprocess.run(self._build_command(file_path), capture_output=True, text=True, errors="replace")
        except OSError as exc:
            self._available = False
            self.logger.warning(f"LSOF_MISSING: cannot run '{self.binary}' ({exc}), open-file check disabled")
            return False
        # lsof exits 1 when nothing matched
        if result.returncode != 0:
            return False
        return str(file_path) in result.stdout
