import shutil
from pathlib import Path
from typing import Tuple

MB = 1024 * 1024


def free_space_bytes(path: Path) -> int:
    return shutil.disk_usage(str(path)).free


def has_free_space(path: Path, required_mb: int) -> Tuple[bool, int]:
    """Returns (enough, free_bytes) for the filesystem holding path."""
    if required_mb <= 0:
        return True, 0
    free = free_space_bytes(path)
    return free >= required_mb * MB, free
