import logging
import sys
from pathlib import Path

LOGGER_NAME = "tdone"


def rotate_log(log_file: Path, max_size: int) -> bool:
    """Moves log_file to <name>.old once it grows past max_size bytes.

    Returns True when a rotation happened. max_size of 0 disables rotation.
    """
    if max_size <= 0 or not log_file.is_file():
        return False
    if log_file.stat().st_size <= max_size:
        return False
    log_file.replace(log_file.with_name(f"{log_file.name}.old"))
    return True


def setup_logging(log_file: Path, debug: bool = False, max_size: int = 0) -> logging.Logger:
    """
    Setup logging configuration for transmission-done.

    Rotates and then appends to log_file; the same records go to stderr so a
    manual run shows progress while stdout stays free for reports.
    Returns configured logger instance.

    Args:
        log_file: Path to the shared log file (parent is created if missing)
        debug: If True, enable DEBUG level logging
        max_size: Rotate the log to <name>.old when larger than this (bytes)
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    rotated = rotate_log(log_file, max_size)

    # Configure logging level
    level = logging.DEBUG if debug else logging.INFO

    # Configure logging
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file), logging.StreamHandler(sys.stderr)],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(LOGGER_NAME)
    if rotated:
        logger.info(f"Log rotated: previous log moved to {log_file.name}.old")
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
