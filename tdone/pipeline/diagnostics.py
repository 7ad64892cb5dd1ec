"""Failure report written when every identification strategy has failed.

The engine output of all attempts is scanned for well-known symptoms and each
match is logged with concrete suggestions, next to a listing of the source
directory and an excerpt of the output.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence
from tdone.domain.models import FallbackOutcome


class FailureCause(NamedTuple):
    key: str
    title: str
    pattern: re.Pattern
    suggestions: Sequence[str]


FAILURE_CAUSES = (
    FailureCause(
        "connection",
        "CONNECTION: Network/database connection issue detected",
        re.compile(r"connection|network|timeout|unreachable", re.IGNORECASE),
        (
            "Check internet connectivity",
            "Verify database service is online (TheTVDB, TheMovieDB, etc.)",
            "Try again in a few minutes",
        ),
    ),
    FailureCause(
        "permission",
        "PERMISSION: File/directory permission issue detected",
        re.compile(r"permission|denied|cannot write|read-only", re.IGNORECASE),
        (
            "Check write permissions on: {media_root}",
            "Check read permissions on: {source_dir}",
            "Verify user has access to both directories",
        ),
    ),
    FailureCause(
        "license",
        "LICENSE: FileBot license issue detected",
        re.compile(r"license|unregistered|trial|activation", re.IGNORECASE),
        (
            "Verify FileBot is properly licensed",
            "Check license file location: ~/.filebot/license.txt",
            "Run: filebot --license to check status",
        ),
    ),
    FailureCause(
        "identification",
        "IDENTIFICATION: Media identification failed",
        re.compile(r"unable to identify|no match|failed to fetch|no results", re.IGNORECASE),
        (
            "Check filename follows naming conventions",
            "For TV: Include S##E## or ##x## pattern",
            "For Movies: Include year (YYYY)",
            "Consider manual lookup on TVDB/TMDB",
        ),
    ),
    FailureCause(
        "disk_space",
        "DISK SPACE: Insufficient disk space",
        re.compile(r"no space|disk full|quota exceeded", re.IGNORECASE),
        (
            "Check available space: df -h {media_root}",
            "Free up space in destination",
        ),
    ),
)

UNKNOWN_SUGGESTIONS = (
    "Review full FileBot output in log file",
    "Check FileBot documentation",
    "Verify FileBot installation: filebot -version",
)

EXCERPT_THRESHOLD = 20
EXCERPT_LINES = 10


def analyze_output(output: str) -> List[FailureCause]:
    """Causes whose symptoms appear in the engine output, in report order."""
    return [cause for cause in FAILURE_CAUSES if cause.pattern.search(output)]


def output_excerpt(output: str) -> List[str]:
    lines = output.splitlines()
    if len(lines) <= EXCERPT_THRESHOLD:
        return lines
    return (
        ["(First 10 lines)"]
        + lines[:EXCERPT_LINES]
        + ["...", "(Last 10 lines)"]
        + lines[-EXCERPT_LINES:]
    )


def list_files(directory: Path) -> Optional[List[str]]:
    if not directory.is_dir():
        return None
    names = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        names.extend(sorted(files))
    return names


def log_failure_report(
    logger: logging.Logger,
    outcome: FallbackOutcome,
    source_dir: Path,
    media_root: Path,
) -> List[FailureCause]:
    """Logs the aggregated report for an exhausted fallback chain and returns the matched causes."""
    attempts = outcome.attempts
    output = outcome.combined_output
    last_exit = attempts[-1].result.exit_code if attempts else None

    logger.error("=== FILEBOT ERROR REPORT ===")
    logger.error(f"Exit Code: {last_exit}")
    logger.error(f"Database: fallback-chain ({len(attempts)} attempts)")
    for index, attempt in enumerate(attempts, start=1):
        logger.error(
            f"  {index}. {attempt.strategy.label}: exit={attempt.result.exit_code}, "
            f"files={attempt.result.files_affected}"
        )
    logger.error(f"Source Directory: {source_dir}")

    logger.error("Files in source directory:")
    files = list_files(source_dir)
    if files is None:
        logger.error("  (directory does not exist)")
    elif not files:
        logger.error("  (no files found or unable to list)")
    else:
        for name in files:
            logger.error(f"  - {name}")

    logger.error("Error Analysis:")
    causes = analyze_output(output)
    for cause in causes:
        logger.error(f"  ⚠ {cause.title}")
        logger.error("    Suggestions:")
        for suggestion in cause.suggestions:
            logger.error(f"    - {suggestion.format(media_root=media_root, source_dir=source_dir)}")
    if not causes:
        logger.error("  ⚠ UNKNOWN: Error type not recognized")
        logger.error("    Suggestions:")
        for suggestion in UNKNOWN_SUGGESTIONS:
            logger.error(f"    - {suggestion}")

    logger.error("FileBot Output (excerpt):")
    for line in output_excerpt(output):
        logger.error(f"  {line}")
    logger.error("=== END ERROR REPORT ===")
    return causes
