import logging
import re
from pathlib import Path
from typing import Iterable, Optional
from tdone.domain.models import ClassificationResult, MediaCategory

# S01E01, s1e1, 1x01, "season", "episode"
TV_PATTERN = re.compile(r"s\d+e\d+|\d+x\d+|season|episode", re.IGNORECASE)
# 1900-2099, exactly four digits, not a resolution such as 2160p or 1080i
YEAR_PATTERN = re.compile(r"(?<!\d)(?:19|20)\d{2}(?!\d)(?![pi])", re.IGNORECASE)


def is_tv_name(filename: str) -> bool:
    return TV_PATTERN.search(filename) is not None


def is_movie_name(filename: str) -> bool:
    return YEAR_PATTERN.search(filename) is not None


def classify(paths: Iterable[Path], logger: Optional[logging.Logger] = None) -> ClassificationResult:
    """Labels a set of media files as TV, movie or unknown from their names.

    Only base filenames are looked at, so a parent folder called
    "Movies 2024" does not tip the result. Ties go to TV.
    """
    logger = logger or logging.getLogger(__name__)
    filenames = [Path(p).name for p in paths]
    if not filenames:
        logger.info("No media files found for type detection")
        return ClassificationResult(category=MediaCategory.UNKNOWN)

    logger.info(f"Analyzing media type using filename patterns: {', '.join(filenames)}")
    tv_score = sum(1 for name in filenames if is_tv_name(name))
    movie_score = sum(1 for name in filenames if is_movie_name(name))
    logger.info(f"Pattern counts - TV: {tv_score}, Movie: {movie_score}")

    if tv_score > 0 and tv_score >= movie_score:
        category = MediaCategory.TV
    elif movie_score > 0:
        category = MediaCategory.MOVIE
    else:
        category = MediaCategory.UNKNOWN
        logger.info("Unable to determine type from patterns")

    return ClassificationResult(
        category=category,
        tv_score=tv_score,
        movie_score=movie_score,
        file_count=len(filenames),
    )
