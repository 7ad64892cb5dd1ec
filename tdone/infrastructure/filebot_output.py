"""Interpretation of FileBot's console output.

FileBot prints one line per file it handles, prefixed with the action in
brackets::

    [TEST] from [/dl/Show.S01E01.mkv] to [/media/TV Shows/Show/Season 01/Show - S01E01.mkv]
    [MOVE] from [/dl/Show.S01E01.mkv] to [/media/TV Shows/Show/Season 01/Show - S01E01.mkv]

Counting those lines is the only reliable success signal: the exit code is 1
whenever FileBot is unsure between TV and movie mode, even after moving files.
If FileBot ever changes these markers, every run will read as a failure; the
tests pinned to the literal lines above are there to catch that.
"""

from typing import List
from tdone.domain.models import ActionMode, MediaCategory

SIMULATED_MARKER = "[TEST]"
COMMITTED_MARKER = "[MOVE]"

TV_LIBRARY_HINT = "TV Shows"
MOVIE_LIBRARY_HINT = "Movies"


def marker_for(action: ActionMode) -> str:
    return SIMULATED_MARKER if action == ActionMode.SIMULATE else COMMITTED_MARKER


def affected_lines(output: str, action: ActionMode) -> List[str]:
    marker = marker_for(action)
    return [line for line in output.splitlines() if marker in line]


def count_affected(output: str, action: ActionMode) -> int:
    """Number of output lines that report a file as simulated or moved."""
    return len(affected_lines(output, action))


def destinations(output: str, action: ActionMode = ActionMode.COMMIT) -> List[str]:
    """Target paths of the reported files (the part after "to")."""
    return [line.split(" to [", 1)[1].rstrip("]") for line in affected_lines(output, action) if " to [" in line]


def category_hint(output: str, action: ActionMode = ActionMode.COMMIT) -> MediaCategory:
    """Guesses which library the files landed in from the destination paths.

    Source paths are only consulted when no destination could be parsed.
    """
    lowered = ("\n".join(destinations(output, action)) or output).lower()
    if TV_LIBRARY_HINT.lower() in lowered:
        return MediaCategory.TV
    if MOVIE_LIBRARY_HINT.lower() in lowered:
        return MediaCategory.MOVIE
    return MediaCategory.UNKNOWN
