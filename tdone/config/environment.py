"""Invocation environment: who called us and with which directory.

Transmission runs the script-torrent-done hook with TR_TORRENT_DIR and
TR_TORRENT_NAME set. When either is missing the run is treated as manual and
the source directory must be given on the command line instead.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional
from pydantic import BaseModel

TORRENT_DIR_VAR = "TR_TORRENT_DIR"
TORRENT_NAME_VAR = "TR_TORRENT_NAME"


class InvocationMode(str, Enum):
    AUTOMATED = "automated"
    MANUAL = "manual"


class InvocationError(Exception):
    """Raised when the run cannot start: no source directory or unusable media root."""


class Invocation(BaseModel):
    mode: InvocationMode
    source_dir: Path
    name: str


def detect_invocation_mode(env: Optional[Mapping[str, str]] = None) -> InvocationMode:
    env = os.environ if env is None else env
    if env.get(TORRENT_DIR_VAR) and env.get(TORRENT_NAME_VAR):
        return InvocationMode.AUTOMATED
    return InvocationMode.MANUAL


def resolve_invocation(
    source_dir: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Invocation:
    """Builds the Invocation from the download client's variables or a CLI path.

    Automated mode wins when both variables are set; an explicit path is only
    consulted in manual mode.
    """
    env = os.environ if env is None else env
    mode = detect_invocation_mode(env)
    if mode == InvocationMode.AUTOMATED:
        return Invocation(
            mode=mode,
            source_dir=Path(env[TORRENT_DIR_VAR]),
            name=env[TORRENT_NAME_VAR],
        )

    if source_dir is None:
        raise InvocationError(
            "Required Transmission variables not set\n"
            f"{TORRENT_DIR_VAR}: \t[{env.get(TORRENT_DIR_VAR, '')}]\n"
            f"{TORRENT_NAME_VAR}:\t[{env.get(TORRENT_NAME_VAR, '')}]\n"
            "Pass a source directory to run manually."
        )
    source_dir = Path(source_dir).expanduser()
    if not source_dir.is_dir():
        raise InvocationError(f"Not a valid directory: {source_dir}")
    return Invocation(mode=mode, source_dir=source_dir, name=source_dir.name)


def validate_media_root(media_root: Path) -> None:
    if not media_root.is_dir():
        raise InvocationError(f"Plex media path {media_root} does not exist")
    if not os.access(media_root, os.W_OK):
        raise InvocationError(f"No write permission to {media_root}")
