import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, runtime_checkable
from tdone.config.models import ProcessingConfig
from tdone.domain.models import ActionMode, EngineResult, MediaBatch
from tdone.infrastructure.filebot_output import count_affected

EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@runtime_checkable
class RenameEngine(Protocol):
    """Anything that can organize a batch into the media library."""

    def invoke(
        self,
        batch: MediaBatch,
        metadata_source: Optional[str] = None,
        action: ActionMode = ActionMode.COMMIT,
        non_strict: bool = True,
    ) -> EngineResult:
        ...


def resolve_filebot_binary(configured: Optional[str] = None) -> Optional[str]:
    """Configured path if executable, else the first filebot on PATH."""
    if configured:
        path = Path(configured).expanduser()
        return str(path) if path.is_file() and os.access(path, os.X_OK) else None
    return shutil.which("filebot")


class FileBotAdapter:
    """Wrapper around the FileBot CLI for renaming and moving media into the library."""

    def __init__(self, config: ProcessingConfig, media_root: Path, logger: Optional[logging.Logger] = None):
        self.config = config
        self.media_root = media_root
        self.binary = resolve_filebot_binary(config.filebot_path) or config.filebot_path or "filebot"
        self.logger = logger or logging.getLogger(__name__)

    def _build_command(
        self,
        source_dir: Path,
        metadata_source: Optional[str],
        action: ActionMode,
        non_strict: bool,
    ) -> List[str]:
        """Constructs the filebot command line arguments."""
        cmd = [self.binary, "-rename", str(source_dir)]
        if metadata_source:
            cmd.extend(["--db", metadata_source])
        cmd.extend([
            "--format", self.config.naming_format,
            "--output", str(self.media_root),
            "-r",
            "--conflict", self.config.conflict,
        ])
        if non_strict:
            cmd.append("-non-strict")
        # Post-processing only makes sense when files actually move
        if action == ActionMode.COMMIT and self.config.apply:
            cmd.extend(["--apply", *self.config.apply])
        cmd.extend(["--action", "test" if action == ActionMode.SIMULATE else "move"])
        return cmd

    def invoke(
        self,
        batch: MediaBatch,
        metadata_source: Optional[str] = None,
        action: ActionMode = ActionMode.COMMIT,
        non_strict: bool = True,
    ) -> EngineResult:
        """Runs filebot once and interprets the result. Never raises for engine failures."""
        source = metadata_source or "auto-detect"
        cmd = self._build_command(batch.source_dir, metadata_source, action, non_strict)
        self.logger.info(f"FILEBOT_START: {batch.source_dir.name} (db={source}, action={action.value}, non_strict={non_strict})")
        self.logger.debug(f"FILEBOT_CMD: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self.config.engine_timeout,
            )
            exit_code, output = result.returncode, result.stdout or ""
        except FileNotFoundError:
            exit_code, output = EXIT_NOT_FOUND, f"filebot not found: {self.binary}"
        except OSError as exc:
            exit_code, output = EXIT_NOT_EXECUTABLE, f"filebot could not be started: {self.binary}: {exc}"
        except subprocess.TimeoutExpired as exc:
            partial = exc.stdout.decode(errors="replace") if isinstance(exc.stdout, bytes) else (exc.stdout or "")
            exit_code = EXIT_TIMEOUT
            output = f"{partial}\nfilebot timed out after {self.config.engine_timeout}s"

        self._log_output(output)
        files = count_affected(output, action)
        engine_result = EngineResult(files_affected=files, exit_code=exit_code, output=output, action=action)

        if engine_result.succeeded_despite_exit_code:
            self.logger.info(f"FILEBOT_OK: db={source} succeeded despite exit code {exit_code} ({files} files)")
        elif exit_code != 0:
            self.logger.info(f"FILEBOT_FAILED: db={source} exit={exit_code}, no files affected")
        elif not engine_result.succeeded:
            self.logger.warning(f"FILEBOT_NOOP: db={source} exited 0 but no files were affected")
        else:
            self.logger.info(f"FILEBOT_OK: db={source} {files} files {'previewed' if action == ActionMode.SIMULATE else 'moved'}")
        return engine_result

    def _log_output(self, output: str) -> None:
        # Full engine output always lands in the shared log for post-hoc diagnosis
        for line in output.splitlines():
            if line.strip():
                self.logger.info(f"FILEBOT_OUT: {line}")

    def version(self) -> Optional[str]:
        try:
            result = subprocess.run(
                [self.binary, "-version"], capture_output=True, text=True, errors="replace", timeout=30
            )
        except (OSError, subprocess.TimeoutExpired):
            return None
        if result.returncode != 0:
            return None
        lines = (result.stdout or "").strip().splitlines()
        return lines[0] if lines else None
