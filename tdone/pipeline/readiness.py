"""Readiness check: are the downloaded files finished and safe to move?

Each file first goes through cheap checks (held open by the downloader,
.part marker, .incomplete marker), stopping at the first file that fails.
Only when every file passes does the batch-wide stability phase run: one
size snapshot, one sleep for the whole batch, a second snapshot.
"""

import time
from pathlib import Path
from typing import Callable, Dict, Optional
from tdone.domain.models import MediaBatch, ReadinessReason, ReadinessReport, ReadinessVerdict
from tdone.infrastructure.open_files import OpenFileProbe
from tdone.pipeline.context import RunContext

PARTIAL_SUFFIX = ".part"
INCOMPLETE_SUFFIX = ".incomplete"


def _marker(path: Path, suffix: str) -> Path:
    return path.with_name(f"{path.name}{suffix}")


def _size_or_none(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError:
        return None


class ReadinessChecker:

    def __init__(
        self,
        context: RunContext,
        open_file_probe: Optional[OpenFileProbe] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.context = context
        self.logger = context.child("readiness")
        processing = context.config.processing
        self.stability_seconds = processing.stability_seconds
        if open_file_probe is None and processing.check_open_files:
            open_file_probe = OpenFileProbe(process_name=processing.writer_process)
        self.open_file_probe = open_file_probe
        self._sleep = sleep

    def check_file_quick(self, path: Path) -> ReadinessVerdict:
        if self.open_file_probe is not None and self.open_file_probe.is_open(path):
            self.logger.info(f"File still open by {self.context.config.processing.writer_process}: {path}")
            return ReadinessVerdict(path=path, ready=False, reason=ReadinessReason.OPEN_BY_WRITER)

        partial = _marker(path, PARTIAL_SUFFIX)
        if partial.exists():
            self.logger.info(f"Incomplete marker found: {partial}")
            return ReadinessVerdict(path=path, ready=False, reason=ReadinessReason.PARTIAL_MARKER, detail=str(partial))

        incomplete = _marker(path, INCOMPLETE_SUFFIX)
        if incomplete.exists():
            self.logger.info(f"Incomplete marker found: {incomplete}")
            return ReadinessVerdict(
                path=path, ready=False, reason=ReadinessReason.INCOMPLETE_MARKER, detail=str(incomplete)
            )

        return ReadinessVerdict(path=path, ready=True, reason=ReadinessReason.READY)

    def check(self, batch: MediaBatch) -> ReadinessReport:
        self.logger.info(
            f"Validating files are ready for processing ({self.stability_seconds:g}s stability check)"
        )
        if batch.is_empty:
            self.logger.warning(f"Warning: No media files found in {batch.source_dir}")
            return ReadinessReport(ready=False, reason=ReadinessReason.NO_FILES)

        verdicts = []
        sizes_before: Dict[Path, Optional[int]] = {}
        for path in batch.files:
            verdict = self.check_file_quick(path)
            verdicts.append(verdict)
            if not verdict.ready:
                self.logger.info(f"File not ready: {path}")
                return ReadinessReport(ready=False, reason=verdict.reason, verdicts=verdicts)
            sizes_before[path] = _size_or_none(path)

        self.logger.info(
            f"Sleeping {self.stability_seconds:g}s to verify file stability ({len(batch.files)} files)"
        )
        self._sleep(self.stability_seconds)

        verdicts = []
        for path in batch.files:
            size_after = _size_or_none(path)
            before = sizes_before[path]
            if size_after is None or size_after != before:
                detail = f"{before} -> {size_after} bytes"
                self.logger.info(f"File size changed: {path} ({detail})")
                verdicts.append(
                    ReadinessVerdict(path=path, ready=False, reason=ReadinessReason.SIZE_UNSTABLE, detail=detail)
                )
                return ReadinessReport(ready=False, reason=ReadinessReason.SIZE_UNSTABLE, verdicts=verdicts)
            self.logger.debug(f"File ready: {path} ({size_after} bytes)")
            verdicts.append(ReadinessVerdict(path=path, ready=True, reason=ReadinessReason.READY))

        self.logger.info(f"All {len(batch.files)} files validated and ready")
        return ReadinessReport(ready=True, reason=ReadinessReason.READY, verdicts=verdicts)
