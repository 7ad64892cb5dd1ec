"""Pipeline controller: one completed download, start to finish.

Idle -> Validating -> CheckingReadiness -> Cleaning -> Processing
-> PostProcessing -> Done. Strictly forward; a failing stage ends the run.
"""

from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple
from tdone.domain.models import (
    ActionMode,
    MediaBatch,
    MediaCategory,
    PipelineResult,
    PipelineStage,
)
from tdone.infrastructure.disk_space import MB, has_free_space
from tdone.infrastructure.file_scanner import FileScanner
from tdone.infrastructure.filebot import RenameEngine
from tdone.infrastructure.filebot_output import affected_lines
from tdone.infrastructure.housekeeping import HousekeepingService
from tdone.pipeline.context import RunContext
from tdone.pipeline.diagnostics import log_failure_report
from tdone.pipeline.fallback import FallbackOrchestrator
from tdone.pipeline.readiness import ReadinessChecker

RESCAN_CATEGORIES = {
    MediaCategory.TV: "show",
    MediaCategory.MOVIE: "movie",
}


class ScanNotifier(Protocol):
    def trigger_scan(self, category: str) -> bool:
        ...


class PipelineController:
    """Runs every stage for one source directory and reports the overall result.

    Args:
        context: RunContext with config and logger.
        engine: RenameEngine shared by the preview and the fallback orchestrator.
        notifier: Library rescan trigger; None skips the rescan.
        scanner, readiness, housekeeper, orchestrator: Stage overrides for tests.
        free_space: Callable (path, required_mb) -> (enough, free_bytes).
    """

    def __init__(
        self,
        context: RunContext,
        engine: RenameEngine,
        notifier: Optional[ScanNotifier] = None,
        scanner: Optional[FileScanner] = None,
        readiness: Optional[ReadinessChecker] = None,
        housekeeper: Optional[HousekeepingService] = None,
        orchestrator: Optional[FallbackOrchestrator] = None,
        free_space: Callable[[Path, int], Tuple[bool, int]] = has_free_space,
    ):
        self.context = context
        self.config = context.config
        self.logger = context.logger
        self.engine = engine
        self.notifier = notifier
        self.scanner = scanner or FileScanner(self.config.processing.media_extensions)
        self.readiness = readiness or ReadinessChecker(context)
        self.housekeeper = housekeeper or HousekeepingService(logger=context.child("housekeeping"))
        self.orchestrator = orchestrator or FallbackOrchestrator(context, engine)
        self._free_space = free_space
        self.stage = PipelineStage.IDLE

    def _enter(self, stage: PipelineStage) -> None:
        self.logger.debug(f"STAGE: {self.stage.value} -> {stage.value}")
        self.stage = stage

    def _fail(self, message: str, **fields) -> PipelineResult:
        self.logger.error(f"Error: {message}")
        result = PipelineResult(succeeded=False, stage=self.stage, message=message, **fields)
        self._enter(PipelineStage.DONE)
        return result

    def _validate(self, source_dir: Path) -> Tuple[Optional[MediaBatch], Optional[str]]:
        if not source_dir.is_dir():
            return None, f"Source directory does not exist: {source_dir}"

        batch = self.scanner.build_batch(source_dir)
        if batch.is_empty:
            return None, f"No media files found in {source_dir}"
        self.logger.info(f"Found {len(batch.files)} media files in {source_dir}")
        self.logger.debug(f"Media files: {', '.join(batch.filenames)}")

        required_mb = self.config.processing.min_free_space_mb
        try:
            enough, free = self._free_space(self.config.media_root, required_mb)
        except OSError as exc:
            return None, f"Cannot check free space on {self.config.media_root}: {exc}"
        if not enough:
            return None, (
                f"Insufficient space on target filesystem "
                f"(need {required_mb}MB, have {free // MB}MB)"
            )
        return batch, None

    def _preview(self, batch: MediaBatch) -> PipelineResult:
        self.logger.info("Generating preview of changes")
        preview = self.engine.invoke(batch, action=ActionMode.SIMULATE)
        if preview.exit_code != 0:
            self.logger.info(f"Preview exited with code {preview.exit_code}")
        if not preview.succeeded:
            return self._fail("Preview failed - cannot determine what changes would be made", preview=preview)
        self.logger.info(f"Preview: {preview.files_affected} files to process")
        for line in affected_lines(preview.output, ActionMode.SIMULATE):
            self.logger.info(line)
        return PipelineResult(succeeded=True, stage=self.stage, preview=preview)

    def run(self, source_dir: Path, dry_run: bool = False) -> PipelineResult:
        """Processes source_dir; never raises for stage failures.

        dry_run stops after a simulated rename: nothing is deleted, moved or rescanned.
        """
        source_dir = Path(source_dir)
        self.logger.info(f"Processing media in {source_dir}")

        self._enter(PipelineStage.VALIDATING)
        batch, error = self._validate(source_dir)
        if batch is None:
            return self._fail(error)

        self._enter(PipelineStage.CHECKING_READINESS)
        readiness = self.readiness.check(batch)
        if not readiness.ready:
            return self._fail(
                f"Files not ready for processing (still downloading or locked): {readiness.reason.value}",
                readiness=readiness,
            )

        if dry_run:
            self._enter(PipelineStage.PROCESSING)
            result = self._preview(batch)
            if result.succeeded:
                self._enter(PipelineStage.DONE)
                self.logger.info("Dry run complete: no files were changed")
                result.stage = self.stage
            result.readiness = readiness
            return result

        self._enter(PipelineStage.CLEANING)
        removed, failed = self.housekeeper.cleanup_junk_files(source_dir, self.config.processing.junk_extensions)
        if failed:
            self.logger.warning(f"Warning: Cleanup failed for {len(failed)} files but continuing")

        self._enter(PipelineStage.PROCESSING)
        preview = None
        if self.config.processing.preview:
            preview_result = self._preview(batch)
            if not preview_result.succeeded:
                preview_result.readiness = readiness
                preview_result.junk_removed = removed
                return preview_result
            preview = preview_result.preview

        outcome = self.orchestrator.run(batch)
        if not outcome.succeeded:
            log_failure_report(self.logger, outcome, source_dir, self.config.media_root)
            return self._fail(
                "All FileBot strategies failed",
                outcome=outcome,
                readiness=readiness,
                preview=preview,
                junk_removed=removed,
            )
        self.logger.info("Successfully processed media")

        self._enter(PipelineStage.POST_PROCESSING)
        self.housekeeper.prune_empty_dirs(source_dir)
        rescan_triggered = False
        if self.notifier is not None:
            category = RESCAN_CATEGORIES.get(outcome.category, "movie")
            rescan_triggered = self.notifier.trigger_scan(category)
            if not rescan_triggered:
                self.logger.warning("Warning: Plex scan could not be triggered; files were organized anyway")

        self._enter(PipelineStage.DONE)
        self.logger.info("Processing completed successfully")
        return PipelineResult(
            succeeded=True,
            stage=self.stage,
            message="Processing completed successfully",
            outcome=outcome,
            readiness=readiness,
            preview=preview,
            rescan_triggered=rescan_triggered,
            junk_removed=removed,
        )
