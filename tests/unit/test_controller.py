import logging
import pytest
from unittest.mock import MagicMock
from tdone.domain.models import ActionMode, PipelineStage, ReadinessReason, ReadinessReport
from tdone.infrastructure.disk_space import MB
from tdone.pipeline.controller import PipelineController


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.trigger_scan.return_value = True
    return mock


def make_controller(run_context, engine, notifier=None, **kwargs):
    readiness = kwargs.pop("readiness", None)
    controller = PipelineController(run_context, engine, notifier=notifier, **kwargs)
    if readiness is None:
        controller.readiness._sleep = MagicMock()
    else:
        controller.readiness = readiness
    return controller


def test_successful_tv_run(run_context, fake_engine, notifier, tv_download, media_root):
    engine = fake_engine(succeed_on={"TheTVDB"}, media_root=media_root)
    controller = make_controller(run_context, engine, notifier)

    result = controller.run(tv_download)

    assert result.succeeded
    assert result.exit_code == 0
    assert result.stage == PipelineStage.DONE
    assert result.junk_removed == 1
    assert result.rescan_triggered
    notifier.trigger_scan.assert_called_once_with("show")
    assert (media_root / "TV Shows" / "video.mkv").exists()
    assert not tv_download.exists()
    assert controller.stage == PipelineStage.DONE


def test_movie_run_rescans_movie_section(run_context, fake_engine, notifier, make_download, media_root):
    source = make_download("Inception.2010", ["Inception.2010.1080p.mkv"])
    engine = fake_engine(succeed_on={"TheMovieDB"}, media_root=media_root, library="Movies")

    result = make_controller(run_context, engine, notifier).run(source)

    assert result.succeeded
    notifier.trigger_scan.assert_called_once_with("movie")


def test_missing_source_dir_fails_validation(run_context, fake_engine, notifier, tmp_path):
    engine = fake_engine(succeed_on={"auto-detect"})
    result = make_controller(run_context, engine, notifier).run(tmp_path / "missing")

    assert not result.succeeded
    assert result.exit_code == 1
    assert result.stage == PipelineStage.VALIDATING
    assert engine.calls == []


def test_no_media_files_fails_before_engine(run_context, fake_engine, notifier, make_download):
    source = make_download("Junk", ["readme.txt", "info.nfo"])
    engine = fake_engine(succeed_on={"auto-detect"})

    result = make_controller(run_context, engine, notifier).run(source)

    assert not result.succeeded
    assert result.stage == PipelineStage.VALIDATING
    assert "No media files found" in result.message
    assert engine.calls == []
    notifier.trigger_scan.assert_not_called()
    assert (source / "readme.txt").exists()


def test_insufficient_space_fails_validation(run_context, fake_engine, tv_download, sample_config):
    sample_config.processing.min_free_space_mb = 2000
    engine = fake_engine(succeed_on={"auto-detect"})
    controller = make_controller(run_context, engine, free_space=lambda _p, _mb: (False, 100 * MB))

    result = controller.run(tv_download)

    assert not result.succeeded
    assert result.stage == PipelineStage.VALIDATING
    assert "need 2000MB, have 100MB" in result.message
    assert engine.calls == []


def test_not_ready_leaves_files_untouched(run_context, fake_engine, notifier, tv_download):
    readiness = MagicMock()
    readiness.check.return_value = ReadinessReport(ready=False, reason=ReadinessReason.PARTIAL_MARKER)
    engine = fake_engine(succeed_on={"auto-detect"})

    result = make_controller(run_context, engine, notifier, readiness=readiness).run(tv_download)

    assert not result.succeeded
    assert result.stage == PipelineStage.CHECKING_READINESS
    assert result.readiness.reason == ReadinessReason.PARTIAL_MARKER
    assert engine.calls == []
    assert (tv_download / "sample.txt").exists()


def test_all_strategies_failing(run_context, fake_engine, notifier, tv_download, caplog):
    engine = fake_engine()

    result = make_controller(run_context, engine, notifier).run(tv_download)

    assert not result.succeeded
    assert result.stage == PipelineStage.PROCESSING
    assert len(result.outcome.attempts) == 7
    assert "=== FILEBOT ERROR REPORT ===" in caplog.text
    assert "Failed to identify or process any files (TheTVDB)" in caplog.text
    assert "Failed to identify or process any files (cached)" in caplog.text
    notifier.trigger_scan.assert_not_called()
    assert (tv_download / "video.mkv").exists()


def test_rescan_failure_is_only_a_warning(run_context, fake_engine, notifier, tv_download, media_root, caplog):
    notifier.trigger_scan.return_value = False
    engine = fake_engine(succeed_on={"auto-detect"}, media_root=media_root)

    result = make_controller(run_context, engine, notifier).run(tv_download)

    assert result.succeeded
    assert not result.rescan_triggered
    assert "Plex scan could not be triggered" in caplog.text


def test_dry_run_only_simulates(run_context, fake_engine, notifier, tv_download):
    engine = fake_engine(succeed_on={"auto-detect"})

    result = make_controller(run_context, engine, notifier).run(tv_download, dry_run=True)

    assert result.succeeded
    assert result.stage == PipelineStage.DONE
    assert result.preview.files_affected == 1
    assert engine.calls == [("auto-detect", ActionMode.SIMULATE)]
    assert (tv_download / "sample.txt").exists()
    notifier.trigger_scan.assert_not_called()


def test_preview_before_commit(run_context, fake_engine, notifier, tv_download, media_root, sample_config):
    sample_config.processing.preview = True
    engine = fake_engine(succeed_on={"auto-detect"}, media_root=media_root)

    result = make_controller(run_context, engine, notifier).run(tv_download)

    assert result.succeeded
    assert engine.calls == [("auto-detect", ActionMode.SIMULATE), ("auto-detect", ActionMode.COMMIT)]
    assert result.preview.files_affected == 1


def test_empty_preview_aborts(run_context, fake_engine, notifier, tv_download, sample_config):
    sample_config.processing.preview = True
    engine = fake_engine(succeed_on={"auto-detect"}, simulate_files=0)

    result = make_controller(run_context, engine, notifier).run(tv_download)

    assert not result.succeeded
    assert result.stage == PipelineStage.PROCESSING
    assert engine.keys == []


def test_validation_logs_media_file_names(run_context, fake_engine, notifier, tv_download, media_root, caplog):
    caplog.set_level(logging.DEBUG, logger="tdone")
    engine = fake_engine(succeed_on={"TheTVDB"}, media_root=media_root)

    make_controller(run_context, engine, notifier).run(tv_download)

    assert "Media files: video.mkv" in caplog.text
