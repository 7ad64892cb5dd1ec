import logging
import shutil
import pytest
import yaml
from pathlib import Path
from typing import Iterable, Optional
from tdone.config.models import AppConfig
from tdone.domain.models import ActionMode, EngineResult, MediaBatch
from tdone.infrastructure.logging import LOGGER_NAME
from tdone.pipeline.context import RunContext

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def media_root(tmp_path):
    """Creates the Plex library root files are moved into."""
    root = tmp_path / "plex"
    root.mkdir()
    return root


@pytest.fixture
def sample_config(media_root):
    """Returns an AppConfig that never sleeps, probes lsof or checks disk space."""
    return AppConfig(
        plex={
            "server": "http://localhost:32400",
            "token": "test_token",
            "media_path": str(media_root),
        },
        logging={"file": str(media_root.parent / "logs" / "test.log"), "max_size": 10485760},
        processing={
            "stability_seconds": 0,
            "check_open_files": False,
            "min_free_space_mb": 0,
        },
        rescan={"attempts": 3, "delay_seconds": 5, "timeout_seconds": 10},
    )


@pytest.fixture
def config_yaml_path(tmp_path, media_root):
    """Creates a temporary YAML config file shaped like the installer's output."""
    conf_file = tmp_path / "config.yml"
    content = {
        'version': 1.0,
        'paths': {'default_home': str(tmp_path)},
        'plex': {
            'server': 'http://localhost:32400',
            'token': 'test_token',
            'media_path': str(media_root),
        },
        'logging': {
            'file': '.local/state/transmission-processing.log',
            'max_size': 10485760,
        },
    }
    with open(conf_file, 'w') as f:
        yaml.dump(content, f)
    return conf_file


@pytest.fixture
def run_context(sample_config):
    return RunContext(config=sample_config, logger=logging.getLogger(LOGGER_NAME), name="test")

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def make_download(tmp_path):
    """Factory creating a download directory with the given files."""
    def _make(name: str, files: Iterable[str], content: bytes = b"dummy video content " * 100) -> Path:
        directory = tmp_path / "downloads" / name
        directory.mkdir(parents=True)
        for file_name in files:
            path = directory / file_name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return directory
    return _make


@pytest.fixture
def tv_download(make_download):
    return make_download("The.Show.S01E01", ["video.mkv", "sample.txt"])

# ============================================================================
# Rename Engine Fake
# ============================================================================

def strategy_key(metadata_source: Optional[str], non_strict: bool) -> str:
    if metadata_source:
        return metadata_source
    return "auto-detect" if non_strict else "cached"


class FakeRenameEngine:
    """RenameEngine that succeeds only for the listed strategy keys.

    Keys are metadata source names, "auto-detect" (no source, non-strict) and
    "cached" (no source, strict). With media_root set, successful commits
    really move the batch files under media_root/library.
    """

    def __init__(
        self,
        succeed_on: Iterable[str] = (),
        media_root: Optional[Path] = None,
        library: str = "TV Shows",
        success_exit_code: int = 0,
        failure_output: str = "Failed to identify or process any files",
        simulate_files: Optional[int] = None,
    ):
        self.succeed_on = set(succeed_on)
        self.media_root = media_root
        self.library = library
        self.success_exit_code = success_exit_code
        self.failure_output = failure_output
        self.simulate_files = simulate_files
        self.calls = []

    @property
    def keys(self):
        return [key for key, action in self.calls if action == ActionMode.COMMIT]

    def invoke(self, batch: MediaBatch, metadata_source=None, action=ActionMode.COMMIT, non_strict=True):
        key = strategy_key(metadata_source, non_strict)
        self.calls.append((key, action))

        if action == ActionMode.SIMULATE:
            count = len(batch.files) if self.simulate_files is None else self.simulate_files
            lines = [f"[TEST] from [{f}] to [/plex/{self.library}/{f.name}]" for f in batch.files[:count]]
            return EngineResult(files_affected=len(lines), exit_code=0, output="\n".join(lines), action=action)

        if key not in self.succeed_on:
            return EngineResult(files_affected=0, exit_code=1, output=f"{self.failure_output} ({key})", action=action)

        lines = []
        for source in batch.files:
            target = Path("/plex") / self.library / source.name
            if self.media_root is not None:
                target = self.media_root / self.library / source.name
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(source), str(target))
            lines.append(f"[MOVE] from [{source}] to [{target}]")
        return EngineResult(
            files_affected=len(lines),
            exit_code=self.success_exit_code,
            output="\n".join(lines),
            action=action,
        )


@pytest.fixture
def fake_engine():
    """Returns the FakeRenameEngine class so tests can configure it."""
    return FakeRenameEngine

# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
