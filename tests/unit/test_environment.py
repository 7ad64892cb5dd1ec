import os
import pytest
from tdone.config.environment import (
    InvocationError,
    InvocationMode,
    detect_invocation_mode,
    resolve_invocation,
    validate_media_root,
)


def test_detect_automated_mode():
    env = {"TR_TORRENT_DIR": "/downloads", "TR_TORRENT_NAME": "Show.S01E01"}
    assert detect_invocation_mode(env) == InvocationMode.AUTOMATED


@pytest.mark.parametrize("env", [
    {},
    {"TR_TORRENT_DIR": "/downloads"},
    {"TR_TORRENT_NAME": "Show.S01E01"},
    {"TR_TORRENT_DIR": "", "TR_TORRENT_NAME": "Show.S01E01"},
])
def test_detect_manual_mode(env):
    assert detect_invocation_mode(env) == InvocationMode.MANUAL


def test_resolve_automated_ignores_cli_path(tmp_path):
    env = {"TR_TORRENT_DIR": "/downloads/Show.S01E01", "TR_TORRENT_NAME": "Show.S01E01"}
    invocation = resolve_invocation(tmp_path, env=env)

    assert invocation.mode == InvocationMode.AUTOMATED
    assert str(invocation.source_dir) == "/downloads/Show.S01E01"
    assert invocation.name == "Show.S01E01"


def test_resolve_manual(tmp_path):
    source = tmp_path / "Movie.2010"
    source.mkdir()
    invocation = resolve_invocation(source, env={})

    assert invocation.mode == InvocationMode.MANUAL
    assert invocation.source_dir == source
    assert invocation.name == "Movie.2010"


def test_resolve_manual_without_path():
    with pytest.raises(InvocationError, match="Required Transmission variables not set"):
        resolve_invocation(None, env={})


def test_resolve_manual_not_a_directory(tmp_path):
    file_path = tmp_path / "file.mkv"
    file_path.write_text("x")
    with pytest.raises(InvocationError, match="Not a valid directory"):
        resolve_invocation(file_path, env={})


def test_validate_media_root(tmp_path):
    validate_media_root(tmp_path)


def test_validate_media_root_missing(tmp_path):
    with pytest.raises(InvocationError, match="does not exist"):
        validate_media_root(tmp_path / "missing")


@pytest.mark.skipif(os.geteuid() == 0, reason="root can write anywhere")
def test_validate_media_root_read_only(tmp_path):
    tmp_path.chmod(0o500)
    try:
        with pytest.raises(InvocationError, match="No write permission"):
            validate_media_root(tmp_path)
    finally:
        tmp_path.chmod(0o700)
