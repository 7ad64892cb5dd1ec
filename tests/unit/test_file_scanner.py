from pathlib import Path
from tdone.infrastructure.file_scanner import FileScanner
from tdone.infrastructure.disk_space import MB, has_free_space


def test_scanner_finds_media_recursively(tmp_path):
    (tmp_path / "Season 1").mkdir()
    (tmp_path / "b.mkv").write_text("x")
    (tmp_path / "a.MP4").write_text("x")
    (tmp_path / "Season 1" / "c.avi").write_text("x")
    (tmp_path / "Season 1" / "d.m4v").write_text("x")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "b.mkv.part").write_text("x")

    scanner = FileScanner([".mkv", ".mp4", ".avi", ".m4v"])
    files = list(scanner.scan(tmp_path))

    assert [f.name for f in files] == ["a.MP4", "b.mkv", "c.avi", "d.m4v"]


def test_scanner_normalizes_extensions(tmp_path):
    (tmp_path / "a.mkv").write_text("x")
    assert len(list(FileScanner(["MKV"]).scan(tmp_path))) == 1


def test_build_batch(tmp_path):
    (tmp_path / "Show.S01E01.mkv").write_text("x")
    batch = FileScanner([".mkv"]).build_batch(tmp_path)

    assert batch.source_dir == tmp_path
    assert batch.filenames == ["Show.S01E01.mkv"]
    assert not batch.is_empty


def test_build_batch_empty(tmp_path):
    (tmp_path / "readme.txt").write_text("x")
    assert FileScanner([".mkv"]).build_batch(tmp_path).is_empty


def test_free_space_check_disabled():
    assert has_free_space(Path("/nonexistent"), 0) == (True, 0)


def test_free_space_check(tmp_path, monkeypatch):
    monkeypatch.setattr("tdone.infrastructure.disk_space.free_space_bytes", lambda _p: 500 * MB)

    assert has_free_space(tmp_path, 400) == (True, 500 * MB)
    assert has_free_space(tmp_path, 1000) == (False, 500 * MB)
