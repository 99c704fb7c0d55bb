"""Tests for in-memory and on-disk backups of the persisted state."""

import logging

import pytest

pytestmark = pytest.mark.unit

from hsvideo.core import backup_path
from tests.helpers.fake_video import make_video


@pytest.fixture
def disk_video(temp_dir, internal_config):
    return make_video(config=internal_config, filename=str(temp_dir / "clip.raw"), with_tracks=True)


def test_backup_and_restore_swaps_state(video):
    video.device = "A"
    video.backup()
    video.device = "B"

    video.restore()
    assert video.device == "A"

    video.restore()
    assert video.device == "B"


def test_restore_selected_properties(video):
    video.device = "A"
    video.comment = "kept"
    video.backup()
    video.device = "B"
    video.comment = "changed"

    video.restore("device")

    assert video.device == "A"
    assert video.comment == ["changed"]


def test_restore_without_backup_warns(video, caplog):
    with caplog.at_level(logging.WARNING):
        video.restore()
    assert "No backup" in caplog.text


def test_backups_are_numbered(disk_video):
    first = disk_video.backup_to_disk()
    second = disk_video.backup_to_disk()

    assert first == backup_path(disk_video.filename, 0)
    assert second == backup_path(disk_video.filename, 1)
    assert first.name == "clip.raw.BAK00.json"


def test_restore_from_disk_uses_last_backup(disk_video):
    disk_video.device = "first"
    disk_video.backup_to_disk()
    disk_video.device = "second"
    disk_video.backup_to_disk()
    disk_video.device = "third"

    assert disk_video.restore_from_disk() is True
    assert disk_video.device == "second"


def test_gapped_numbering_warns(disk_video, caplog):
    backup_path(disk_video.filename, 0).write_text("{}")
    backup_path(disk_video.filename, 2).write_text("{}")

    with caplog.at_level(logging.WARNING):
        path = disk_video.backup_to_disk()

    assert path == backup_path(disk_video.filename, 1)
    assert "discontinuous" in caplog.text


def test_clean_backups_keeps_last_as_first(disk_video):
    for device in ("a", "b", "c"):
        disk_video.device = device
        disk_video.backup_to_disk()

    removed = disk_video.clean_backups(keep_last=True)

    assert removed == 1
    assert backup_path(disk_video.filename, 0).exists()
    assert not backup_path(disk_video.filename, 1).exists()
    assert not backup_path(disk_video.filename, 2).exists()
    disk_video.device = "z"
    disk_video.restore_from_disk("device")
    assert disk_video.device == "c"


def test_clean_backups_removes_all(disk_video):
    disk_video.backup_to_disk()
    disk_video.backup_to_disk()
    assert disk_video.clean_backups(keep_last=False) == 2
    assert not backup_path(disk_video.filename, 0).exists()


def test_clean_backup_on_write(disk_video):
    disk_video.backup_to_disk()
    disk_video.backup_to_disk()
    disk_video.backup_to_disk(clean=True)
    assert backup_path(disk_video.filename, 0).exists()
    assert not backup_path(disk_video.filename, 1).exists()


def test_backup_without_filename_warns(video, caplog):
    with caplog.at_level(logging.WARNING):
        assert video.backup_to_disk() is None
    assert "No filename" in caplog.text


def test_invalid_backup_file_warns(disk_video, caplog):
    backup_path(disk_video.filename, 0).write_text("[1, 2]")
    with caplog.at_level(logging.WARNING):
        assert disk_video.restore_from_disk() is False
    assert "invalid" in caplog.text
