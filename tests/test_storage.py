import io

import pytest

from app.storage.local_provider import LocalStorageProvider, remove_files
from app.storage.provider import FileTooLarge, InvalidKey, is_valid_key


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(str(tmp_path / "uploads"))


@pytest.fixture
def victim(tmp_path):
    path = tmp_path / "victim.txt"
    path.write_text("keep me")
    return path


def test_issued_keys():
    assert is_valid_key("trail-map-v2-0123456789ab.pdf")
    assert is_valid_key("file-0123456789ab")
    for key in ("", None, "../victim.txt", "/etc/passwd", "a/b-0123456789ab.pdf", "map.pdf", "Map-0123456789ab.pdf"):
        assert not is_valid_key(key)


def test_keys_outside_the_upload_dir_are_refused(storage, victim):
    with pytest.raises(InvalidKey):
        storage.delete("../victim.txt")
    with pytest.raises(InvalidKey):
        storage.delete(".." + str(victim))
    assert victim.exists()


def test_remove_files_skips_foreign_descriptors(storage, victim):
    storage.save(io.BytesIO(b"%PDF"), "map-0123456789ab.pdf")
    attachments = [
        {"filename": ".." + str(victim), "path": "/uploads/x"},
        {"filename": "", "path": str(victim)},
        None,
        {"filename": "map-0123456789ab.pdf", "path": "/uploads/map-0123456789ab.pdf"},
    ]
    assert remove_files(storage, attachments, owner="certificate:1") == 1
    assert victim.exists()
    assert not storage.exists("map-0123456789ab.pdf")


def test_save_stops_at_the_size_limit(storage):
    stream = io.BytesIO(b"x" * (1024 * 1024))
    with pytest.raises(FileTooLarge):
        storage.save(stream, "big-0123456789ab.bin", max_bytes=10)
    assert stream.tell() < 1024 * 1024
    assert not storage.exists("big-0123456789ab.bin")

    assert storage.save(io.BytesIO(b"0123456789"), "ok-0123456789ab.bin", max_bytes=10) == 10
