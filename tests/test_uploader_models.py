"""Tests for uploader models and helpers."""

import pytest

from guestcap.uploader.models import FileToUpload, LocalFile, format_bytes, percent


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (2 * 1024 * 1024, "2 MB"),
        (int(1.5 * 1024 ** 3), "1.5 GB"),
        (5 * 1024 ** 4, "5120 GB"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_percent():
    assert percent(1, 3) == 33
    assert percent(2, 3) == 67
    assert percent(0, 0) == 100


def test_local_file_from_path(tmp_path):
    """Test that size and content type come from the file."""
    path = tmp_path / "IMG_0001.jpg"
    path.write_bytes(b"abcdef")

    file = LocalFile.from_path(path)

    assert file.name == "IMG_0001.jpg"
    assert file.size == 6
    assert file.content_type == "image/jpeg"
    assert b"".join(file.iter_chunks(4)) == b"abcdef"
    assert list(file.iter_chunks(4)) == [b"abcd", b"ef"]


def test_local_file_unknown_type():
    file = LocalFile.from_bytes("notes.unknownext", b"data")

    assert file.content_type == "application/octet-stream"


def test_local_file_without_source():
    file = LocalFile(name="ghost.jpg", size=3)

    with pytest.raises(ValueError):
        list(file.iter_chunks(1))


def test_file_to_upload_ids_are_unique():
    file = LocalFile.from_bytes("a.jpg", b"a")

    assert FileToUpload.create(file).id != FileToUpload.create(file).id
