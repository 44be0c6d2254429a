import io
import os

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from leadership_game import storage
from leadership_game.errors import InvalidInput


def make_upload(content: bytes, filename="clip.mp4", content_type="video/mp4"):
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


async def test_upload_over_size_limit_is_rejected(tmp_path):
    with pytest.raises(InvalidInput) as excinfo:
        await storage.store_video(make_upload(b"12345"), upload_dir=str(tmp_path), max_size=4)

    assert excinfo.value.detail == "File too large"
    assert os.listdir(tmp_path) == []


async def test_upload_at_size_limit_is_stored(tmp_path):
    url = await storage.store_video(make_upload(b"1234"), upload_dir=str(tmp_path), max_size=4)

    assert url.startswith("/uploads/file-") and url.endswith(".mp4")
    [stored] = os.listdir(tmp_path)
    assert (tmp_path / stored).read_bytes() == b"1234"

    storage.discard(url, upload_dir=str(tmp_path))
    assert os.listdir(tmp_path) == []


async def test_only_video_uploads_are_stored(tmp_path):
    with pytest.raises(InvalidInput):
        await storage.store_video(make_upload(b"hello", "notes.txt", "text/plain"), upload_dir=str(tmp_path))
    assert os.listdir(tmp_path) == []
