# leadership_game/storage.py
import os
import random
import time
import logging

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from leadership_game.config import UPLOAD_DIR, MAX_UPLOAD_SIZE
from leadership_game.errors import InvalidInput

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
UPLOAD_URL_PREFIX = "/uploads/"


def is_video(upload: UploadFile) -> bool:
    return bool(upload.content_type) and upload.content_type.startswith("video/")


def _unique_filename(original_name: str | None, fieldname: str = "file") -> str:
    ext = os.path.splitext(original_name or "")[1]
    return f"{fieldname}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


async def store_video(upload: UploadFile, upload_dir: str = UPLOAD_DIR, max_size: int = MAX_UPLOAD_SIZE) -> str:
    """
    Persist an uploaded video and return the URL it is served under.
    Nothing is left on disk when the upload is rejected.
    """
    if not is_video(upload):
        raise InvalidInput("Only video files are allowed!")

    os.makedirs(upload_dir, exist_ok=True)
    filename = _unique_filename(upload.filename)
    path = os.path.join(upload_dir, filename)

    written = 0
    # Disk I/O stays off the event loop
    try:
        out = await run_in_threadpool(open, path, "wb")
        try:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_size:
                    raise InvalidInput("File too large")
                await run_in_threadpool(out.write, chunk)
        finally:
            await run_in_threadpool(out.close)
    except Exception:
        if os.path.exists(path):
            os.remove(path)
        raise

    logger.info(f"Stored upload '{filename}' ({written} bytes)")
    return f"{UPLOAD_URL_PREFIX}{filename}"


def discard(file_url: str | None, upload_dir: str = UPLOAD_DIR):
    """Remove a previously stored upload, e.g. when the owning record was not saved."""
    if not file_url or not file_url.startswith(UPLOAD_URL_PREFIX):
        return
    path = os.path.join(upload_dir, file_url[len(UPLOAD_URL_PREFIX):])
    if os.path.exists(path):
        os.remove(path)
        logger.info(f"Discarded upload '{path}'")
