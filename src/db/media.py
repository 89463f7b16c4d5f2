from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from typing import Optional

from db.blob import ExternalBlob
from utils import settings
from utils.logger import get_logger

_logger = get_logger(__name__)


class MediaStore:
    """
    Blob storage for the local backend: byte backed blobs are written to
    ``media_dir`` in chunks and handed back as file URLs.
    """

    def __init__(self, media_dir: Optional[str] = None, chunk_size: Optional[int] = None) -> None:
        self.media_dir = Path(media_dir or settings.MEDIA_DIR)
        self.chunk_size = chunk_size or settings.MEDIA_CHUNK_SIZE

    async def put(self, blob: ExternalBlob) -> ExternalBlob:
        if blob.is_stored:
            blob.report_progress(100)
            return blob

        data = await blob.get_bytes()
        path = self.media_dir / hashlib.sha256(data).hexdigest()
        await asyncio.to_thread(self.media_dir.mkdir, parents=True, exist_ok=True)

        total = len(data)
        blob.report_progress(0)
        with open(path, "wb") as f:
            for offset in range(0, total, self.chunk_size):
                chunk = data[offset : offset + self.chunk_size]
                await asyncio.to_thread(f.write, chunk)
                blob.report_progress((offset + len(chunk)) * 100 // total)
        if total == 0:
            blob.report_progress(100)

        _logger.info(f"Stored {total} bytes as {path.name}")
        return ExternalBlob.from_url(path.resolve().as_uri())
