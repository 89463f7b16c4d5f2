from __future__ import annotations

import asyncio
import base64
import binascii
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

import requests

ProgressCallback = Callable[[int], None]

FETCH_TIMEOUT = 10


class ExternalBlob:
    """
    Reference to a media object (image or video).

    A blob is backed either by raw bytes that still need to be stored, or by a
    URL the backend already serves. Instances are immutable; use
    ``with_upload_progress`` to get a copy that reports upload progress.
    """

    def __init__(
        self,
        *,
        data: Optional[bytes] = None,
        url: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if (data is None) == (url is None):
            raise ValueError("ExternalBlob needs exactly one of data or url.")
        self._data = data
        self._url = url
        self._on_progress = on_progress

    @classmethod
    def from_bytes(cls, data: bytes) -> ExternalBlob:
        return cls(data=bytes(data))

    @classmethod
    def from_url(cls, url: str) -> ExternalBlob:
        return cls(url=url)

    @property
    def is_stored(self) -> bool:
        """True once the blob points at a URL rather than at local bytes."""
        return self._url is not None

    def with_upload_progress(self, on_progress: ProgressCallback) -> ExternalBlob:
        return ExternalBlob(data=self._data, url=self._url, on_progress=on_progress)

    def report_progress(self, percentage: int) -> None:
        if self._on_progress is not None:
            self._on_progress(max(0, min(100, int(percentage))))

    def get_direct_url(self) -> str:
        if self._url is not None:
            return self._url
        encoded = base64.b64encode(self._data).decode("ascii")
        return f"data:application/octet-stream;base64,{encoded}"

    async def get_bytes(self) -> bytes:
        if self._data is not None:
            return self._data
        return await asyncio.to_thread(_fetch_url, self._url)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ExternalBlob):
            return NotImplemented
        return self._data == other._data and self._url == other._url

    def __hash__(self) -> int:
        return hash((self._data, self._url))

    def __repr__(self) -> str:
        if self._url is not None:
            return f"ExternalBlob(url={self._url!r})"
        return f"ExternalBlob(<{len(self._data)} bytes>)"


def _fetch_url(url: str) -> bytes:
    parsed = urlparse(url)
    if parsed.scheme == "data":
        _, _, payload = url.partition(",")
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Malformed data URL: {url[:40]}...") from exc
    if parsed.scheme in ("", "file"):
        return Path(unquote(parsed.path)).read_bytes()

    resp = requests.get(url, timeout=FETCH_TIMEOUT)
    resp.raise_for_status()
    return resp.content
