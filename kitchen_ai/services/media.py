from __future__ import annotations

import asyncio
import base64
import html
import logging
from pathlib import Path
from uuid import uuid4

import httpx

from kitchen_ai.app.domain.models import MediaPart
from .errors import MediaDownloadError, MediaValidationError, NetworkTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"
# Base64 prefixes of the magic bytes: FFD8FF, 89504E47, 47494638, 52494646, 424D
IMAGE_SIGNATURES = (
    ("/9j/", "image/jpeg"),
    ("iVBOR", "image/png"),
    ("R0lG", "image/gif"),
    ("UklG", "image/webp"),
    ("Qk", "image/bmp"),
)
REMOTE_PREFIXES = ("http://", "https://")
FILE_URI_PREFIX = "file://"


def sniff_mime(data: str) -> str:
    for prefix, mime_type in IMAGE_SIGNATURES:
        if data.startswith(prefix):
            return mime_type
    return DEFAULT_IMAGE_MIME


def is_valid_image(data: str) -> bool:
    return any(data.startswith(prefix) for prefix, _ in IMAGE_SIGNATURES)


def video_mime_for(path: str) -> str:
    return "video/quicktime" if path.lower().endswith(".mov") else "video/mp4"


def _remote_extension(url: str) -> str:
    filename = url.split("?")[0].rstrip("/").split("/")[-1]
    if "." not in filename:
        return "jpg"
    extension = filename.rsplit(".", 1)[-1]
    return extension if extension.isalnum() and len(extension) <= 5 else "jpg"


def _cleanup_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as error:
        logger.debug("Could not remove temp file %s: %s", path, error)


class MediaEncoder:
    """Reads local or remote media and turns it into validated inline parts."""

    def __init__(
        self,
        cache_dir: str | Path,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        self._http_client = http_client

    async def encode_remote(self, url: str) -> str:
        clean_url = html.unescape(url)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.cache_dir / f"gemini_{uuid4().hex}.{_remote_extension(clean_url)}"

        try:
            await self._download(clean_url, temp_path)
            raw = await asyncio.to_thread(temp_path.read_bytes)
        finally:
            await asyncio.to_thread(_cleanup_temp_file, temp_path)

        return base64.b64encode(raw).decode("ascii")

    async def encode_local(self, path: str | Path) -> str:
        local_path = Path(str(path).removeprefix(FILE_URI_PREFIX))
        raw = await asyncio.to_thread(local_path.read_bytes)
        return base64.b64encode(raw).decode("ascii")

    async def encode(self, uri: str) -> str:
        if uri.startswith(REMOTE_PREFIXES):
            return await self.encode_remote(uri)
        return await self.encode_local(uri)

    async def build_image_part(self, uri: str) -> MediaPart:
        data = await self.encode(uri)
        if not is_valid_image(data):
            raise MediaValidationError(
                "Downloaded data is not a valid image (possibly an HTML redirect or error page)"
            )
        return MediaPart(data=data, mime_type=sniff_mime(data))

    async def build_image_part_safe(self, uri: str) -> MediaPart | None:
        try:
            return await self.build_image_part(uri)
        except (MediaValidationError, MediaDownloadError, NetworkTimeoutError, httpx.HTTPError, OSError) as error:
            logger.warning("Could not create image part from %s: %s", uri, error)
            return None

    async def build_video_part(self, path: str | Path) -> MediaPart:
        data = await self.encode_local(path)
        return MediaPart(data=data, mime_type=video_mime_for(str(path)))

    async def _download(self, url: str, target_path: Path) -> None:
        if self._http_client is not None:
            await self._stream_to_file(self._http_client, url, target_path)
            return

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            await self._stream_to_file(client, url, target_path)

    async def _stream_to_file(self, client: httpx.AsyncClient, url: str, target_path: Path) -> None:
        try:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with target_path.open("wb") as handle:
                    async for chunk in response.aiter_bytes():
                        handle.write(chunk)
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(url, self.timeout) from error
        except httpx.HTTPStatusError as error:
            raise MediaDownloadError(f"HTTP error downloading media: {error}") from error
