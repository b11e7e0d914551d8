from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

MIN_MEDIA_BYTES = 100
DEFAULT_AUDIO_MIME = "audio/ogg; codecs=opus"
GENERIC_MIME_TYPES = {"", "application/octet-stream", "image/*"}


class MediaDownloadError(Exception):
    """Raised when inbound media cannot be fetched or is unusable."""


@dataclass(frozen=True)
class DownloadedMedia:
    data: bytes
    mime_type: str


def detect_image_mime_type(data: bytes) -> str:
    """Sniff the image type from magic bytes. WhatsApp photos default to JPEG."""
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:3] == b"GIF":
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def _download(client: httpx.Client, url: str) -> httpx.Response:
    logger.info("Downloading media from %s...", url[:80])
    try:
        response = client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise MediaDownloadError(f"Failed to download media: {exc}") from exc

    logger.info("Downloaded %d bytes", len(response.content))
    if len(response.content) < MIN_MEDIA_BYTES:
        raise MediaDownloadError("Downloaded media is too small to be valid.")
    return response


def download_image(client: httpx.Client, url: str, content_type: str | None = None) -> DownloadedMedia:
    response = _download(client, url)
    mime_type = content_type or response.headers.get("content-type", "")
    if mime_type.split(";")[0].strip() in GENERIC_MIME_TYPES:
        mime_type = detect_image_mime_type(response.content)
    return DownloadedMedia(data=response.content, mime_type=mime_type)


def download_audio(client: httpx.Client, url: str, content_type: str | None = None) -> DownloadedMedia:
    response = _download(client, url)
    mime_type = content_type or response.headers.get("content-type") or DEFAULT_AUDIO_MIME
    return DownloadedMedia(data=response.content, mime_type=mime_type)


class MediaStore:
    """Writes rendered images to disk and returns the public URL they are served from."""

    def __init__(self, directory: Path, public_base_url: str, url_prefix: str = "/media") -> None:
        self.directory = Path(directory)
        self.public_base_url = public_base_url.rstrip("/")
        self.url_prefix = url_prefix

    def save_png(self, data: bytes, name: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        stem = re.sub(r"[^A-Za-z0-9_-]", "-", name)
        filename = f"{stem}-{secrets.token_hex(4)}.png"
        (self.directory / filename).write_bytes(data)
        return f"{self.public_base_url}{self.url_prefix}/{filename}"
