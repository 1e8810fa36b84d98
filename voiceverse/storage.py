"""Local file storage for uploaded and generated media."""

import hashlib
import logging
import mimetypes
import os
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

logger = logging.getLogger(__name__)


ORIGINAL_AUDIO_DIR = "audio/original"
TRANSFORMED_AUDIO_DIR = "audio/transformed"
TRANSLATED_AUDIO_DIR = "audio/translated"
IMAGE_DIR = "images"
PROFILE_IMAGE_DIR = "images/profiles"
NFT_IMAGE_DIR = "images/nft"
CONTACT_ATTACHMENT_DIR = "contact"

AUDIO_DIRS = (ORIGINAL_AUDIO_DIR, TRANSFORMED_AUDIO_DIR, TRANSLATED_AUDIO_DIR)


@dataclass
class StoredFile:
    """Metadata for a stored file."""
    key: str
    size: int
    content_type: str
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None

    @property
    def filename(self) -> str:
        return os.path.basename(self.key)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "size": self.size,
            "content_type": self.content_type,
            "etag": self.etag,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "metadata": self.metadata,
            "url": self.url,
        }


def sniff_audio_mimetype(header: bytes, fallback: Optional[str] = None) -> str:
    """
    Detect an audio content type from the leading bytes of a file.

    Recognises webm, wav, mp3 (ID3 tag or frame sync), ogg and m4a.
    """
    if header[:4] == b"\x1a\x45\xdf\xa3":
        return "audio/webm"
    if header[:4] == b"RIFF" and header[8:12] == b"WAVE":
        return "audio/wav"
    if header[:3] == b"ID3" or (len(header) > 1 and header[0] == 0xFF and (header[1] & 0xE0) == 0xE0):
        return "audio/mpeg"
    if header[:4] == b"OggS":
        return "audio/ogg"
    if header[4:8] == b"ftyp":
        return "audio/mp4"
    return fallback or "audio/mpeg"


def unique_name(extension: str, prefix: str = "") -> str:
    """``{prefix}{ms}_{uuid}{ext}``, the naming used for uploads."""
    return f"{prefix}{int(time.time() * 1000)}_{uuid.uuid4()}{extension}"


class LocalStorage:
    """
    Local filesystem storage rooted at the upload directory.

    Keys are relative paths such as ``audio/original/x.mp3``; files are
    served under ``base_url`` by the static mount.

    Usage:
        storage = LocalStorage(base_path="uploads")
        await storage.upload(audio_data, "audio/transformed/out.mp3")
    """

    def __init__(
        self,
        base_path: str = "uploads",
        base_url: str = "/uploads",
    ):
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def ensure_directories(self) -> None:
        for directory in AUDIO_DIRS + (PROFILE_IMAGE_DIR, NFT_IMAGE_DIR, CONTACT_ATTACHMENT_DIR):
            (self.base_path / directory).mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Get full path for key."""
        return self.base_path / key

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def _get_content_type(self, key: str) -> str:
        mime_type, _ = mimetypes.guess_type(key)
        return mime_type or "application/octet-stream"

    async def upload(
        self,
        data: bytes,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StoredFile:
        """Write data under key."""
        file_path = self.path_for(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(data)

        logger.debug(f"Stored {len(data)} bytes at {key}")
        return StoredFile(
            key=key,
            size=len(data),
            content_type=content_type or self._get_content_type(key),
            etag=hashlib.md5(data).hexdigest(),
            last_modified=datetime.utcnow(),
            metadata=metadata or {},
            url=self.url_for(key),
        )

    async def download(self, key: str) -> bytes:
        async with aiofiles.open(self.path_for(key), "rb") as f:
            return await f.read()

    async def read_header(self, key: str, size: int = 12) -> bytes:
        async with aiofiles.open(self.path_for(key), "rb") as f:
            return await f.read(size)

    async def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
            return True
        except FileNotFoundError:
            return False

    async def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def directory_status(self) -> Dict[str, Any]:
        """Existence and file count of each audio directory."""
        status = {}
        for directory in AUDIO_DIRS:
            path = self.base_path / directory
            status[directory] = {
                "exists": path.is_dir(),
                "files": len([p for p in path.iterdir() if p.is_file()]) if path.is_dir() else 0,
            }
        return status


__all__ = [
    "ORIGINAL_AUDIO_DIR",
    "TRANSFORMED_AUDIO_DIR",
    "TRANSLATED_AUDIO_DIR",
    "IMAGE_DIR",
    "PROFILE_IMAGE_DIR",
    "NFT_IMAGE_DIR",
    "CONTACT_ATTACHMENT_DIR",
    "AUDIO_DIRS",
    "StoredFile",
    "LocalStorage",
    "sniff_audio_mimetype",
    "unique_name",
]
