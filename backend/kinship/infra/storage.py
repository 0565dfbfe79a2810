"""Local attachment storage.

Uploaded images are written under ``settings.upload_root`` with a ULID file
name; the file name is the attachment key carried by chat messages.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional

import ulid

from kinship.settings import settings

LOGGER = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
	"image/jpeg": ".jpg",
	"image/png": ".png",
	"image/webp": ".webp",
	"image/gif": ".gif",
}

_KEY_PATTERN = re.compile(r"^[0-9A-Z]{26}\.(jpg|png|webp|gif)$")


class InvalidAttachment(Exception):
	"""Raised when an upload or attachment key is rejected."""

	def __init__(self, reason: str) -> None:
		super().__init__(reason)
		self.reason = reason


def is_valid_key(key: str) -> bool:
	return bool(_KEY_PATTERN.match(key or ""))


class LocalAttachmentStorage:
	def __init__(self, root: Optional[Path | str] = None) -> None:
		self._root = Path(root or settings.upload_root)

	@property
	def root(self) -> Path:
		return self._root

	def path_for(self, key: str) -> Path:
		if not is_valid_key(key):
			raise InvalidAttachment("invalid_key")
		return self._root / key

	def exists(self, key: str) -> bool:
		return is_valid_key(key) and self.path_for(key).is_file()

	async def save(self, content: bytes, content_type: str) -> str:
		ext = ALLOWED_MIME_TYPES.get((content_type or "").lower())
		if ext is None:
			raise InvalidAttachment("unsupported_type")
		if not content:
			raise InvalidAttachment("empty_file")
		if len(content) > settings.upload_max_bytes:
			raise InvalidAttachment("file_too_large")
		key = f"{ulid.new().str}{ext}"
		path = self._root / key
		await asyncio.to_thread(self._write, path, content)
		return key

	@staticmethod
	def _write(path: Path, content: bytes) -> None:
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_bytes(content)

	async def delete(self, key: str) -> bool:
		"""Remove an attachment; returns False when it was already gone."""
		path = self.path_for(key)
		try:
			await asyncio.to_thread(path.unlink)
		except FileNotFoundError:
			LOGGER.debug("attachment already removed", extra={"key": key})
			return False
		return True
