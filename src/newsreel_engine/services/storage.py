"""Object store for generated media.

Objects are addressed by ``{ULID}.{ext}`` keys, so keys are globally unique
and sort by creation time. The local backend writes under ``storage_path``
and the objects are served from ``storage_public_base_url``.
"""

import hashlib
from dataclasses import dataclass
from pathlib import Path

from ulid import ULID

from newsreel_engine.config import settings
from newsreel_engine.logging import get_logger

logger = get_logger(__name__)

MIME_EXTENSIONS: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "text/plain": "txt",
}


@dataclass
class StoredObject:
    """Metadata for a stored object."""

    key: str
    public_url: str
    size: int
    mime_type: str
    checksum: str


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type (``bin`` when unknown)."""
    return MIME_EXTENSIONS.get(mime_type.split(";")[0].strip().lower(), "bin")


def new_object_key(mime_type: str) -> str:
    return f"{ULID()}.{extension_for(mime_type)}"


class ObjectStore:
    """Content store keyed by sortable unique identifiers.

    Callers never reuse a key: every put allocates a fresh one, so a
    regenerated asset never overwrites a URL that is already published.
    """

    def __init__(
        self,
        base_path: Path | None = None,
        public_base_url: str | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            base_path: Directory backing the store. Defaults to settings.storage_path
            public_base_url: URL prefix objects are served from
        """
        self.base_path = Path(base_path or settings.storage_path)
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def _path(self, key: str) -> Path:
        if "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid object key: {key}")
        return self.base_path / key

    def put(self, data: bytes, mime_type: str) -> StoredObject:
        """Store bytes under a new key.

        Args:
            data: Object content
            mime_type: Content type, which also picks the key extension

        Returns:
            StoredObject with key and public URL
        """
        key = new_object_key(mime_type)
        self._path(key).write_bytes(data)
        stored = StoredObject(
            key=key,
            public_url=self.public_url(key),
            size=len(data),
            mime_type=mime_type,
            checksum=hashlib.sha256(data).hexdigest(),
        )
        logger.debug("object_stored", key=key, size=stored.size, mime_type=mime_type)
        return stored

    def get(self, key: str) -> bytes:
        """Read an object. Raises FileNotFoundError for unknown keys."""
        return self._path(key).read_bytes()

    def is_writable(self) -> bool:
        """Write and remove a marker object outside the key space."""
        marker = self.base_path / ".write-check"
        try:
            marker.write_bytes(b"ok")
            marker.unlink()
        except OSError as e:
            logger.warning("object_store_not_writable", base_path=str(self.base_path), error=str(e))
            return False
        return True


def get_object_store() -> ObjectStore:
    """Object store configured from settings."""
    return ObjectStore()
