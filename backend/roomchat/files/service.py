"""Blob storage service for uploaded files.

The chat core treats uploads as an opaque blob store: bytes go in, a public
URL comes out. Files are stored flat in ``{upload_dir}/{uuid}{ext}`` and
served back under ``{public_prefix}/{uuid}{ext}``.
"""
import logging
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class BlobStore:
    """Service for storing uploaded files on local disk."""

    _instance: Optional["BlobStore"] = None
    _upload_dir: str = "uploads"
    _public_prefix: str = "/uploads"
    _max_size_bytes: int = 20 * 1024 * 1024

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        public_prefix: Optional[str] = None,
        max_size_bytes: Optional[int] = None,
    ):
        """Initialize the blob store and create its directory."""
        if upload_dir:
            self._upload_dir = upload_dir
        if public_prefix:
            self._public_prefix = public_prefix.rstrip("/")
        if max_size_bytes:
            self._max_size_bytes = max_size_bytes
        Path(self._upload_dir).mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_instance(
        cls,
        upload_dir: Optional[str] = None,
        public_prefix: Optional[str] = None,
        max_size_bytes: Optional[int] = None,
    ) -> "BlobStore":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls(upload_dir, public_prefix, max_size_bytes)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    @property
    def max_size_bytes(self) -> int:
        return self._max_size_bytes

    def store(self, content: bytes, filename: str = "") -> str:
        """Save bytes to disk and return their public URL.

        Args:
            content: File content.
            filename: Original filename; only its extension is kept.

        Returns:
            Public URL of the stored file.

        Raises:
            ValueError: If the content exceeds the size limit.
        """
        size_bytes = len(content)
        if size_bytes > self._max_size_bytes:
            raise ValueError(
                f"File size ({size_bytes} bytes) exceeds limit "
                f"({self._max_size_bytes} bytes)"
            )

        stored_name = f"{uuid.uuid4()}{Path(filename).suffix.lower()}"
        file_path = Path(self._upload_dir) / stored_name
        file_path.write_bytes(content)

        logger.info(f"Saved file: {file_path} ({size_bytes} bytes)")
        return f"{self._public_prefix}/{stored_name}"

    def get_path(self, stored_name: str) -> Optional[Path]:
        """Disk path for a stored file name, or None if absent or not a plain name."""
        if not stored_name or Path(stored_name).name != stored_name:
            return None

        file_path = Path(self._upload_dir) / stored_name
        if not file_path.is_file():
            return None
        return file_path
