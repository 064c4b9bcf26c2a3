"""
Image storage for report photos.

Blobs live under `<base_dir>/<key>` and are served from `<base_url>/<key>`.
Report photos use the key `reports/<submission id>.jpg`.
"""

import logging
from pathlib import Path
from typing import Optional

from src.core.config import settings
from src.core.constants import REPORT_IMAGE_KEY
from src.core.errors import StorageError

logger = logging.getLogger(__name__)


def report_image_key(submission_id: str) -> str:
    """Blob key for a report's photo."""
    return REPORT_IMAGE_KEY.format(submission_id=submission_id)


class ImageStore:
    """Filesystem-backed blob store."""

    def __init__(
        self,
        base_dir: Optional[str] = None,
        base_url: Optional[str] = None
    ):
        self.base_dir = Path(base_dir or settings.image_store_dir)
        self.base_url = (base_url or settings.image_base_url).rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise StorageError(f"Invalid blob key: {key}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def upload(self, key: str, data: bytes, overwrite: bool = True) -> str:
        """
        Store a blob and return its retrievable URL.

        Args:
            key: Blob key
            data: Blob bytes
            overwrite: Replace an existing blob under the same key

        Raises:
            StorageError: if the write fails, or the key is taken and
                overwrite is False
        """
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("wb" if overwrite else "xb") as f:
                f.write(data)
        except FileExistsError as e:
            logger.error(f"Refused to overwrite blob {key}")
            raise StorageError(f"Image already exists: {key}") from e
        except OSError as e:
            logger.error(f"Failed to upload blob {key}: {e}")
            raise StorageError(f"Failed to upload image: {e}") from e

        logger.info(f"Uploaded blob {key} ({len(data)} bytes)")
        return self.url_for(key)

    def read(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            raise StorageError(f"Image not found: {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> None:
        """
        Delete a blob. A blob that is already gone is not an error.

        Raises:
            StorageError: if the blob exists but cannot be removed
        """
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete blob {key}: {e}")
            raise StorageError(f"Failed to delete image: {e}") from e

        logger.info(f"Deleted blob {key}")
