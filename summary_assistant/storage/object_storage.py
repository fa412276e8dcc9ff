import logging
import time
from pathlib import Path

from summary_assistant.services.errors import UploadError

logger = logging.getLogger(__name__)


def generate_storage_path(filename: str, now: float | None = None) -> str:
    """``<unix-ms-timestamp>.<original extension>``, e.g. ``1718000000123.pdf``."""
    timestamp = int((time.time() if now is None else now) * 1000)
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return f"{timestamp}.{ext}" if ext else str(timestamp)


class LocalObjectStorage:
    """Stores uploads as files under a root directory."""

    def __init__(self, root: str):
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise UploadError(f"Invalid storage path: {path}")
        return target

    def put(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise UploadError(f"Failed to upload file: {e}") from e
        logger.info(f"Stored {len(data)} bytes at {target}")
        return target.as_uri()

    def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise UploadError(f"Failed to read stored file {path}: {e}") from e
