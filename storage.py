"""Binary object storage on the local disk, served by main.py under MEDIA_URL."""
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Optional

from config import MEDIA_ROOT, MEDIA_URL
from errors import FormValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: Optional[str]) -> str:
    name = _UNSAFE_CHARS.sub("_", PurePosixPath(filename or "").name).strip("._")
    return name or "upload"


def menu_image_path(restaurant_id: str, item_id: str, filename: Optional[str]) -> str:
    return f"restaurants/{restaurant_id}/menu/{item_id}/{safe_filename(filename)}"


def cover_image_path(restaurant_id: str, filename: Optional[str]) -> str:
    return f"restaurants/{restaurant_id}/cover/{safe_filename(filename)}"


class FileStorage:
    def __init__(self, root: str = MEDIA_ROOT, base_url: str = MEDIA_URL):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def _target(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise FormValidationError(f"Invalid storage path: {path}")
        return self.root.joinpath(*relative.parts)

    def upload(self, path: str, data: bytes) -> str:
        """Write `data` under `path` and return the URL it is served from."""
        target = self._target(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored %s (%d bytes)", path, len(data))
        return f"{self.base_url}/{PurePosixPath(path)}"

    def delete(self, path: str) -> bool:
        target = self._target(path)
        if not target.exists():
            return False
        target.unlink()
        return True


storage = FileStorage()
