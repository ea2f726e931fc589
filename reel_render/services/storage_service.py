import asyncio
import logging
import shutil
from pathlib import Path
from urllib.parse import quote

from reel_render.config import get_settings

logger = logging.getLogger(__name__)


class LocalStorageService:
    """Publish finished artifacts to a local directory served under ``/files``.

    Artifacts are keyed ``<namespace>/<filename>``; the namespace is the
    request id so identically named outputs of concurrent requests do not
    overwrite each other. Files are kept for the process lifetime.
    """

    def __init__(self, base_path: str | Path | None = None) -> None:
        settings = get_settings()
        self.base_path = Path(base_path or settings.files_dir).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, storage_key: str) -> Path:
        full_path = (self.base_path / storage_key).resolve()
        if not full_path.is_relative_to(self.base_path):
            raise ValueError(f"Storage key escapes storage root: {storage_key}")
        return full_path

    @staticmethod
    def storage_key(namespace: str, filename: str) -> str:
        return f"{namespace}/{filename}" if namespace else filename

    def get_public_url(self, storage_key: str, base_url: str) -> str:
        """Get URL for accessing the file."""
        return f"{base_url.rstrip('/')}/files/{quote(storage_key)}"

    async def publish(self, local_path: str | Path, filename: str, base_url: str, namespace: str = "") -> str:
        """Copy a finished local file into storage and return its URL."""
        storage_key = self.storage_key(namespace, filename)
        full_path = self._get_full_path(storage_key)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, str(local_path), str(full_path))
        url = self.get_public_url(storage_key, base_url)
        logger.info(f"[PUBLISH] {filename} -> {storage_key}")
        return url

    def file_exists(self, storage_key: str) -> bool:
        try:
            return self._get_full_path(storage_key).is_file()
        except ValueError:
            return False

    def get_file_path(self, storage_key: str) -> Path:
        """Get the actual file path for serving."""
        return self._get_full_path(storage_key)


_storage_service: LocalStorageService | None = None


def get_storage_service() -> LocalStorageService:
    global _storage_service
    if _storage_service is None:
        _storage_service = LocalStorageService()
    return _storage_service
