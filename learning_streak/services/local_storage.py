import hashlib
import os
from typing import Optional, Union
from pathlib import Path
from urllib.parse import quote

from learning_streak.core.config import settings
from learning_streak.core.logging import get_logger
from learning_streak.utils.exceptions import LocalUnavailableError

logger = get_logger(__name__)

# Most filesystems cap a name at 255 bytes
MAX_FILENAME_STEM = 200


class LocalCacheService:
    """Key-value cache on the local filesystem, one JSON file per key"""

    def __init__(self, storage_root: Optional[Union[str, Path]] = None):

        storage_path = storage_root or getattr(settings, 'LOCAL_STORAGE_ROOT', './storage')
        self.cache_root = (Path(storage_path) / "cache").resolve()
        logger.info(f"Local streak cache at: {self.cache_root}")

    def _path_for(self, key: str) -> Path:
        if not key:
            raise LocalUnavailableError("Invalid cache key: empty")
        # Percent-encoding is reversible, so distinct keys never share a file
        safe_key = quote(key, safe="")
        if len(safe_key) > MAX_FILENAME_STEM:
            safe_key = "sha256-" + hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_root / f"{safe_key}.json"

    async def get(self, key: str) -> Optional[str]:
        """Read the cached value for key, or None when absent"""
        path = self._path_for(key)
        try:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read cache entry {key}: {e}")
            raise LocalUnavailableError(f"Cache read failed: {e}", details={"key": key})

    async def set(self, key: str, value: str) -> None:
        """Write value for key, replacing any previous entry"""
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.cache_root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
            logger.debug(f"Cached {key} ({len(value)} bytes)")
        except OSError as e:
            logger.error(f"Failed to write cache entry {key}: {e}")
            raise LocalUnavailableError(f"Cache write failed: {e}", details={"key": key})

