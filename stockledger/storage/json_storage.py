"""JSON file persistence provider with retry on write."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from .base import StorageKey, StorageProvider
from ..utils.config import get_config
from ..utils.logger import get_storage_logger
from ..utils.exceptions import StorageError


class JsonFileStorage(StorageProvider):
    """Stores each key as ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the provider.

        Args:
            data_dir: Directory for the JSON files (defaults to the configured one)
        """
        self.config = get_config()
        self.logger = get_storage_logger()
        self.data_dir = Path(data_dir) if data_dir is not None else self.config.data_dir
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: StorageKey) -> Path:
        return self.data_dir / f"{StorageKey(key).value}.json"

    def load(self, key: StorageKey, default: Any = None) -> Any:
        """Read a key; missing or unreadable files yield ``default``."""
        path = self.path_for(key)
        if not path.exists():
            self.logger.debug(f"No stored value for {StorageKey(key).value}, using default")
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Failed to load {path}: {str(e)}")
            return default

    def save(self, key: StorageKey, value: Any) -> None:
        """
        Write a key atomically.

        Raises:
            StorageError: If every attempt fails
        """
        path = self.path_for(key)
        storage_config = self.config.storage

        @retry(
            stop=stop_after_attempt(storage_config.max_retries),
            wait=wait_exponential(multiplier=storage_config.retry_delay),
            retry=retry_if_exception_type(OSError),
            reraise=True
        )
        def _write():
            fd, tmp_name = tempfile.mkstemp(dir=str(self.data_dir), prefix=f".{path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, indent=storage_config.indent, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

        try:
            _write()
            self.logger.debug(f"Saved {path}")
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to save {StorageKey(key).value}: {str(e)}",
                details={"path": str(path), "error": str(e)}
            )
