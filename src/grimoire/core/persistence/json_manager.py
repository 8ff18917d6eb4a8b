"""
Centralized JSON persistence utilities.

Provides consistent error handling, logging and atomic writes for the
file-backed stores.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class JSONRepository:
    """JSON persistence with consistent error handling and atomic operations."""

    @staticmethod
    def load_json(
        path: Path, default: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Load JSON data from file with consistent error handling.

        Args:
            path: Path to JSON file
            default: Default value to return if file doesn't exist or fails to load

        Returns:
            Dictionary containing JSON data or default value
        """
        if default is None:
            default = {}

        if not path.exists():
            logger.debug(f"JSON file does not exist: {path}")
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON file {path}: {e}")
            return default
        except OSError as e:
            logger.error(f"Unexpected error loading JSON file {path}: {e}")
            return default

        if data is None:
            logger.warning(f"JSON file is empty: {path}")
            return default

        logger.debug(f"Successfully loaded JSON from {path}")
        return data if isinstance(data, dict) else default

    @staticmethod
    def save_json(path: Path, data: Dict[str, Any], *, atomic: bool = True) -> bool:
        """
        Save JSON data to file with atomic operation support.

        The temp file is fsynced before the rename so a completed save
        survives a crash.

        Args:
            path: Path to save JSON file
            data: Dictionary to save as JSON
            atomic: If True, write to temp file then rename (atomic operation)

        Returns:
            True if successful, False otherwise
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            target = path.with_suffix(path.suffix + ".tmp") if atomic else path
            with open(target, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            if atomic:
                os.replace(target, path)

            logger.debug(f"Successfully saved JSON to {path}")
            return True

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save JSON file {path}: {e}")
            return False
