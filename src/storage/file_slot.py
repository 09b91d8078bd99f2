"""
File-based save slot.

Stores each slot as {data_dir}/{key}.json. Writes go to a temporary file
first and are then renamed over the slot, so a crash mid-save never leaves a
truncated document behind.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def _safe_key(key: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key).strip(".")
    if not safe:
        raise ValueError(f"Invalid save slot key: {key!r}")
    return safe


class FileSaveSlot:
    """Save slot persisted as one JSON file."""

    def __init__(self, data_dir: Union[str, Path], key: str):
        self.data_dir = Path(data_dir)
        self._key = key
        self.path = self.data_dir / f"{_safe_key(key)}.json"

        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def backend_type(self) -> str:
        return "file"

    @property
    def key(self) -> str:
        return self._key

    def read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, text: str) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, self.path)
        logger.debug(f"Wrote save slot {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
