"""In-memory save slot, for tests and throwaway sessions."""

from typing import Optional

from src.constants import DEFAULT_SAVE_KEY


class MemorySaveSlot:
    """Save slot that lives as long as the process."""

    def __init__(self, key: str = DEFAULT_SAVE_KEY, text: Optional[str] = None):
        self._key = key
        self._text = text

    @property
    def backend_type(self) -> str:
        return "memory"

    @property
    def key(self) -> str:
        return self._key

    def read(self) -> Optional[str]:
        return self._text

    def write(self, text: str) -> None:
        self._text = text

    def clear(self) -> None:
        self._text = None
