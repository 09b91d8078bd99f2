"""
Save slot factory.

Creates the configured save slot backend from an EditorConfig.
"""

import logging
from typing import Optional, TYPE_CHECKING

from src.config import EditorConfig
from src.storage.file_slot import FileSaveSlot
from src.storage.memory_slot import MemorySaveSlot

if TYPE_CHECKING:
    from src.storage.protocol import SaveSlot

logger = logging.getLogger(__name__)

BACKENDS = ("file", "memory")


def get_backend_type(config: EditorConfig) -> str:
    return (config.storage_backend or "file").strip().lower()


def create_slot(config: Optional[EditorConfig] = None, force_backend: Optional[str] = None) -> "SaveSlot":
    """
    Create a save slot for the configured backend.

    Args:
        config: Editor configuration (defaults if omitted)
        force_backend: Override the configured backend type

    Returns:
        SaveSlot instance (FileSaveSlot or MemorySaveSlot)

    Raises:
        ValueError: if the backend type is unknown.
    """
    config = config or EditorConfig()
    backend_type = force_backend or get_backend_type(config)

    if backend_type == "file":
        logger.info(f"Using file save slot '{config.save_key}' in {config.data_path}")
        return FileSaveSlot(config.data_path, config.save_key)
    if backend_type == "memory":
        logger.info(f"Using in-memory save slot '{config.save_key}'")
        return MemorySaveSlot(config.save_key)
    raise ValueError(f"Unknown storage backend: {backend_type!r} (expected one of {', '.join(BACKENDS)})")
