"""
Save slot backends for the flow editor.

- FileSaveSlot: one JSON file per slot on local disk (default)
- MemorySaveSlot: process-local, nothing touches disk
"""

from src.storage.protocol import SaveSlot
from src.storage.file_slot import FileSaveSlot
from src.storage.memory_slot import MemorySaveSlot
from src.storage.factory import create_slot, get_backend_type

__all__ = [
    'SaveSlot',
    'FileSaveSlot',
    'MemorySaveSlot',
    'create_slot',
    'get_backend_type',
]
