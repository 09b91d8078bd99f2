"""
SaveSlot Protocol Definition.

A save slot is a single named key-value entry holding the latest saved flow
document as JSON text. Every save overwrites it; there is no history.
Both FileSaveSlot (local files) and MemorySaveSlot conform to this protocol.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class SaveSlot(Protocol):
    """Abstract protocol for save slot backends."""

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('file' or 'memory')."""
        ...

    @property
    def key(self) -> str:
        """Name of the slot."""
        ...

    def read(self) -> Optional[str]:
        """
        Return the stored document text.

        Returns:
            The JSON text of the last save, or None if nothing was saved yet.
        """
        ...

    def write(self, text: str) -> None:
        """
        Replace the stored document text.

        Args:
            text: Serialized flow document
        """
        ...

    def clear(self) -> None:
        """Forget the stored document. No-op if the slot is empty."""
        ...
