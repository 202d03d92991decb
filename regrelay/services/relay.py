"""
Relay lifecycle contract.

A relay performs the actual image transfer for sync requests. Callers
treat every relay the same way: ``prepare()`` once before any traffic,
``sync()`` per request, ``dispose()`` at shutdown.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..domain.sync import SyncOptions, SyncResult


class Relay(ABC):
    """Base class for relay backends."""

    relay_id: str = ""

    @abstractmethod
    def prepare(self) -> Optional[str]:
        """Check that the relay can work; raise if it cannot."""

    @abstractmethod
    def sync(self, options: SyncOptions) -> SyncResult:
        """Sync the tags named by ``options``."""

    def dispose(self) -> None:
        """Release held resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False
