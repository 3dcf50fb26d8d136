"""Unlock module for keyloader.

Stages submitted key material on disk and hands it to a pluggable unlock
backend.

Public API:
    UnlockInvoker -- Abstract base class
    UnlockError -- Raised when the backend cannot be queried
    stage_key -- Async context manager for ephemeral key files
    ZfsUnlockInvoker -- Backend for ``zfs load-key``
"""

from keyloader.unlock.base import UnlockError, UnlockInvoker
from keyloader.unlock.staging import KeyStagingError, stage_key
from keyloader.unlock.zfs import ZfsUnlockInvoker

__all__ = [
    "KeyStagingError",
    "UnlockError",
    "UnlockInvoker",
    "ZfsUnlockInvoker",
    "stage_key",
]
