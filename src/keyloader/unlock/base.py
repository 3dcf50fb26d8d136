"""Abstract base class for unlock backends.

A backend knows how to hand a staged key to whatever actually decrypts
the target (``zfs load-key`` in production, a stub in tests). The server
only ever talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from keyloader.domain.models import KeyStatus, UnlockResult


class UnlockInvoker(ABC):
    """Abstract interface for loading a key into an encrypted target.

    Implementations receive a *reference* to the key material (a
    ``file://`` URI of a staged key file), never the key bytes, so the
    secret does not show up in any process argument list.

    Example usage::

        invoker = ZfsUnlockInvoker()
        async with stage_key(b"hunter2") as path:
            result = await invoker.unlock("rpool/data", path.as_uri())
        if result.succeeded:
            ...
    """

    @abstractmethod
    async def unlock(self, target: str, key_reference: str) -> UnlockResult:
        """Load the key referenced by ``key_reference`` for ``target``.

        Failures of the unlock operation itself (wrong key, missing
        binary, timeout) are reported through the returned result rather
        than raised.

        Args:
            target: Name of the encrypted dataset.
            key_reference: URI of the staged key material.
        """
        ...

    @abstractmethod
    async def key_status(self, target: str) -> KeyStatus:
        """Report whether the key for ``target`` is already loaded.

        Raises:
            UnlockError: If the status cannot be determined, or the target
                is not encrypted.
        """
        ...


class UnlockError(Exception):
    """Raised when the unlock backend cannot be queried."""

    def __init__(self, message: str, target: str = "") -> None:
        super().__init__(message)
        self.target = target
