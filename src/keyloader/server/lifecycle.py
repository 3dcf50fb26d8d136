"""One-shot unlock state and server shutdown coordination.

The server lives for exactly one successful unlock. The controller owns
the ``unlocked`` flag (false until the first successful attempt, never
reset), serializes unlock attempts, and triggers the listener's graceful
shutdown at most once. It never exits the process; the caller of
``run_server`` decides the exit status.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class Stoppable(Protocol):
    """Anything with uvicorn's ``should_exit`` flag."""

    should_exit: bool


class LifecycleController:
    """Owns the unlocked flag and the shutdown trigger.

    Usage::

        controller = LifecycleController()
        controller.attach(uvicorn_server)
        ...
        if result.succeeded and controller.try_mark_unlocked():
            controller.request_shutdown()
    """

    def __init__(self) -> None:
        self._state_lock = threading.Lock()
        self._attempt_lock = asyncio.Lock()
        self._unlocked = False
        self._shutdown_requested = False
        self._server: Stoppable | None = None

    @property
    def unlocked(self) -> bool:
        with self._state_lock:
            return self._unlocked

    @property
    def shutdown_requested(self) -> bool:
        with self._state_lock:
            return self._shutdown_requested

    def attach(self, server: Stoppable) -> None:
        """Bind the listener that ``request_shutdown`` will stop."""
        self._server = server

    def attempt(self) -> asyncio.Lock:
        """Lock held for the duration of one unlock attempt.

        Holders must re-check ``unlocked`` after acquiring it.
        """
        return self._attempt_lock

    def try_mark_unlocked(self) -> bool:
        """Flip ``unlocked`` to True. Returns True only for the caller that flipped it."""
        with self._state_lock:
            if self._unlocked:
                return False
            self._unlocked = True
        logger.info("Target unlocked")
        return True

    def request_shutdown(self) -> bool:
        """Ask the listener to stop gracefully.

        Only honoured once, and only after a successful unlock. uvicorn
        stops accepting connections and lets in-flight responses finish
        before ``Server.run`` returns.

        Returns:
            True if this call initiated the shutdown.
        """
        with self._state_lock:
            if not self._unlocked or self._shutdown_requested:
                return False
            self._shutdown_requested = True

        if self._server is None:
            logger.warning("Shutdown requested but no server is attached")
        else:
            self._server.should_exit = True
        logger.info("Shutting down server")
        return True
