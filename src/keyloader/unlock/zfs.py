"""ZFS unlock backend built on the ``zfs`` command-line tool.

Loads a dataset key with::

    zfs load-key -L file:///tmp/zfs-key-XXXX -- <dataset>

and queries the current key state with::

    zfs get -H -o value keystatus -- <dataset>
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from keyloader.domain.models import KeyStatus, UnlockResult
from keyloader.unlock.base import UnlockError, UnlockInvoker

logger = logging.getLogger(__name__)

DEFAULT_ZFS_COMMAND = "zfs"


class ZfsUnlockInvoker(UnlockInvoker):
    """Runs ``zfs load-key`` as a subprocess.

    The child's stdout and stderr are merged and returned as the
    diagnostic text. With ``timeout`` set, a child still running after
    that many seconds is killed and the attempt counts as a failure.
    """

    def __init__(
        self,
        zfs_command: str = DEFAULT_ZFS_COMMAND,
        timeout: float | None = None,
    ) -> None:
        self._zfs_command = zfs_command
        self._timeout = timeout

    @property
    def zfs_command(self) -> str:
        return self._zfs_command

    @property
    def timeout(self) -> float | None:
        return self._timeout

    async def unlock(self, target: str, key_reference: str) -> UnlockResult:
        args = ["load-key", "-L", key_reference, "--", target]
        try:
            returncode, output = await self._run(args, self._timeout)
        except asyncio.TimeoutError:
            logger.error("zfs load-key for %s timed out after %s seconds", target, self._timeout)
            return UnlockResult.failure(
                f"Error loading zfs key: timed out after {self._timeout:g} seconds"
            )
        except OSError as e:
            logger.error("Failed to run %s: %s", self._zfs_command, e)
            return UnlockResult.failure(f"Error running {self._zfs_command}: {e}")

        if returncode != 0:
            logger.warning("zfs load-key for %s exited with status %d", target, returncode)
            return UnlockResult.failure(output or f"zfs load-key exited with status {returncode}")

        logger.info("Loaded key for %s", target)
        return UnlockResult(succeeded=True, diagnostic=output)

    async def key_status(self, target: str) -> KeyStatus:
        args = ["get", "-H", "-o", "value", "keystatus", "--", target]
        try:
            returncode, output = await self._run(args, self._timeout)
        except asyncio.TimeoutError:
            raise UnlockError("timed out reading keystatus", target) from None
        except OSError as e:
            raise UnlockError(f"failed to spawn {self._zfs_command}: {e}", target) from e

        if returncode != 0:
            raise UnlockError(f"failed to get keystatus: {output}", target)

        value = output.strip()
        if value == "-":
            raise UnlockError(f"dataset {target} is not encrypted", target)
        try:
            return KeyStatus(value)
        except ValueError:
            raise UnlockError(f"unexpected value for keystatus: {value!r}", target) from None

    async def _run(self, args: list[str], timeout: float | None) -> tuple[int, str]:
        """Run the zfs command and return (exit status, combined output)."""
        proc = await asyncio.create_subprocess_exec(
            self._zfs_command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout)
        finally:
            # Timed out or cancelled: never leave the child running
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await asyncio.shield(proc.wait())
        return proc.returncode, stdout.decode("utf-8", errors="replace").strip()
