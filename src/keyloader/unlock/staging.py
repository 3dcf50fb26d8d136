"""Ephemeral on-disk staging for submitted key material.

``zfs load-key`` reads keys from a location URI, so the submitted bytes
have to live somewhere for the duration of one attempt. Each attempt gets
its own file created with ``mkstemp`` (random name, ``O_EXCL``, mode
0600), and the file is unlinked as soon as the caller's block exits,
whatever the outcome.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

logger = logging.getLogger(__name__)

KEY_FILE_PREFIX = "zfs-key-"


class KeyStagingError(Exception):
    """Raised when the key file cannot be created, written, or closed."""


def _write_key_file(key: bytes, directory: str | None) -> Path:
    try:
        fd, name = tempfile.mkstemp(prefix=KEY_FILE_PREFIX, dir=directory)
    except OSError as e:
        raise KeyStagingError(f"Error creating temp key file: {e}") from e

    path = Path(name)
    try:
        try:
            view = memoryview(key)
            while view:
                written = os.write(fd, view)
                view = view[written:]
        finally:
            os.close(fd)
    except OSError as e:
        _remove_key_file(path)
        raise KeyStagingError(f"Error writing to key file: {e}") from e
    return path


def _remove_key_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Staged key file %s was already removed", path)


@asynccontextmanager
async def stage_key(key: bytes, directory: str | None = None) -> AsyncIterator[Path]:
    """Write ``key`` to a private temporary file for the life of the block.

    Args:
        key: Raw key bytes, written verbatim.
        directory: Where to create the file. Defaults to the system temp
                   directory.

    Yields:
        Path of the staged key file.

    Raises:
        KeyStagingError: If the file cannot be created or written.
    """
    loop = asyncio.get_running_loop()
    path = await loop.run_in_executor(None, _write_key_file, key, directory)
    logger.debug("Staged key file %s", path)
    try:
        yield path
    finally:
        await asyncio.shield(loop.run_in_executor(None, _remove_key_file, path))
        logger.debug("Removed key file %s", path)
