"""FastAPI application serving the key entry form.

Every path answers every method:

    GET  /   -> the key form for the configured dataset
    POST /   <- decryption-key=...  (application/x-www-form-urlencoded
                or multipart/form-data)

A POST stages the submitted key in a private temporary file, runs the
unlock backend against it, and renders the outcome. After the first
successful unlock the response is sent and the server then shuts itself
down; later submissions get an "already unlocked" page without touching
the backend again.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from urllib.parse import unquote_to_bytes

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile

from keyloader.config.settings import Settings
from keyloader.domain.models import KeyStatus, UnlockResult
from keyloader.server.lifecycle import LifecycleController
from keyloader.server.pages import (
    KEY_FIELD,
    render_already_unlocked,
    render_failure,
    render_form,
    render_success,
)
from keyloader.unlock.base import UnlockError, UnlockInvoker
from keyloader.unlock.staging import KeyStagingError, stage_key
from keyloader.unlock.zfs import ZfsUnlockInvoker
from keyloader.utils.network import list_addresses

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def read_submitted_key(request: Request) -> bytes:
    """Extract the ``decryption-key`` field as bytes.

    URL-encoded bodies are decoded straight to bytes so the key reaches
    the backend exactly as the browser sent it. A missing field yields
    an empty key.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        value = form.get(KEY_FIELD)
        if value is None:
            return b""
        if isinstance(value, UploadFile):
            return await value.read()
        return value.encode("utf-8")

    body = await request.body()
    field = KEY_FIELD.encode()
    for pair in body.split(b"&"):
        name, _, value = pair.partition(b"=")
        if unquote_to_bytes(name.replace(b"+", b" ")) == field:
            return unquote_to_bytes(value.replace(b"+", b" "))
    return b""


def create_app(
    target: str,
    invoker: UnlockInvoker | None = None,
    controller: LifecycleController | None = None,
    key_dir: str | None = None,
    zfs_command: str = "zfs",
    timeout: float | None = None,
) -> FastAPI:
    """Create the key loader application.

    Args:
        target: Name of the dataset to unlock.
        invoker: Unlock backend. Defaults to ``ZfsUnlockInvoker``.
        controller: Lifecycle controller shared with the server runner.
        key_dir: Directory for staged key files (system temp dir if None).
        zfs_command: zfs binary for the default backend.
        timeout: load-key timeout for the default backend.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Serving key form for dataset %s", target)
        yield
        logger.info("Key form server stopped (unlocked=%s)", app.state.controller.unlocked)

    app = FastAPI(
        title="zfs-remote-keyloader",
        description="Web form for loading ZFS dataset keys at boot",
        version="0.2.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.target = target
    app.state.invoker = invoker or ZfsUnlockInvoker(zfs_command=zfs_command, timeout=timeout)
    app.state.controller = controller or LifecycleController()
    app.state.key_dir = key_dir

    async def _attempt_unlock(key: bytes) -> UnlockResult:
        inv: UnlockInvoker = app.state.invoker
        try:
            async with stage_key(key, app.state.key_dir) as path:
                return await inv.unlock(target, path.as_uri())
        except KeyStagingError as e:
            logger.error("Could not stage key for %s: %s", target, e)
            return UnlockResult.failure(str(e))
        except Exception as e:
            logger.exception("Unexpected error while unlocking %s", target)
            return UnlockResult.failure(f"Unexpected error: {e}")

    @app.api_route("/{path:path}", methods=ALL_METHODS, response_class=HTMLResponse)
    async def handle_request(request: Request) -> HTMLResponse:
        if request.method != "POST":
            return HTMLResponse(render_form(target))

        key = await read_submitted_key(request)
        ctl: LifecycleController = app.state.controller
        if ctl.unlocked:
            return HTMLResponse(render_already_unlocked(target))

        async with ctl.attempt():
            if ctl.unlocked:
                return HTMLResponse(render_already_unlocked(target))

            logger.info("Attempting to load key for %s", target)
            result = await _attempt_unlock(key)

            if not result.succeeded:
                logger.info("Key load for %s failed", target)
                return HTMLResponse(render_failure(target, result.diagnostic))

            if not ctl.try_mark_unlocked():
                return HTMLResponse(render_already_unlocked(target))

        # Runs once the response body has been sent.
        return HTMLResponse(
            render_success(target, result.diagnostic),
            background=BackgroundTask(ctl.request_shutdown),
        )

    return app


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

def run_server(settings: Settings, invoker: UnlockInvoker | None = None) -> bool:
    """Serve the key form until the dataset has been unlocked.

    Returns True when the dataset ended up unlocked (including when its
    key was already loaded at startup), False if the server stopped for
    any other reason.

    Raises:
        ConfigError: If no dataset is configured.
    """
    dataset = settings.require_dataset()
    if invoker is None:
        invoker = ZfsUnlockInvoker(
            zfs_command=settings.unlock.zfs_command,
            timeout=settings.unlock.timeout,
        )

    if settings.unlock.check_key_status:
        try:
            status = asyncio.run(invoker.key_status(dataset))
        except UnlockError as e:
            logger.warning("Could not read key status for %s: %s", dataset, e)
        else:
            if status is KeyStatus.AVAILABLE:
                logger.info("Key for %s is already loaded, nothing to do", dataset)
                return True

    logger.info("Starting zfs-remote-keyloader server...")
    addresses = list_addresses()
    logger.info("Server has %d IP(s):", len(addresses))
    for ip in addresses:
        logger.info(" - %s", ip)

    controller = LifecycleController()
    app = create_app(
        dataset,
        invoker=invoker,
        controller=controller,
        key_dir=settings.unlock.key_dir,
    )
    config = uvicorn.Config(app, host=settings.server.host, port=settings.server.port)
    server = uvicorn.Server(config)
    controller.attach(server)

    logger.info("Listening at %s", settings.listen_address())
    server.run()
    logger.info("Finished")
    return controller.unlocked
