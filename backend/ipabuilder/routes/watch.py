"""
Watch folder endpoints.

At most one watch loop runs per service. Status messages queue up in the
runner's channel until GET /watch/messages drains them; generation
outcomes are recorded in the metrics log as they are drained.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..watchfolders import WatchConfig, WatchFolderRunner, WatchMessage
from ..watchfolders.errors import WatchConfigError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/watch", tags=["watch"])


class WatchStatusResponse(BaseModel):
    running: bool
    config: Optional[WatchConfig] = None


class WatchMessagesResponse(BaseModel):
    messages: List[WatchMessage]


def _drain(request: Request, runner: WatchFolderRunner) -> List[WatchMessage]:
    messages = runner.drain()
    metrics = request.app.state.metrics
    for message in messages:
        metrics.observe(message)
    return messages


@router.post("/start", response_model=WatchStatusResponse)
async def start_watch(body: WatchConfig, request: Request):
    """
    Start watching a directory.

    Raises:
        409: A watch loop is already running
        400: Invalid watch or output directory, blank name, bad output name
    """
    runner = request.app.state.watch_runner
    if runner is not None and runner.is_running:
        raise HTTPException(status_code=409, detail="Watcher is already running")

    try:
        runner = WatchFolderRunner.start(body, package_fn=request.app.state.pipeline.package)
    except WatchConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    request.app.state.watch_runner = runner
    logger.info(f"Watch started: {body.watch_dir}")
    return WatchStatusResponse(running=True, config=runner.config)


@router.post("/stop", response_model=WatchMessagesResponse)
def stop_watch(request: Request):
    """
    Stop the watch loop and return any messages not yet drained.

    Blocks until an in-flight packaging run finishes.

    Raises:
        409: No watch loop has been started
    """
    runner = request.app.state.watch_runner
    if runner is None:
        raise HTTPException(status_code=409, detail="Watcher is not running")

    if not runner.stop(timeout=30.0):
        logger.warning("Watch loop did not exit within 30s")
    messages = _drain(request, runner)
    request.app.state.watch_runner = None
    return WatchMessagesResponse(messages=messages)


@router.get("/status", response_model=WatchStatusResponse)
async def watch_status(request: Request):
    runner = request.app.state.watch_runner
    if runner is None:
        return WatchStatusResponse(running=False)
    return WatchStatusResponse(running=runner.is_running, config=runner.config)


@router.get("/messages", response_model=WatchMessagesResponse)
async def watch_messages(request: Request):
    """Drain pending status messages. Returns an empty list when idle."""
    runner = request.app.state.watch_runner
    if runner is None:
        return WatchMessagesResponse(messages=[])
    return WatchMessagesResponse(messages=_drain(request, runner))
