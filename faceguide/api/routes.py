import asyncio
import contextlib
import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from faceguide.api.models import HostMessage, StateMessage, StatusResponse
from faceguide.pipeline import PipelineState
from faceguide.presentation.sink import build_host_message, encode_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", response_model=StatusResponse)
async def get_status(request: Request):
    """Latest frame status and pipeline state."""
    latest = request.app.state.board.latest
    return StatusResponse(
        face_detected=latest.status.face_detected,
        face_centered=latest.status.face_centered,
        lighting_good=latest.status.lighting_good,
        brightness=latest.brightness,
        frame_index=latest.frame_index,
        state=latest.state,
        error=latest.error,
    )


@router.get("/snapshot", response_model=HostMessage)
async def get_snapshot(request: Request):
    """On-demand host message with a PNG snapshot of the latest frame."""
    latest = request.app.state.board.latest
    if latest.state is not PipelineState.RUNNING:
        detail = f"Pipeline not running: {latest.state.value}"
        if latest.error:
            detail += f": {latest.error}"
        raise HTTPException(status_code=503, detail=detail)
    if latest.frame is None:
        raise HTTPException(status_code=503, detail="No frame analyzed yet")

    try:
        image = encode_snapshot(latest.frame)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return build_host_message(latest.status, image)


@router.websocket("/ws")
async def host_socket(websocket: WebSocket):
    """Push one host message per analyzed frame to the connected host."""
    await websocket.accept()
    broadcaster = websocket.app.state.broadcaster
    board = websocket.app.state.board

    queue = broadcaster.subscribe()

    async def pump():
        try:
            while True:
                payload = await queue.get()
                await websocket.send_json(payload)
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug("Host socket send stopped: %s", e)

    sender = None
    try:
        latest = board.latest
        if latest.state.is_failure:
            # Late subscribers still learn why nothing is coming
            await websocket.send_json(StateMessage(state=latest.state, error=latest.error).model_dump(mode="json"))

        sender = asyncio.create_task(pump())
        # Hosts only listen; receive raises WebSocketDisconnect when they leave
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        if sender is not None:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender
        broadcaster.unsubscribe(queue)
