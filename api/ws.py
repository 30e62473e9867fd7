"""WebSocket endpoint for real-time combat log notifications."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()

# Connected clients
connections: list[WebSocket] = []


async def broadcast(message: dict[str, Any]) -> None:
    """Send a message to all connected WebSocket clients.

    Args:
        message: The JSON-serializable message to send.
    """
    disconnected = []
    for i, ws in enumerate(connections):
        try:
            await ws.send_json(message)
        except Exception:
            disconnected.append(i)
    # Clean up disconnected clients
    for i in reversed(disconnected):
        connections.pop(i)


async def notify_log(lines: list[str]) -> None:
    """Push newly appended combat log lines."""
    if lines:
        await broadcast({"type": "log", "lines": lines})


async def notify_result(result: str, round_number: int) -> None:
    """Notify all clients that the encounter is decided."""
    await broadcast({
        "type": "result",
        "result": result,
        "round": round_number,
    })


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Stream combat log lines and the final result to the client."""
    await websocket.accept()
    connections.append(websocket)

    try:
        state = websocket.app.state.session.state
        await websocket.send_json({
            "type": "connected",
            "phase": state.phase.value,
            "round": state.round,
        })

        # Keep connection alive; client messages are ignored
        while True:
            try:
                await websocket.receive_text()
            except WebSocketDisconnect:
                break
    finally:
        if websocket in connections:
            connections.remove(websocket)
