from __future__ import annotations

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState


class WebSocketStream:
    """DuplexStream over an accepted WebSocket: any frame in, binary frames out."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def read(self) -> bytes | None:
        try:
            message = await self.websocket.receive()
        except (WebSocketDisconnect, RuntimeError):
            return None
        if message["type"] == "websocket.disconnect":
            return None
        data = message.get("bytes")
        if data is not None:
            return data
        return (message.get("text") or "").encode("utf-8")

    async def write(self, data: bytes) -> None:
        await self.websocket.send_bytes(data)

    async def close(self) -> None:
        if self.websocket.application_state == WebSocketState.CONNECTED:
            await self.websocket.close()
