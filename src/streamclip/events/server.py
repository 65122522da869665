"""WebSocket listener server — streams broadcast events to dashboards."""

from __future__ import annotations

import asyncio
import json

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from streamclip.events.bus import EventBus
from streamclip.utils.progress import log_step

HELLO = json.dumps({"type": "hello", "ok": True})


class ListenerServer:
    """Accepts listener connections and forwards every bus message to them.

    Listeners get only what is published while they are connected.
    """

    def __init__(self, bus: EventBus[str], host: str, port: int, *, queue_size: int = 256):
        self.bus = bus
        self.host = host
        self.port = port
        self.queue_size = queue_size
        self._server: Server | None = None

    async def start(self) -> None:
        self._server = await serve(self._handle, self.host, self.port)
        if self.port == 0:
            self.port = self._server.sockets[0].getsockname()[1]
        log_step("Listeners", f"Serving events on ws://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None

    async def _handle(self, connection: ServerConnection) -> None:
        sub = self.bus.subscribe(self.queue_size, name=str(connection.remote_address))
        log_step("Listeners", f"Listener connected: {connection.remote_address}")
        try:
            await connection.send(HELLO)
            pump = asyncio.create_task(self._pump(connection, sub))
            try:
                # Inbound messages are ignored; this returns when the client leaves.
                async for _ in connection:
                    pass
            finally:
                pump.cancel()
        except ConnectionClosed:
            pass
        finally:
            sub.close()
            log_step("Listeners", f"Listener disconnected: {connection.remote_address}")

    @staticmethod
    async def _pump(connection: ServerConnection, sub) -> None:
        try:
            async for message in sub:
                await connection.send(message)
        except ConnectionClosed:
            sub.close()
