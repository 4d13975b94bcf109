from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from websockets.asyncio.server import ServerConnection, serve


log = logging.getLogger(__name__)

COMMAND_TYPES = ("control", "mode", "keys", "param")


def parse_command(raw: Any) -> Optional[dict[str, Any]]:
    """Decode one client message; anything that is not a known command object is dropped."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        log.debug("dropping malformed client message: %r", raw)
        return None
    if not isinstance(data, dict) or data.get("type") not in COMMAND_TYPES:
        log.debug("dropping unknown client message: %r", data)
        return None
    return data


class FrameStream:
    """Websocket bridge to the presentation layer.

    Frames are broadcast to every connected client; client commands are
    queued and drained by the simulation loop between ticks.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8765) -> None:
        self.host = host
        self.port = port
        self._clients: set[ServerConnection] = set()
        self._lock = asyncio.Lock()
        self._commands: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def _handler(self, ws: ServerConnection) -> None:
        async with self._lock:
            self._clients.add(ws)
        log.info("client connected (%d total)", len(self._clients))
        try:
            async for raw in ws:
                command = parse_command(raw)
                if command is not None:
                    await self._commands.put(command)
        finally:
            async with self._lock:
                self._clients.discard(ws)
            log.info("client disconnected (%d left)", len(self._clients))

    async def start(self) -> None:
        async with serve(self._handler, self.host, self.port):
            log.info("frame stream listening on ws://%s:%d", self.host, self.port)
            await asyncio.Future()

    async def publish(self, payload: dict[str, Any]) -> None:
        msg = json.dumps(payload)
        async with self._lock:
            clients = list(self._clients)
        if not clients:
            return
        results = await asyncio.gather(*(c.send(msg) for c in clients), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                log.debug("dropped frame for a client: %s", result)

    def drain_commands(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        while True:
            try:
                out.append(self._commands.get_nowait())
            except asyncio.QueueEmpty:
                return out
