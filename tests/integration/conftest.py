"""Integration fixtures: a local websocket relay served by aiohttp.

The relay speaks just enough NIP-01 for a session to connect, subscribe and
publish against the real ``nostr_sdk`` client: ``REQ`` gets an immediate
``EOSE``, ``EVENT`` gets an ``OK``, and ``CLOSE`` is ignored.
"""

from __future__ import annotations

import json
from typing import Any

import pytest
from aiohttp import WSMsgType, web


class LocalRelay:
    """In-process relay that records traffic and can hang up on its clients."""

    def __init__(self) -> None:
        self.connections = 0
        self.received: list[list[Any]] = []
        self._sockets: set[web.WebSocketResponse] = set()
        self._runner: web.AppRunner | None = None
        self.url = ""

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/", self._handle)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        self._runner = runner
        port = runner.addresses[0][1]
        self.url = f"ws://127.0.0.1:{port}"

    async def stop(self) -> None:
        await self.hang_up()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def hang_up(self) -> None:
        """Close every open client connection from the relay side."""
        for ws in list(self._sockets):
            await ws.close()

    async def _handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.connections += 1
        self._sockets.add(ws)
        try:
            async for msg in ws:
                if msg.type is not WSMsgType.TEXT:
                    continue
                message = json.loads(msg.data)
                self.received.append(message)
                if message[0] == "REQ":
                    await ws.send_json(["EOSE", message[1]])
                elif message[0] == "EVENT":
                    await ws.send_json(["OK", message[1]["id"], True, ""])
        finally:
            self._sockets.discard(ws)
        return ws


@pytest.fixture
async def local_relay():
    """A running [LocalRelay][] on an ephemeral port."""
    relay = LocalRelay()
    await relay.start()
    yield relay
    await relay.stop()
