"""
Test helpers: a UDP StatsD emitter and a fake token service.
"""

import socket
from typing import Callable, List, Optional, Tuple

from aiohttp import web

from statsd_probe.protocol import MetricParser


PREFIX = "piarch_token_service.requests"
SKELETON_KEY = ("testuser", "testpass")


class UdpEmitter:
    """Fire-and-forget StatsD sender used by tests and the fake target."""

    def __init__(self) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def send(self, payload, address: Tuple[str, int]) -> None:
        if isinstance(payload, str):
            payload = payload.encode()
        self._sock.sendto(payload, address)

    def counter(self, name: str, address: Tuple[str, int], delta: float = 1) -> None:
        self.send(MetricParser.format_counter(name, delta), address)

    def close(self) -> None:
        self._sock.close()


class FakeTargetService:
    """Stand-in for the token service.

    Each /login request bumps ``total`` and exactly one of ``success``,
    ``failed`` or ``unauthorized``, sent to whatever address the provider
    returns at request time. Nothing is sent while the provider yields None.
    """

    def __init__(self, address_provider: Callable[[], Optional[Tuple[str, int]]],
                 prefix: str = PREFIX):
        self.address_provider = address_provider
        self.prefix = prefix
        self.requests: List[Optional[str]] = []
        self.port: Optional[int] = None
        self._emitter = UdpEmitter()
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/login", self._login)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        await site.start()
        self.port = self._runner.addresses[0][1]

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
        self._emitter.close()

    def _emit(self, outcome: str) -> None:
        address = self.address_provider()
        if address is None:
            return
        self._emitter.counter(f"{self.prefix}.total", address)
        self._emitter.counter(f"{self.prefix}.{outcome}", address)

    async def _login(self, request: web.Request) -> web.Response:
        credentials = request.headers.get("authorize")
        self.requests.append(credentials)

        if credentials is None:
            self._emit("unauthorized")
            return web.Response(status=401, text="missing authorize header")

        parts = credentials.split(" ")
        user_info = parts[1].split(":") if len(parts) == 2 else []
        if len(user_info) != 2 or tuple(user_info) != SKELETON_KEY:
            self._emit("failed")
            return web.Response(status=400, text="invalid credentials")

        self._emit("success")
        return web.Response(status=200, text="eyJhbGciOiJSUzI1NiJ9.eyJzdWIiOiJ0ZXN0dXNlciJ9.c2ln")


def free_port(kind: int = socket.SOCK_STREAM) -> int:
    """Get a port that nothing is listening on."""
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
