"""
HTTP Probe Client

Issues single, non-retried GET requests against the target service and
classifies transport failures into timeout and connection error kinds.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp


logger = logging.getLogger(__name__)


class ProbeErrorKind(Enum):
    """Transport failure categories for a probe."""
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_ERROR = "connection_error"


@dataclass
class ProbeResult:
    """Outcome of a single HTTP probe."""
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[ProbeErrorKind] = None
    error_message: Optional[str] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        """True when a response was received, whatever its status."""
        return self.error is None

    @property
    def succeeded(self) -> bool:
        """True for a 2xx response."""
        return self.status_code is not None and 200 <= self.status_code < 300

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "status_code": self.status_code,
            "body_length": len(self.body),
            "error": self.error.value if self.error else None,
            "error_message": self.error_message,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


class ProbeClient:
    """aiohttp-based GET client bound to one target host and port."""

    def __init__(self, host: str = "127.0.0.1", port: int = 8000,
                 timeout_ms: int = 5000, scheme: str = "http"):
        self.host = host
        self.port = port
        self.timeout_ms = timeout_ms
        self.base_url = f"{scheme}://{host}:{port}"
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure HTTP session is created."""
        if self._session is None or self._session.closed:
            # One connection per probe, nothing is reused across requests
            connector = aiohttp.TCPConnector(force_close=True)
            self._session = aiohttp.ClientSession(connector=connector)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def probe(self, path: str, headers: Optional[Dict[str, str]] = None,
                    timeout_ms: Optional[int] = None) -> ProbeResult:
        """Send one GET request and buffer the whole response body.

        Args:
            path: Request path, e.g. ``/login``.
            headers: Optional request headers.
            timeout_ms: Total timeout in milliseconds. Defaults to the client's.

        Returns:
            ProbeResult holding either a status and body or an error kind.

        Raises:
            ValueError: If the timeout is not positive.
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        # aiohttp treats a zero total as no timeout at all
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        await self._ensure_session()

        timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000.0)
        url = f"{self.base_url}{path}"
        started = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - started) * 1000.0

        try:
            async with self._session.get(url, headers=headers or {}, timeout=timeout) as response:
                payload = await response.read()
                body = self._decode(payload, response.charset)
                logger.debug(f"GET {url} -> {response.status} ({len(body)} bytes)")
                return ProbeResult(status_code=response.status, body=body, elapsed_ms=elapsed())

        except asyncio.TimeoutError:
            return ProbeResult(
                error=ProbeErrorKind.TIMEOUT,
                error_message=f"Request timeout after {timeout_ms}ms",
                elapsed_ms=elapsed()
            )
        except aiohttp.ClientConnectorError as e:
            kind = (ProbeErrorKind.CONNECTION_REFUSED
                    if isinstance(e.os_error, ConnectionRefusedError)
                    else ProbeErrorKind.CONNECTION_ERROR)
            return ProbeResult(error=kind, error_message=str(e), elapsed_ms=elapsed())
        except aiohttp.ClientError as e:
            return ProbeResult(
                error=ProbeErrorKind.CONNECTION_ERROR,
                error_message=str(e) or e.__class__.__name__,
                elapsed_ms=elapsed()
            )

    @staticmethod
    def _decode(payload: bytes, charset: Optional[str]) -> str:
        """Decode a body, falling back to UTF-8 for unknown charsets."""
        try:
            return payload.decode(charset or "utf-8", errors="replace")
        except LookupError:
            logger.debug(f"Unknown response charset {charset!r}, decoding as utf-8")
            return payload.decode("utf-8", errors="replace")

    async def is_reachable(self, path: str = "/login") -> bool:
        """Check that the target answers at all, any status counts."""
        result = await self.probe(path)
        if not result.ok:
            logger.debug(f"Target {self.base_url} unreachable: {result.error_message}")
        return result.ok
