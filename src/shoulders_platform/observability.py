"""
Log and trace retrieval through a temporary kubectl port-forward
"""

import asyncio
import json
import logging
import signal
import socket
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from typing import Any
from urllib.parse import urlencode

import aiohttp
from aiohttp import ClientTimeout

from shoulders_platform.config import Settings
from shoulders_platform.exceptions import HttpError, PortForwardError, ValidationError

logger = logging.getLogger(__name__)

READY_MARKER = b"Forwarding from"
TERMINATE_GRACE_SECONDS = 2.0
HTTP_TIMEOUT_SECONDS = 30


def build_loki_query_params(
    app_name: str, limit: int, since_seconds: int, now_ms: int | None = None
) -> dict[str, str]:
    """Query parameters for Loki's query_range endpoint.

    ``end`` is now and ``start`` is ``since_seconds`` earlier, both in
    nanoseconds since the epoch.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    end_ns = now_ms * 1_000_000
    start_ns = end_ns - since_seconds * 1_000_000_000
    return {
        "query": f'{{app="{app_name}"}}',
        "limit": str(limit),
        "start": str(start_ns),
        "end": str(end_ns),
        "direction": "BACKWARD",
    }


def build_tempo_trace_path(trace_id: str) -> str:
    return f"/api/traces/{trace_id}"


def get_free_port() -> int:
    """Ask the OS for a free local TCP port"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


async def _wait_until_ready(process: asyncio.subprocess.Process, timeout: float) -> None:
    async def read_until_marker() -> None:
        assert process.stdout is not None
        while True:
            line = await process.stdout.readline()
            if not line:
                code = await process.wait()
                raise PortForwardError(f"kubectl exited with code {code}", "port-forward")
            logger.debug("kubectl: %s", line.decode(errors="replace").rstrip())
            if READY_MARKER in line:
                return

    try:
        await asyncio.wait_for(read_until_marker(), timeout)
    except TimeoutError:
        raise PortForwardError("Port-forward timed out", "port-forward") from None


async def _drain_output(process: asyncio.subprocess.Process) -> None:
    """Keep reading kubectl output after the tunnel is up so the pipe never fills"""
    assert process.stdout is not None
    while True:
        line = await process.stdout.readline()
        if not line:
            return
        logger.debug("kubectl: %s", line.decode(errors="replace").rstrip())


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.send_signal(signal.SIGINT)
        await asyncio.wait_for(process.wait(), TERMINATE_GRACE_SECONDS)
    except ProcessLookupError:
        return
    except TimeoutError:
        logger.debug("kubectl did not exit after SIGINT, killing")
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


@asynccontextmanager
async def port_forward(
    namespace: str,
    service: str,
    remote_port: int,
    *,
    kubectl_bin: str = "kubectl",
    local_port: int | None = None,
    timeout_ms: int = 15000,
) -> AsyncIterator[int]:
    """Forward a local port to ``svc/<service>`` for the duration of the block.

    Yields the local port once kubectl reports ``Forwarding from``. The kubectl
    process is always stopped on exit, whether the block succeeded, raised or
    the tunnel never became ready.

    Raises:
        PortForwardError: If kubectl cannot start, exits early, or times out
    """
    local_port = local_port or get_free_port()
    args = ["-n", namespace, "port-forward", f"svc/{service}", f"{local_port}:{remote_port}"]
    logger.debug("Starting %s %s", kubectl_bin, " ".join(args))

    try:
        process = await asyncio.create_subprocess_exec(
            kubectl_bin,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise PortForwardError(f"kubectl error: {e}", "port-forward") from e

    drain: asyncio.Task[None] | None = None
    try:
        await _wait_until_ready(process, timeout_ms / 1000)
        drain = asyncio.create_task(_drain_output(process))
        yield local_port
    finally:
        await _terminate(process)
        if drain is not None:
            drain.cancel()
            with suppress(asyncio.CancelledError):
                await drain


async def http_get_json(url: str, timeout: int = HTTP_TIMEOUT_SECONDS) -> Any:
    """GET a URL and decode the body as JSON, or ``{"raw": body}`` when it is not JSON

    Raises:
        HttpError: On a non-2xx response or a transport failure
    """
    try:
        async with (
            aiohttp.ClientSession() as session,
            session.get(url, timeout=ClientTimeout(total=timeout)) as response,
        ):
            body = await response.text()
            if not response.ok:
                reason = response.reason or ""
                raise HttpError(
                    f"HTTP {response.status} {reason}: {body}", response.status, reason
                )
    except aiohttp.ClientError as e:
        raise HttpError(f"request to {url} failed: {e}", 0, type(e).__name__) from e
    except TimeoutError:
        raise HttpError(f"request to {url} timed out", 0, "timeout") from None

    try:
        return json.loads(body)
    except ValueError:
        return {"raw": body}


class ObservabilityClient:
    """Queries Loki and Tempo in the cluster through short-lived tunnels"""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _tunnel(self, service: str, remote_port: int) -> Any:
        return port_forward(
            self.settings.observability_namespace,
            service,
            remote_port,
            kubectl_bin=self.settings.kubectl_bin,
            timeout_ms=self.settings.port_forward_timeout_ms,
        )

    async def query_loki(self, app_name: str, limit: int, since_seconds: int) -> Any:
        params = build_loki_query_params(app_name, limit, since_seconds)
        async with self._tunnel(
            self.settings.loki_service, self.settings.loki_remote_port
        ) as local_port:
            return await http_get_json(
                f"http://127.0.0.1:{local_port}/loki/api/v1/query_range?{urlencode(params)}"
            )

    async def query_tempo(self, trace_id: str) -> Any:
        if not trace_id or not trace_id.strip():
            raise ValidationError("traceId is required")
        async with self._tunnel(
            self.settings.tempo_service, self.settings.tempo_remote_port
        ) as local_port:
            return await http_get_json(
                f"http://127.0.0.1:{local_port}{build_tempo_trace_path(trace_id)}"
            )

