"""Supervisor for a long-lived ``pandoc server`` child process.

Compiling through the pandoc HTTP API avoids a process spawn per article.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

_READY_ATTEMPTS = 10
_READY_INTERVAL = 0.3
_STOP_GRACE = 5.0


class PandocServer:
    """Starts, probes and stops ``pandoc server``.

    Args:
        port: Loopback TCP port to listen on.
        timeout: Per-conversion limit in seconds (``pandoc server --timeout``).
        binary: Pandoc executable name or path.
    """

    def __init__(self, port: int = 3031, timeout: int = 10, binary: str = "pandoc") -> None:
        if not 1 <= port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {port}")
        if timeout < 1:
            raise ValueError(f"timeout must be >= 1, got {timeout}")
        self.port = port
        self.timeout = timeout
        self.binary = binary
        self._process: asyncio.subprocess.Process | None = None
        self._restart_lock = asyncio.Lock()

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def _require_server_mode(self) -> None:
        """Fail unless ``pandoc --version`` lists the ``+server`` feature."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except FileNotFoundError:
            raise RuntimeError(
                f"{self.binary} not found; install pandoc or set PIPELINE_MODE=raw"
            ) from None
        except OSError as exc:
            raise RuntimeError(f"Could not run {self.binary} --version: {exc}") from None

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace")[:200]
            raise RuntimeError(f"{self.binary} --version exited with {proc.returncode}: {detail}")
        if "+server" not in stdout.decode(errors="replace"):
            raise RuntimeError("This pandoc build was compiled without server mode (+server)")

    async def _await_ready(self) -> None:
        async with httpx.AsyncClient() as client:
            for attempt in range(1, _READY_ATTEMPTS + 1):
                if self._process is not None and self._process.returncode is not None:
                    err = b""
                    if self._process.stderr is not None:
                        err = await self._process.stderr.read()
                    raise RuntimeError(
                        f"pandoc server exited with {self._process.returncode} during startup: "
                        f"{err.decode(errors='replace').strip()[:500]}"
                    )
                try:
                    await client.get(self.base_url)
                except httpx.ConnectError:
                    await asyncio.sleep(_READY_INTERVAL)
                    continue
                except httpx.HTTPError:
                    # listening, but GET is not a conversion request
                    pass
                logger.info("pandoc server accepting connections (attempt %d)", attempt)
                return
        raise RuntimeError(f"pandoc server did not come up on port {self.port}")

    async def start(self) -> None:
        """Start the server, replacing a running instance.

        Raises RuntimeError when pandoc is missing, lacks server mode or
        never starts listening.
        """
        if self.is_running:
            await self.stop()
        await self._require_server_mode()
        self._process = await asyncio.create_subprocess_exec(
            self.binary,
            "server",
            "--port",
            str(self.port),
            "--timeout",
            str(self.timeout),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        logger.info("Spawned pandoc server pid=%s on %s", self._process.pid, self.base_url)
        await self._await_ready()

    async def stop(self) -> None:
        """Terminate the server, escalating to SIGKILL after a grace period. Idempotent."""
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return
        logger.info("Stopping pandoc server pid=%s", process.pid)
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=_STOP_GRACE)
        except TimeoutError:
            logger.warning("pandoc server ignored SIGTERM for %.1fs, killing", _STOP_GRACE)
            process.kill()
            await process.wait()

    async def ensure_running(self) -> None:
        """Restart the server if it died; concurrent callers share one restart."""
        if self.is_running:
            return
        async with self._restart_lock:
            if self.is_running:
                return
            logger.warning("pandoc server is down, restarting")
            await self.start()
