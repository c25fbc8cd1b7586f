"""
Inference server process handling.

The server is spawned detached (own session, stdio discarded) so it is not
tied to the wizard's terminal. Only the ServerProcess that spawned it may
terminate it; anything else is stopped best-effort by name.
"""

import asyncio
from pathlib import Path
from typing import Optional

import structlog


logger = structlog.get_logger(__name__)


async def is_port_open(host: str, port: int, timeout: float = 1.0) -> bool:
    """True if a TCP connection to host:port succeeds within timeout."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


class ServerProcess:
    """
    Handle to a runtime server started by this process.
    
    Usage:
        server = ServerProcess(host="localhost", port=11434)
        if not await server.is_listening():
            await server.start(binary)
            ready = await server.wait_until_ready(timeout=10.0)
        ...
        await server.stop()
    """
    
    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._process: Optional[asyncio.subprocess.Process] = None
    
    @property
    def owned(self) -> bool:
        """True while a server we spawned is still running."""
        return self._process is not None and self._process.returncode is None
    
    async def is_listening(self) -> bool:
        return await is_port_open(self.host, self.port)
    
    async def start(self, binary: Path) -> None:
        """
        Spawn ``<binary> serve`` detached.
        
        Raises:
            OSError: The binary could not be executed
        """
        self._process = await asyncio.create_subprocess_exec(
            str(binary),
            "serve",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
        logger.info("Started runtime server", binary=str(binary), pid=self._process.pid)
    
    async def wait_until_ready(self, timeout: float = 10.0, interval: float = 0.5) -> bool:
        """Poll the port until it accepts connections or timeout elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if await self.is_listening():
                logger.info("Runtime server is ready", host=self.host, port=self.port)
                return True
            if loop.time() >= deadline:
                logger.warning("Runtime server did not become ready in time", timeout=timeout)
                return False
            await asyncio.sleep(interval)
    
    async def stop(self, grace: float = 5.0) -> bool:
        """
        Terminate the owned server, killing it after the grace period.
        
        Returns True if an owned process was stopped, False if there was none.
        """
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return False
        
        try:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning("Runtime server ignored SIGTERM, killing", pid=process.pid)
                process.kill()
                await process.wait()
        except ProcessLookupError:
            pass
        logger.info("Stopped runtime server", pid=process.pid, exit_code=process.returncode)
        return True


async def kill_external_server(pattern: str = "ollama serve") -> None:
    """Best-effort ``pkill -f <pattern>`` for a server we did not start."""
    try:
        process = await asyncio.create_subprocess_exec(
            "pkill",
            "-f",
            pattern,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        returncode = await process.wait()
    except OSError as e:
        logger.warning("Could not run pkill", error=str(e))
        return
    # pkill exits 1 when nothing matched
    logger.info("Signalled external runtime server", pattern=pattern, matched=returncode == 0)
