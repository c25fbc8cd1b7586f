"""
Runtime binary and package manager discovery.

Detection runs the candidate binary with --version rather than trusting the
file's presence: a stale symlink or a binary for the wrong architecture is
not a usable runtime.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import Iterable, Optional

import structlog


logger = structlog.get_logger(__name__)


async def probe_binary(path: Path, timeout: float = 5.0) -> bool:
    """
    Run ``<path> --version`` and report whether it exited with status 0.
    
    Missing files, spawn errors and timeouts all count as failure.
    """
    path = Path(path)
    if not path.is_file():
        return False
    
    try:
        process = await asyncio.create_subprocess_exec(
            str(path),
            "--version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        logger.info("Failed to run runtime binary", path=str(path), error=str(e))
        return False
    
    try:
        output, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.info("Runtime version check timed out", path=str(path), timeout=timeout)
        process.kill()
        await process.wait()
        return False
    
    logger.info(
        "Ran runtime version check",
        path=str(path),
        exit_code=process.returncode,
        output=output.decode("utf-8", errors="replace").strip(),
    )
    return process.returncode == 0


async def find_runtime_binary(
    candidates: Iterable[str | Path],
    timeout: float = 5.0,
) -> Optional[Path]:
    """Return the first candidate that answers --version successfully."""
    for candidate in candidates:
        if await probe_binary(Path(candidate), timeout=timeout):
            return Path(candidate)
    return None


def find_package_manager(name: str, known_paths: Iterable[str | Path]) -> Optional[Path]:
    """
    Locate the package manager: PATH lookup first, then well-known directories.
    
    GUI-launched processes often get a minimal PATH without /opt/homebrew/bin,
    hence the explicit fallbacks.
    """
    found = shutil.which(name)
    if found:
        return Path(found)
    for candidate in known_paths:
        path = Path(candidate)
        if path.is_file() and os.access(path, os.X_OK):
            return path
    return None
