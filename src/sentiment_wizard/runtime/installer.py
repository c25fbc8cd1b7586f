"""
Runtime installation strategies.

(a) Package manager: run ``<pm> install <package>`` and check the exit code.
(b) Direct download: stream the installer image to a temporary file, reject
    it below a minimum size, then hand it to the OS opener so the user can
    complete the install.
"""

import asyncio
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import httpx
import structlog

from sentiment_wizard.models.enums import ErrorKind
from sentiment_wizard.runtime.exceptions import RuntimeSetupError


logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]


async def install_with_package_manager(package_manager: Path, package: str) -> str:
    """
    Install the runtime through the package manager.
    
    Returns:
        Combined stdout/stderr of the install command
        
    Raises:
        RuntimeSetupError: Spawn failure or non-zero exit code
    """
    logger.info("Installing runtime with package manager", package_manager=str(package_manager), package=package)
    try:
        process = await asyncio.create_subprocess_exec(
            str(package_manager),
            "install",
            package,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        output_bytes, _ = await process.communicate()
    except OSError as e:
        raise RuntimeSetupError(
            ErrorKind.PACKAGE_MANAGER_FAILED.value,
            f"Could not run {package_manager.name}: {e}",
            details={"package_manager": str(package_manager)},
        )
    
    output = output_bytes.decode("utf-8", errors="replace")
    if process.returncode != 0:
        logger.error(
            "Package manager install failed",
            exit_code=process.returncode,
            output_tail=output[-2000:],
        )
        raise RuntimeSetupError(
            ErrorKind.PACKAGE_MANAGER_FAILED.value,
            f"{package_manager.name} install {package} failed with exit code {process.returncode}.",
            details={"exit_code": process.returncode, "output_tail": output[-2000:]},
        )
    
    logger.info("Package manager install succeeded", package=package)
    return output


async def _stream_installer(
    client: httpx.AsyncClient,
    url: str,
    target: Path,
    on_progress: Optional[ProgressCallback],
) -> int:
    received = 0
    try:
        async with client.stream("GET", url, follow_redirects=True) as response:
            if response.status_code != 200:
                raise RuntimeSetupError(
                    ErrorKind.INSTALLER_DOWNLOAD_FAILED.value,
                    f"Installer download failed with HTTP {response.status_code}.",
                    details={"url": url, "status": response.status_code},
                )
            total_header = response.headers.get("Content-Length")
            total = int(total_header) if total_header and total_header.isdigit() else None
            
            with open(target, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
                    received += len(chunk)
                    if on_progress is not None:
                        on_progress(received, total)
                        
    except httpx.HTTPError as e:
        raise RuntimeSetupError(
            ErrorKind.INSTALLER_DOWNLOAD_FAILED.value,
            f"Installer download failed: {e}",
            details={"url": url, "error_type": type(e).__name__},
        )
    except OSError as e:
        raise RuntimeSetupError(
            ErrorKind.INSTALLER_DOWNLOAD_FAILED.value,
            f"Could not save installer: {e}",
            details={"target": str(target)},
        )
    return received


async def download_installer(
    client: httpx.AsyncClient,
    url: str,
    min_bytes: int,
    on_progress: Optional[ProgressCallback] = None,
    dest_dir: Optional[Path] = None,
) -> Path:
    """
    Stream the installer image to a temporary file.
    
    Args:
        client: HTTP client used for the download
        url: Installer URL
        min_bytes: Smallest acceptable size; anything smaller is treated as
            a truncated or error-page download
        on_progress: Called with (bytes_received, bytes_total_or_None)
        dest_dir: Directory for the file (defaults to a fresh temp dir,
            removed again if the download fails)
        
    Raises:
        RuntimeSetupError: Network/HTTP failure or undersized download
    """
    file_name = Path(urlparse(url).path).name or "installer"
    target_dir = Path(dest_dir or tempfile.mkdtemp(prefix="sentiment-wizard-"))
    target = target_dir / file_name
    
    logger.info("Downloading runtime installer", url=url, target=str(target))
    try:
        received = await _stream_installer(client, url, target, on_progress)
        if received < min_bytes:
            raise RuntimeSetupError(
                ErrorKind.INSTALLER_TOO_SMALL.value,
                f"Downloaded installer is too small ({received} bytes); the download may be corrupt.",
                details={"received": received, "min_bytes": min_bytes},
            )
    except RuntimeSetupError:
        if dest_dir is None:
            shutil.rmtree(target_dir, ignore_errors=True)
        else:
            target.unlink(missing_ok=True)
        raise
    
    logger.info("Installer downloaded", target=str(target), size=received)
    return target


async def open_installer(path: Path) -> None:
    """
    Hand the installer to the platform's native opener.
    
    Raises:
        RuntimeSetupError: Opener missing or returned non-zero
    """
    if sys.platform == "win32":
        try:
            os.startfile(str(path))  # type: ignore[attr-defined]
        except OSError as e:
            raise RuntimeSetupError(
                ErrorKind.INSTALLER_OPEN_FAILED.value,
                f"Could not open installer: {e}",
                details={"path": str(path)},
            )
        return
    
    opener = "open" if sys.platform == "darwin" else "xdg-open"
    try:
        process = await asyncio.create_subprocess_exec(
            opener,
            str(path),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        returncode = await process.wait()
    except OSError as e:
        raise RuntimeSetupError(
            ErrorKind.INSTALLER_OPEN_FAILED.value,
            f"Could not open installer with {opener}: {e}",
            details={"path": str(path)},
        )
    if returncode != 0:
        raise RuntimeSetupError(
            ErrorKind.INSTALLER_OPEN_FAILED.value,
            f"{opener} exited with code {returncode} while opening the installer.",
            details={"path": str(path), "exit_code": returncode},
        )
    logger.info("Opened installer", path=str(path), opener=opener)
