"""
Installation/readiness state machine for the local inference runtime.

Phases (see InstallPhase):

    idle -> detecting -> starting_server -> checking_models -> ready
                |
                +-> awaiting_user_decision --accept--> installing (package manager)
                |                          --decline-> installing (direct download)
                +-> installing (direct download) -> waiting_for_manual_install
    
    any phase -> failed (retry = call ensure_ready() again)

The manager is the only writer of InstallationState and the only owner of
the spawned server process. Errors from detection, installation and the
endpoint are converted into published state; none escape ensure_ready().
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

import httpx
import structlog

from sentiment_wizard.config import Settings, settings as default_settings
from sentiment_wizard.llm.exceptions import LLMClientError
from sentiment_wizard.llm.ollama_client import OllamaClient
from sentiment_wizard.models.enums import DownloadState, ErrorKind, InstallPhase
from sentiment_wizard.models.runtime_models import ErrorRecord, InstallationState, ModelDownload
from sentiment_wizard.monitoring.metrics import model_pulls_total, runtime_phase_transitions_total
from sentiment_wizard.observable import Observable
from sentiment_wizard.runtime.detection import find_package_manager, find_runtime_binary
from sentiment_wizard.runtime.exceptions import RuntimeSetupError
from sentiment_wizard.runtime.installer import (
    download_installer,
    install_with_package_manager,
    open_installer,
)
from sentiment_wizard.runtime.server import ServerProcess, kill_external_server


logger = structlog.get_logger(__name__)

InstallerOpener = Callable[[Path], Awaitable[None]]


class InferenceRuntimeManager:
    """
    Detects, installs, starts and health-checks the Ollama runtime, and
    lists/pulls models.
    
    Published state:
    - state: Observable[InstallationState]
    - download_state: Observable[ModelDownload], None until the first pull
    """
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[OllamaClient] = None,
        installer_transport: Optional[httpx.AsyncBaseTransport] = None,
        installer_opener: Optional[InstallerOpener] = None,
    ):
        """
        Initialize runtime manager.
        
        Args:
            settings: Application settings (defaults to the global instance)
            client: Ollama client for the local endpoint
            installer_transport: Optional httpx transport for the installer download
            installer_opener: Coroutine opening the downloaded installer
        """
        self.settings = settings or default_settings
        self.client = client or OllamaClient(
            base_url=self.settings.OLLAMA_BASE_URL,
            timeout=self.settings.OLLAMA_TIMEOUT,
            generate_timeout=self.settings.GENERATE_TIMEOUT,
        )
        self._installer_transport = installer_transport
        self._open_installer = installer_opener or open_installer
        
        endpoint = urlparse(self.settings.OLLAMA_BASE_URL)
        self.server = ServerProcess(
            host=endpoint.hostname or "localhost",
            port=endpoint.port or 11434,
        )
        
        self.state: Observable[InstallationState] = Observable(
            InstallationState(), name="InstallationState"
        )
        self.download_state: Observable[ModelDownload] = Observable(None, name="ModelDownload")
        self._setup_lock = asyncio.Lock()
        self._download_task: Optional[asyncio.Task] = None
        self._cancel_requested: Optional[asyncio.Task] = None
        # Terminal record of each pull task that ended by cancellation
        self._cancelled_downloads: dict[asyncio.Task, ModelDownload] = {}
    
    # === Readiness ===
    
    @property
    def is_ready(self) -> bool:
        return self.state.value.is_ready
    
    async def ensure_ready(self) -> InstallationState:
        """
        Drive the state machine until ready, failed, or the consent gate.
        
        Returns immediately without any detection work when already ready.
        Calling it while failed starts over from detection.
        
        Returns:
            The settled InstallationState
        """
        if self.is_ready:
            return self.state.value
        
        async with self._setup_lock:
            if self.is_ready:
                return self.state.value
            
            await self._run_setup_step(self._detect_and_start)
            return self.state.value
    
    async def resolve_package_manager_decision(self, accept: bool) -> InstallationState:
        """
        Continue from awaiting_user_decision.
        
        Args:
            accept: True installs through the package manager; False records
                the refusal for this session and uses the direct download
        """
        async with self._setup_lock:
            current = self.state.value
            if current.phase != InstallPhase.AWAITING_USER_DECISION:
                logger.warning(
                    "No package manager decision pending",
                    phase=current.phase.value,
                )
                return current
            
            if accept:
                await self._run_setup_step(self._install_with_package_manager)
            else:
                logger.info("User declined package manager install")
                self.state.publish(user_declined_package_manager=True)
                await self._run_setup_step(self._install_direct_then_start)
            return self.state.value
    
    async def _run_setup_step(self, step: Callable[[], Awaitable[None]]) -> None:
        """Run one setup coroutine, converting every failure into the failed phase."""
        try:
            await step()
        except RuntimeSetupError as e:
            self._fail(ErrorKind(e.kind), e.message, e.details)
        except asyncio.CancelledError:
            self._fail(ErrorKind.UNEXPECTED, "Setup was cancelled.", {})
            raise
        except Exception as e:
            logger.exception("Unexpected error during runtime setup")
            self._fail(
                ErrorKind.UNEXPECTED,
                f"Unexpected error: {e}",
                {"error_type": type(e).__name__},
            )
    
    async def _detect_and_start(self) -> None:
        self._transition(InstallPhase.DETECTING, "Checking for Ollama installation...")
        
        binary = await self._find_binary()
        if binary is not None:
            await self._start_and_check(binary)
            return
        
        package_manager = find_package_manager(
            self.settings.PACKAGE_MANAGER_NAME,
            self.settings.PACKAGE_MANAGER_PATHS,
        )
        if package_manager is not None and not self.state.value.user_declined_package_manager:
            self._transition(
                InstallPhase.AWAITING_USER_DECISION,
                f"Ollama is not installed. Install it with {package_manager.name}?",
                package_manager_path=package_manager,
            )
            return
        
        await self._install_direct_then_start()
    
    async def _find_binary(self) -> Optional[Path]:
        return await find_runtime_binary(
            self.settings.RUNTIME_BINARY_PATHS,
            timeout=self.settings.VERSION_CHECK_TIMEOUT,
        )
    
    # === Installation ===
    
    async def _install_with_package_manager(self) -> None:
        package_manager = self.state.value.package_manager_path
        self._transition(
            InstallPhase.INSTALLING,
            f"Installing Ollama with {package_manager.name}...",
        )
        await install_with_package_manager(package_manager, self.settings.RUNTIME_PACKAGE_NAME)
        
        binary = await self._find_binary()
        if binary is None:
            raise RuntimeSetupError(
                ErrorKind.RUNTIME_NOT_FOUND.value,
                "Installation finished but Ollama was not found in known locations. "
                "Please install it manually.",
                details={"searched": list(self.settings.RUNTIME_BINARY_PATHS)},
            )
        await self._start_and_check(binary)
    
    async def _install_direct_then_start(self) -> None:
        self._transition(InstallPhase.INSTALLING, "Downloading Ollama installer...")
        
        def on_progress(received: int, total: Optional[int]) -> None:
            if total:
                fraction = min(received / total, 1.0)
                if fraction > self.state.value.progress:
                    self.state.publish(progress=fraction)
        
        async with httpx.AsyncClient(
            transport=self._installer_transport,
            timeout=httpx.Timeout(self.settings.INSTALLER_TIMEOUT),
        ) as http:
            installer = await download_installer(
                http,
                self.settings.INSTALLER_URL,
                min_bytes=self.settings.INSTALLER_MIN_BYTES,
                on_progress=on_progress,
            )
        
        await self._open_installer(installer)
        self._transition(
            InstallPhase.WAITING_FOR_MANUAL_INSTALL,
            "Complete the Ollama installer, then return here...",
        )
        binary = await self._wait_for_manual_install()
        await self._start_and_check(binary)
    
    async def _wait_for_manual_install(self) -> Path:
        loop = asyncio.get_running_loop()
        timeout = self.settings.MANUAL_INSTALL_TIMEOUT
        deadline = loop.time() + timeout
        while True:
            binary = await self._find_binary()
            if binary is not None:
                logger.info("Manual install detected", binary=str(binary))
                return binary
            if loop.time() >= deadline:
                raise RuntimeSetupError(
                    ErrorKind.MANUAL_INSTALL_TIMEOUT.value,
                    "Ollama was not detected after the installer was opened. "
                    "Manual install required.",
                    details={"timeout": timeout},
                )
            await asyncio.sleep(self.settings.MANUAL_INSTALL_POLL_INTERVAL)
    
    # === Server & models ===
    
    async def _start_and_check(self, binary: Path) -> None:
        self._transition(
            InstallPhase.STARTING_SERVER,
            f"Ollama found at: {binary}. Starting server...",
            binary_path=binary,
        )
        
        if await self.server.is_listening():
            logger.info("Runtime server already running", port=self.server.port)
        else:
            try:
                await self.server.start(binary)
            except OSError as e:
                logger.error("Failed to start runtime server", binary=str(binary), error=str(e))
            else:
                self.state.publish(server_started_by_manager=True)
            # Degraded continuation: a slow server is caught by the model check below
            await self.server.wait_until_ready(
                timeout=self.settings.SERVER_READY_TIMEOUT,
                interval=self.settings.SERVER_POLL_INTERVAL,
            )
        self.state.publish(progress=0.3)
        
        self._transition(InstallPhase.CHECKING_MODELS, "Checking for available models...")
        try:
            models = await self.client.list_models()
        except LLMClientError as e:
            raise RuntimeSetupError(
                ErrorKind.SERVER_UNREACHABLE.value,
                f"Ollama server is not responding at {self.settings.OLLAMA_BASE_URL}.",
                details=e.details,
            )
        
        self._transition(
            InstallPhase.READY,
            "Ollama is ready!",
            progress=1.0,
            available_models=frozenset(models),
        )
    
    async def list_models(self) -> frozenset[str]:
        """
        Query the endpoint's model list and publish it as available_models.
        
        Never raises: any failure yields (and publishes) an empty set.
        """
        try:
            models = frozenset(await self.client.list_models())
        except LLMClientError as e:
            logger.warning("Model list unavailable", error=e.message)
            models = frozenset()
        self.state.publish(available_models=models)
        logger.info("Available models", models=sorted(models))
        return models
    
    refresh_models = list_models
    
    async def stop_server(self) -> None:
        """
        Stop the runtime server.
        
        Terminates the process this manager spawned; otherwise signals any
        externally started server by name. Safe to call repeatedly.
        """
        if await self.server.stop(grace=self.settings.SERVER_STOP_GRACE):
            self.state.publish(server_started_by_manager=False)
        else:
            await kill_external_server()
    
    async def aclose(self) -> None:
        """Cancel any pull and close the HTTP client. The server is left running."""
        await self.cancel_download()
        await self.client.close()
    
    # === Model downloads ===
    
    async def download_model(self, name: str) -> ModelDownload:
        """
        Pull a model, publishing progress to download_state.
        
        Supersedes any active pull. available_models is NOT refreshed;
        call list_models() after a successful download.
        
        Returns:
            The terminal ModelDownload (succeeded, failed or cancelled)
        """
        await self.cancel_download()
        
        task = asyncio.create_task(self._pull(name), name=f"pull-{name}")
        self._download_task = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._cancel_requested is task:
                return self._cancelled_downloads.get(task, self.download_state.value)
            raise
        finally:
            self._cancelled_downloads.pop(task, None)
            if self._cancel_requested is task:
                self._cancel_requested = None
            if self._download_task is task:
                self._download_task = None
    
    async def cancel_download(self) -> Optional[ModelDownload]:
        """Abort the active pull, if any, and wait for it to settle."""
        task = self._download_task
        if task is None or task.done():
            return self.download_state.value
        
        logger.info("Cancelling model download", task=task.get_name())
        self._cancel_requested = task
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return self.download_state.value
    
    async def _pull(self, name: str) -> ModelDownload:
        self.download_state.reset(ModelDownload(
            model_name=name,
            status_message=f"Starting download of {name}...",
        ))
        self.state.publish(status_message=f"Starting download of {name}...")
        
        try:
            async for event in self.client.pull(name):
                changes = {"log": self.download_state.value.log + (event.raw,)}
                if event.status:
                    changes["status_message"] = event.status
                    self.state.publish(status_message=event.status)
                if event.total is not None and event.total > 0 and event.completed is not None:
                    changes["bytes_completed"] = max(event.completed, 0)
                    changes["bytes_total"] = event.total
                self.download_state.publish(**changes)
                
                if event.error:
                    return self._finish_download(DownloadState.FAILED, error=event.error)
                if event.is_success:
                    return self._finish_download(
                        DownloadState.SUCCEEDED,
                        message=f"Model {name} downloaded successfully!",
                    )
            
            return self._finish_download(
                DownloadState.FAILED,
                error="Download stream ended before completion.",
            )
            
        except LLMClientError as e:
            return self._finish_download(DownloadState.FAILED, error=e.message)
        except asyncio.CancelledError:
            record = self._finish_download(
                DownloadState.CANCELLED,
                message=f"Download of {name} cancelled.",
            )
            self._cancelled_downloads[asyncio.current_task()] = record
            raise
    
    def _finish_download(
        self,
        state: DownloadState,
        message: Optional[str] = None,
        error: Optional[str] = None,
    ) -> ModelDownload:
        current = self.download_state.value
        status_message = message or error or current.status_message
        changes = {"state": state, "status_message": status_message, "error": error}
        if state == DownloadState.SUCCEEDED and current.bytes_total:
            changes["bytes_completed"] = current.bytes_total
        
        model_pulls_total.labels(outcome=state.value).inc()
        logger.info(
            "Model download finished",
            model=current.model_name,
            state=state.value,
            error=error,
        )
        self.state.publish(status_message=status_message)
        return self.download_state.publish(**changes)
    
    # === State helpers ===
    
    def _transition(self, phase: InstallPhase, message: str, progress: float = 0.0, **extra) -> None:
        """Advance to a new phase; progress resets and last_error clears."""
        previous = self.state.value.phase
        self.state.publish(
            phase=phase,
            progress=progress,
            status_message=message,
            last_error=None,
            **extra,
        )
        runtime_phase_transitions_total.labels(phase=phase.value).inc()
        logger.info(
            "Runtime phase transition",
            from_phase=previous.value,
            to_phase=phase.value,
            status=message,
        )
    
    def _fail(self, kind: ErrorKind, message: str, details: dict) -> None:
        previous = self.state.value.phase
        self.state.publish(
            phase=InstallPhase.FAILED,
            progress=0.0,
            status_message=message,
            last_error=ErrorRecord(kind=kind, message=message, details=details),
        )
        runtime_phase_transitions_total.labels(phase=InstallPhase.FAILED.value).inc()
        logger.error(
            "Runtime setup failed",
            from_phase=previous.value,
            kind=kind.value,
            error=message,
            details=details,
        )
