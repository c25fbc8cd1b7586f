"""Runtime commands: setup, models, pull, stop."""

import asyncio

import typer

from sentiment_wizard.cli.common import bootstrap, console, ensure_runtime, make_progress, report_runtime
from sentiment_wizard.models.enums import DownloadState, InstallPhase
from sentiment_wizard.models.runtime_models import ModelDownload
from sentiment_wizard.runtime.manager import InferenceRuntimeManager


def setup(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Accept installing through the package manager without asking",
    ),
) -> None:
    """
    Detect, install and start the local Ollama runtime.
    """
    app_settings = bootstrap()

    async def _run() -> InstallPhase:
        manager = InferenceRuntimeManager(app_settings)
        try:
            state = await ensure_runtime(manager, assume_yes=yes)
            report_runtime(state)
            return state.phase
        finally:
            await manager.aclose()

    if asyncio.run(_run()) != InstallPhase.READY:
        raise typer.Exit(1)


def models() -> None:
    """
    List models available on the local runtime.
    """
    app_settings = bootstrap()

    async def _run() -> frozenset[str]:
        manager = InferenceRuntimeManager(app_settings)
        try:
            return await manager.list_models()
        finally:
            await manager.aclose()

    available = asyncio.run(_run())
    if not available:
        console.print("[yellow]No models found (is the runtime running?)[/yellow]")
        raise typer.Exit(1)
    for name in sorted(available):
        console.print(name)


def pull(
    name: str = typer.Argument(..., help="Model to download, e.g. gemma3:4b"),
) -> None:
    """
    Download a model into the local runtime.
    """
    app_settings = bootstrap()

    async def _run() -> ModelDownload:
        manager = InferenceRuntimeManager(app_settings)
        with make_progress() as progress:
            task_id = progress.add_task(f"Pulling {name}", total=None)

            def on_download(download: ModelDownload) -> None:
                # Indeterminate until the stream reports a layer size
                fraction = download.fraction
                progress.update(
                    task_id,
                    description=download.status_message or f"Pulling {name}",
                    total=None if fraction is None else 1.0,
                    completed=fraction or 0.0,
                )

            unsubscribe = manager.download_state.subscribe(on_download)
            try:
                result = await manager.download_model(name)
                if result.state == DownloadState.SUCCEEDED:
                    await manager.refresh_models()
                return result
            finally:
                unsubscribe()
                await manager.aclose()

    result = asyncio.run(_run())
    if result.state != DownloadState.SUCCEEDED:
        console.print(f"[red]✗ {result.error or result.status_message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {result.status_message}")


def stop() -> None:
    """
    Stop the local runtime server.
    """
    app_settings = bootstrap()

    async def _run() -> None:
        manager = InferenceRuntimeManager(app_settings)
        try:
            await manager.stop_server()
        finally:
            await manager.aclose()

    asyncio.run(_run())
    console.print("Stopped Ollama server (if it was running).")
