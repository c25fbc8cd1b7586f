"""Unit tests for runtime detection and the server process handle."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from sentiment_wizard.runtime.detection import find_package_manager, find_runtime_binary, probe_binary
from sentiment_wizard.runtime.server import ServerProcess, is_port_open


pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses shell scripts")


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(0o755)
    return path


class TestProbe:
    
    @pytest.mark.asyncio
    async def test_working_binary(self, tmp_path):
        binary = write_script(tmp_path / "ollama", 'echo "ollama version is 0.6.2"')
        assert await probe_binary(binary) is True
    
    @pytest.mark.asyncio
    async def test_failing_binary(self, tmp_path):
        binary = write_script(tmp_path / "ollama", "exit 3")
        assert await probe_binary(binary) is False
    
    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path):
        assert await probe_binary(tmp_path / "ollama") is False
    
    @pytest.mark.asyncio
    async def test_hanging_binary(self, tmp_path):
        binary = write_script(tmp_path / "ollama", "exec sleep 10")
        assert await probe_binary(binary, timeout=0.1) is False
    
    @pytest.mark.asyncio
    async def test_first_working_candidate_wins(self, tmp_path):
        broken = write_script(tmp_path / "a" / "ollama", "exit 1")
        working = write_script(tmp_path / "b" / "ollama", "echo ok")
        also_working = write_script(tmp_path / "c" / "ollama", "echo ok")
        
        found = await find_runtime_binary([tmp_path / "missing", broken, working, also_working])
        
        assert found == working
        assert await find_runtime_binary([broken]) is None


class TestPackageManager:
    
    def test_path_lookup_first(self, tmp_path):
        with patch("sentiment_wizard.runtime.detection.shutil.which", return_value="/usr/bin/brew"):
            assert find_package_manager("brew", [tmp_path / "brew"]) == Path("/usr/bin/brew")
    
    def test_known_path_fallback(self, tmp_path):
        not_executable = tmp_path / "x" / "brew"
        not_executable.parent.mkdir()
        not_executable.write_text("")
        brew = write_script(tmp_path / "y" / "brew", "exit 0")
        
        with patch("sentiment_wizard.runtime.detection.shutil.which", return_value=None):
            assert find_package_manager("brew", [tmp_path / "missing", not_executable, brew]) == brew
            assert find_package_manager("brew", []) is None


class TestServer:
    
    @pytest.mark.asyncio
    async def test_port_probe(self):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            assert await is_port_open("127.0.0.1", port) is True
        finally:
            server.close()
            await server.wait_closed()
        
        assert await is_port_open("127.0.0.1", port, timeout=0.2) is False
    
    @pytest.mark.asyncio
    async def test_wait_until_ready_times_out(self):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()
        
        process = ServerProcess("127.0.0.1", port)
        assert await process.wait_until_ready(timeout=0.05, interval=0.01) is False
    
    @pytest.mark.asyncio
    async def test_start_and_stop_owned_process(self, tmp_path):
        binary = write_script(tmp_path / "ollama", 'test "$1" = serve && exec sleep 30')
        process = ServerProcess("127.0.0.1", 1)
        
        assert await process.stop() is False
        await process.start(binary)
        assert process.owned is True
        
        assert await process.stop(grace=1.0) is True
        assert process.owned is False
        assert await process.stop() is False
