"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across the unit tests.
"""

import pytest
from pathlib import Path

from sentiment_wizard.config import Settings


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Test settings with fast timings and an isolated preferences file.
    
    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.MANUAL_INSTALL_TIMEOUT = 0.0
    """
    return Settings(
        # === Application ===
        APP_NAME="Sentiment Wizard (Test)",
        APP_VERSION="0.1.0",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        
        # === Ollama ===
        OLLAMA_BASE_URL="http://localhost:11434",
        OLLAMA_TIMEOUT=1.0,
        GENERATE_TIMEOUT=1.0,
        DEFAULT_MODEL="gemma3:4b",
        
        # === Runtime ===
        RUNTIME_BINARY_PATHS=[str(tmp_path / "bin" / "ollama")],
        PACKAGE_MANAGER_PATHS=[],
        INSTALLER_URL="https://example.invalid/download/Ollama.dmg",
        INSTALLER_MIN_BYTES=1024,
        MANUAL_INSTALL_POLL_INTERVAL=0.01,
        MANUAL_INSTALL_TIMEOUT=0.05,
        SERVER_READY_TIMEOUT=0.05,
        SERVER_POLL_INTERVAL=0.01,
        SERVER_STOP_GRACE=0.1,
        
        # === Preferences ===
        PREFERENCES_PATH=tmp_path / "preferences.json",
        PROMETHEUS_ENABLED=False,
    )


@pytest.fixture
def write_csv(tmp_path: Path):
    """Factory fixture writing a CSV file from text.
    
    Usage:
        def test_something(write_csv):
            path = write_csv("Comment\\ngreat\\n")
    """
    def _write(text: str, name: str = "comments.csv", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_bytes(text.encode(encoding))
        return path
    return _write


@pytest.fixture
def write_xlsx(tmp_path: Path):
    """Factory fixture writing an XLSX workbook with openpyxl.
    
    Rows are lists of values; None leaves the cell unwritten.
    """
    from openpyxl import Workbook
    
    def _write(rows: list[list], name: str = "comments.xlsx") -> Path:
        workbook = Workbook()
        sheet = workbook.active
        for row_number, row in enumerate(rows, start=1):
            for column_number, value in enumerate(row, start=1):
                if value is not None:
                    sheet.cell(row=row_number, column=column_number, value=value)
        path = tmp_path / name
        workbook.save(path)
        return path
    return _write
