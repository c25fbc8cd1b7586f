"""
Imported-file and column selection, with preference restore.

Owner of the ColumnarDataset for the wizard: imports a file off the event
loop, publishes its header/preview, and remembers the choice.
"""

from pathlib import Path
from typing import Optional

import structlog

from sentiment_wizard.models.dataset_models import ColumnarDataset, FileSelectionState
from sentiment_wizard.observable import Observable
from sentiment_wizard.preferences import Preferences
from sentiment_wizard.tabular.exceptions import TabularReadError
from sentiment_wizard.tabular.reader import TabularReader


logger = structlog.get_logger(__name__)


def choose_initial_column(
    dataset: ColumnarDataset,
    saved_file_path: Optional[str],
    saved_column: Optional[str],
) -> Optional[str]:
    """
    Column to preselect after an import.
    
    The saved column is restored only for the same file and only if it still
    exists; otherwise a single-column file selects its only column.
    """
    if (
        saved_file_path is not None
        and saved_file_path == str(dataset.source_path)
        and saved_column is not None
        and saved_column in dataset.columns
    ):
        return saved_column
    if len(dataset.columns) == 1:
        return dataset.columns[0]
    return None


class FileSelection:
    """
    Imports a file and tracks the selected column.
    
    Parsing failures are published as error_message (and re-raised to the
    direct caller); the previous dataset is discarded either way.
    """
    
    def __init__(self, reader: TabularReader, preferences: Optional[Preferences] = None):
        self.reader = reader
        self.preferences = preferences
        self.state: Observable[FileSelectionState] = Observable(
            FileSelectionState(), name="FileSelectionState"
        )
    
    async def restore(self) -> Optional[ColumnarDataset]:
        """Re-import the last file from preferences if it still exists."""
        if self.preferences is None:
            return None
        saved = self.preferences.get("last_file_path")
        if not saved or not Path(saved).exists():
            return None
        try:
            return await self.import_file(Path(saved))
        except TabularReadError:
            return None
    
    async def import_file(self, path: Path) -> ColumnarDataset:
        """
        Read header and preview, publish them and preselect a column.
        
        Raises:
            TabularReadError: The file cannot be parsed
        """
        path = Path(path)
        saved_file = self.preferences.get("last_file_path") if self.preferences else None
        saved_column = self.preferences.get("last_column") if self.preferences else None
        
        self.state.reset(FileSelectionState(file_path=path, is_loading=True))
        try:
            dataset = await self.reader.aread_header_and_preview(path)
        except TabularReadError as e:
            logger.warning("File import failed", path=str(path), error=e.message)
            self.state.publish(is_loading=False, error_message=e.message)
            raise
        
        column = choose_initial_column(dataset, saved_file, saved_column)
        self.state.publish(dataset=dataset, selected_column=column, is_loading=False)
        
        if self.preferences is not None:
            self.preferences.set("last_file_path", str(path))
            self.preferences.set("last_column", column)
        return dataset
    
    def select_column(self, name: Optional[str]) -> None:
        """
        Select a header name (None clears the selection).
        
        Raises:
            ValueError: Name is not a column of the imported file
        """
        dataset = self.state.value.dataset
        if name is not None and (dataset is None or name not in dataset.columns):
            raise ValueError(f"Unknown column: {name}")
        self.state.publish(selected_column=name)
        if self.preferences is not None:
            self.preferences.set("last_column", name)
    
    def clear(self) -> None:
        """Forget the file and column, including the stored preferences."""
        self.state.reset(FileSelectionState())
        if self.preferences is not None:
            self.preferences.remove("last_file_path")
            self.preferences.remove("last_column")
    
    async def extract_selected(self) -> list[str]:
        """Values of the selected column, or [] when nothing usable is selected."""
        current = self.state.value
        index = current.column_index
        if current.file_path is None or index is None:
            return []
        return await self.reader.aextract_column(current.file_path, index)
