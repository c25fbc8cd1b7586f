"""
Tabular file models.

ColumnarDataset holds only the header and a bounded preview; full column
extraction re-reads the source file.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sentiment_wizard.models.enums import Stage


class ColumnarDataset(BaseModel):
    """
    Header and preview of an imported file.
    
    preview_rows includes the header row as its first entry. Every preview
    row has at most len(columns) cells.
    """
    model_config = ConfigDict(frozen=True)
    
    columns: tuple[str, ...] = Field(..., description="Header names, not enforced unique")
    preview_rows: tuple[tuple[str, ...], ...] = Field(default=())
    source_path: Path
    
    @model_validator(mode="after")
    def _check_row_widths(self) -> "ColumnarDataset":
        width = len(self.columns)
        for row in self.preview_rows:
            if len(row) > width:
                raise ValueError(f"preview row has {len(row)} cells, header has {width}")
        return self
    
    def column_index(self, name: str) -> Optional[int]:
        """First position of a header name, or None."""
        try:
            return self.columns.index(name)
        except ValueError:
            return None
    
    @property
    def file_name(self) -> str:
        return self.source_path.name


class FlowState(BaseModel):
    """Published wizard position."""
    model_config = ConfigDict(frozen=True)
    
    stage: Stage = Field(default=Stage.WELCOME)


class FileSelectionState(BaseModel):
    """Published state of the imported file and chosen column."""
    model_config = ConfigDict(frozen=True)
    
    file_path: Optional[Path] = Field(default=None)
    dataset: Optional[ColumnarDataset] = Field(default=None)
    selected_column: Optional[str] = Field(default=None)
    is_loading: bool = Field(default=False)
    error_message: Optional[str] = Field(default=None)
    
    @property
    def column_index(self) -> Optional[int]:
        if self.dataset is None or self.selected_column is None:
            return None
        return self.dataset.column_index(self.selected_column)
