"""
Persisted user preferences.

Three simple values survive restarts: the last imported file, the last
selected column and the last selected model. Stored as JSON; a missing or
corrupt file just means defaults.
"""

from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError


logger = structlog.get_logger(__name__)


class PreferenceValues(BaseModel):
    """Stored preference keys. None means unset."""
    model_config = ConfigDict(frozen=True, extra="ignore")
    
    last_file_path: Optional[str] = None
    last_column: Optional[str] = None
    last_model: Optional[str] = None


PREFERENCE_KEYS = tuple(PreferenceValues.model_fields)


class Preferences:
    """
    JSON-file backed preference store.
    
    Every set() writes through immediately; setting a key to None removes it.
    """
    
    def __init__(self, path: Path):
        self.path = Path(path)
        self._values = self.load()
    
    def load(self) -> PreferenceValues:
        """Read the file, falling back to defaults when missing or unreadable."""
        if not self.path.exists():
            return PreferenceValues()
        try:
            return PreferenceValues.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable preferences", path=str(self.path), error=str(e))
            return PreferenceValues()
    
    @property
    def values(self) -> PreferenceValues:
        return self._values
    
    def get(self, key: str) -> Optional[str]:
        self._check_key(key)
        return getattr(self._values, key)
    
    def set(self, key: str, value: Optional[str]) -> None:
        """Store a value (None removes it) and write the file."""
        self._check_key(key)
        if getattr(self._values, key) == value:
            return
        self._values = self._values.model_copy(update={key: value})
        self._save()
    
    def remove(self, key: str) -> None:
        self.set(key, None)
    
    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                self._values.model_dump_json(exclude_none=True, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning("Could not save preferences", path=str(self.path), error=str(e))
    
    @staticmethod
    def _check_key(key: str) -> None:
        if key not in PREFERENCE_KEYS:
            raise KeyError(f"Unknown preference: {key}")
