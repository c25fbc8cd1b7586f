"""
Single-writer observable state.

Each component owns one Observable and is the only code that publishes to
it. Snapshots are frozen pydantic models, so observers always read a
complete value.
"""

from typing import Any, Callable, Generic, Optional, TypeVar

import structlog
from pydantic import BaseModel


logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)
Subscriber = Callable[[T], None]


class Observable(Generic[T]):
    """
    Holds the current snapshot and notifies subscribers on every publish.
    
    Callbacks run synchronously on the publishing (event loop) thread, in
    subscription order. A failing subscriber is logged and skipped.

    The snapshot may be None for state that only exists part of the time
    (the current model download); publish() then has nothing to update.
    """
    
    def __init__(self, initial: Optional[T], name: str = ""):
        self._value = initial
        self._name = name or type(initial).__name__
        self._subscribers: list[Subscriber] = []
    
    @property
    def value(self) -> Optional[T]:
        return self._value
    
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback. Returns a callable that unsubscribes it.
        """
        self._subscribers.append(callback)
        
        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        
        return unsubscribe
    
    def publish(self, **changes: Any) -> T:
        """
        Build a new validated snapshot from the current one plus changes.
        
        Raises pydantic.ValidationError if the new snapshot breaks a model
        invariant; the current snapshot is left untouched in that case.
        """
        if self._value is None:
            raise RuntimeError(f"{self._name} has no snapshot to update")
        fields = dict(self._value)
        fields.update(changes)
        return self.reset(type(self._value)(**fields))
    
    def reset(self, snapshot: Optional[T]) -> Optional[T]:
        """Replace the snapshot wholesale and notify."""
        self._value = snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(
                    "State subscriber failed",
                    state=self._name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return snapshot
    
    def __repr__(self) -> str:
        return f"Observable({self._name}, subscribers={len(self._subscribers)})"
