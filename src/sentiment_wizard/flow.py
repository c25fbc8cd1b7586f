"""
Wizard stage sequencing.

welcome -> runtime_setup -> model_selection -> file_import
        -> column_selection -> analysis_progress -> results_summary

runtime_setup is skipped when the runtime is already ready as welcome is
left. back() is only honoured from model_selection, file_import and
column_selection; back from model_selection always lands on welcome.

The controller knows nothing about analysis being in flight: the UI is
responsible for not offering back/advance while a run is active.
"""

from typing import Callable

import structlog

from sentiment_wizard.models.dataset_models import FlowState
from sentiment_wizard.models.enums import Stage
from sentiment_wizard.observable import Observable


logger = structlog.get_logger(__name__)

_FORWARD: dict[Stage, Stage] = {
    Stage.WELCOME: Stage.RUNTIME_SETUP,
    Stage.RUNTIME_SETUP: Stage.MODEL_SELECTION,
    Stage.MODEL_SELECTION: Stage.FILE_IMPORT,
    Stage.FILE_IMPORT: Stage.COLUMN_SELECTION,
    Stage.COLUMN_SELECTION: Stage.ANALYSIS_PROGRESS,
    Stage.ANALYSIS_PROGRESS: Stage.RESULTS_SUMMARY,
}

_BACKWARD: dict[Stage, Stage] = {
    Stage.MODEL_SELECTION: Stage.WELCOME,
    Stage.FILE_IMPORT: Stage.MODEL_SELECTION,
    Stage.COLUMN_SELECTION: Stage.FILE_IMPORT,
}

# Step indicator entries; runtime_setup is intentionally not shown
STEPS: tuple[tuple[Stage, str], ...] = (
    (Stage.WELCOME, "Welcome"),
    (Stage.MODEL_SELECTION, "Model"),
    (Stage.FILE_IMPORT, "File"),
    (Stage.COLUMN_SELECTION, "Column"),
    (Stage.ANALYSIS_PROGRESS, "Analyze"),
    (Stage.RESULTS_SUMMARY, "Results"),
)


class FlowController:
    """
    Linear wizard state machine.
    
    Args:
        is_runtime_ready: Readiness signal consulted when leaving welcome
            (typically InferenceRuntimeManager.is_ready)
    """
    
    def __init__(self, is_runtime_ready: Callable[[], bool]):
        self._is_runtime_ready = is_runtime_ready
        self._reset_hooks: list[Callable[[], None]] = []
        self.state: Observable[FlowState] = Observable(FlowState(), name="FlowState")
    
    @property
    def stage(self) -> Stage:
        return self.state.value.stage
    
    def add_reset_hook(self, hook: Callable[[], None]) -> None:
        """Register a callable run by reset(), e.g. the pipeline's reset."""
        self._reset_hooks.append(hook)
    
    def advance(self) -> Stage:
        """Move one stage forward (two when skipping runtime_setup)."""
        current = self.stage
        target = _FORWARD.get(current)
        if target is None:
            return current
        if target == Stage.RUNTIME_SETUP and self._is_runtime_ready():
            target = Stage.MODEL_SELECTION
        return self._go(target)
    
    def can_go_back(self) -> bool:
        return self.stage in _BACKWARD
    
    def back(self) -> Stage:
        """Move back from a stage that allows it; otherwise a no-op."""
        target = _BACKWARD.get(self.stage)
        if target is None:
            logger.debug("Back not allowed", stage=self.stage.value)
            return self.stage
        return self._go(target)
    
    def reset(self) -> Stage:
        """Return to welcome and have every owner clear its state."""
        for hook in self._reset_hooks:
            hook()
        return self._go(Stage.WELCOME)
    
    def _go(self, target: Stage) -> Stage:
        previous = self.stage
        if target != previous:
            self.state.publish(stage=target)
            logger.info("Wizard stage changed", from_stage=previous.value, to_stage=target.value)
        return target
    
    @staticmethod
    def step_index(stage: Stage) -> int:
        """Position in the step indicator, -1 for stages it does not show."""
        for index, (step_stage, _) in enumerate(STEPS):
            if step_stage == stage:
                return index
        return -1
    
    @property
    def steps(self) -> list[str]:
        return [title for _, title in STEPS]
