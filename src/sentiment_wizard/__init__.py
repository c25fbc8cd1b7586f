"""
Sentiment Wizard: spreadsheet sentiment analysis against a local Ollama runtime.

Core components:
- TabularReader: extracts a single text column from CSV / XLSX files
- InferenceRuntimeManager: detects, installs, starts and health-checks Ollama
- ClassificationPipeline: sequential, cancellable per-row sentiment classification
- FlowController: wizard stage sequencing

Architecture: single asyncio event loop publishing immutable state snapshots,
httpx for the local inference endpoint, subprocesses for the runtime binary.
"""

__version__ = "0.1.0"
