"""
File processing state machine and consume loop.
"""

from .orchestrator import (
    LocalContentStore,
    PipelineOrchestrator,
    ProcessingOutcome,
    ProcessingState,
)
from .worker import ConsumerWorker

__all__ = [
    "ConsumerWorker",
    "LocalContentStore",
    "PipelineOrchestrator",
    "ProcessingOutcome",
    "ProcessingState",
]
