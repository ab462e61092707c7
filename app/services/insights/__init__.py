"""
GitHub AI insight pipeline.

Usage: `from app.services.insights import insight_dispatcher`

Module structure:
- dispatcher.py: Request routing and deadline race (entry point)
- orchestrator.py: Sequential "generate all" batch
- runner.py: Single-rubric chain
- aggregator.py: Reads and shapes source activity per rubric
- prompts.py: Deterministic prompt rendering
- model_client.py: Bounded-time model call and JSON extraction
- results.py: Lenient result models per rubric
- summaries.py: Executive summary lines
- persister.py: Insight row construction and insert
- rubrics.py: Rubric registry
- exceptions.py: Error taxonomy
"""

from app.services.insights.dispatcher import (
    DispatchOutcome,
    DispatchState,
    InsightDispatcher,
    insight_dispatcher,
)
from app.services.insights.exceptions import (
    BatchGenerationError,
    DataUnavailableError,
    DispatchTimeoutError,
    InsightError,
    ModelConfigurationError,
    ModelHttpError,
    ModelTimeoutError,
    PersistenceError,
    ResponseParseError,
)
from app.services.insights.orchestrator import BatchResult, InsightOrchestrator
from app.services.insights.rubrics import GENERATE_ALL_ACTION, RUBRIC_ORDER, RUBRICS
from app.services.insights.runner import InsightRunner
from app.services.insights.types import AlertCategory, RubricKind

__all__ = [
    # Entry point
    "InsightDispatcher",
    "insight_dispatcher",
    "DispatchOutcome",
    "DispatchState",
    # Orchestration
    "InsightOrchestrator",
    "InsightRunner",
    "BatchResult",
    # Registry
    "GENERATE_ALL_ACTION",
    "RUBRICS",
    "RUBRIC_ORDER",
    "RubricKind",
    "AlertCategory",
    # Errors
    "InsightError",
    "DataUnavailableError",
    "ModelConfigurationError",
    "ModelTimeoutError",
    "ModelHttpError",
    "ResponseParseError",
    "PersistenceError",
    "DispatchTimeoutError",
    "BatchGenerationError",
]
