"""
Request dispatcher for the insight endpoint.

Routes an ``{action, integration_id, project_id}`` request to a single
rubric or to the batch orchestrator, and races the work against a
deadline. When the deadline wins, the caller gets a timeout response
but the work is NOT cancelled: it keeps running (and may still write
insights) while we hold a reference to it and log how it ended.
"""

import asyncio
import logging
import time
import uuid as uuid_pkg
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from functools import partial
from typing import Any, TypeVar

from app.config import settings
from app.services.insights.exceptions import DispatchTimeoutError
from app.services.insights.orchestrator import (
    BatchResult,
    InsightOrchestrator,
    insight_orchestrator,
)
from app.services.insights.rubrics import GENERATE_ALL_ACTION, rubric_for_action
from app.services.insights.runner import InsightRunner, insight_runner

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Abandoned work is referenced here until it settles so it is not garbage collected
_background_tasks: set[asyncio.Task] = set()


class DispatchState(str, Enum):
    """Lifecycle of one request; every outcome records the states it passed through."""

    IDLE = "idle"
    ROUTING = "routing"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class ErrorCode(str, Enum):
    """Machine-readable ``code`` of an error response."""

    INVALID_ACTION = "invalid_action"
    INVALID_REQUEST = "invalid_request"
    TIMEOUT = "timeout"
    EXECUTION_FAILED = "execution_failed"


@dataclass
class DispatchOutcome:
    """Final state of one request plus the HTTP response to send."""

    state: DispatchState
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0
    transitions: list[DispatchState] = field(default_factory=list)


class InvalidRequestError(ValueError):
    """The request body is malformed (missing or non-UUID identifiers)."""


def _log_abandoned_outcome(label: str, task: asyncio.Task) -> None:
    if task.cancelled():
        logger.warning(f"[insights-dispatch] Abandoned {label} was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"[insights-dispatch] Abandoned {label} failed after its deadline: {error}")
    else:
        logger.warning(
            f"[insights-dispatch] Abandoned {label} finished after its deadline; "
            "result discarded"
        )


async def race_with_deadline(
    work: Coroutine[Any, Any, T],
    timeout_seconds: float,
    label: str = "work",
) -> T:
    """
    Await ``work`` for at most ``timeout_seconds``.

    Returns the work's result, or re-raises its exception, if it settles
    first.

    Raises:
        DispatchTimeoutError: the deadline elapsed first; the work keeps
            running in the background
    """
    task = asyncio.create_task(work)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    done, _pending = await asyncio.wait({task}, timeout=timeout_seconds)
    if task in done:
        return task.result()

    logger.warning(
        f"[insights-dispatch] {label} exceeded {timeout_seconds:g}s; "
        "responding with timeout and leaving the work running"
    )
    task.add_done_callback(partial(_log_abandoned_outcome, label))
    raise DispatchTimeoutError(timeout_seconds)


def _parse_uuid(payload: dict[str, Any], key: str) -> uuid_pkg.UUID:
    value = payload.get(key)
    if not value or not isinstance(value, str):
        raise InvalidRequestError(f"{key} is required")
    try:
        return uuid_pkg.UUID(value)
    except ValueError as e:
        raise InvalidRequestError(f"{key} must be a valid UUID") from e


class InsightDispatcher:
    """Validates, routes and deadline-bounds one insight request."""

    def __init__(
        self,
        runner: InsightRunner | None = None,
        orchestrator: InsightOrchestrator | None = None,
        single_timeout_seconds: float | None = None,
        batch_timeout_seconds: float | None = None,
    ):
        self.runner = runner or insight_runner
        self.orchestrator = orchestrator or insight_orchestrator
        self.single_timeout_seconds = (
            single_timeout_seconds
            if single_timeout_seconds is not None
            else settings.single_dispatch_timeout_seconds
        )
        self.batch_timeout_seconds = (
            batch_timeout_seconds
            if batch_timeout_seconds is not None
            else settings.batch_dispatch_timeout_seconds
        )

    async def dispatch(self, payload: Any) -> DispatchOutcome:
        """
        Handle one request body and produce the response to send.

        Never raises: every failure becomes an error outcome.
        """
        start = time.monotonic()
        transitions = [DispatchState.IDLE, DispatchState.ROUTING]

        if not isinstance(payload, dict):
            return self._error(
                "Request body must be a JSON object",
                ErrorCode.INVALID_REQUEST,
                400,
                start,
                transitions,
            )

        action = payload.get("action")
        spec = rubric_for_action(action) if isinstance(action, str) else None
        if spec is None and action != GENERATE_ALL_ACTION:
            logger.warning(f"[insights-dispatch] Invalid action: {action!r}")
            return self._error("Invalid action", ErrorCode.INVALID_ACTION, 400, start, transitions)

        try:
            integration_id = _parse_uuid(payload, "integration_id")
            project_id = _parse_uuid(payload, "project_id")
        except InvalidRequestError as e:
            return self._error(str(e), ErrorCode.INVALID_REQUEST, 400, start, transitions)

        transitions.append(DispatchState.EXECUTING)
        logger.info(f"[insights-dispatch] Executing {action} for integration {integration_id}")

        work: Coroutine[Any, Any, Any]
        respond: Callable[[Any], dict[str, Any]]
        if spec is not None:
            work = self.runner.run(spec.kind, integration_id, project_id)
            timeout_seconds = self.single_timeout_seconds
            respond = _single_response
        else:
            work = self.orchestrator.generate_all(integration_id, project_id)
            timeout_seconds = self.batch_timeout_seconds
            respond = _batch_response

        try:
            result = await race_with_deadline(work, timeout_seconds, label=action)
        except DispatchTimeoutError as e:
            return self._error(
                e.message,
                ErrorCode.TIMEOUT,
                500,
                start,
                transitions,
                state=DispatchState.TIMED_OUT,
            )
        except Exception as e:
            logger.error(f"[insights-dispatch] {action} failed: {e}")
            return self._error(str(e), ErrorCode.EXECUTION_FAILED, 500, start, transitions)

        duration_ms = _elapsed_ms(start)
        logger.info(f"[insights-dispatch] {action} succeeded in {duration_ms}ms")
        return DispatchOutcome(
            state=DispatchState.SUCCEEDED,
            status_code=200,
            body=respond(result),
            duration_ms=duration_ms,
            transitions=[*transitions, DispatchState.SUCCEEDED],
        )

    def _error(
        self,
        message: str,
        code: ErrorCode,
        status_code: int,
        start: float,
        transitions: list[DispatchState],
        state: DispatchState = DispatchState.FAILED,
    ) -> DispatchOutcome:
        duration_ms = _elapsed_ms(start)
        logger.debug(
            f"[insights-dispatch] {' -> '.join(s.value for s in [*transitions, state])} "
            f"({code.value})"
        )
        return DispatchOutcome(
            state=state,
            status_code=status_code,
            body={
                "error": message,
                "code": code.value,
                "duration_ms": duration_ms,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            duration_ms=duration_ms,
            transitions=[*transitions, state],
        )


def _single_response(analysis: dict[str, Any]) -> dict[str, Any]:
    return {"insights": analysis}


def _batch_response(report: BatchResult) -> dict[str, Any]:
    return {"results": report.to_response()}


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)


insight_dispatcher = InsightDispatcher()
