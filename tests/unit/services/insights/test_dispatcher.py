"""Unit tests for the request dispatcher and its deadline race."""

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.insights import dispatcher as dispatcher_module
from app.services.insights.dispatcher import (
    DispatchState,
    InsightDispatcher,
    race_with_deadline,
)
from app.services.insights.exceptions import (
    BatchGenerationError,
    DataUnavailableError,
    DispatchTimeoutError,
)
from app.services.insights.orchestrator import BatchResult
from app.services.insights.types import RubricKind


def _request(action: str, **overrides) -> dict:
    body = {
        "action": action,
        "integration_id": str(uuid.uuid4()),
        "project_id": str(uuid.uuid4()),
    }
    body.update(overrides)
    return body


def _dispatcher(run=None, generate_all=None, single=1.0, batch=1.0) -> InsightDispatcher:
    runner = MagicMock()
    runner.run = run or AsyncMock(return_value={"security_score": 0.8})
    orchestrator = MagicMock()
    orchestrator.generate_all = generate_all or AsyncMock(
        return_value=BatchResult(generated=7, failed=0)
    )
    return InsightDispatcher(
        runner=runner,
        orchestrator=orchestrator,
        single_timeout_seconds=single,
        batch_timeout_seconds=batch,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Routing
# ═══════════════════════════════════════════════════════════════════════════


class TestRouting:
    @pytest.mark.asyncio
    async def test_unknown_action_is_400(self):
        dispatcher = _dispatcher()

        outcome = await dispatcher.dispatch(_request("delete_everything"))

        assert outcome.status_code == 400
        assert outcome.state == DispatchState.FAILED
        assert outcome.body["error"] == "Invalid action"
        assert outcome.body["code"] == "invalid_action"
        assert isinstance(outcome.body["duration_ms"], int)
        assert "timestamp" in outcome.body
        dispatcher.runner.run.assert_not_called()
        assert outcome.transitions == [
            DispatchState.IDLE,
            DispatchState.ROUTING,
            DispatchState.FAILED,
        ]

    @pytest.mark.asyncio
    async def test_missing_action_is_400(self):
        outcome = await _dispatcher().dispatch({"integration_id": str(uuid.uuid4())})

        assert outcome.status_code == 400
        assert outcome.body["code"] == "invalid_action"

    @pytest.mark.asyncio
    async def test_non_object_body_is_invalid_request(self):
        outcome = await _dispatcher().dispatch(["security_analysis"])

        assert outcome.status_code == 400
        assert outcome.body["code"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_missing_ids_are_invalid_request(self):
        outcome = await _dispatcher().dispatch(
            {"action": "security_analysis", "project_id": str(uuid.uuid4())}
        )

        assert outcome.status_code == 400
        assert outcome.body["code"] == "invalid_request"
        assert "integration_id" in outcome.body["error"]

    @pytest.mark.asyncio
    async def test_malformed_uuid_is_invalid_request(self):
        outcome = await _dispatcher().dispatch(
            _request("security_analysis", project_id="not-a-uuid")
        )

        assert outcome.status_code == 400
        assert outcome.body["code"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_single_action_runs_its_rubric(self):
        dispatcher = _dispatcher()
        body = _request("release_prediction")

        outcome = await dispatcher.dispatch(body)

        assert outcome.status_code == 200
        assert outcome.state == DispatchState.SUCCEEDED
        assert outcome.body == {"insights": {"security_score": 0.8}}
        assert outcome.transitions == [
            DispatchState.IDLE,
            DispatchState.ROUTING,
            DispatchState.EXECUTING,
            DispatchState.SUCCEEDED,
        ]
        kind, integration_id, project_id = dispatcher.runner.run.call_args.args
        assert kind == RubricKind.RELEASE_PREDICTION
        assert integration_id == uuid.UUID(body["integration_id"])
        assert project_id == uuid.UUID(body["project_id"])

    @pytest.mark.asyncio
    async def test_batch_action_returns_counts(self):
        dispatcher = _dispatcher(
            generate_all=AsyncMock(return_value=BatchResult(generated=5, failed=2))
        )

        outcome = await dispatcher.dispatch(_request("generate_github_insights"))

        assert outcome.status_code == 200
        assert outcome.body == {"results": {"success": True, "generated": 5, "failed": 2}}
        dispatcher.runner.run.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# Execution failures
# ═══════════════════════════════════════════════════════════════════════════


class TestExecutionFailures:
    @pytest.mark.asyncio
    async def test_rubric_error_is_500(self):
        dispatcher = _dispatcher(
            run=AsyncMock(side_effect=DataUnavailableError("No GitHub data available"))
        )

        outcome = await dispatcher.dispatch(_request("security_analysis"))

        assert outcome.status_code == 500
        assert outcome.state == DispatchState.FAILED
        assert outcome.body["code"] == "execution_failed"
        assert outcome.transitions[-2:] == [DispatchState.EXECUTING, DispatchState.FAILED]
        assert outcome.body["error"] == "No GitHub data available"

    @pytest.mark.asyncio
    async def test_batch_total_failure_is_500(self):
        dispatcher = _dispatcher(generate_all=AsyncMock(side_effect=BatchGenerationError({})))

        outcome = await dispatcher.dispatch(_request("generate_github_insights"))

        assert outcome.status_code == 500
        assert "All GitHub insights failed to generate" in outcome.body["error"]


# ═══════════════════════════════════════════════════════════════════════════
# Deadline race
# ═══════════════════════════════════════════════════════════════════════════


class TestDeadline:
    @pytest.mark.asyncio
    async def test_timeout_reported_near_deadline_and_work_continues(self):
        finished = asyncio.Event()

        async def slow_run(*_args):
            await asyncio.sleep(0.3)
            finished.set()
            return {"late": True}

        dispatcher = _dispatcher(run=AsyncMock(side_effect=slow_run), single=0.05)

        outcome = await dispatcher.dispatch(_request("security_analysis"))

        assert outcome.status_code == 500
        assert outcome.state == DispatchState.TIMED_OUT
        assert outcome.body["code"] == "timeout"
        assert outcome.transitions[-2:] == [DispatchState.EXECUTING, DispatchState.TIMED_OUT]
        assert outcome.body["error"] == "Function timeout: Operation exceeded 0.05 seconds"
        assert 40 <= outcome.duration_ms < 300
        assert not finished.is_set()

        await asyncio.wait_for(finished.wait(), timeout=2)
        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_batch_uses_batch_deadline(self):
        async def slow_batch(*_args):
            await asyncio.sleep(0.2)
            return BatchResult()

        dispatcher = _dispatcher(
            generate_all=AsyncMock(side_effect=slow_batch), single=0.01, batch=1.0
        )

        outcome = await dispatcher.dispatch(_request("generate_github_insights"))

        assert outcome.status_code == 200

    @pytest.mark.asyncio
    async def test_race_returns_result(self):
        async def work():
            return 42

        assert await race_with_deadline(work(), 1.0) == 42

    @pytest.mark.asyncio
    async def test_race_reraises_work_error(self):
        async def work():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            await race_with_deadline(work(), 1.0)

    @pytest.mark.asyncio
    async def test_abandoned_work_is_tracked_until_done(self):
        release = asyncio.Event()

        async def work():
            await release.wait()
            return "done"

        with pytest.raises(DispatchTimeoutError):
            await race_with_deadline(work(), 0.01, label="test")

        pending = set(dispatcher_module._background_tasks)
        assert len(pending) >= 1

        release.set()
        await asyncio.gather(*pending)
        await asyncio.sleep(0)
        assert not (pending & dispatcher_module._background_tasks)
