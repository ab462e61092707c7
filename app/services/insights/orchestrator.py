"""Batch orchestrator for "generate all" insight requests.

Runs every rubric once, strictly one after another, with a fixed pause
between attempts so the rate-limited model service never sees a burst.
A failing rubric is logged and counted; the batch only fails as a whole
when nothing succeeded.

Parallelizing this loop would need an explicit rate limiter in place of
the pause to keep the same pacing towards the model service.
"""

import asyncio
import logging
import time
import uuid as uuid_pkg
from dataclasses import dataclass, field
from typing import Any

from app.config import settings
from app.services.insights.exceptions import BatchGenerationError
from app.services.insights.rubrics import RUBRIC_ORDER, get_rubric
from app.services.insights.runner import InsightRunner, insight_runner
from app.services.insights.types import RubricKind

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Summary of a batch run."""

    success: bool = True
    generated: int = 0
    failed: int = 0
    errors: dict[str, Exception] = field(default_factory=dict)
    duration_seconds: float = 0.0

    def to_response(self) -> dict[str, Any]:
        return {"success": self.success, "generated": self.generated, "failed": self.failed}


class InsightOrchestrator:
    """Runs all rubrics sequentially for one integration."""

    def __init__(
        self,
        runner: InsightRunner | None = None,
        delay_seconds: float | None = None,
        rubrics: tuple[RubricKind, ...] = RUBRIC_ORDER,
    ):
        self.runner = runner or insight_runner
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None else settings.batch_delay_seconds
        )
        self.rubrics = rubrics

    async def generate_all(
        self,
        integration_id: uuid_pkg.UUID,
        project_id: uuid_pkg.UUID,
    ) -> BatchResult:
        """
        Run every rubric once.

        Raises:
            BatchGenerationError: every rubric failed
        """
        start = time.monotonic()
        report = BatchResult()
        logger.info(
            f"[insights-batch] Starting {len(self.rubrics)} rubrics for "
            f"integration {integration_id}, project {project_id}"
        )

        for index, kind in enumerate(self.rubrics):
            if index > 0:
                await asyncio.sleep(self.delay_seconds)

            spec = get_rubric(kind)
            rubric_start = time.monotonic()
            try:
                await self.runner.run(kind, integration_id, project_id)
            except Exception as e:
                logger.error(f"[insights-batch] {spec.name} failed: {e}")
                report.errors[kind.value] = e
                report.failed += 1
                continue

            report.generated += 1
            logger.info(
                f"[insights-batch] {spec.name} completed in "
                f"{round((time.monotonic() - rubric_start) * 1000)}ms"
            )

        report.duration_seconds = round(time.monotonic() - start, 2)
        logger.info(
            f"[insights-batch] Completed: {report.generated} generated, "
            f"{report.failed} failed ({report.duration_seconds}s)"
        )

        if report.generated == 0:
            raise BatchGenerationError(report.errors)
        return report


insight_orchestrator = InsightOrchestrator()
