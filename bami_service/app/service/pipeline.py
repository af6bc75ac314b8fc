# Background reading pipeline: document analysis, risk validation and live narration
import asyncio
import dataclasses
import logging
from typing import Dict, List, Optional, Sequence, Set

from opentelemetry.trace import Status, StatusCode

from bami_service.app.config import settings
from bami_service.app.models import Decision, NarrationEvent, Stage, UploadedFile
from bami_service.app.observability import pipeline_runs_counter, tracer
from bami_service.app.service.cases import CaseService
from bami_service.app.service.interfaces import AbstractAICollaborator
from bami_service.infrastructure.events import EventChannel

logger = logging.getLogger(__name__)

READING_NOTE = "AI reading documents"
READING_TEXT = "🔍 Reviewing legibility and consistency…"
APPROVED_TEXT = "✅ Approved. I'll prepare the contract and next steps."
ALTERNATIVE_TEXT = "🔁 Not approved. I have an alternative that fits your profile."

DECISION_STAGE = {
    Decision.APPROVED: Stage.APPROVED,
    Decision.ALTERNATIVE: Stage.ALTERNATIVE_OFFERED,
}


@dataclasses.dataclass
class PipelineOutcome:
    case_id: str
    succeeded: bool
    decision: Optional[Decision] = None
    error: Optional[str] = None


class ReadingPipeline:
    """
    Runs the post-upload sequence for one file batch.

    Steps are awaited strictly in order and each stage change and publish is
    visible before the next step starts. `run` never raises: failures end the
    run with the case left at its last committed stage.
    """

    def __init__(
        self,
        case_service: CaseService,
        channel: EventChannel,
        ai: AbstractAICollaborator,
        analysis_timeout: Optional[float] = None,
        validation_timeout: Optional[float] = None
    ):
        self.case_service = case_service
        self.channel = channel
        self.ai = ai
        self.analysis_timeout = analysis_timeout if analysis_timeout is not None else settings.AI_ANALYSIS_TIMEOUT_SECONDS
        self.validation_timeout = validation_timeout if validation_timeout is not None else settings.AI_VALIDATION_TIMEOUT_SECONDS

    def _narrate(self, case_id: str, text: str) -> None:
        self.channel.publish(case_id, NarrationEvent(text=text))

    async def run(self, case_id: str, files: Sequence[UploadedFile]) -> PipelineOutcome:
        with tracer.start_as_current_span("reading_pipeline.run") as span:
            span.set_attribute("case.id", case_id)
            span.set_attribute("pipeline.files", len(files))
            try:
                decision = await self._run_steps(case_id, files)
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, description=str(e)))
                pipeline_runs_counter.add(1, attributes={"outcome": "failed"})
                logger.error(f"Reading pipeline failed for case {case_id}: {e!r}", exc_info=True)
                return PipelineOutcome(case_id=case_id, succeeded=False, error=repr(e))

            span.set_attribute("pipeline.decision", decision.value)
            pipeline_runs_counter.add(1, attributes={"outcome": "succeeded"})
            logger.info(f"Reading pipeline finished for case {case_id} with decision {decision.value}.")
            return PipelineOutcome(case_id=case_id, succeeded=True, decision=decision)

    async def _run_steps(self, case_id: str, files: Sequence[UploadedFile]) -> Decision:
        # 1. Reading starts; an unknown case fails here before any side effect
        case = self.case_service.advance_stage(case_id, Stage.UNDER_REVIEW, note=READING_NOTE)
        self._narrate(case_id, READING_TEXT)

        # 2. Document analysis
        analysis = await asyncio.wait_for(
            self.ai.analyze_documents(self.case_service.case_snapshot(case), files),
            timeout=self.analysis_timeout,
        )
        if analysis.summary:
            self._narrate(case_id, analysis.summary)
        if analysis.warnings:
            self._narrate(case_id, "⚠️ Observations: " + " · ".join(analysis.warnings))

        # 3. Validation on a fresh snapshot; chat actions may have moved the case meanwhile
        fresh_case = self.case_service.case_snapshot(self.case_service.require_case(case_id))
        result = await asyncio.wait_for(
            self.ai.validate_case(fresh_case),
            timeout=self.validation_timeout,
        )

        # 4. Terminal stage
        self.case_service.advance_stage(
            case_id, DECISION_STAGE[result.decision], note=f"AI decision: {result.decision.value}"
        )

        # 5. Decision narration
        self._narrate(case_id, APPROVED_TEXT if result.decision == Decision.APPROVED else ALTERNATIVE_TEXT)
        return result.decision


class PipelineScheduler:
    """
    Owns background pipeline tasks.

    Holds a reference to every in-flight task so it is not garbage collected,
    and optionally runs at most one pipeline at a time per case.
    """

    def __init__(self, serialize_per_case: Optional[bool] = None):
        self.serialize_per_case = settings.PIPELINE_SERIALIZE_PER_CASE if serialize_per_case is None else serialize_per_case
        self._tasks: Set[asyncio.Task] = set()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def spawn(self, pipeline: ReadingPipeline, case_id: str, files: Sequence[UploadedFile]) -> asyncio.Task:
        task = asyncio.create_task(self._run(pipeline, case_id, list(files)), name=f"reading-pipeline-{case_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Reading pipeline scheduled for case {case_id} with {len(files)} file(s).")
        return task

    async def _run(self, pipeline: ReadingPipeline, case_id: str, files: List[UploadedFile]) -> PipelineOutcome:
        if not self.serialize_per_case:
            return await pipeline.run(case_id, files)

        lock = self._locks.setdefault(case_id, asyncio.Lock())
        self._lock_users[case_id] = self._lock_users.get(case_id, 0) + 1
        if lock.locked():
            logger.info(f"Reading pipeline for case {case_id} waiting for the previous run to finish.")
        try:
            async with lock:
                return await pipeline.run(case_id, files)
        finally:
            self._lock_users[case_id] -= 1
            if not self._lock_users[case_id]:
                del self._lock_users[case_id]
                del self._locks[case_id]

    async def drain(self) -> None:
        """Waits for every in-flight pipeline (application shutdown)."""
        if not self._tasks:
            return
        logger.info(f"Draining {len(self._tasks)} reading pipeline task(s).")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
