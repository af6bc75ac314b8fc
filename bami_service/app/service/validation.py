# Manual (on-demand) risk validation of a case
import asyncio
import logging
from typing import Optional, Tuple

from bami_service.app.config import settings
from bami_service.app.models import PublicCase, Stage, ValidationResult
from bami_service.app.service.cases import CaseService
from bami_service.app.service.interfaces import AbstractAICollaborator
from bami_service.app.service.pipeline import DECISION_STAGE

logger = logging.getLogger(__name__)

ANALYZING_NOTE = "AI analyzing"


class ManualValidation:
    def __init__(self, case_service: CaseService, ai: AbstractAICollaborator, timeout: Optional[float] = None):
        self.case_service = case_service
        self.ai = ai
        self.timeout = timeout if timeout is not None else settings.AI_VALIDATION_TIMEOUT_SECONDS

    async def validate(self, case_id: str) -> Tuple[ValidationResult, PublicCase]:
        """
        Moves the case to under_review, asks the collaborator for a decision
        and applies it. A failed or timed-out call (AICollaboratorError,
        asyncio.TimeoutError) propagates and leaves the case under review.
        """
        case = self.case_service.advance_stage(case_id, Stage.UNDER_REVIEW, note=ANALYZING_NOTE)
        result = await asyncio.wait_for(
            self.ai.validate_case(self.case_service.case_snapshot(case)),
            timeout=self.timeout,
        )
        case = self.case_service.advance_stage(
            case_id, DECISION_STAGE[result.decision], note=f"AI decision: {result.decision.value}"
        )
        logger.info(f"Manual validation for case {case_id}: {result.decision.value} (risk {result.risk_score}).")
        return result, self.case_service.to_public_case(case)
