# API Router for operational webhooks
from fastapi import APIRouter, Depends, HTTPException
import logging

from bami_service.app.dependencies.auth import require_api_key
from bami_service.app.dependencies.services import get_case_service
from bami_service.app.models import Stage, WebhookEventRequest
from bami_service.app.service.cases import CaseService
from bami_service.app.service.exceptions import CaseNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_api_key)])

STUCK_EVENT = "stuck"
UNSTUCK_NOTE = "unstuck"


@router.post("/webhooks/events", tags=["Webhooks"])
async def receive_event(request_data: WebhookEventRequest, case_service: CaseService = Depends(get_case_service)):
    try:
        case_service.require_case(request_data.caseId)
        if request_data.type == STUCK_EVENT:
            case_service.advance_stage(request_data.caseId, Stage.UNDER_REVIEW, note=request_data.note or UNSTUCK_NOTE)
        else:
            logger.info(f"Webhook event '{request_data.type}' for case {request_data.caseId} ignored.")
        return {"ok": True}
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
