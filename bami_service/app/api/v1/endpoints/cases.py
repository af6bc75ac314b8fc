# API Router for Cases: intake of leads, tracker reads, stage overrides and manual validation
from fastapi import APIRouter, Body, Depends, HTTPException
import asyncio
import logging
from typing import Optional

from bami_service.app.dependencies.auth import require_api_key
from bami_service.app.dependencies.services import get_case_service, get_manual_validation
from bami_service.app.models import ChatRole, LeadIngestRequest, StageOverrideRequest
from bami_service.app.service.cases import CaseService
from bami_service.app.service.exceptions import AICollaboratorError, CaseNotFoundError
from bami_service.app.service.validation import ManualValidation

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_api_key)])

MANUAL_ADJUSTMENT_NOTE = "manual adjustment"


@router.post("/ingest/leads", summary="Open a new application case", tags=["Cases"])
async def ingest_lead(
    request_data: Optional[LeadIngestRequest] = Body(None),
    case_service: CaseService = Depends(get_case_service)
):
    request_data = request_data or LeadIngestRequest()
    try:
        case = case_service.create_case(
            product=request_data.product,
            applicant=request_data.applicant,
            channel=request_data.channel,
        )
        case_service.append_chat_message(
            case.id, ChatRole.ASSISTANT, f"Welcome! I opened your application {case.id} for {case.product}."
        )
        return {"case": case_service.to_public_case(case)}
    except Exception as e:
        logger.error(f"Unexpected error creating case for product {request_data.product}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create case")


@router.get("/tracker/{case_id}", tags=["Cases"])
async def get_tracker(case_id: str, case_service: CaseService = Depends(get_case_service)):
    case = case_service.get_case(case_id)
    if case is None:
        raise HTTPException(status_code=404, detail="case not found")
    return {"case": case_service.to_public_case(case)}


@router.post("/tracker/{case_id}/state", summary="Operator override of the case stage", tags=["Cases"])
async def override_stage(
    case_id: str,
    request_data: StageOverrideRequest,
    case_service: CaseService = Depends(get_case_service)
):
    try:
        case = case_service.advance_stage(case_id, request_data.stage, note=request_data.note or MANUAL_ADJUSTMENT_NOTE)
        return {"case": case_service.to_public_case(case)}
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error overriding stage for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to update case {case_id}")


@router.post("/validate/{case_id}", summary="Run AI risk validation now", tags=["Validation"])
async def validate_case(case_id: str, validation: ManualValidation = Depends(get_manual_validation)):
    try:
        result, case = await validation.validate(case_id)
        return {"result": result, "case": case}
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except asyncio.TimeoutError:
        logger.error(f"AI validation timed out for case {case_id}.")
        raise HTTPException(status_code=504, detail="AI validation timed out")
    except AICollaboratorError as e:
        logger.error(f"AI validation failed for case {case_id}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error validating case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to validate case {case_id}")
