# API Router for the case assistant chat
from fastapi import APIRouter, Depends, HTTPException
import logging

from bami_service.app.dependencies.auth import require_api_key
from bami_service.app.dependencies.services import get_chat_orchestrator
from bami_service.app.models import ChatRequest
from bami_service.app.service.chat import ChatOrchestrator
from bami_service.app.service.exceptions import CaseNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/chat", tags=["Chat"])
async def chat(request_data: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_chat_orchestrator)):
    try:
        reply, case = await orchestrator.handle_message(request_data.caseId, request_data.message, mode=request_data.mode)
        return {"reply": reply, "case": case}
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error in chat for case {request_data.caseId}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process chat message")
