# API Router for Health Checks
from fastapi import APIRouter, Depends
import logging

from bami_service.app.config import settings
from bami_service.app.dependencies.services import get_case_repository, get_event_channel
from bami_service.app.service.interfaces import CaseRepository
from bami_service.infrastructure.events import EventChannel

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check(
    repository: CaseRepository = Depends(get_case_repository),
    channel: EventChannel = Depends(get_event_channel)
):
    components = {
        "cases": len(repository.list()),
        "event_channel": channel.subscriber_count(),
    }
    return {"status": "ok", "components": components, "service_name": settings.SERVICE_NAME_API}
