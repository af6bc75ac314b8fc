# API Router for live case narration (Server-Sent Events)
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
import logging

from bami_service.app.dependencies.services import get_case_service, get_event_channel
from bami_service.app.service.cases import CaseService
from bami_service.infrastructure.events import EventChannel, QueueSink

logger = logging.getLogger(__name__)
# No API key guard: browsers' EventSource cannot send custom headers
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/stream/{case_id}", tags=["Stream"])
async def stream_case_events(
    case_id: str,
    case_service: CaseService = Depends(get_case_service),
    channel: EventChannel = Depends(get_event_channel)
):
    if case_service.get_case(case_id) is None:
        raise HTTPException(status_code=404, detail="case not found")

    async def event_stream():
        sink = QueueSink()
        channel.subscribe(case_id, sink)
        try:
            async for frame in sink.frames():
                yield frame
        finally:
            # Runs on client disconnect as well as on channel shutdown
            channel.unsubscribe(case_id, sink)
            logger.info(f"Stream for case {case_id} ended.")

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)
