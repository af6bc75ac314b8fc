# Per-case publish/subscribe channel for live narration (Server-Sent Events)
import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set, Union

from pydantic import BaseModel

from bami_service.app.config import settings
from bami_service.app.observability import (
    active_subscribers_updown_counter,
    channel_write_failures_counter,
    narration_events_published_counter,
)
from .sinks import EventSink

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ":\n\n"


def format_sse_frame(payload: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


class EventChannel:
    """
    Fans narration frames out to every sink registered for a case.

    Delivery is best-effort and at-most-once: no backlog is kept, so a sink
    only sees frames published after it subscribed. Frames reach one sink in
    publish order. A failing sink never stops delivery to the others and
    never raises out of `publish`.
    """

    def __init__(self, keepalive_interval: Optional[float] = None):
        self.keepalive_interval = keepalive_interval if keepalive_interval is not None else settings.SSE_KEEPALIVE_SECONDS
        self._sinks: Dict[str, Set[EventSink]] = {}
        self._keepalive_tasks: Dict[EventSink, asyncio.Task] = {}

    def subscribe(self, case_id: str, sink: EventSink) -> None:
        sinks = self._sinks.setdefault(case_id, set())
        if sink in sinks:
            return
        sinks.add(sink)
        active_subscribers_updown_counter.add(1)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop; keep-alive disabled for sink on case {case_id}.")
        else:
            self._keepalive_tasks[sink] = asyncio.create_task(self._keepalive(case_id, sink))
        logger.info(f"Sink subscribed to case {case_id}. Subscribers: {len(sinks)}")

    def unsubscribe(self, case_id: str, sink: EventSink) -> bool:
        """Detaches a sink. Returns False when it was not (or no longer) registered."""
        sinks = self._sinks.get(case_id)
        if not sinks or sink not in sinks:
            return False
        sinks.discard(sink)
        if not sinks:
            del self._sinks[case_id]
        active_subscribers_updown_counter.add(-1)

        keepalive_task = self._keepalive_tasks.pop(sink, None)
        if keepalive_task is not None:
            keepalive_task.cancel()
        sink.close()
        logger.info(f"Sink unsubscribed from case {case_id}. Subscribers left: {len(sinks)}")
        return True

    def publish(self, case_id: str, payload: Union[BaseModel, Dict[str, Any]]) -> int:
        """Writes the payload to every sink of the case. Returns how many sinks accepted it."""
        sinks = self._sinks.get(case_id)
        if not sinks:
            logger.debug(f"No subscribers for case {case_id}; event dropped.")
            return 0

        frame = format_sse_frame(payload)
        delivered = 0
        for sink in list(sinks):
            try:
                sink.write(frame)
                delivered += 1
            except Exception as e:
                channel_write_failures_counter.add(1)
                logger.warning(f"Dropped event for a sink of case {case_id}: {e!r}")
        if delivered:
            narration_events_published_counter.add(1)
        return delivered

    def subscriber_count(self, case_id: Optional[str] = None) -> int:
        if case_id is not None:
            return len(self._sinks.get(case_id, ()))
        return sum(len(sinks) for sinks in self._sinks.values())

    async def _keepalive(self, case_id: str, sink: EventSink):
        while not sink.closed:
            await asyncio.sleep(self.keepalive_interval)
            try:
                sink.write(KEEPALIVE_FRAME)
            except Exception as e:
                logger.debug(f"Keep-alive stopped for a sink of case {case_id}: {e!r}")
                return

    def close(self) -> None:
        """Detaches every sink (application shutdown)."""
        for case_id, sinks in list(self._sinks.items()):
            for sink in list(sinks):
                self.unsubscribe(case_id, sink)
        logger.info("Event channel closed; all sinks detached.")
