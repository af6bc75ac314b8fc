# Process-wide service instances and their FastAPI dependency providers
import logging
from typing import Optional

from fastapi import Depends

from bami_service.app.service.cases import CaseService
from bami_service.app.service.chat import ChatOrchestrator
from bami_service.app.service.intake import DocumentIntake
from bami_service.app.service.interfaces import AbstractAICollaborator, CaseRepository
from bami_service.app.service.pipeline import PipelineScheduler, ReadingPipeline
from bami_service.app.service.validation import ManualValidation
from bami_service.infrastructure.ai.openai_collaborator import get_ai_collaborator
from bami_service.infrastructure.events import EventChannel
from bami_service.infrastructure.repositories.in_memory import InMemoryCaseRepository

logger = logging.getLogger(__name__)

_case_repository_instance: Optional[CaseRepository] = None
_event_channel_instance: Optional[EventChannel] = None
_pipeline_scheduler_instance: Optional[PipelineScheduler] = None


def get_case_repository() -> CaseRepository:
    global _case_repository_instance
    if _case_repository_instance is None:
        _case_repository_instance = InMemoryCaseRepository()
        logger.info("In-memory case repository initialized.")
    return _case_repository_instance


def get_event_channel() -> EventChannel:
    global _event_channel_instance
    if _event_channel_instance is None:
        _event_channel_instance = EventChannel()
        logger.info(f"Event channel initialized (keep-alive every {_event_channel_instance.keepalive_interval}s).")
    return _event_channel_instance


def get_pipeline_scheduler() -> PipelineScheduler:
    global _pipeline_scheduler_instance
    if _pipeline_scheduler_instance is None:
        _pipeline_scheduler_instance = PipelineScheduler()
        logger.info(f"Pipeline scheduler initialized (serialize per case: {_pipeline_scheduler_instance.serialize_per_case}).")
    return _pipeline_scheduler_instance


async def shutdown_services():
    if _pipeline_scheduler_instance:
        await _pipeline_scheduler_instance.drain()
        logger.info("Reading pipelines drained.")
    if _event_channel_instance:
        _event_channel_instance.close()
    else:
        logger.info("Event channel was not initialized, skipping close.")


# --- Request-scoped providers ---

def get_case_service(repository: CaseRepository = Depends(get_case_repository)) -> CaseService:
    return CaseService(repository)


def get_reading_pipeline(
    case_service: CaseService = Depends(get_case_service),
    channel: EventChannel = Depends(get_event_channel),
    ai: AbstractAICollaborator = Depends(get_ai_collaborator)
) -> ReadingPipeline:
    return ReadingPipeline(case_service, channel, ai)


def get_document_intake(
    case_service: CaseService = Depends(get_case_service),
    channel: EventChannel = Depends(get_event_channel),
    pipeline: ReadingPipeline = Depends(get_reading_pipeline),
    scheduler: PipelineScheduler = Depends(get_pipeline_scheduler)
) -> DocumentIntake:
    return DocumentIntake(case_service, channel, pipeline, scheduler)


def get_chat_orchestrator(
    case_service: CaseService = Depends(get_case_service),
    channel: EventChannel = Depends(get_event_channel),
    ai: AbstractAICollaborator = Depends(get_ai_collaborator)
) -> ChatOrchestrator:
    return ChatOrchestrator(case_service, channel, ai)


def get_manual_validation(
    case_service: CaseService = Depends(get_case_service),
    ai: AbstractAICollaborator = Depends(get_ai_collaborator)
) -> ManualValidation:
    return ManualValidation(case_service, ai)
