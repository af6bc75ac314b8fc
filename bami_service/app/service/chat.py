# Chat orchestration: AI reply plus execution of the actions it suggests
import asyncio
import logging
from typing import Optional, Tuple

from bami_service.app.config import settings
from bami_service.app.models import ChatActions, ChatRole, NarrationEvent, PublicCase, Stage
from bami_service.app.service.cases import CaseService
from bami_service.app.service.exceptions import AICollaboratorError
from bami_service.app.service.interfaces import AbstractAICollaborator
from bami_service.app.service.replies import build_fallback_reply
from bami_service.infrastructure.events import EventChannel

logger = logging.getLogger(__name__)

AI_STAGE_NOTE = "adjusted by AI"
ADVISOR_HANDOFF_TEXT = "📞 Connecting you with an advisor. I'll let you know as soon as they reply."


class ChatOrchestrator:
    def __init__(
        self,
        case_service: CaseService,
        channel: EventChannel,
        ai: AbstractAICollaborator,
        timeout: Optional[float] = None
    ):
        self.case_service = case_service
        self.channel = channel
        self.ai = ai
        self.timeout = timeout if timeout is not None else settings.AI_VALIDATION_TIMEOUT_SECONDS

    async def handle_message(self, case_id: str, message: str, mode: str = "bami") -> Tuple[str, PublicCase]:
        case = self.case_service.require_case(case_id)
        history = self.case_service.append_chat_message(case_id, ChatRole.USER, message)
        snapshot = self.case_service.case_snapshot(case)

        try:
            chat_reply = await asyncio.wait_for(
                self.ai.chat(snapshot, message, history, mode=mode),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Chat collaborator timed out for case {case_id}; using fallback reply.")
            chat_reply = build_fallback_reply(snapshot)
        except AICollaboratorError as e:
            logger.warning(f"Chat collaborator failed for case {case_id}: {e}; using fallback reply.")
            chat_reply = build_fallback_reply(snapshot)

        self._execute_actions(case_id, chat_reply.actions)

        reply = chat_reply.reply or "…"
        self.case_service.append_chat_message(case_id, ChatRole.ASSISTANT, reply)
        return reply, self.case_service.to_public_case(self.case_service.require_case(case_id))

    def _execute_actions(self, case_id: str, actions: ChatActions) -> None:
        """Runs each suggested action on its own; a failing action is logged and skipped."""
        if actions.publish:
            try:
                for text in actions.publish[:settings.CHAT_MAX_PUBLISH_ACTIONS]:
                    self.channel.publish(case_id, NarrationEvent(text=text[:settings.CHAT_MAX_PUBLISH_CHARS]))
            except Exception as e:
                logger.warning(f"Chat action 'publish' failed for case {case_id}: {e!r}")

        if actions.mark_docs:
            try:
                missing = self.case_service.require_case(case_id).missing
                valid = [doc for doc in actions.mark_docs if doc in missing]
                if valid:
                    self.case_service.mark_documents_submitted(case_id, valid)
                else:
                    logger.info(f"Chat action 'mark_docs' for case {case_id} named no missing document: {actions.mark_docs}")
            except Exception as e:
                logger.warning(f"Chat action 'mark_docs' failed for case {case_id}: {e!r}")

        if actions.set_stage:
            if Stage.is_valid(actions.set_stage):
                try:
                    self.case_service.advance_stage(case_id, actions.set_stage, note=AI_STAGE_NOTE)
                except Exception as e:
                    logger.warning(f"Chat action 'set_stage' failed for case {case_id}: {e!r}")
            else:
                logger.info(f"Ignoring unknown stage '{actions.set_stage}' suggested by chat for case {case_id}.")

        if actions.escalate_to_advisor:
            self.channel.publish(case_id, NarrationEvent(text=ADVISOR_HANDOFF_TEXT))

        if actions.notify:
            logger.info(f"Chat suggested notifying case {case_id} via {actions.notify}; no notifier is configured.")

