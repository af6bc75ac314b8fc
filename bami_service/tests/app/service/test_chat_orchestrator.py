import asyncio
import json

import pytest
from unittest.mock import AsyncMock

from bami_service.app.models import ChatActions, ChatReply, ChatRole, Stage
from bami_service.app.service.chat import ADVISOR_HANDOFF_TEXT, AI_STAGE_NOTE, ChatOrchestrator
from bami_service.app.service.exceptions import AICollaboratorError, CaseNotFoundError


def texts(sink):
    return [json.loads(frame[len("data: "):])["text"] for frame in sink.frames]

@pytest.fixture
def ai():
    return AsyncMock()

@pytest.fixture
def orchestrator(case_service, channel, ai):
    return ChatOrchestrator(case_service, channel, ai, timeout=1)


@pytest.mark.asyncio
async def test_reply_and_history_are_stored(orchestrator, case_service, ai):
    ai.chat.return_value = ChatReply(reply="Your case is being reviewed.")
    case = case_service.create_case("credit-card")

    reply, public = await orchestrator.handle_message(case.id, "¿Cómo va mi solicitud?", mode="asesor")

    assert reply == "Your case is being reviewed."
    assert public.id == case.id
    history = case_service.get_chat_history(case.id)
    assert [(m.role, m.content) for m in history] == [
        (ChatRole.USER, "¿Cómo va mi solicitud?"),
        (ChatRole.ASSISTANT, "Your case is being reviewed."),
    ]
    snapshot, message, sent_history = ai.chat.call_args.args
    assert snapshot["id"] == case.id
    assert message == "¿Cómo va mi solicitud?"
    assert sent_history[-1].content == "¿Cómo va mi solicitud?"
    assert ai.chat.call_args.kwargs == {"mode": "asesor"}

@pytest.mark.asyncio
async def test_unknown_case_raises(orchestrator):
    with pytest.raises(CaseNotFoundError):
        await orchestrator.handle_message("C-00000", "hola")

@pytest.mark.asyncio
async def test_publish_actions_are_capped(orchestrator, case_service, channel, recording_sink, ai):
    ai.chat.return_value = ChatReply(reply="ok", actions=ChatActions(publish=[f"{i}" + "x" * 600 for i in range(8)]))
    case = case_service.create_case("credit-card")
    channel.subscribe(case.id, recording_sink)

    await orchestrator.handle_message(case.id, "I uploaded everything")
    channel.unsubscribe(case.id, recording_sink)

    published = texts(recording_sink)
    assert len(published) == 6
    assert all(len(text) == 500 for text in published)

@pytest.mark.asyncio
async def test_mark_docs_only_marks_missing_documents(orchestrator, case_service, ai):
    ai.chat.return_value = ChatReply(reply="noted", actions=ChatActions(mark_docs=["dpi", "passport"]))
    case = case_service.create_case("credit-card")

    _, public = await orchestrator.handle_message(case.id, "I sent my DPI")

    assert public.missing == ["selfie", "proof_of_address"]
    assert public.stage == Stage.RECEIVED.value
    assert public.timeline[-1].text == "Documents marked as submitted: dpi"

@pytest.mark.asyncio
async def test_mark_docs_with_nothing_missing_changes_nothing(orchestrator, case_service, ai):
    ai.chat.return_value = ChatReply(reply="noted", actions=ChatActions(mark_docs=["passport"]))
    case = case_service.create_case("credit-card")

    _, public = await orchestrator.handle_message(case.id, "I sent my passport")

    assert public.stage == Stage.REQUIRES_DOCS.value
    assert len(public.timeline) == 1

@pytest.mark.asyncio
async def test_valid_set_stage_is_applied(orchestrator, case_service, ai):
    ai.chat.return_value = ChatReply(reply="sent to review", actions=ChatActions(set_stage="under_review"))
    case = case_service.create_case("credit-card")

    _, public = await orchestrator.handle_message(case.id, "please review")

    assert public.stage == Stage.UNDER_REVIEW.value
    assert public.percent == 60
    assert public.timeline[-1].text == AI_STAGE_NOTE

@pytest.mark.asyncio
async def test_invalid_set_stage_is_ignored(orchestrator, case_service, ai):
    ai.chat.return_value = ChatReply(reply="hmm", actions=ChatActions(set_stage="teleported"))
    case = case_service.create_case("credit-card")

    _, public = await orchestrator.handle_message(case.id, "approve me")

    assert public.stage == Stage.REQUIRES_DOCS.value
    assert len(public.timeline) == 1

@pytest.mark.asyncio
async def test_escalation_publishes_advisor_handoff(orchestrator, case_service, channel, recording_sink, ai):
    ai.chat.return_value = ChatReply(reply="An advisor will call you.", actions=ChatActions(escalate_to_advisor=True))
    case = case_service.create_case("credit-card")
    channel.subscribe(case.id, recording_sink)

    await orchestrator.handle_message(case.id, "I want a human")
    channel.unsubscribe(case.id, recording_sink)

    assert texts(recording_sink) == [ADVISOR_HANDOFF_TEXT]

@pytest.mark.asyncio
async def test_failing_action_does_not_stop_the_others(orchestrator, case_service, ai, mocker):
    ai.chat.return_value = ChatReply(reply="ok", actions=ChatActions(mark_docs=["dpi"], set_stage="under_review"))
    case = case_service.create_case("credit-card")
    mocker.patch.object(case_service, "mark_documents_submitted", side_effect=RuntimeError("store busy"))

    reply, public = await orchestrator.handle_message(case.id, "DPI sent, please review")

    assert reply == "ok"
    assert public.stage == Stage.UNDER_REVIEW.value

@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [AICollaboratorError("AI service returned HTTP 500"), "timeout"])
async def test_collaborator_failure_uses_fallback_reply(case_service, channel, ai, failure):
    if failure == "timeout":
        async def slow_chat(*args, **kwargs):
            await asyncio.sleep(1)
        ai.chat.side_effect = slow_chat
    else:
        ai.chat.side_effect = failure
    orchestrator = ChatOrchestrator(case_service, channel, ai, timeout=0.01)
    case = case_service.create_case("credit-card")

    reply, public = await orchestrator.handle_message(case.id, "status?")

    assert "credit-card" in reply
    assert "Missing: dpi, selfie, proof_of_address." in reply
    assert public.stage == Stage.REQUIRES_DOCS.value
    assert case_service.get_chat_history(case.id)[-1].content == reply
