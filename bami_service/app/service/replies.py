# Deterministic chat replies used when the AI collaborator is unavailable or off-topic
from typing import Any, Dict, List

from bami_service.app.models import ChatReply, Stage

TRACKER_STEPS: List[str] = [
    "Data received",
    "Initial filters",
    "Classification",
    "Data review",
    "Extra data request",
    "Approval",
]

DONE, PENDING = "✅", "◻️"

SCOPE_REMINDER = (
    "I can help you with your BAM application: your case, documents, validation, "
    "timing, notifications, products and getting in touch with an advisor."
)


def format_tracker(stage: str) -> str:
    """Six-step textual tracker for a stage."""
    lines = []
    for index, title in enumerate(TRACKER_STEPS):
        step = f"{index + 1}. {title}"
        if stage == Stage.APPROVED.value:
            mark = DONE
        elif stage == Stage.ALTERNATIVE_OFFERED.value:
            mark = DONE if index < 4 else PENDING
        elif stage == Stage.UNDER_REVIEW.value:
            mark = DONE if index < 3 else (f"(in progress) {PENDING}" if index == 3 else PENDING)
        elif stage == Stage.RECEIVED.value:
            mark = DONE if index < 2 else PENDING
        else:
            mark = DONE if index == 0 else PENDING
        lines.append(f"{step} {mark}")
    return "\n".join(lines)


def build_fallback_reply(case_snapshot: Dict[str, Any]) -> ChatReply:
    product = case_snapshot.get("product") or "product"
    stage = case_snapshot.get("stage") or Stage.REQUIRES_DOCS.value
    missing = case_snapshot.get("missing") or []
    missing_text = f"Missing: {', '.join(missing)}." if missing else "Nothing is missing. We can move on to review."
    reply = "\n".join([
        f"I'm with you on your {product} application.",
        f"Status: **{stage.replace('_', ' ')}**.",
        missing_text,
        "",
        "**Tracker:**\n" + format_tracker(stage),
        "",
        "Would you like me to validate with AI now, upload documents or talk to an advisor?",
    ])
    return ChatReply(reply=reply)


def build_out_of_scope_reply(case_snapshot: Dict[str, Any]) -> ChatReply:
    fallback = build_fallback_reply(case_snapshot)
    return ChatReply(reply=f"{SCOPE_REMINDER}\n\n{fallback.reply}")
