# Case store: state machine and bookkeeping over a CaseRepository
import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Sequence

from opentelemetry import trace

from bami_service.app.config import settings
from bami_service.app.models import (
    STAGE_PERCENT,
    CaseRecord,
    ChatMessage,
    ChatRole,
    PublicCase,
    Stage,
    TimelineEntry,
    UploadedFile,
    UploadRecord,
    required_documents_for,
)
from bami_service.app.observability import cases_created_counter
from bami_service.app.service.exceptions import CaseNotFoundError
from bami_service.app.service.interfaces import CaseRepository

logger = logging.getLogger(__name__)

RECEIVED_PERCENT_FLOOR = STAGE_PERCENT[Stage.RECEIVED.value]


class CaseService:
    """
    Sole writer of case state.

    Stage changes are deliberately permissive: any stage may follow any
    other, so AI-driven orchestration and operator overrides can both move
    a case. Every stage change appends exactly one timeline entry. No method
    awaits, so each mutation and its timeline append land together.
    """

    def __init__(self, repository: CaseRepository, default_owner: Optional[str] = None):
        self.repository = repository
        self.default_owner = default_owner or settings.DEFAULT_CASE_OWNER

    # --- Reads ---

    def get_case(self, case_id: str) -> Optional[CaseRecord]:
        return self.repository.get(case_id)

    def list_cases(self) -> List[CaseRecord]:
        return self.repository.list()

    def to_public_case(self, case: CaseRecord) -> PublicCase:
        return PublicCase.from_record(case)

    def case_snapshot(self, case: CaseRecord) -> Dict[str, Any]:
        """JSON-ready copy handed to the AI collaborator."""
        return case.model_dump(mode="json")

    def require_case(self, case_id: str) -> CaseRecord:
        case = self.repository.get(case_id)
        if case is None:
            logger.warning(f"Case {case_id} not found.")
            raise CaseNotFoundError(case_id)
        return case

    # --- Creation ---

    def _new_case_id(self) -> str:
        while True:
            case_id = f"C-{random.randint(50000, 89999)}"
            if self.repository.get(case_id) is None:
                return case_id

    def create_case(
        self,
        product: str,
        applicant: Optional[Dict[str, Any]] = None,
        channel: str = "web",
        owner: Optional[str] = None
    ) -> CaseRecord:
        current_span = trace.get_current_span()
        required = required_documents_for(product)
        if not required:
            logger.warning(f"Product '{product}' has no document checklist; case starts with nothing missing.")

        case = CaseRecord(
            id=self._new_case_id(),
            product=product,
            channel=channel,
            owner=owner or self.default_owner,
            stage=Stage.REQUIRES_DOCS.value,
            missing=required,
            applicant=applicant or {},
            percent=STAGE_PERCENT[Stage.REQUIRES_DOCS.value],
        )
        case.timeline.append(TimelineEntry(stage=Stage.REQUIRES_DOCS.value, text="Application started"))
        self.repository.create(case)
        self.repository.create_chat_history(case.id)

        cases_created_counter.add(1, attributes={"product": product, "channel": channel})
        current_span.add_event("CaseCreated", {"case.id": case.id, "case.product": product})
        logger.info(f"Created case {case.id} for product '{product}' via channel '{channel}'. Missing: {case.missing}")
        return case

    # --- Document bookkeeping ---

    def mark_documents_submitted(self, case_id: str, doc_types: Iterable[str]) -> Dict[str, List[str]]:
        """Marks documents as sent without files. Returns the missing list before and after."""
        case = self.require_case(case_id)
        doc_types = list(doc_types)
        before = list(case.missing)

        case.missing = [doc for doc in case.missing if doc not in doc_types]
        summary = ", ".join(doc_types) if doc_types else "none (simulated)"
        case.stage = Stage.RECEIVED.value
        case.percent = max(case.percent, RECEIVED_PERCENT_FLOOR)
        case.timeline.append(TimelineEntry(stage=Stage.RECEIVED.value, text=f"Documents marked as submitted: {summary}"))
        self.repository.update(case)

        logger.info(f"Case {case_id}: documents marked as submitted {doc_types}. Missing now: {case.missing}")
        return {"before": before, "after": list(case.missing)}

    def record_uploaded_files(self, case_id: str, files: Sequence[UploadedFile]) -> CaseRecord:
        case = self.require_case(case_id)
        received_slots: List[str] = []

        for uploaded_file in files:
            # Last write wins for a repeated slot
            case.uploaded[uploaded_file.slot] = UploadRecord(
                mime_type=uploaded_file.mime_type,
                size=uploaded_file.size,
                original_name=uploaded_file.original_name,
            )
            received_slots.append(uploaded_file.slot)

        case.missing = [doc for doc in case.missing if doc not in received_slots]
        summary = ", ".join(received_slots) if received_slots else "none"
        case.stage = Stage.RECEIVED.value
        case.percent = max(case.percent, RECEIVED_PERCENT_FLOOR)
        case.timeline.append(TimelineEntry(stage=Stage.RECEIVED.value, text=f"Files received: {summary}"))
        self.repository.update(case)

        logger.info(f"Case {case_id}: recorded {len(received_slots)} uploaded file(s) for slots {received_slots}. Missing now: {case.missing}")
        return case

    # --- Stage transitions ---

    def advance_stage(self, case_id: str, new_stage: str, note: str = "") -> CaseRecord:
        case = self.require_case(case_id)
        new_stage = new_stage.value if isinstance(new_stage, Stage) else new_stage
        previous_stage = case.stage

        case.stage = new_stage
        # Unrecognized stages keep the current percent
        case.percent = STAGE_PERCENT.get(new_stage, case.percent)
        case.timeline.append(TimelineEntry(stage=new_stage, text=note or f"Stage -> {new_stage}"))
        self.repository.update(case)

        trace.get_current_span().add_event(
            "CaseStageAdvanced",
            {"case.id": case_id, "stage.from": previous_stage, "stage.to": new_stage}
        )
        logger.info(f"Case {case_id}: stage {previous_stage} -> {new_stage} ({case.percent}%).")
        return case

    # --- Chat history ---

    def append_chat_message(self, case_id: str, role: ChatRole, content: str) -> List[ChatMessage]:
        if not self.repository.has_chat_history(case_id):
            logger.warning(f"No chat history for case {case_id}; creating one.")
            self.repository.create_chat_history(case_id)
        return self.repository.append_chat_message(case_id, ChatMessage(role=ChatRole(role), content=content))

    def get_chat_history(self, case_id: str) -> List[ChatMessage]:
        return self.repository.get_chat_history(case_id)
