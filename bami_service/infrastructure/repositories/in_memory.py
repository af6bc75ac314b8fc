# In-memory storage for case records and chat histories
import logging
from typing import Dict, List, Optional

from bami_service.app.models import CaseRecord, ChatMessage
from bami_service.app.service.interfaces import CaseRepository

logger = logging.getLogger(__name__)

class InMemoryCaseRepository(CaseRepository):
    """
    Process-local repository. Nothing survives a restart; cases are never
    deleted while the process lives.
    """

    def __init__(self):
        self._cases: Dict[str, CaseRecord] = {}
        self._chats: Dict[str, List[ChatMessage]] = {}

    def create(self, case: CaseRecord) -> CaseRecord:
        if case.id in self._cases:
            raise ValueError(f"Case '{case.id}' already exists.")
        self._cases[case.id] = case
        logger.info(f"Case record stored for ID: {case.id} (product: {case.product})")
        return case

    def get(self, case_id: str) -> Optional[CaseRecord]:
        return self._cases.get(case_id)

    def update(self, case: CaseRecord) -> CaseRecord:
        self._cases[case.id] = case
        logger.debug(f"Case record updated for ID: {case.id}, stage={case.stage}, percent={case.percent}")
        return case

    def list(self) -> List[CaseRecord]:
        return list(self._cases.values())

    def has_chat_history(self, case_id: str) -> bool:
        return case_id in self._chats

    def create_chat_history(self, case_id: str) -> None:
        self._chats.setdefault(case_id, [])

    def append_chat_message(self, case_id: str, message: ChatMessage) -> List[ChatMessage]:
        history = self._chats.setdefault(case_id, [])
        history.append(message)
        logger.info(f"Chat message appended for case {case_id} (role: {message.role.value})")
        return list(history)

    def get_chat_history(self, case_id: str) -> List[ChatMessage]:
        return list(self._chats.get(case_id, []))
