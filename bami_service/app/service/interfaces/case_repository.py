from abc import ABC, abstractmethod
from typing import List, Optional

from bami_service.app.models import CaseRecord, ChatMessage


class CaseRepository(ABC):
    """
    Storage for case records and their chat histories.

    Implementations must not suspend inside a method: every call completes
    on the event loop without yielding, so a caller's read-modify-update of a
    case is never interleaved with another writer.
    """

    @abstractmethod
    def create(self, case: CaseRecord) -> CaseRecord:
        pass

    @abstractmethod
    def get(self, case_id: str) -> Optional[CaseRecord]:
        pass

    @abstractmethod
    def update(self, case: CaseRecord) -> CaseRecord:
        pass

    @abstractmethod
    def list(self) -> List[CaseRecord]:
        pass

    @abstractmethod
    def has_chat_history(self, case_id: str) -> bool:
        pass

    @abstractmethod
    def create_chat_history(self, case_id: str) -> None:
        pass

    @abstractmethod
    def append_chat_message(self, case_id: str, message: ChatMessage) -> List[ChatMessage]:
        pass

    @abstractmethod
    def get_chat_history(self, case_id: str) -> List[ChatMessage]:
        pass
