from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from bami_service.app.models import ChatMessage, ChatReply, DocumentAnalysis, UploadedFile, ValidationResult


class AbstractAICollaborator(ABC):
    @abstractmethod
    async def analyze_documents(
        self,
        case_snapshot: Dict[str, Any],
        files: Sequence[UploadedFile]
    ) -> DocumentAnalysis:
        """
        Reviews an upload batch for legibility and consistency.

        Args:
            case_snapshot: JSON-ready view of the case at call time.
            files: The uploaded files, content included.

        Returns:
            A summary plus zero or more warning strings.

        Raises:
            AICollaboratorError: the analysis could not be obtained.
        """
        pass

    @abstractmethod
    async def validate_case(self, case_snapshot: Dict[str, Any]) -> ValidationResult:
        """
        Produces a risk decision for the case.

        Malformed model output never raises here; implementations return
        ValidationResult.fallback() instead. Transport and credential
        problems raise AICollaboratorError.
        """
        pass

    @abstractmethod
    async def chat(
        self,
        case_snapshot: Dict[str, Any],
        message: str,
        history: List[ChatMessage],
        mode: str = "bami"
    ) -> ChatReply:
        """Answers a user message about the case, optionally suggesting actions."""
        pass
