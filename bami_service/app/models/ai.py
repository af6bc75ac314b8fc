# Pydantic models for the AI collaborator contract
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Decision(str, Enum):
    APPROVED = "approved"
    ALTERNATIVE = "alternative"


class DocumentAnalysis(BaseModel):
    summary: str = ""
    warnings: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    decision: Decision
    reasons: List[str] = Field(min_length=1)
    risk_score: float = Field(ge=0.0, le=1.0)
    next_steps: List[str] = Field(min_length=1)

    @classmethod
    def fallback(cls) -> "ValidationResult":
        """Deterministic result used when the analyzer output cannot be parsed."""
        return cls(
            decision=Decision.ALTERNATIVE,
            reasons=["The analyzer response could not be structured."],
            risk_score=0.7,
            next_steps=["Review the documents with an advisor", "Retry the validation"],
        )


class ChatActions(BaseModel):
    publish: List[str] = Field(default_factory=list)
    set_stage: Optional[str] = None
    mark_docs: List[str] = Field(default_factory=list)
    escalate_to_advisor: bool = False
    notify: List[Literal["app", "whatsapp", "email"]] = Field(default_factory=list)


class ChatReply(BaseModel):
    reply: str
    actions: ChatActions = Field(default_factory=ChatActions)


class Intent(str, Enum):
    STATUS = "status"
    DOCUMENTS = "documents"
    VALIDATION = "validation"
    ADVISOR = "advisor"
    PRODUCT_INFO = "product_info"
    NOTIFICATIONS = "notifications"
    OMNICHANNEL = "omnichannel"
    OTHER = "other"


class IntentClassification(BaseModel):
    in_scope: bool
    intent: Intent
    confidence: float = Field(ge=0.0, le=1.0)
