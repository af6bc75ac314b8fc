# Request bodies accepted by the HTTP API
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .case import Channel, Product, Stage


class LeadIngestRequest(BaseModel):
    product: str = Product.CREDIT_CARD.value
    applicant: Dict[str, Any] = Field(default_factory=dict)
    channel: str = Channel.WEB.value


class MarkDocumentsRequest(BaseModel):
    id: str = Field(..., min_length=1)
    docs: List[str] = Field(default_factory=list)


class StageOverrideRequest(BaseModel):
    stage: Stage
    note: Optional[str] = None


class ChatRequest(BaseModel):
    caseId: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    mode: str = "bami"


class WebhookEventRequest(BaseModel):
    caseId: str
    type: str
    note: Optional[str] = None


class AdminLoginRequest(BaseModel):
    email: str
    password: str
