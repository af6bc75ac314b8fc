from .case import (
    Stage,
    STAGE_PERCENT,
    Product,
    PRODUCT_REQUIRED_DOCUMENTS,
    required_documents_for,
    Channel,
    TimelineEntry,
    UploadRecord,
    UploadedFile,
    CaseRecord,
    PublicCase,
)
from .chat_message import ChatRole, ChatMessage
from .ai import (
    Decision,
    DocumentAnalysis,
    ValidationResult,
    ChatActions,
    ChatReply,
    Intent,
    IntentClassification,
)
from .narration import NarrationEvent
from .requests import (
    LeadIngestRequest,
    MarkDocumentsRequest,
    StageOverrideRequest,
    ChatRequest,
    WebhookEventRequest,
    AdminLoginRequest,
)

__all__ = [
    "Stage",
    "STAGE_PERCENT",
    "Product",
    "PRODUCT_REQUIRED_DOCUMENTS",
    "required_documents_for",
    "Channel",
    "TimelineEntry",
    "UploadRecord",
    "UploadedFile",
    "CaseRecord",
    "PublicCase",
    "ChatRole",
    "ChatMessage",
    "Decision",
    "DocumentAnalysis",
    "ValidationResult",
    "ChatActions",
    "ChatReply",
    "Intent",
    "IntentClassification",
    "NarrationEvent",
    "LeadIngestRequest",
    "MarkDocumentsRequest",
    "StageOverrideRequest",
    "ChatRequest",
    "WebhookEventRequest",
    "AdminLoginRequest",
]
