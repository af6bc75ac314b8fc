import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Stage(str, Enum):
    REQUIRES_DOCS = "requires_docs"
    RECEIVED = "received"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    ALTERNATIVE_OFFERED = "alternative_offered"

    @classmethod
    def is_valid(cls, value: Optional[str]) -> bool:
        return value in cls._value2member_map_


STAGE_PERCENT: Dict[str, int] = {
    Stage.REQUIRES_DOCS.value: 10,
    Stage.RECEIVED.value: 40,
    Stage.UNDER_REVIEW.value: 60,
    Stage.APPROVED.value: 100,
    Stage.ALTERNATIVE_OFFERED.value: 100,
}


class Product(str, Enum):
    CREDIT_CARD = "credit-card"
    PERSONAL_LOAN = "personal-loan"
    MORTGAGE = "mortgage"
    SMALL_BUSINESS = "small-business"


PRODUCT_REQUIRED_DOCUMENTS: Dict[str, List[str]] = {
    Product.CREDIT_CARD.value: ["dpi", "selfie", "proof_of_address"],
    Product.PERSONAL_LOAN.value: ["dpi", "proof_of_income", "credit_history"],
    Product.MORTGAGE.value: ["dpi", "income_statement", "appraisal", "proof_of_address"],
    Product.SMALL_BUSINESS.value: ["representative_dpi", "business_license", "bank_statement", "tax_id"],
}


def required_documents_for(product: str) -> List[str]:
    """Checklist for a product; unknown products get an empty checklist."""
    return list(PRODUCT_REQUIRED_DOCUMENTS.get(product, []))


class Channel(str, Enum):
    WEB = "web"
    APP = "app"
    WHATSAPP = "whatsapp"
    BRANCH = "branch"
    CALL_CENTER = "call_center"


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class TimelineEntry(BaseModel):
    timestamp: datetime.datetime = Field(default_factory=utc_now)
    stage: str
    text: str


class UploadRecord(BaseModel):
    mime_type: str
    size: int
    original_name: str
    received_at: datetime.datetime = Field(default_factory=utc_now)


class UploadedFile(BaseModel):
    """One file of an upload batch; `slot` is the document type it fills."""
    slot: str
    mime_type: str = "application/octet-stream"
    size: int = 0
    original_name: str = ""
    content: bytes = b""


class CaseRecord(BaseModel):
    id: str
    product: str
    channel: str = Channel.WEB.value
    owner: str
    stage: str = Stage.REQUIRES_DOCS.value
    missing: List[str] = Field(default_factory=list)
    uploaded: Dict[str, UploadRecord] = Field(default_factory=dict) # slot -> latest upload
    timeline: List[TimelineEntry] = Field(default_factory=list) # append-only
    percent: int = STAGE_PERCENT[Stage.REQUIRES_DOCS.value]
    applicant: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime.datetime = Field(default_factory=utc_now)


class PublicCase(BaseModel):
    id: str
    product: str
    channel: str
    owner: str
    stage: str
    missing: List[str]
    percent: int
    timeline: List[TimelineEntry]
    applicant: Dict[str, Any]
    created_at: datetime.datetime

    @classmethod
    def from_record(cls, case: CaseRecord) -> "PublicCase":
        return cls(
            id=case.id,
            product=case.product,
            channel=case.channel,
            owner=case.owner,
            stage=case.stage,
            missing=list(case.missing),
            percent=case.percent,
            timeline=list(case.timeline),
            applicant=dict(case.applicant),
            created_at=case.created_at,
        )
