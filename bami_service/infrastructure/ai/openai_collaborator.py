# AI collaborator backed by the OpenAI chat-completions HTTP API
import base64
import json
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx
from fastapi import Depends
from pydantic import ValidationError

from bami_service.app.config import settings
from bami_service.app.dependencies.http_client import get_http_client
from bami_service.app.models import (
    ChatMessage,
    ChatReply,
    ChatRole,
    DocumentAnalysis,
    Intent,
    IntentClassification,
    Stage,
    UploadedFile,
    ValidationResult,
)
from bami_service.app.observability import ai_call_latency_histogram
from bami_service.app.service.exceptions import AICollaboratorError, ConfigurationError
from bami_service.app.service.interfaces import AbstractAICollaborator
from bami_service.app.service.replies import build_fallback_reply, build_out_of_scope_reply

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 1200
STAGE_VALUES = [stage.value for stage in Stage]

ORCHESTRATOR_PROMPT = f"""
You are **BAMI**, the friendly and trustworthy digital companion of **BAM** (a bank).
Voice: warm, clear, natural and positive. One to three short paragraphs or bullets.
Reply in the user's language (Spanish by default).
Only help with: the application case and its tracker, documents, validation, timing/SLA,
notifications, products (credit card, personal loan, mortgage, small business) and
contact with a human advisor.

Synonyms: "credifacil" means personal-loan; "tc" or "tarjeta" means credit-card.
Never ask for full sensitive data in the chat; it is entered in the upload form.

Case stages: requires_docs -> received -> under_review -> approved | alternative_offered.
Required documents: credit-card -> dpi, selfie, proof_of_address;
personal-loan -> dpi, proof_of_income, credit_history;
mortgage -> dpi, income_statement, appraisal, proof_of_address;
small-business -> representative_dpi, business_license, bank_statement, tax_id.

Return STRICT JSON:
- "reply" (string): the final answer.
- "actions" (object, optional):
  - "publish" (array of strings): short narration lines for live viewers
  - "set_stage" (one of {", ".join(STAGE_VALUES)})
  - "mark_docs" (array of strings): documents the user says were sent
  - "escalate_to_advisor" (boolean)
  - "notify" (subset of "app", "whatsapp", "email")

Do not invent uploads or stages: only mark what the user stated.
On "how is my application going?" include a short textual tracker.
If the user is frustrated, acknowledge it and offer an advisor.
"""

MODE_PROMPTS = {
    "ia": "Style: technical and concise (two sentences at most).",
    "asesor": "Style: human advisor, empathetic, clear solutions and next steps.",
}
DEFAULT_MODE_PROMPT = "Style: standard BAMI (human, clear, positive)."

CLASSIFIER_PROMPT = """
You are a strict scope classifier for messages sent to BAMI, a bank's application assistant.
In scope: application case, documents, validation, human advice, bank products,
omnichannel, notifications/SLA and privacy. Everything else is "other".
Return ONLY JSON matching the schema.
"""

VALIDATION_PROMPT = """
You act as a BAM risk analyst. Evaluate the application with empathy and transparency considering:
- missing documents
- consistency of the applicant data
- simple product rules
Return ONLY valid JSON matching the schema.
"""

ANALYSIS_PROMPT = """Analyze the documents of a BAM application case.

Goals:
- Check legibility, basic matches (name/ID) and validity dates.
- Point out possible risks (blur, cropping, mismatches, expiry) as lines starting with "- ".
- Do not invent data: if something cannot be read, say so explicitly.

Answer with a short summary followed by the warnings, if any."""

INTENT_SCHEMA = {
    "name": "BamiIntent",
    "schema": {
        "type": "object",
        "properties": {
            "in_scope": {"type": "boolean"},
            "intent": {"type": "string", "enum": [intent.value for intent in Intent]},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
        "required": ["in_scope", "intent", "confidence"],
        "additionalProperties": False,
    },
    "strict": True,
}

VALIDATION_SCHEMA = {
    "name": "BamiValidation",
    "schema": {
        "type": "object",
        "properties": {
            "decision": {"type": "string", "enum": ["approved", "alternative"]},
            "reasons": {"type": "array", "items": {"type": "string"}, "minItems": 1},
            "risk_score": {"type": "number", "minimum": 0, "maximum": 1},
            "next_steps": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        },
        "required": ["decision", "reasons", "risk_score", "next_steps"],
        "additionalProperties": False,
    },
    "strict": True,
}


def extract_warnings(text: str) -> List[str]:
    warnings = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(("-", "•")):
            warnings.append(stripped.lstrip("-•").strip())
    return [warning for warning in warnings if warning]


class OpenAICollaborator(AbstractAICollaborator):
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None
    ):
        self.http_client = http_client
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")

    async def _complete(
        self,
        operation: str,
        messages: List[Dict[str, Any]],
        temperature: float,
        response_format: Optional[Dict[str, Any]] = None
    ) -> str:
        if not self.api_key:
            logger.error("OPENAI_API_KEY not set. The AI collaborator cannot answer.")
            raise ConfigurationError("OPENAI_API_KEY is not configured.")

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if response_format:
            payload["response_format"] = response_format

        request_url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        logger.debug(f"Calling chat completions for '{operation}' with model {self.model}")

        start_time = time.monotonic()
        try:
            response = await self.http_client.post(request_url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error calling chat completions ({operation}): {e.response.status_code} - {e.response.text}")
            raise AICollaboratorError(f"AI service returned HTTP {e.response.status_code} during {operation}.") from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling chat completions ({operation}): {e!r}")
            raise AICollaboratorError(f"AI service unreachable during {operation}.") from e
        except ValueError as e:
            logger.error(f"Chat completions returned a non-JSON body ({operation}): {e}")
            raise AICollaboratorError(f"AI service returned an unreadable response during {operation}.") from e
        finally:
            ai_call_latency_histogram.record(time.monotonic() - start_time, attributes={"operation": operation})

        choices = data.get("choices") or []
        if not choices:
            raise AICollaboratorError(f"AI service returned no choices during {operation}.")
        return (choices[0].get("message") or {}).get("content") or ""

    # --- Document analysis ---

    async def analyze_documents(
        self,
        case_snapshot: Dict[str, Any],
        files: Sequence[UploadedFile]
    ) -> DocumentAnalysis:
        parts: List[Dict[str, Any]] = [{"type": "text", "text": ANALYSIS_PROMPT}]
        for uploaded_file in files:
            label = f"({uploaded_file.slot}) {uploaded_file.original_name} · {uploaded_file.mime_type} · {round(uploaded_file.size / 1024)}KB"
            if uploaded_file.mime_type.startswith("image/"):
                encoded = base64.b64encode(uploaded_file.content).decode("ascii")
                parts.append({"type": "text", "text": f"Image {label}"})
                parts.append({"type": "image_url", "image_url": {"url": f"data:{uploaded_file.mime_type};base64,{encoded}"}})
            elif uploaded_file.mime_type == "application/pdf":
                parts.append({"type": "text", "text": f"PDF {label}. If you cannot read the PDF, say so."})
            else:
                parts.append({"type": "text", "text": f"File {label} (non-visual type)."})

        text = await self._complete(
            "analyze_documents",
            messages=[
                {"role": "system", "content": "You are a very careful verifier of banking documents."},
                {"role": "user", "content": f"Case:\n{json.dumps(case_snapshot, ensure_ascii=False)}"},
                {"role": "user", "content": parts},
            ],
            temperature=0.2,
        )
        analysis = DocumentAnalysis(summary=text[:SUMMARY_MAX_CHARS], warnings=extract_warnings(text))
        logger.info(f"Document analysis for case {case_snapshot.get('id')} returned {len(analysis.warnings)} warning(s).")
        return analysis

    # --- Risk validation ---

    async def validate_case(self, case_snapshot: Dict[str, Any]) -> ValidationResult:
        raw = await self._complete(
            "validate_case",
            messages=[
                {"role": "system", "content": VALIDATION_PROMPT},
                {"role": "user", "content": f"Case:\n{json.dumps(case_snapshot, ensure_ascii=False, indent=2)}"},
                {"role": "user", "content": "Produce the evaluation now. JSON ONLY."},
            ],
            temperature=0,
            response_format={"type": "json_schema", "json_schema": VALIDATION_SCHEMA},
        )
        try:
            result = ValidationResult.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Malformed validation output for case {case_snapshot.get('id')}; using fallback. Errors: {e.error_count()}")
            return ValidationResult.fallback()
        logger.info(f"Validation for case {case_snapshot.get('id')}: decision={result.decision.value}, risk_score={result.risk_score}")
        return result

    # --- Chat ---

    async def classify_message(self, message: str) -> IntentClassification:
        raw = await self._complete(
            "classify_message",
            messages=[
                {"role": "system", "content": CLASSIFIER_PROMPT},
                {"role": "user", "content": f'Classify this message:\n"{message}"'},
            ],
            temperature=0,
            response_format={"type": "json_schema", "json_schema": INTENT_SCHEMA},
        )
        try:
            return IntentClassification.model_validate_json(raw)
        except ValidationError:
            logger.warning("Unparseable intent classification; treating message as an in-scope status question.")
            return IntentClassification(in_scope=True, intent=Intent.STATUS, confidence=0.5)

    async def chat(
        self,
        case_snapshot: Dict[str, Any],
        message: str,
        history: List[ChatMessage],
        mode: str = "bami"
    ) -> ChatReply:
        classification = await self.classify_message(message)
        if not classification.in_scope or classification.intent == Intent.OTHER:
            logger.info(f"Out-of-scope chat message for case {case_snapshot.get('id')} (intent: {classification.intent.value}).")
            return build_out_of_scope_reply(case_snapshot)

        context = {key: case_snapshot.get(key) for key in ("id", "stage", "missing", "product", "applicant")}
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": ORCHESTRATOR_PROMPT + "\n" + MODE_PROMPTS.get(mode, DEFAULT_MODE_PROMPT)},
            {"role": "system", "content": f"Case context:\nCase: {json.dumps(context, ensure_ascii=False)}"},
        ]
        messages.extend(
            {"role": "user" if item.role == ChatRole.USER else "assistant", "content": item.content}
            for item in history
        )
        # The orchestrator stores the user turn before calling; avoid sending it twice
        if not history or history[-1].role != ChatRole.USER or history[-1].content != message:
            messages.append({"role": "user", "content": message})

        raw = await self._complete(
            "chat",
            messages=messages,
            temperature=0.3,
            response_format={"type": "json_object"},
        )
        try:
            return ChatReply.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Unparseable chat output for case {case_snapshot.get('id')}; using fallback reply.")
            return build_fallback_reply(case_snapshot)


# DI provider for the AI collaborator
def get_ai_collaborator(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> AbstractAICollaborator:
    return OpenAICollaborator(http_client=http_client)
