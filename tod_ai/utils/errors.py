# tod_ai/utils/errors.py
"""
Error taxonomy for Gemini calls.

ErrorKind classifies a single attempt against one model. FailureKind
classifies the outcome of a whole fallback run. Provider errors are mapped
from the SDK's structured code/status/details first; message text is only
consulted when none of those match.
"""
from enum import Enum
from typing import Any, Iterable, List, Optional, Set

from google.genai import errors
from pydantic import BaseModel, ConfigDict

from tod_ai.memory.schema import ModelCandidate


class ErrorKind(str, Enum):
    INVALID_KEY = "INVALID_KEY"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    OVERLOADED = "OVERLOADED"
    NOT_FOUND = "NOT_FOUND"
    NOT_ENABLED = "NOT_ENABLED"
    UNCLASSIFIED = "UNCLASSIFIED"


class FailureKind(str, Enum):
    INVALID_KEY = "INVALID_KEY"
    NOT_ENABLED = "NOT_ENABLED"
    NO_MODELS = "NO_MODELS"
    ALL_OVERLOADED = "ALL_OVERLOADED"
    ALL_QUOTA_EXCEEDED = "ALL_QUOTA_EXCEEDED"
    MIXED = "MIXED"
    PARTIALLY_OVERLOADED = "PARTIALLY_OVERLOADED"
    PARTIALLY_QUOTA_EXCEEDED = "PARTIALLY_QUOTA_EXCEEDED"
    ALL_FAILED = "ALL_FAILED"


class FailedModel(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model: str
    version: str
    kind: ErrorKind
    message: str = ""


class ModelCallError(Exception):
    """One generateContent attempt against one candidate failed."""

    def __init__(self, kind: ErrorKind, candidate: ModelCandidate, message: str = ""):
        self.kind = kind
        self.candidate = candidate
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {candidate.model}: {self.message}")

    def to_failed_model(self) -> FailedModel:
        return FailedModel(
            model=self.candidate.model,
            version=self.candidate.version,
            kind=self.kind,
            message=self.message,
        )


class GenerationError(Exception):
    """No candidate produced text. Carries everything needed to explain why."""

    def __init__(
        self,
        kind: FailureKind,
        failed_models: Optional[List[FailedModel]] = None,
        last_error: Optional[str] = None,
        total_candidates: int = 0,
    ):
        self.kind = kind
        self.failed_models = list(failed_models or [])
        self.last_error = last_error
        self.total_candidates = total_candidates
        super().__init__(self.message)

    @property
    def message(self) -> str:
        text = f"Gemini generation failed ({self.kind.value})"
        if self.failed_models:
            text += ": " + ", ".join(f"{f.model} [{f.kind.value}]" for f in self.failed_models)
        return text

    def models_with(self, kind: ErrorKind) -> List[str]:
        return [f.model for f in self.failed_models if f.kind is kind]

    @property
    def quota_exceeded_models(self) -> List[str]:
        return self.models_with(ErrorKind.QUOTA_EXCEEDED)

    @property
    def overloaded_models(self) -> List[str]:
        return self.models_with(ErrorKind.OVERLOADED)


# ===== CLASSIFICATION =====

_STATUS_KINDS = {
    "UNAUTHENTICATED": ErrorKind.INVALID_KEY,
    "RESOURCE_EXHAUSTED": ErrorKind.QUOTA_EXCEEDED,
    "UNAVAILABLE": ErrorKind.OVERLOADED,
    "NOT_FOUND": ErrorKind.NOT_FOUND,
}

_CODE_KINDS = {
    401: ErrorKind.INVALID_KEY,
    429: ErrorKind.QUOTA_EXCEEDED,
    503: ErrorKind.OVERLOADED,
    404: ErrorKind.NOT_FOUND,
}

_REASON_KINDS = {
    "API_KEY_INVALID": ErrorKind.INVALID_KEY,
    "API_KEY_EXPIRED": ErrorKind.INVALID_KEY,
    "SERVICE_DISABLED": ErrorKind.NOT_ENABLED,
    "ACCESS_TOKEN_TYPE_UNSUPPORTED": ErrorKind.INVALID_KEY,
    "RATE_LIMIT_EXCEEDED": ErrorKind.QUOTA_EXCEEDED,
}

# (needles, kind) checked in order against the lowercased message
_MESSAGE_RULES = [
    (("api key not valid", "api_key_invalid", "api key expired"), ErrorKind.INVALID_KEY),
    (("quota", "resource_exhausted", "rate limit"), ErrorKind.QUOTA_EXCEEDED),
    (("overloaded", "unavailable"), ErrorKind.OVERLOADED),
    (("has not been used", "not enabled", "is disabled"), ErrorKind.NOT_ENABLED),
    (("not found", "not available"), ErrorKind.NOT_FOUND),
]


def _error_reasons(details: Any) -> Set[str]:
    """Collect google.rpc.ErrorInfo reasons from a raw error payload."""
    if isinstance(details, list):
        payloads: Iterable[Any] = details
    else:
        payloads = [details]

    reasons = set()
    for payload in payloads:
        if not isinstance(payload, dict):
            continue
        body = payload.get("error", payload)
        if not isinstance(body, dict):
            continue
        for item in body.get("details") or []:
            if isinstance(item, dict) and item.get("reason"):
                reasons.add(str(item["reason"]).upper())
    return reasons


def classify_message(message: str) -> ErrorKind:
    """Last-resort mapping from provider prose to an ErrorKind."""
    lowered = (message or "").lower()
    for needles, kind in _MESSAGE_RULES:
        if any(needle in lowered for needle in needles):
            return kind
    return ErrorKind.UNCLASSIFIED


def classify_api_error(error: errors.APIError) -> ErrorKind:
    for reason in _error_reasons(getattr(error, "details", None)):
        if reason in _REASON_KINDS:
            return _REASON_KINDS[reason]

    status = (error.status or "").upper()
    if status in _STATUS_KINDS:
        return _STATUS_KINDS[status]

    if error.code in _CODE_KINDS:
        return _CODE_KINDS[error.code]

    return classify_message(error.message or str(error))


def summarize_failures(total_candidates: int, failed_models: List[FailedModel]) -> FailureKind:
    """Pick the FailureKind for a fallback run that exhausted every candidate."""
    quota = sum(1 for f in failed_models if f.kind is ErrorKind.QUOTA_EXCEEDED)
    overloaded = sum(1 for f in failed_models if f.kind is ErrorKind.OVERLOADED)

    if total_candidates and overloaded == total_candidates:
        return FailureKind.ALL_OVERLOADED
    if total_candidates and quota == total_candidates:
        return FailureKind.ALL_QUOTA_EXCEEDED
    if overloaded and quota:
        return FailureKind.MIXED
    if overloaded:
        return FailureKind.PARTIALLY_OVERLOADED
    if quota:
        return FailureKind.PARTIALLY_QUOTA_EXCEEDED
    return FailureKind.ALL_FAILED
