from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ReasonCode(str, Enum):
    NONE = ""
    BAD_REQUEST = "BadRequest"
    FORBIDDEN = "Forbidden"
    INVALID = "Invalid"


STATUS_CODES = {
    ReasonCode.BAD_REQUEST: 400,
    ReasonCode.FORBIDDEN: 403,
    ReasonCode.INVALID: 422,
}


class AdmissionDecision(BaseModel):
    """Verdict for one admission request."""

    allowed: bool
    reason: ReasonCode = ReasonCode.NONE
    message: str = ""
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def allow(cls, warnings: Optional[List[str]] = None) -> "AdmissionDecision":
        return cls(allowed=True, warnings=list(warnings or []))

    @classmethod
    def deny(cls, reason: ReasonCode, message: str, warnings: Optional[List[str]] = None) -> "AdmissionDecision":
        return cls(allowed=False, reason=reason, message=message, warnings=list(warnings or []))

    def to_review(self, uid: str) -> Dict[str, Any]:
        """Wrap the decision in an admission.k8s.io/v1 AdmissionReview."""
        response: Dict[str, Any] = {
            "uid": uid,
            "allowed": self.allowed,
        }

        if not self.allowed:
            response["status"] = {
                "status": "Failure",
                "code": STATUS_CODES.get(self.reason, 400),
                "reason": self.reason.value,
                "message": self.message,
            }

        if self.warnings:
            response["warnings"] = list(self.warnings)

        return {
            "apiVersion": "admission.k8s.io/v1",
            "kind": "AdmissionReview",
            "response": response,
        }


class HealthResponse(BaseModel):
    status: str = "ok"
    validators: List[str] = Field(default_factory=list)
