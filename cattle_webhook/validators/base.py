from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from cattle_webhook.exceptions import AdmissionDecodeError
from cattle_webhook.models import AdmissionRequest, Operation, UserInfo
from cattle_webhook.responses import AdmissionDecision, ReasonCode

T = TypeVar("T", bound=BaseModel)


class Outcome(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    WARN = "warn"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single rule."""

    outcome: Outcome
    reason: ReasonCode = ReasonCode.NONE
    message: str = ""

    @classmethod
    def allow(cls) -> "ValidationResult":
        return cls(Outcome.ALLOW)

    @classmethod
    def deny(cls, reason: ReasonCode, message: str) -> "ValidationResult":
        return cls(Outcome.DENY, reason, message)

    @classmethod
    def warn(cls, message: str) -> "ValidationResult":
        return cls(Outcome.WARN, message=message)

    @property
    def denied(self) -> bool:
        return self.outcome is Outcome.DENY


@dataclass(frozen=True)
class ValidationContext(Generic[T]):
    """Decoded old/new pair of one admission request."""

    operation: Operation
    old: Optional[T]
    new: Optional[T]
    user: UserInfo = field(default_factory=UserInfo)


Rule = Callable[[ValidationContext], ValidationResult]


def evaluate_rules(rules: Sequence[Tuple[str, Rule]], context: ValidationContext) -> AdmissionDecision:
    """
    Run rules in order and stop at the first denial.

    Warnings from rules that ran before the denial are kept on the decision.
    """
    warnings: List[str] = []
    for name, rule in rules:
        result = rule(context)
        if result.denied:
            logger.info(f"Rule {name} denied {context.operation.value}: {result.message}")
            return AdmissionDecision.deny(result.reason, result.message, warnings)
        if result.outcome is Outcome.WARN:
            logger.debug(f"Rule {name} warned: {result.message}")
            warnings.append(result.message)
    return AdmissionDecision.allow(warnings)


class ValidatorBase(ABC, Generic[T]):
    """Rule set for one resource kind."""

    group: str = "management.cattle.io"
    resource: str = ""
    kind: str = ""
    model: Type[T]
    operations: Tuple[Operation, ...] = (Operation.CREATE, Operation.UPDATE, Operation.DELETE)

    @property
    def name(self) -> str:
        return f"{self.resource}.{self.group}"

    @abstractmethod
    def rules(self) -> List[Tuple[str, Rule]]:
        """Ordered (name, rule) pairs."""
        raise NotImplementedError()

    def decode(self, raw: Optional[Dict[str, Any]]) -> Optional[T]:
        if raw is None:
            return None
        try:
            return self.model.model_validate(raw)
        except ValidationError as e:
            raise AdmissionDecodeError(f"failed to decode {self.kind}: {e}") from e

    def context_from_request(self, request: AdmissionRequest) -> ValidationContext[T]:
        """Decode the objects the operation carries: no old object on create, no new one on delete."""
        operation = request.operation
        old = self.decode(request.old_object) if operation != Operation.CREATE else None
        new = self.decode(request.object) if operation != Operation.DELETE else None

        if operation in (Operation.CREATE, Operation.UPDATE) and new is None:
            raise AdmissionDecodeError(f"{operation.value} request for {self.kind} has no object")
        if operation in (Operation.UPDATE, Operation.DELETE) and old is None:
            raise AdmissionDecodeError(f"{operation.value} request for {self.kind} has no old object")

        return ValidationContext(operation=operation, old=old, new=new, user=request.user_info)

    def evaluate(self, request: AdmissionRequest) -> AdmissionDecision:
        if request.operation not in self.operations:
            return AdmissionDecision.allow()
        context = self.context_from_request(request)
        return evaluate_rules(self.rules(), context)
