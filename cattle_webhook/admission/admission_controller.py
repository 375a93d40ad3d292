from typing import Dict, Optional, Tuple

from loguru import logger
from pydantic import ValidationError

from cattle_webhook.collaborators import Authorizer, SettingLookup, UserLookup
from cattle_webhook.exceptions import AdmissionDecodeError, UnsupportedResourceError
from cattle_webhook.models import AdmissionRequest
from cattle_webhook.responses import AdmissionDecision
from cattle_webhook.validators.base import ValidatorBase
from cattle_webhook.validators.cluster import ClusterValidator
from cattle_webhook.validators.project import ProjectValidator


class AdmissionController:
    def __init__(self, users: UserLookup, settings: SettingLookup, authorizer: Authorizer):
        validators = [
            ClusterValidator(users, settings, authorizer),
            ProjectValidator(),
        ]
        self.validators: Dict[str, ValidatorBase] = {v.resource: v for v in validators}
        self._kinds: Dict[str, ValidatorBase] = {v.kind: v for v in validators}

    def validator_for(self, request: AdmissionRequest, resource: Optional[str] = None) -> ValidatorBase:
        """Find the validator by explicit resource, then the request's resource, then its kind."""
        name = resource or request.resource.resource
        if name in self.validators:
            return self.validators[name]
        if not resource and request.kind.kind in self._kinds:
            return self._kinds[request.kind.kind]
        raise UnsupportedResourceError(
            f"no validator for resource {name or request.kind.kind!r}"
        )

    def evaluate(self, request: AdmissionRequest, resource: Optional[str] = None) -> AdmissionDecision:
        validator = self.validator_for(request, resource)
        decision = validator.evaluate(request)

        if decision.allowed:
            logger.debug(f"Allowed {request.operation.value} {validator.kind} {request.name!r} (uid={request.uid})")
        else:
            logger.info(
                f"Denied {request.operation.value} {validator.kind} {request.name!r} "
                f"(uid={request.uid}): {decision.reason.value}: {decision.message}"
            )
        return decision

    def validate_request(self, admission_review: Dict, resource: Optional[str] = None) -> Tuple[bool, Dict]:
        """Main admission validation logic"""
        if not isinstance(admission_review, dict) or not isinstance(admission_review.get("request"), dict):
            raise AdmissionDecodeError("admission review has no request")

        try:
            request = AdmissionRequest.model_validate(admission_review["request"])
        except ValidationError as e:
            raise AdmissionDecodeError(f"failed to decode admission request: {e}") from e

        decision = self.evaluate(request, resource)
        return decision.allowed, decision.to_review(request.uid)
