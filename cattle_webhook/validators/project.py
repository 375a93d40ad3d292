"""
Validation of management.cattle.io/v3 Project objects.

Quota checks run in two phases: the new project's quotas are first checked
against each other, then against what the old project had already used.
"""

from typing import List, Tuple

from cattle_webhook.models import Operation, Project
from cattle_webhook.quantity import normalize_limit
from cattle_webhook.quota import describe_resources, limit_fits
from cattle_webhook.responses import ReasonCode
from cattle_webhook.validators.base import Rule, ValidationContext, ValidationResult, ValidatorBase

SYSTEM_PROJECT_LABEL = "authz.management.cattle.io/system-project"
PROJECT_QUOTA_FIELD = "resourceQuota"
NAMESPACE_QUOTA_FIELD = "namespaceDefaultResourceQuota"
PROJECT_SPEC_PATH = "project.spec"


def _field(name: str) -> str:
    return f"{PROJECT_SPEC_PATH}.{name}"


class ProjectValidator(ValidatorBase[Project]):
    resource = "projects"
    kind = "Project"
    model = Project

    def rules(self) -> List[Tuple[str, Rule]]:
        return [
            ("system-project-delete", self.check_system_project_delete),
            ("quota-fields-present", self.check_quota_fields_present),
            ("quota-resources-match", self.check_quota_resources_match),
            ("namespace-quota-fits", self.check_namespace_quota_fits),
            ("used-quota-fits", self.check_used_quota_fits),
        ]

    @staticmethod
    def _quotas(context: ValidationContext[Project]):
        if context.operation == Operation.DELETE:
            return None, None
        spec = context.new.spec
        return spec.resource_quota, spec.namespace_default_resource_quota

    def check_system_project_delete(self, context: ValidationContext[Project]) -> ValidationResult:
        if context.operation != Operation.DELETE:
            return ValidationResult.allow()
        if context.old.labels.get(SYSTEM_PROJECT_LABEL) == "true":
            return ValidationResult.deny(ReasonCode.FORBIDDEN, "System Project cannot be deleted")
        return ValidationResult.allow()

    def check_quota_fields_present(self, context: ValidationContext[Project]) -> ValidationResult:
        project_quota, namespace_quota = self._quotas(context)
        if project_quota is None and namespace_quota is not None:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"{_field(PROJECT_QUOTA_FIELD)}: Required value: required when {NAMESPACE_QUOTA_FIELD} is set",
            )
        if project_quota is not None and namespace_quota is None:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"{_field(NAMESPACE_QUOTA_FIELD)}: Required value: required when {PROJECT_QUOTA_FIELD} is set",
            )
        return ValidationResult.allow()

    def check_quota_resources_match(self, context: ValidationContext[Project]) -> ValidationResult:
        project_quota, namespace_quota = self._quotas(context)
        if project_quota is None or namespace_quota is None:
            return ValidationResult.allow()

        project_resources = normalize_limit(project_quota.limit)
        namespace_resources = normalize_limit(namespace_quota.limit)

        if len(project_resources) != len(namespace_resources):
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"{_field(PROJECT_QUOTA_FIELD)}: Invalid value: "
                "resource quota and namespace default quota do not have the same resources defined",
            )
        for name in sorted(project_resources):
            if name not in namespace_resources:
                return ValidationResult.deny(
                    ReasonCode.BAD_REQUEST,
                    f"{_field(NAMESPACE_QUOTA_FIELD)}: Invalid value: "
                    f"missing namespace default for resource {name} defined on {PROJECT_QUOTA_FIELD}",
                )
        return ValidationResult.allow()

    def check_namespace_quota_fits(self, context: ValidationContext[Project]) -> ValidationResult:
        project_quota, namespace_quota = self._quotas(context)
        if project_quota is None or namespace_quota is None:
            return ValidationResult.allow()

        fits, exceeded = limit_fits(project_quota.limit, namespace_quota.limit)
        if not fits:
            return ValidationResult.deny(
                ReasonCode.FORBIDDEN,
                f"{_field(NAMESPACE_QUOTA_FIELD)}: Forbidden: "
                f"namespace default quota limit exceeds project limit on fields: {describe_resources(exceeded)}",
            )
        return ValidationResult.allow()

    def check_used_quota_fits(self, context: ValidationContext[Project]) -> ValidationResult:
        # Only updates have usage to protect.
        if context.operation != Operation.UPDATE or context.old.spec.resource_quota is None:
            return ValidationResult.allow()
        project_quota, _ = self._quotas(context)
        if project_quota is None:
            return ValidationResult.allow()

        fits, exceeded = limit_fits(project_quota.limit, context.old.spec.resource_quota.used_limit)
        if not fits:
            return ValidationResult.deny(
                ReasonCode.FORBIDDEN,
                f"{_field(PROJECT_QUOTA_FIELD)}: Forbidden: "
                f"resourceQuota is below the used limit on fields: {describe_resources(exceeded)}",
            )
        return ValidationResult.allow()
