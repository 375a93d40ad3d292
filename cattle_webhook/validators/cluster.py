"""
Validation of management.cattle.io/v3 Cluster objects.
"""

from typing import List, Optional, Tuple

from loguru import logger

from cattle_webhook.collaborators import Authorizer, SettingLookup, UserLookup
from cattle_webhook.exceptions import NotFoundError, VersionManagementError
from cattle_webhook.models import Cluster, Operation, ResourceAttributes
from cattle_webhook.responses import ReasonCode
from cattle_webhook.validators.base import Rule, ValidationContext, ValidationResult, ValidatorBase

CREATOR_ID_ANNOTATION = "field.cattle.io/creatorId"
CREATOR_PRINCIPAL_NAME_ANNOTATION = "field.cattle.io/creator-principal-name"
NO_CREATOR_RBAC_ANNOTATION = "field.cattle.io/no-creator-rbac"

VERSION_MANAGEMENT_ANNOTATION = "rancher.io/imported-cluster-version-management"
VERSION_MANAGEMENT_SETTING = "imported-cluster-version-management"
VERSION_MANAGEMENT_VALUES = ("true", "false", "system-default")

# Imported clusters whose Kubernetes version is managed by this platform.
MANAGED_DRIVERS = ("rke2", "k3s")

FLEET_ADD_CLUSTER_VERB = "fleetaddcluster"


def version_management_enabled(cluster: Optional[Cluster], settings: SettingLookup) -> bool:
    """
    Classify the version management annotation of a cluster.

    "true" and "false" are taken literally, "system-default" defers to the
    global setting.

    Raises:
        VersionManagementError: if the cluster is missing, the annotation
            is absent or holds an unknown value
        CollaboratorError: if the setting lookup fails
    """
    if cluster is None:
        raise VersionManagementError("cluster is missing")

    value = cluster.annotations.get(VERSION_MANAGEMENT_ANNOTATION)
    if value is None:
        raise VersionManagementError(
            f"the cluster annotation {VERSION_MANAGEMENT_ANNOTATION} is missing"
        )
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "system-default":
        return settings.get(VERSION_MANAGEMENT_SETTING).value == "true"
    raise VersionManagementError(
        f"the value of the cluster annotation {VERSION_MANAGEMENT_ANNOTATION} "
        f"must be one of {', '.join(VERSION_MANAGEMENT_VALUES)}, got {value!r}"
    )


class ClusterValidator(ValidatorBase[Cluster]):
    resource = "clusters"
    kind = "Cluster"
    model = Cluster

    def __init__(self, users: UserLookup, settings: SettingLookup, authorizer: Authorizer):
        self.users = users
        self.settings = settings
        self.authorizer = authorizer

    def rules(self) -> List[Tuple[str, Rule]]:
        return [
            ("fleet-workspace-unset", self.check_fleet_workspace_unset),
            ("fleet-workspace-permission", self.check_fleet_workspace_permission),
            ("creator-annotations-immutable", self.check_creator_annotations_immutable),
            ("creator-reference", self.check_creator_reference),
            ("no-creator-rbac-immutable", self.check_no_creator_rbac_immutable),
            ("no-creator-rbac-creator-id", self.check_no_creator_rbac_with_creator_id),
            ("version-management", self.check_version_management),
        ]

    def version_management_enabled(self, cluster: Optional[Cluster]) -> bool:
        return version_management_enabled(cluster, self.settings)

    def check_fleet_workspace_unset(self, context: ValidationContext[Cluster]) -> ValidationResult:
        if context.operation != Operation.UPDATE:
            return ValidationResult.allow()
        if context.old.fleet_workspace_name and not context.new.fleet_workspace_name:
            return ValidationResult.deny(
                ReasonCode.INVALID,
                'cluster.spec.fleetWorkspaceName: Invalid value: "": field cannot be unset once set',
            )
        return ValidationResult.allow()

    def check_fleet_workspace_permission(self, context: ValidationContext[Cluster]) -> ValidationResult:
        """Moving a cluster into a fleet workspace requires fleetaddcluster on that workspace."""
        if context.operation not in (Operation.CREATE, Operation.UPDATE):
            return ValidationResult.allow()

        workspace = context.new.fleet_workspace_name
        if not workspace:
            return ValidationResult.allow()
        if context.old is not None and context.old.fleet_workspace_name == workspace:
            return ValidationResult.allow()

        resource = ResourceAttributes(
            group="management.cattle.io",
            version="v3",
            resource="fleetworkspaces",
            name=workspace,
        )
        if self.authorizer.check(context.user, FLEET_ADD_CLUSTER_VERB, resource):
            return ValidationResult.allow()
        return ValidationResult.deny(
            ReasonCode.FORBIDDEN,
            f"user {context.user.username!r} is not allowed to add clusters to fleet workspace {workspace!r}",
        )

    def check_creator_annotations_immutable(self, context: ValidationContext[Cluster]) -> ValidationResult:
        if context.operation != Operation.UPDATE:
            return ValidationResult.allow()

        old_annotations = context.old.annotations
        for annotation in (CREATOR_ID_ANNOTATION, CREATOR_PRINCIPAL_NAME_ANNOTATION):
            if annotation not in context.new.annotations:
                continue
            if old_annotations.get(annotation) != context.new.annotations[annotation]:
                return ValidationResult.deny(
                    ReasonCode.BAD_REQUEST,
                    f"metadata.annotations: Forbidden: {annotation} is immutable",
                )
        return ValidationResult.allow()

    def check_creator_reference(self, context: ValidationContext[Cluster]) -> ValidationResult:
        if context.operation != Operation.CREATE:
            return ValidationResult.allow()

        annotations = context.new.annotations
        principal_name = annotations.get(CREATOR_PRINCIPAL_NAME_ANNOTATION, "")
        creator_id = annotations.get(CREATOR_ID_ANNOTATION, "")

        if principal_name and not creator_id:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"metadata.annotations.{CREATOR_PRINCIPAL_NAME_ANNOTATION}: Invalid value: "
                f"{principal_name!r}: creator principal name requires {CREATOR_ID_ANNOTATION}",
            )
        if not creator_id:
            return ValidationResult.allow()

        try:
            user = self.users.get(creator_id)
        except NotFoundError:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"metadata.annotations.{CREATOR_ID_ANNOTATION}: Invalid value: "
                f"{creator_id!r}: creator user doesn't exist",
            )

        if principal_name and principal_name not in user.principal_ids:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"metadata.annotations.{CREATOR_PRINCIPAL_NAME_ANNOTATION}: Invalid value: "
                f"{principal_name!r}: creator user {creator_id!r} doesn't have this principal",
            )
        return ValidationResult.allow()

    def check_no_creator_rbac_immutable(self, context: ValidationContext[Cluster]) -> ValidationResult:
        if context.operation != Operation.UPDATE:
            return ValidationResult.allow()

        old_value = context.old.annotations.get(NO_CREATOR_RBAC_ANNOTATION, "")
        new_value = context.new.annotations.get(NO_CREATOR_RBAC_ANNOTATION, "")
        if old_value != new_value:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"metadata.annotations: Forbidden: {NO_CREATOR_RBAC_ANNOTATION} is immutable",
            )
        return ValidationResult.allow()

    def check_no_creator_rbac_with_creator_id(self, context: ValidationContext[Cluster]) -> ValidationResult:
        if context.operation != Operation.CREATE:
            return ValidationResult.allow()

        annotations = context.new.annotations
        if annotations.get(NO_CREATOR_RBAC_ANNOTATION) == "true" and CREATOR_ID_ANNOTATION in annotations:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"metadata.annotations: Forbidden: {CREATOR_ID_ANNOTATION} "
                f"can't be set together with {NO_CREATOR_RBAC_ANNOTATION}",
            )
        return ValidationResult.allow()

    def _version_management_feature_enabled(self) -> bool:
        try:
            setting = self.settings.get(VERSION_MANAGEMENT_SETTING)
        except NotFoundError:
            logger.debug(f"Setting {VERSION_MANAGEMENT_SETTING} not found, skipping version management checks")
            return False
        return setting.value == "true"

    def check_version_management(self, context: ValidationContext[Cluster]) -> ValidationResult:
        if context.operation not in (Operation.CREATE, Operation.UPDATE):
            return ValidationResult.allow()
        if not self._version_management_feature_enabled():
            return ValidationResult.allow()

        new_value = context.new.annotations.get(VERSION_MANAGEMENT_ANNOTATION)
        old_value = None
        driver = context.new.driver
        if context.old is not None:
            old_value = context.old.annotations.get(VERSION_MANAGEMENT_ANNOTATION)
            driver = driver or context.old.driver

        if driver not in MANAGED_DRIVERS:
            return self._unmanaged_version_management(driver, new_value)

        if new_value is None:
            if context.operation == Operation.CREATE:
                return ValidationResult.deny(
                    ReasonCode.BAD_REQUEST,
                    f"metadata.annotations: Required value: the annotation "
                    f"{VERSION_MANAGEMENT_ANNOTATION} is required for {driver} clusters",
                )
            if old_value is not None:
                return ValidationResult.deny(
                    ReasonCode.BAD_REQUEST,
                    f"metadata.annotations: Forbidden: the annotation "
                    f"{VERSION_MANAGEMENT_ANNOTATION} can not be removed",
                )
            return ValidationResult.allow()

        if context.operation == Operation.UPDATE and new_value == old_value:
            return ValidationResult.allow()

        if new_value not in VERSION_MANAGEMENT_VALUES:
            return ValidationResult.deny(
                ReasonCode.BAD_REQUEST,
                f"metadata.annotations.{VERSION_MANAGEMENT_ANNOTATION}: Unsupported value: "
                f"{new_value!r}: supported values: {', '.join(VERSION_MANAGEMENT_VALUES)}",
            )
        return ValidationResult.allow()

    @staticmethod
    def _unmanaged_version_management(driver: str, value: Optional[str]) -> ValidationResult:
        if value is None:
            return ValidationResult.allow()
        if value not in VERSION_MANAGEMENT_VALUES:
            return ValidationResult.warn(
                f"The value {value!r} of the annotation {VERSION_MANAGEMENT_ANNOTATION} is invalid "
                f"(supported values: {', '.join(VERSION_MANAGEMENT_VALUES)}); it is ignored for "
                f"cluster driver {driver!r}"
            )
        return ValidationResult.warn(
            f"The annotation {VERSION_MANAGEMENT_ANNOTATION} takes effect only on imported "
            f"RKE2/K3s clusters, it is ignored for cluster driver {driver!r}"
        )
