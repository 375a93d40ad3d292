"""
Typed views of the admission request and the management.cattle.io objects
it carries. Field aliases follow the camelCase wire format.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ResourceQuotaLimit = Dict[str, Optional[Union[str, int, float]]]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Operation(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class ObjectMeta(WireModel):
    name: str = ""
    namespace: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def empty_when_null(cls, v):
        return v or {}


class ClusterSpec(WireModel):
    display_name: str = Field(default="", alias="displayName")
    fleet_workspace_name: str = Field(default="", alias="fleetWorkspaceName")

    @field_validator("fleet_workspace_name", mode="before")
    @classmethod
    def empty_workspace_when_null(cls, v):
        return v or ""


class ClusterStatus(WireModel):
    driver: str = ""

    @field_validator("driver", mode="before")
    @classmethod
    def empty_driver_when_null(cls, v):
        return v or ""


class Cluster(WireModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ClusterSpec = Field(default_factory=ClusterSpec)
    status: ClusterStatus = Field(default_factory=ClusterStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.labels

    @property
    def annotations(self) -> Dict[str, str]:
        return self.metadata.annotations

    @property
    def fleet_workspace_name(self) -> str:
        return self.spec.fleet_workspace_name

    @property
    def driver(self) -> str:
        return self.status.driver


class ProjectResourceQuota(WireModel):
    limit: ResourceQuotaLimit = Field(default_factory=dict)
    used_limit: ResourceQuotaLimit = Field(default_factory=dict, alias="usedLimit")

    @field_validator("limit", "used_limit", mode="before")
    @classmethod
    def empty_limit_when_null(cls, v):
        return v or {}


class NamespaceResourceQuota(WireModel):
    limit: ResourceQuotaLimit = Field(default_factory=dict)

    @field_validator("limit", mode="before")
    @classmethod
    def empty_limit_when_null(cls, v):
        return v or {}


class ProjectSpec(WireModel):
    display_name: str = Field(default="", alias="displayName")
    cluster_name: str = Field(default="", alias="clusterName")
    resource_quota: Optional[ProjectResourceQuota] = Field(default=None, alias="resourceQuota")
    namespace_default_resource_quota: Optional[NamespaceResourceQuota] = Field(
        default=None, alias="namespaceDefaultResourceQuota"
    )


class Project(WireModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ProjectSpec = Field(default_factory=ProjectSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.labels


class GroupVersionKind(WireModel):
    group: str = ""
    version: str = ""
    kind: str = ""


class GroupVersionResource(WireModel):
    group: str = ""
    version: str = ""
    resource: str = ""


class UserInfo(WireModel):
    username: str = ""
    uid: str = ""
    groups: List[str] = Field(default_factory=list)
    extra: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("groups", "extra", mode="before")
    @classmethod
    def empty_when_null(cls, v, info):
        if v is None:
            return [] if info.field_name == "groups" else {}
        return v


class AdmissionRequest(WireModel):
    """The ``request`` member of an admission.k8s.io/v1 AdmissionReview."""

    uid: str = ""
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    resource: GroupVersionResource = Field(default_factory=GroupVersionResource)
    name: str = ""
    namespace: str = ""
    operation: Operation
    user_info: UserInfo = Field(default_factory=UserInfo, alias="userInfo")
    object: Optional[Dict[str, Any]] = None
    old_object: Optional[Dict[str, Any]] = Field(default=None, alias="oldObject")
    dry_run: bool = Field(default=False, alias="dryRun")

    @field_validator("dry_run", mode="before")
    @classmethod
    def false_when_null(cls, v):
        return bool(v)


class ResourceAttributes(WireModel):
    group: str = ""
    version: str = ""
    resource: str = ""
    name: str = ""
    namespace: str = ""


class User(WireModel):
    name: str = ""
    principal_ids: List[str] = Field(default_factory=list, alias="principalIds")


class Setting(WireModel):
    name: str = ""
    value: str = ""
