import pytest

from cattle_webhook.exceptions import QuantityParseError
from cattle_webhook.responses import ReasonCode
from cattle_webhook.validators.project import SYSTEM_PROJECT_LABEL
from tests.fixtures.k8s import admission_request, project


def evaluate(validator, operation, old=None, new=None):
    return validator.evaluate(admission_request(operation, old, new, resource="projects"))


def test_create_without_quotas_allowed(project_validator):
    decision = evaluate(project_validator, "CREATE", new=project())

    assert decision.allowed is True
    assert decision.reason == ReasonCode.NONE


def test_create_with_equal_quotas_allowed(project_validator):
    new = project(resource_quota={"cpu": "4"}, namespace_quota={"cpu": "4"})

    decision = evaluate(project_validator, "CREATE", new=new)

    assert decision.allowed is True


def test_namespace_quota_exceeding_project_quota_denied(project_validator):
    new = project(resource_quota={"cpu": "4"}, namespace_quota={"cpu": "8"})

    decision = evaluate(project_validator, "CREATE", new=new)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.FORBIDDEN
    assert "namespace default quota limit exceeds project limit on fields: cpu=8" in decision.message


def test_only_namespace_quota_set_denied(project_validator):
    new = project(namespace_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "CREATE", new=new)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.BAD_REQUEST
    assert decision.message.startswith("project.spec.resourceQuota: Required value")


def test_only_project_quota_set_denied(project_validator):
    new = project(resource_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "UPDATE", old=project(), new=new)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.BAD_REQUEST
    assert decision.message.startswith("project.spec.namespaceDefaultResourceQuota: Required value")


def test_different_resource_count_denied(project_validator):
    new = project(
        resource_quota={"limitsCpu": "4", "limitsMemory": "4Gi"},
        namespace_quota={"limitsCpu": "1"},
    )

    decision = evaluate(project_validator, "CREATE", new=new)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.BAD_REQUEST
    assert "do not have the same resources defined" in decision.message


def test_missing_namespace_default_resource_denied(project_validator):
    new = project(
        resource_quota={"limitsCpu": "4", "limitsMemory": "4Gi"},
        namespace_quota={"limitsCpu": "1", "requestsMemory": "1Gi"},
    )

    decision = evaluate(project_validator, "CREATE", new=new)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.BAD_REQUEST
    assert "missing namespace default for resource limits.memory" in decision.message


def test_field_presence_checked_before_fit(project_validator):
    """Evaluation stops at the first failing check."""
    new = project(namespace_quota={"limitsCpu": "100"})

    decision = evaluate(project_validator, "CREATE", new=new)

    assert decision.reason == ReasonCode.BAD_REQUEST


def test_update_below_used_quota_denied(project_validator):
    old = project(
        resource_quota={"limitsCpu": "8"},
        namespace_quota={"limitsCpu": "1"},
        used={"limitsCpu": "6"},
    )
    new = project(resource_quota={"limitsCpu": "4"}, namespace_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "UPDATE", old=old, new=new)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.FORBIDDEN
    assert "resourceQuota is below the used limit on fields: limits.cpu=6" in decision.message


def test_update_above_used_quota_allowed(project_validator):
    old = project(
        resource_quota={"limitsCpu": "8"},
        namespace_quota={"limitsCpu": "1"},
        used={"limitsCpu": "3"},
    )
    new = project(resource_quota={"limitsCpu": "4"}, namespace_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "UPDATE", old=old, new=new)

    assert decision.allowed is True


def test_update_without_old_quota_skips_usage_check(project_validator):
    new = project(resource_quota={"limitsCpu": "1"}, namespace_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "UPDATE", old=project(), new=new)

    assert decision.allowed is True


def test_create_ignores_old_usage(project_validator):
    old = project(resource_quota={"limitsCpu": "8"}, namespace_quota={"limitsCpu": "1"}, used={"limitsCpu": "6"})
    new = project(resource_quota={"limitsCpu": "4"}, namespace_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "CREATE", old=old, new=new)

    assert decision.allowed is True


def test_malformed_quantity_raises(project_validator):
    new = project(resource_quota={"limitsCpu": "four"}, namespace_quota={"limitsCpu": "1"})

    with pytest.raises(QuantityParseError):
        evaluate(project_validator, "CREATE", new=new)


def test_huge_exponent_raises(project_validator):
    new = project(resource_quota={"limitsCpu": "1e999999999"}, namespace_quota={"limitsCpu": "1"})

    with pytest.raises(QuantityParseError):
        evaluate(project_validator, "CREATE", new=new)


def test_duplicate_resource_raises(project_validator):
    new = project(
        resource_quota={"limitsCpu": "2", "limits.cpu": "4"},
        namespace_quota={"limitsCpu": "1", "limits.memory": "1Gi"},
    )

    with pytest.raises(QuantityParseError):
        evaluate(project_validator, "CREATE", new=new)


def test_delete_system_project_denied(project_validator):
    old = project(labels={SYSTEM_PROJECT_LABEL: "true"})

    decision = evaluate(project_validator, "DELETE", old=old)

    assert decision.allowed is False
    assert decision.reason == ReasonCode.FORBIDDEN
    assert decision.message == "System Project cannot be deleted"


def test_delete_regular_project_allowed(project_validator):
    old = project(labels={SYSTEM_PROJECT_LABEL: "false"}, resource_quota={"limitsCpu": "1"})

    decision = evaluate(project_validator, "DELETE", old=old)

    assert decision.allowed is True


def test_evaluation_is_idempotent(project_validator):
    new = project(resource_quota={"cpu": "4"}, namespace_quota={"cpu": "8"})
    request = admission_request("CREATE", new=new, resource="projects")

    assert project_validator.evaluate(request) == project_validator.evaluate(request)
