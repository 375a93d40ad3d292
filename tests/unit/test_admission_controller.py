"""
Unit tests for the admission dispatcher
"""

import pytest

from cattle_webhook.exceptions import AdmissionDecodeError, UnsupportedResourceError
from cattle_webhook.models import AdmissionRequest
from cattle_webhook.validators.cluster import VERSION_MANAGEMENT_ANNOTATION
from cattle_webhook.validators.project import SYSTEM_PROJECT_LABEL
from tests.fixtures.k8s import cluster, create_request, create_review, project


def test_validate_allowed_cluster(admission_controller):
    """Test validation of an allowed cluster."""
    allowed, message = admission_controller.validate_request(create_review("CREATE", new=cluster()))

    assert allowed is True
    assert message["apiVersion"] == "admission.k8s.io/v1"
    assert message["kind"] == "AdmissionReview"
    assert message["response"] == {"uid": "test-uid-123", "allowed": True}


def test_validate_denied_cluster(admission_controller):
    """Test rejection status of a cluster clearing its fleet workspace."""
    review = create_review("UPDATE", old=cluster(fleet_workspace_name="fleet-default"), new=cluster())

    allowed, message = admission_controller.validate_request(review)

    assert allowed is False
    status = message["response"]["status"]
    assert status["reason"] == "Invalid"
    assert status["code"] == 422
    assert "fleetWorkspaceName" in status["message"]


def test_validate_system_project_delete(admission_controller):
    review = create_review("DELETE", old=project(labels={SYSTEM_PROJECT_LABEL: "true"}), resource="projects")

    allowed, message = admission_controller.validate_request(review)

    assert allowed is False
    assert message["response"]["status"]["code"] == 403
    assert message["response"]["status"]["message"] == "System Project cannot be deleted"


def test_warnings_in_response(admission_controller):
    new = cluster(annotations={VERSION_MANAGEMENT_ANNOTATION: "INVALID"}, driver="AKS")

    allowed, message = admission_controller.validate_request(create_review("CREATE", new=new))

    assert allowed is True
    assert len(message["response"]["warnings"]) == 1


def test_routes_by_kind_when_resource_missing(admission_controller):
    request = create_request("CREATE", new=project(namespace_quota={"limitsCpu": "1"}), resource="projects")
    request["resource"] = {}

    allowed, message = admission_controller.validate_request({"request": request})

    assert allowed is False
    assert message["response"]["status"]["reason"] == "BadRequest"


def test_explicit_resource_overrides_request(admission_controller):
    review = create_review("DELETE", old=project(labels={SYSTEM_PROJECT_LABEL: "true"}), resource="projects")
    review["request"]["resource"]["resource"] = "clusters"

    allowed, _ = admission_controller.validate_request(review, resource="projects")

    assert allowed is False


def test_unknown_resource_raises(admission_controller):
    review = create_review("CREATE", new={"metadata": {"name": "x"}}, resource="pods")

    with pytest.raises(UnsupportedResourceError):
        admission_controller.validate_request(review)


def test_connect_is_allowed_without_evaluation(admission_controller):
    allowed, _ = admission_controller.validate_request(create_review("CONNECT"))

    assert allowed is True


@pytest.mark.parametrize(
    "review",
    [
        {},
        {"request": None},
        {"request": {"uid": "x", "operation": "PATCH"}},
        create_review("UPDATE", new=cluster()),
        create_review("CREATE", new={"metadata": {"annotations": "not-a-map"}}),
    ],
    ids=["no-request", "null-request", "bad-operation", "update-without-old", "bad-object"],
)
def test_malformed_review_raises(admission_controller, review):
    with pytest.raises(AdmissionDecodeError):
        admission_controller.validate_request(review)


def test_evaluate_returns_decision(admission_controller):
    request = AdmissionRequest.model_validate(
        create_request("CREATE", new=project(resource_quota={"cpu": "4"}, namespace_quota={"cpu": "8"}), resource="projects")
    )

    decision = admission_controller.evaluate(request)

    assert decision.allowed is False
    assert decision.reason.value == "Forbidden"
