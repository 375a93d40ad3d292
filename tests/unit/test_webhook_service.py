import pytest
from fastapi.testclient import TestClient

from cattle_webhook.config import WebhookConfig
from cattle_webhook.services.webhook import AdmissionWebhookServer
from tests.fixtures.k8s import cluster, create_review, project


@pytest.fixture
def webhook_client(admission_controller, clean_env):
    config = WebhookConfig(uds_path="/tmp/cattle-webhook.sock")
    server = AdmissionWebhookServer(config, controller=admission_controller)
    with TestClient(server.app) as client:
        yield client


def test_healthz(webhook_client):
    response = webhook_client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "validators": ["clusters.management.cattle.io", "projects.management.cattle.io"],
    }


def test_cluster_endpoint_denies(webhook_client):
    review = create_review("CREATE", new=cluster(annotations={"field.cattle.io/creator-principal-name": "p"}))

    response = webhook_client.post("/v1/webhook/validation/clusters.management.cattle.io", json=review)

    assert response.status_code == 200
    body = response.json()
    assert body["response"]["allowed"] is False
    assert body["response"]["status"]["reason"] == "BadRequest"


def test_project_endpoint_allows(webhook_client):
    review = create_review(
        "CREATE",
        new=project(resource_quota={"limitsCpu": "4"}, namespace_quota={"limitsCpu": "2"}),
        resource="projects",
    )

    response = webhook_client.post("/v1/webhook/validation/projects.management.cattle.io", json=review)

    assert response.status_code == 200
    assert response.json()["response"] == {"uid": "test-uid-123", "allowed": True}


def test_generic_endpoint_dispatches(webhook_client):
    review = create_review("UPDATE", old=cluster(fleet_workspace_name="fleet-default"), new=cluster())

    response = webhook_client.post("/v1/webhook/validation", json=review)

    assert response.status_code == 200
    assert response.json()["response"]["status"]["reason"] == "Invalid"


def test_malformed_quantity_is_server_error(webhook_client):
    review = create_review(
        "CREATE",
        new=project(resource_quota={"limitsCpu": "four"}, namespace_quota={"limitsCpu": "1"}),
        resource="projects",
    )

    response = webhook_client.post("/v1/webhook/validation/projects.management.cattle.io", json=review)

    assert response.status_code == 500


def test_undecodable_body_is_server_error(webhook_client):
    response = webhook_client.post(
        "/v1/webhook/validation",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 500


def test_unknown_resource_is_server_error(webhook_client):
    review = create_review("CREATE", new={"metadata": {"name": "x"}}, resource="pods")

    response = webhook_client.post("/v1/webhook/validation", json=review)

    assert response.status_code == 500
