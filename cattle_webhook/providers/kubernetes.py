from pathlib import Path
import ssl
from typing import Any, Dict, Optional

import backoff
import httpx
from loguru import logger

from cattle_webhook.config import WebhookConfig
from cattle_webhook.exceptions import CollaboratorError, NotFoundError
from cattle_webhook.models import ResourceAttributes, Setting, User, UserInfo

MANAGEMENT_API = "/apis/management.cattle.io/v3"
SUBJECT_ACCESS_REVIEW_PATH = "/apis/authorization.k8s.io/v1/subjectaccessreviews"

RETRYABLE_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


class KubernetesClient:
    """Minimal synchronous client for the Kubernetes API server."""

    def __init__(self, config: WebhookConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config

        headers = {"Accept": "application/json"}
        token_path = Path(config.kube_token_path)
        if token_path.exists():
            headers["Authorization"] = f"Bearer {token_path.read_text().strip()}"
        else:
            logger.warning(f"Service account token not found at {token_path}, using anonymous requests")

        verify: Any = True
        if config.kube_ca_path and Path(config.kube_ca_path).exists():
            verify = ssl.create_default_context(cafile=str(config.kube_ca_path))

        self.client = httpx.Client(
            base_url=config.kube_api_url,
            headers=headers,
            verify=verify,
            timeout=httpx.Timeout(config.kube_timeout),
            transport=transport,
        )
        self._send = backoff.on_exception(
            backoff.expo,
            RETRYABLE_ERRORS,
            max_tries=config.kube_max_retries,
            max_time=config.kube_timeout * config.kube_max_retries,
        )(self._send_once)

    def _send_once(self, method: str, path: str, body: Optional[Dict] = None) -> httpx.Response:
        return self.client.request(method, path, json=body)

    def request(self, method: str, path: str, kind: str, name: str = "", body: Optional[Dict] = None) -> Dict:
        try:
            response = self._send(method, path, body)
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {path} failed: {e}")
            raise CollaboratorError(f"failed to {method} {kind} {name!r}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(kind, name)
        if response.is_error:
            logger.error(f"Request {method} {path} returned {response.status_code}: {response.text}")
            raise CollaboratorError(
                f"failed to {method} {kind} {name!r}: status {response.status_code}"
            )
        return response.json()

    def close(self):
        self.client.close()


class KubernetesUserLookup:
    def __init__(self, client: KubernetesClient):
        self.client = client

    def get(self, name: str) -> User:
        data = self.client.request("GET", f"{MANAGEMENT_API}/users/{name}", "user", name)
        return User(
            name=data.get("metadata", {}).get("name", name),
            principal_ids=data.get("principalIds") or [],
        )


class KubernetesSettingLookup:
    def __init__(self, client: KubernetesClient):
        self.client = client

    def get(self, name: str) -> Setting:
        data = self.client.request("GET", f"{MANAGEMENT_API}/settings/{name}", "setting", name)
        # An unset value falls back to the setting's default
        return Setting(name=name, value=data.get("value") or data.get("default") or "")


class SubjectAccessReviewAuthorizer:
    def __init__(self, client: KubernetesClient):
        self.client = client

    def check(self, subject: UserInfo, verb: str, resource: ResourceAttributes) -> bool:
        attributes = {"verb": verb, **resource.model_dump(exclude_defaults=True)}
        review = {
            "apiVersion": "authorization.k8s.io/v1",
            "kind": "SubjectAccessReview",
            "spec": {
                "resourceAttributes": attributes,
                "user": subject.username,
                "uid": subject.uid,
                "groups": subject.groups,
                "extra": subject.extra,
            },
        }
        data = self.client.request(
            "POST", SUBJECT_ACCESS_REVIEW_PATH, "subjectaccessreview", resource.name, body=review
        )
        status = data.get("status", {})
        if not status.get("allowed", False):
            logger.debug(
                f"Access review denied {subject.username} {verb} {resource.resource}/{resource.name}: "
                f"{status.get('reason', '')}"
            )
            return False
        return True
