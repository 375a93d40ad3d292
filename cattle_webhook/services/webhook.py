from typing import Optional

from fastapi import HTTPException, Request, status
from loguru import logger
from starlette.concurrency import run_in_threadpool

from cattle_webhook.admission.admission_controller import AdmissionController
from cattle_webhook.config import WebhookConfig
from cattle_webhook.exceptions import WebhookException
from cattle_webhook.providers.kubernetes import (
    KubernetesClient,
    KubernetesSettingLookup,
    KubernetesUserLookup,
    SubjectAccessReviewAuthorizer,
)
from cattle_webhook.responses import HealthResponse
from cattle_webhook.server import WebServer, configure_logging

VALIDATION_PREFIX = "/v1/webhook/validation"


def build_controller(config: WebhookConfig) -> AdmissionController:
    client = KubernetesClient(config)
    return AdmissionController(
        users=KubernetesUserLookup(client),
        settings=KubernetesSettingLookup(client),
        authorizer=SubjectAccessReviewAuthorizer(client),
    )


class AdmissionWebhookServer(WebServer):
    """Validating admission webhook for management.cattle.io resources."""

    def __init__(self, config: WebhookConfig, controller: Optional[AdmissionController] = None):
        self.controller = controller or build_controller(config)
        super().__init__(config)

    def _setup_routes(self):
        """Setup web routes."""
        self.app.add_api_route("/healthz", self.healthz, methods=["GET"], response_model=HealthResponse)
        self.app.add_api_route(VALIDATION_PREFIX, self.validate, methods=["POST"])
        for validator in self.controller.validators.values():
            self.app.add_api_route(
                f"{VALIDATION_PREFIX}/{validator.name}",
                self._resource_endpoint(validator.resource),
                methods=["POST"],
                name=f"validate_{validator.resource}",
            )

    async def healthz(self) -> HealthResponse:
        return HealthResponse(validators=sorted(v.name for v in self.controller.validators.values()))

    async def validate(self, request: Request):
        return await self._admit(request)

    def _resource_endpoint(self, resource: str):
        async def endpoint(request: Request):
            return await self._admit(request, resource)

        return endpoint

    async def _admit(self, request: Request, resource: Optional[str] = None):
        try:
            admission_review = await request.json()
        except ValueError as e:
            logger.error(f"Failed to decode admission review body: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to decode admission review.",
            )

        try:
            # Collaborator lookups block, keep them off the event loop
            _, response = await run_in_threadpool(
                self.controller.validate_request, admission_review, resource
            )
        except WebhookException as e:
            logger.error(f"Admission evaluation failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Admission evaluation failed: {e}",
            )
        return response


def run():
    """Main entry point."""
    try:
        config = WebhookConfig()

        configure_logging(config.debug)
        if config.debug:
            logger.debug("Debug mode enabled")
            logger.debug(f"Configuration: {config.export_json()}")

        if not config.uds_path and (not config.tls_cert_path or not config.tls_key_path):
            logger.warning("TLS certificates not configured, running in insecure mode")

        server = AdmissionWebhookServer(config)
        server.run()

    except Exception as e:
        logger.exception(f"Failed to start admission webhook: {e}")
        raise


if __name__ == "__main__":
    run()
