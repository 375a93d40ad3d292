from abc import abstractmethod
import sys

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from loguru import logger
import uvicorn

from cattle_webhook.config import ServerConfig


def configure_logging(debug: bool = False, level: str = "INFO"):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else level)


class WebServer:
    """
    FastAPI application served by uvicorn, the listener the API server
    posts AdmissionReviews to. Subclasses register their routes.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.app = FastAPI(debug=config.debug, default_response_class=ORJSONResponse)
        self._setup_routes()

    @abstractmethod
    def _setup_routes(self):
        """
        Register the validation and health endpoints on ``self.app``, e.g.
        self.app.add_api_route("/v1/webhook/validation/projects", self.admit_projects, methods=["POST"])
        """
        raise NotImplementedError()

    def run(self):
        """Serve on the configured unix socket, or on TCP with TLS when a certificate pair is set."""
        uvicorn_kwargs = {}

        if self.config.uds_path:
            logger.info(f"Listening for admission reviews on unix socket {self.config.uds_path}")
            uvicorn_kwargs["uds"] = self.config.uds_path
        else:
            logger.info(f"Listening for admission reviews on {self.config.bind_address}:{self.config.port}")
            uvicorn_kwargs["host"] = self.config.bind_address
            uvicorn_kwargs["port"] = self.config.port
            if self.config.tls_cert_path and self.config.tls_key_path:
                uvicorn_kwargs["ssl_certfile"] = str(self.config.tls_cert_path)
                uvicorn_kwargs["ssl_keyfile"] = str(self.config.tls_key_path)
            else:
                logger.warning("No TLS certificate configured, the API server requires HTTPS for webhooks")

        uvicorn.run(
            self.app,
            log_level="debug" if self.config.debug else "info",
            **uvicorn_kwargs,
        )
