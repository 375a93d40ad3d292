"""
Configuration management for the admission webhook using Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """Listener configuration shared by the HTTP services."""

    model_config = SettingsConfigDict(
        env_prefix="CATTLE_WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    bind_address: str = Field(default="0.0.0.0")
    port: int = Field(default=9443, ge=1, le=65535)

    # Serve on a unix socket instead of TCP when set
    uds_path: Optional[str] = Field(default=None)

    tls_cert_path: Optional[Path] = Field(default=None)
    tls_key_path: Optional[Path] = Field(default=None)

    debug: bool = Field(default=False)

    @field_validator("tls_cert_path", "tls_key_path")
    @classmethod
    def validate_paths(cls, v):
        """Validate that paths exist if specified."""
        if v is not None and not Path(v).exists():
            raise ValueError(f"Path does not exist: {v}")
        return v

    def export_json(self) -> str:
        """Export configuration as JSON."""
        return self.model_dump_json(indent=2)


class WebhookConfig(ServerConfig):
    """Main configuration for the admission webhook."""

    # Kubernetes API used for user/setting lookups and access reviews
    kube_api_url: str = Field(default="https://kubernetes.default.svc")
    kube_token_path: Path = Field(default=Path("/var/run/secrets/kubernetes.io/serviceaccount/token"))
    kube_ca_path: Optional[Path] = Field(
        default=Path("/var/run/secrets/kubernetes.io/serviceaccount/ca.crt")
    )
    kube_timeout: float = Field(default=10.0, gt=0)
    kube_max_retries: int = Field(default=3, ge=1)


def load_config(**kwargs) -> WebhookConfig:
    """Load configuration with environment variables and optional overrides."""
    return WebhookConfig(**kwargs)
