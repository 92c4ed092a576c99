"""Kubedev configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Kubedev configuration settings."""

    # Kubernetes settings
    kubeconfig_path: str | None = None
    in_cluster: bool = False

    # Local context file
    context_path: str = "~/.kube/kubedev.yaml"

    # Application used when none was created or selected yet
    default_application: str = "app"

    # Logging
    log_level: str = "WARNING"

    class Config:
        """Pydantic config."""

        env_prefix = "KUBEDEV_"
        case_sensitive = False


# Global settings instance
settings = Settings()
