"""Runtime settings for the deployer."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecs_deployer.config.paths import env_path

ENV_FILE_PATH = str(env_path())


class DeploySettings(BaseSettings):
    """AWS access and stability polling configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ECS_DEPLOY_",
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    region: str = Field(default="us-east-1", description="AWS region")
    profile: str | None = Field(default=None, description="AWS named profile")
    poll_interval_seconds: float = Field(
        default=15, ge=0, description="Delay between service status checks"
    )
    max_poll_attempts: int = Field(
        default=40, ge=1, description="Status checks before the wait times out"
    )
    log_level: str = Field(default="INFO", description="Logging level for the CLI")


def get_settings() -> DeploySettings:
    """Load and return the deployer settings."""
    return DeploySettings()
