"""Runtime configuration for Steve bot."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="STEVE_BOT_", env_file=".env", extra="ignore")

    host: str = "localhost"
    port: int = 25565
    username: str = "Steve"
    password: str | None = None
    version: str | None = Field(default=None, description="Pin the protocol version, e.g. 1.20.4.")

    log_level: str = "INFO"
    log_file: str | None = None

    navigation_timeout_seconds: float = Field(default=10.0, gt=0)
    goal_radius: float = Field(default=1.0, ge=0)
    scan_settle_seconds: float = Field(default=0.1, ge=0)
    search_max_distance: int = Field(default=32, gt=0)
    follow_interval_seconds: float = Field(default=0.5, ge=0)
    follow_radius: float = Field(default=2.0, ge=0)
    menu_return_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Delay before a stopped mode hands control back to the menu.",
    )


settings = Settings()
