from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from safework.core.rbac.roles import Role


class Settings(BaseSettings):
    # App
    app_name: str = "SafeWork Risk Core"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./safework.db"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/var/log/safework"
    file_logging: bool = False

    # Workflow
    default_approval_role: Role = Role.SAFETY_MANAGER
    conflict_retries: int = 2  # re-reads after a lost version race

    # Signatures
    signature_min_length: int = 100  # base64 sanity check

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
