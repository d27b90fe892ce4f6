import logging
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

logger = logging.getLogger(__name__)


#------This Class handles the Settings Configuration---------
class Settings(BaseSettings):
    backend_url: str = "http://localhost:3000/api"
    auth_token: str = ""
    backend_timeout: float = 20.0
    probe_timeout: float = 5.0
    backend_max_retries: int = 3
    backend_retry_delay: float = 1.0
    probe_endpoints: str = "/health,/auth/status,/medications,/"
    synthetic_id_prefixes: str = "mock-,offline-,temp-"
    demo_mode: bool = False
    log_level: str = "INFO"

    @property
    def probe_endpoint_list(self) -> List[str]:
        return [p.strip() for p in self.probe_endpoints.split(",") if p.strip()]

    @property
    def synthetic_prefix_list(self) -> List[str]:
        return [p.strip() for p in self.synthetic_id_prefixes.split(",") if p.strip()]

#------This Function validates the backend URL---------
    @field_validator("backend_url")
    @classmethod
    def validate_backend_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("backend_url must start with http:// or https://")
        return v.rstrip("/")

#------This Function validates the timeouts---------
    @field_validator("backend_timeout", "probe_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

#------This Function validates the retry budget---------
    @field_validator("backend_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("backend_max_retries must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = SettingsConfigDict(
        env_prefix="MEDSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

#------This Function validates required settings---------
    def validate_required_settings(self) -> bool:
        errors = []

        if not self.backend_url:
            errors.append("MEDSYNC_BACKEND_URL is required but not set")

        if not self.auth_token and not self.demo_mode:
            errors.append("MEDSYNC_AUTH_TOKEN is not set; authenticated calls will fail")

        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            return False

        return True


settings = Settings()
