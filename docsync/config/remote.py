from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RemoteApiConfig(BaseModel):
    """Remote document service endpoint configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_url: str = Field(default="http://localhost:8000", validation_alias="REMOTE_API_URL")
    api_token: str | None = Field(default=None, validation_alias="REMOTE_API_TOKEN")
    timeout_sec: float = Field(default=30.0, validation_alias="REMOTE_TIMEOUT_SEC")
    max_retries: int = Field(default=0, validation_alias="REMOTE_MAX_RETRIES")

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any) -> str:
        url = str(value or "http://localhost:8000").strip()
        if not url.startswith(("http://", "https://")):
            msg = "Remote API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("api_token", mode="before")
    @classmethod
    def _validate_token(cls, value: Any) -> str | None:
        if value in (None, ""):
            return None
        return str(value).strip() or None

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        try:
            parsed = float(str(value if value not in (None, "") else 30.0))
        except ValueError as exc:
            msg = "Remote timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 600:
            msg = "Remote timeout must be between 0 and 600 seconds"
            raise ValueError(msg)
        return parsed

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_retries(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else 0))
        except ValueError as exc:
            msg = "Remote max retries must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 10:
            msg = "Remote max retries must be between 0 and 10"
            raise ValueError(msg)
        return parsed
