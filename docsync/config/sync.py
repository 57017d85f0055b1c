from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_MAX_ATTEMPTS = 3


class SyncConfig(BaseModel):
    """Job queue and replay configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_attempts: int = Field(
        default=DEFAULT_MAX_ATTEMPTS,
        validation_alias="SYNC_MAX_ATTEMPTS",
        description="Failed replay attempts after which a job is marked failed",
    )
    replay_interval_sec: float = Field(
        default=60.0,
        validation_alias="SYNC_REPLAY_INTERVAL_SEC",
        description="Period of the background replay scheduler; 0 disables it",
    )
    completed_retention_days: int = Field(
        default=7, validation_alias="SYNC_COMPLETED_RETENTION_DAYS"
    )
    retain_completed_jobs: bool = Field(
        default=False, validation_alias="SYNC_RETAIN_COMPLETED_JOBS"
    )

    @field_validator("max_attempts", mode="before")
    @classmethod
    def _validate_max_attempts(cls, value: Any) -> int:
        try:
            parsed = int(str(value if value not in (None, "") else DEFAULT_MAX_ATTEMPTS))
        except ValueError as exc:
            msg = "Sync max attempts must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 1 or parsed > 100:
            msg = "Sync max attempts must be between 1 and 100"
            raise ValueError(msg)
        return parsed

    @field_validator("replay_interval_sec", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any) -> float:
        try:
            parsed = float(str(value if value not in (None, "") else 60.0))
        except ValueError as exc:
            msg = "Sync replay interval must be a valid number"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 86400:
            msg = "Sync replay interval must be between 0 and 86400 seconds"
            raise ValueError(msg)
        return parsed

    @field_validator("completed_retention_days", mode="before")
    @classmethod
    def _validate_retention(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        try:
            parsed = int(str(value if value not in (None, "") else default))
        except ValueError as exc:
            msg = "Completed job retention must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0 or parsed > 3650:
            msg = "Completed job retention must be between 0 and 3650 days"
            raise ValueError(msg)
        return parsed
