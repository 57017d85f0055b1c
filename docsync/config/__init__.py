from __future__ import annotations

from .database import DatabaseConfig
from .remote import RemoteApiConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config
from .sync import DEFAULT_MAX_ATTEMPTS, SyncConfig

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "AppConfig",
    "DatabaseConfig",
    "RemoteApiConfig",
    "RuntimeConfig",
    "Settings",
    "SyncConfig",
    "load_config",
]
