"""
Configuration management for Campus Bridge.
"""

from .settings import (
    AuthConfig,
    BridgeConfig,
    DatabaseConfig,
    DropboxConfig,
    LogLevel,
    ProcessingConfig,
    ServerConfig,
    StorageBackend,
    StorageConfig,
)
from .environment import EnvironmentLoader
from .validation import ConfigValidator

__all__ = [
    "AuthConfig",
    "BridgeConfig",
    "DatabaseConfig",
    "DropboxConfig",
    "LogLevel",
    "ProcessingConfig",
    "ServerConfig",
    "StorageBackend",
    "StorageConfig",
    "EnvironmentLoader",
    "ConfigValidator",
]
