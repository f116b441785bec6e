"""Configuration module for comfyfetch."""

from .settings import (
    get_config,
    reset_config,
    ComfyFetchConfig,
    ScanConfig,
    ResolveConfig,
)

__all__ = [
    "get_config",
    "reset_config",
    "ComfyFetchConfig",
    "ScanConfig",
    "ResolveConfig",
]
