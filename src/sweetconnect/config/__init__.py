"""Configuration loading and validation."""

from sweetconnect.config.schema import (
    ActorSeed,
    AppConfig,
    DeliveryConfig,
    IdentityConfig,
    MailConfig,
    ServerConfig,
    StoreConfig,
)
from sweetconnect.config.loader import apply_env_overrides, load_config, merge_configs

__all__ = [
    "ActorSeed",
    "AppConfig",
    "DeliveryConfig",
    "IdentityConfig",
    "MailConfig",
    "ServerConfig",
    "StoreConfig",
    "apply_env_overrides",
    "load_config",
    "merge_configs",
]
