"""Configuration management for storyline."""

from .loader import (
    ENV_OVERRIDES,
    Config,
    apply_env_overrides,
    default_config_path,
    load_config,
    save_config,
)
from .models import (
    ClusteringConfig,
    ConfigModel,
    EnrichmentConfig,
    LLMConfig,
    PostgresConfig,
    PretranslationConfig,
    TranslationConfig,
)

__all__ = [
    "ENV_OVERRIDES",
    "ClusteringConfig",
    "Config",
    "ConfigModel",
    "EnrichmentConfig",
    "LLMConfig",
    "PostgresConfig",
    "PretranslationConfig",
    "TranslationConfig",
    "apply_env_overrides",
    "default_config_path",
    "load_config",
    "save_config",
]
