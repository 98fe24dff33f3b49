"""Configuration loader."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from .models import ConfigModel

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}

# Environment variable -> (section, field, kind)
ENV_OVERRIDES: Dict[str, Tuple[Optional[str], str, str]] = {
    "LOG_LEVEL": (None, "log_level", "str"),
    "LLM_MODEL": ("llm", "model", "str"),
    "CLUSTERING_ENABLED": ("clustering", "enabled", "bool"),
    "CLUSTER_TRGM_THRESHOLD": ("clustering", "threshold", "float"),
    "CLUSTER_TRGM_WINDOW_HOURS": ("clustering", "window_hours", "int"),
    "CLUSTER_TRGM_LIMIT": ("clustering", "candidate_limit", "int"),
    "CLUSTER_UPDATE_STANCE_MODE": ("clustering", "stance_mode", "lower"),
    "CLUSTER_UPDATE_STANCE_LLM_TOKENS": ("clustering", "stance_llm_tokens", "int"),
    "CLUSTER_ENRICH_ENABLED": ("enrichment", "enabled", "bool"),
    "CLUSTER_LLM_ENABLED": ("enrichment", "llm_enabled", "bool"),
    "CLUSTER_LLM_SLEEP_MS": ("enrichment", "sleep_ms", "int"),
    "CLUSTER_LLM_MAX_TOKENS": ("enrichment", "max_tokens", "int"),
    "CLUSTER_ENRICH_UPDATES": ("enrichment", "updates_limit", "int"),
    "CLUSTER_LANG": ("enrichment", "lang", "str"),
    "CLUSTER_ENRICH_FORCE": ("enrichment", "force", "bool"),
    "MARKET": ("pretranslation", "market", "str"),
    "PRETRANS_RECENT_HOURS": ("pretranslation", "recent_hours", "int"),
    "PRETRANS_MAX_CLUSTERS": ("pretranslation", "max_clusters", "int"),
    "PRETRANS_SCAN_CONCURRENCY": ("pretranslation", "scan_concurrency", "int"),
    "PRETRANS_CONCURRENCY": ("pretranslation", "concurrency", "int"),
    "PRETRANS_ITEM_TIMEOUT_MS": ("pretranslation", "item_timeout_ms", "int"),
    "PRETRANS_RETRY_ATTEMPTS": ("pretranslation", "retry_attempts", "int"),
    "PRETRANS_RETRY_BACKOFF_MS": ("pretranslation", "retry_backoff_ms", "int"),
    "PRETRANS_DONE_MAX": ("pretranslation", "done_max", "int"),
    "PRETRANS_LEGACY_TIME_FRESHNESS": ("pretranslation", "legacy_time_freshness", "bool"),
    "MT_PROVIDER": ("pretranslation", "provider_tag", "str"),
    "ARTICLE_PRETRANS_LANGS": ("pretranslation", "article_langs", "str"),
    "ARTICLE_PRETRANS_LIMIT": ("pretranslation", "article_limit", "int"),
    "MT_CHUNK_MAX_CHARS": ("translation", "chunk_max_chars", "int"),
    "MT_MAX_ARTICLE_CHARS": ("translation", "max_article_chars", "int"),
    "TRANSLATION_CACHE_MAX": ("translation", "cache_max", "int"),
    "MT_MAX_TOKENS": ("translation", "max_tokens", "int"),
}


def default_config_path() -> Path:
    """Config path from STORYLINE_CONFIG, else the user config directory."""
    override = os.environ.get("STORYLINE_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "storyline" / "config.yaml"


class Config:
    """Configuration manager."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Initialize config manager."""
        self.config_path = config_path or default_config_path()
        self.environ = os.environ if environ is None else environ
        self._config: Optional[ConfigModel] = None

    @property
    def config(self) -> ConfigModel:
        """Get loaded config."""
        if self._config is None:
            self._config = load_config(self.config_path, self.environ)
        return self._config

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration dict."""
        db_config = self.config.postgres.model_dump()

        if db_config.get("password_env"):
            password = self.environ.get(db_config["password_env"])
            if password:
                db_config["password"] = password

        return db_config

    def get_llm_config(self) -> Dict[str, Any]:
        """Get LLM configuration dict."""
        llm_config = self.config.llm.model_dump()

        if llm_config.get("api_key_env") and not llm_config.get("api_key"):
            api_key = self.environ.get(llm_config["api_key_env"])
            if api_key:
                llm_config["api_key"] = api_key

        return llm_config


def _coerce(raw: str, kind: str) -> Any:
    """Convert an environment string to the field's type."""
    value = raw.strip()
    if kind == "bool":
        lowered = value.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if kind == "int":
        return int(value)
    if kind == "float":
        return float(value)
    if kind == "lower":
        return value.lower()
    return value


def apply_env_overrides(config_data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay recognized environment variables onto raw config data."""
    for name, (section, field, kind) in ENV_OVERRIDES.items():
        raw = environ.get(name)
        if raw is None or raw.strip() == "":
            continue
        try:
            value = _coerce(raw, kind)
        except ValueError:
            logger.warning("Ignoring unparsable %s=%r", name, raw)
            continue
        if section is None:
            config_data[field] = value
        else:
            target = config_data.get(section)
            if not isinstance(target, dict):
                target = {}
                config_data[section] = target
            target[field] = value
    return config_data


def load_config(config_path: Path, environ: Optional[Mapping[str, str]] = None) -> ConfigModel:
    """Load configuration from YAML (optional) plus environment overrides."""
    config_data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")
        if not isinstance(config_data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

    apply_env_overrides(config_data, os.environ if environ is None else environ)

    try:
        return ConfigModel(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}")


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
