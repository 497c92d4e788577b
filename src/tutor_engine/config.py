"""
Engine configuration: YAML file + environment overrides, process singleton

Loading order:
1. `EngineConfig` defaults
2. optional YAML file named by TUTOR_ENGINE_CONFIG_FILE
3. TUTOR_ENGINE_<FIELD> environment variables (upper-case field name)

Components take an explicit `EngineConfig` in their constructors and fall
back to `get_engine_config()` when none is given.
"""

import os
from typing import Any, Dict, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

ENV_PREFIX = "TUTOR_ENGINE_"
CONFIG_FILE_ENV = "TUTOR_ENGINE_CONFIG_FILE"

_engine_config: Optional["EngineConfig"] = None


class EngineConfigError(ValueError):
    """Raised when a configuration file or override cannot be applied."""


class EngineConfig(BaseModel):
    # Persona selection
    persona_activation_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    persona_override_threshold: float = Field(default=1.5, ge=0.0)
    persona_blend_confidence_ceiling: float = Field(default=0.7, ge=0.0, le=1.0)
    persona_min_feedback_samples: int = Field(default=3, ge=1)
    recent_persona_limit: int = Field(default=10, ge=1)

    # Conviction
    conviction_trigger_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    conviction_history_window: int = Field(default=5, ge=1)

    # Classifier personalization
    personalization_confidence_ceiling: float = Field(default=0.8, ge=0.0, le=1.0)
    personalization_min_samples: int = Field(default=5, ge=1)

    # History windows
    classifier_window: int = Field(default=7, ge=1)
    flow_window: int = Field(default=10, ge=1)
    history_max: int = Field(default=20, ge=1)

    # Memory store
    event_log_limit: int = Field(default=10, ge=1)
    interaction_record_limit: int = Field(default=50, ge=1)
    feedback_log_limit: int = Field(default=50, ge=1)
    preference_smoothing: float = Field(default=0.3, gt=0.0, le=1.0)
    feedback_nudge_weight: float = Field(default=2.0, ge=0.0)
    max_tracked_users: int = Field(default=1000, ge=1)

    # Adaptive learning store
    adaptive_feedback_history_limit: int = Field(default=1000, ge=1)


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise EngineConfigError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise EngineConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise EngineConfigError(f"Config file {path} must contain a mapping")
    # allow either a flat mapping or one nested under "engine"
    return data.get("engine", data) or {}


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for name in EngineConfig.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip() != "":
            overrides[name] = raw.strip()
    return overrides


def load_engine_config(path: Optional[str] = None) -> EngineConfig:
    """Build a config from the optional YAML file and the environment.

    Raises:
        EngineConfigError: the file is unreadable or a value fails validation
    """
    values: Dict[str, Any] = {}
    path = path or os.environ.get(CONFIG_FILE_ENV, "").strip()
    if path:
        values.update(_read_yaml(path))
    values.update(_env_overrides())

    unknown = set(values) - set(EngineConfig.model_fields)
    if unknown:
        logger.warning(f"[Config] Ignoring unknown keys: {sorted(unknown)}")
        values = {k: v for k, v in values.items() if k not in unknown}

    try:
        return EngineConfig.model_validate(values)
    except ValidationError as e:
        raise EngineConfigError(f"Invalid engine configuration: {e}") from e


def get_engine_config() -> EngineConfig:
    """Process-wide singleton."""
    global _engine_config
    if _engine_config is None:
        _engine_config = load_engine_config()
        logger.info(
            f"[Config] persona_threshold={_engine_config.persona_activation_threshold}, "
            f"override={_engine_config.persona_override_threshold}, "
            f"conviction_threshold={_engine_config.conviction_trigger_threshold}"
        )
    return _engine_config


def reset_engine_config_for_testing():
    """Test helper: drop the cached singleton so the next call re-reads the environment."""
    global _engine_config
    _engine_config = None
