import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from instrukt_ai_logging import get_logger
from pydantic import BaseModel, ValidationError

from orc.config.schema import OrcConfig
from orc.constants import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, ENV_PATH_ENV
from orc.core.errors import ConfigError
from orc.utils import expand_env_vars

logger = get_logger(__name__)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra.keys()))

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """Explicit path, then $ORC_CONFIG_PATH, then ~/.orc/config.yml."""
    if path is not None:
        return path.expanduser()
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path(DEFAULT_CONFIG_PATH).expanduser()


def _load_env_file(config_path: Path) -> None:
    env_path = os.getenv(ENV_PATH_ENV)
    dotenv_path = Path(env_path).expanduser() if env_path else config_path.parent / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path)


def load_config(path: Optional[Path] = None) -> OrcConfig:
    """Load and validate orc configuration from a YAML file.

    A missing or unreadable file yields the defaults. A file that parses but
    does not validate is a hard error.

    Args:
        path: Path to config.yml; resolved via `resolve_config_path` when omitted.

    Returns:
        The validated configuration model.

    Raises:
        ConfigError: When the file content fails validation.
    """
    config_path = resolve_config_path(path)
    _load_env_file(config_path)

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return OrcConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", config_path, e)
        return OrcConfig()

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at the top level")

    expanded = expand_env_vars(raw)
    try:
        model = OrcConfig.model_validate(expanded)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {config_path}:\n{exc}") from exc
    _warn_unknown_keys(model, "root", config_path)
    return model
