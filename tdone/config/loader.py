import yaml
from pathlib import Path
from typing import List, Optional
from pydantic import ValidationError
from .models import AppConfig

LOCAL_CONFIG_NAME = "config.yml"
USER_CONFIG = Path("~/.config/transmission-done/config.yml")


class ConfigurationError(Exception):
    """Raised when the config file is missing, malformed or incomplete."""


def candidate_paths(cwd: Optional[Path] = None) -> List[Path]:
    """Config locations in lookup order: working directory first, then the user's config dir."""
    base = cwd or Path.cwd()
    return [base / LOCAL_CONFIG_NAME, USER_CONFIG.expanduser()]


def find_config(cwd: Optional[Path] = None) -> Path:
    candidates = candidate_paths(cwd)
    for path in candidates:
        if path.is_file():
            return path
    checked = "\n".join(str(p) for p in candidates)
    raise ConfigurationError(f"No config file found. Checked:\n{checked}")


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Loads YAML config and parses it into AppConfig Pydantic model.

    Raises ConfigurationError naming every required value that is missing.
    """
    if config_path is None:
        config_path = find_config()
    elif not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in config file: {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid YAML in config file: {config_path}: expected a mapping")

    # version is written as a bare float (1.0) by the installer
    if "version" in data and data["version"] is not None:
        data["version"] = str(data["version"])

    try:
        config = AppConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config in {config_path}:\n{exc}") from exc

    missing = config.missing_required()
    if missing:
        raise ConfigurationError(f"Missing required config values: {' '.join(missing)}")
    return config
