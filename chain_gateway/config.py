"""
Gateway configuration

Settings are read from config.yaml (path overridable with CHAIN_GATEWAY_CONFIG)
and then from environment variables, which take precedence.

Example config.yaml:

    modules:
      character: http://localhost:3031
      scene: http://localhost:3033
    max_chain_steps: 100
    max_recursion_depth: 10
    module_timeout_ms: 30000
    chain_store: yaml
    chains_dir: chains
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.yaml"

# Module name -> (environment variable, default URL)
DEFAULT_MODULES = {
    "character": ("CHARACTER_CONTROLLER_URL", "http://localhost:3031"),
    "intent": ("INTENT_INTERPRETER_URL", "http://localhost:3032"),
    "scene": ("SCENE_CONTROLLER_URL", "http://localhost:3033"),
    "item": ("ITEM_CONTROLLER_URL", "http://localhost:3034"),
    "storyteller": ("STORYTELLER_URL", "http://localhost:3037"),
}

CHAIN_STORES = ("yaml", "database", "memory")


@dataclass
class Settings:
    """Runtime settings for the gateway, worker and executor"""
    modules: Dict[str, str] = field(default_factory=lambda: {
        name: url for name, (_, url) in DEFAULT_MODULES.items()
    })
    max_chain_steps: int = 100
    max_recursion_depth: int = 10
    module_timeout_ms: int = 30000
    chain_store: str = "yaml"
    chains_dir: Path = PROJECT_ROOT / "chains"
    database_url: Optional[str] = None
    execution_log_dir: Optional[Path] = None
    record_history: bool = True
    temporal_address: str = "localhost:7233"
    temporal_task_queue: str = "chain-gateway"


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.info(f"Config file not found: {path} (using defaults)")
        return {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None
) -> Settings:
    """
    Load settings from YAML and environment

    Args:
        config_path: YAML file (default: CHAIN_GATEWAY_CONFIG or ./config.yaml)
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings

    Raises:
        ValueError: If the config file or a numeric variable is malformed
    """
    environ = os.environ if environ is None else environ
    path = Path(config_path or environ.get("CHAIN_GATEWAY_CONFIG") or DEFAULT_CONFIG_PATH)
    data = _read_yaml(path)

    settings = Settings()

    modules = dict(settings.modules)
    modules.update({name: str(url) for name, url in (data.get("modules") or {}).items()})
    for name, (variable, _) in DEFAULT_MODULES.items():
        if environ.get(variable):
            modules[name] = environ[variable]
    settings.modules = modules

    overrides = {
        "max_chain_steps": ("MAX_CHAIN_STEPS", int),
        "max_recursion_depth": ("MAX_RECURSION_DEPTH", int),
        "module_timeout_ms": ("MODULE_TIMEOUT_MS", int),
        "chain_store": ("CHAIN_STORE", str),
        "chains_dir": ("CHAINS_DIR", Path),
        "database_url": ("DATABASE_URL", str),
        "execution_log_dir": ("EXECUTION_LOG_DIR", Path),
        "record_history": ("RECORD_HISTORY", _as_bool),
        "temporal_address": ("TEMPORAL_ADDRESS", str),
        "temporal_task_queue": ("TEMPORAL_TASK_QUEUE", str),
    }
    for attribute, (variable, convert) in overrides.items():
        value = environ.get(variable, data.get(attribute))
        if value is None or value == "":
            continue
        try:
            setattr(settings, attribute, convert(value))
        except ValueError:
            raise ValueError(f"Invalid value for {attribute}: {value!r}")

    if settings.chain_store not in CHAIN_STORES:
        raise ValueError(f"chain_store must be one of {CHAIN_STORES}, got {settings.chain_store!r}")

    return settings


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings (loaded on first use)"""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
