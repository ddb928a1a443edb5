"""
Configuration loading for Blunderbuss.

Config lives in ~/.config/blunderbuss/config.yaml (falling back to
./config.yaml) and declares the harnesses, optional default selections and
timing settings.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .domain import Harness
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "blunderbuss" / "config.yaml"
LOCAL_CONFIG_PATH = Path("config.yaml")


@dataclass(frozen=True)
class Defaults:
    """Entries to pre-highlight in each selection column."""

    harness: str = ""
    model: str = ""
    agent: str = ""


@dataclass(frozen=True)
class Settings:
    """Timing and limit knobs, all overridable from the ``settings`` block."""

    status_poll_interval: float = 2.0
    ticket_poll_interval: float = 5.0
    refresh_indicator_seconds: float = 3.0
    animation_interval: float = 0.05
    lock_in_flash_seconds: float = 0.2
    pulse_period_seconds: float = 2.5
    unknown_status_threshold: int = 3
    output_tail_lines: int = 400
    model_fetch_attempts: int = 3
    model_fetch_backoff: float = 1.0
    ticket_limit: int = 200


@dataclass(frozen=True)
class Config:
    harnesses: List[Harness]
    defaults: Defaults = field(default_factory=Defaults)
    settings: Settings = field(default_factory=Settings)
    path: Optional[Path] = None


def resolve_config_path(explicit: Optional[Path] = None) -> Path:
    """Pick the config file: explicit path, then the user config, then ./config.yaml."""
    if explicit is not None:
        return Path(explicit).expanduser()
    if CONFIG_PATH.exists():
        return CONFIG_PATH
    if LOCAL_CONFIG_PATH.exists():
        return LOCAL_CONFIG_PATH
    raise ConfigError(
        f"no config file found (looked in {CONFIG_PATH} and ./{LOCAL_CONFIG_PATH})"
    )


def load_config(path: Optional[Path] = None) -> Config:
    """Load and validate the config file.

    Raises:
        ConfigError: if the file is missing, is not valid YAML or fails
            validation.
    """
    config_path = resolve_config_path(path)
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {config_path}")
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to read {config_path}: {e}") from e

    config = parse_config(raw, config_path.parent)
    logger.info("Loaded %d harnesses from %s", len(config.harnesses), config_path)
    return Config(
        harnesses=config.harnesses,
        defaults=config.defaults,
        settings=config.settings,
        path=config_path,
    )


def parse_config(raw: Any, config_dir: Path) -> Config:
    """Build a Config from already-parsed YAML data."""
    if not isinstance(raw, dict):
        raise ConfigError("config must be a mapping with a 'harnesses' list")

    raw_harnesses = raw.get("harnesses")
    if not isinstance(raw_harnesses, list) or not raw_harnesses:
        raise ConfigError("config must define at least one harness")

    harnesses = []
    seen = set()
    for i, entry in enumerate(raw_harnesses):
        harness = _parse_harness(entry, i, config_dir)
        if harness.name in seen:
            raise ConfigError(f"duplicate harness name: {harness.name}")
        seen.add(harness.name)
        harnesses.append(harness)

    return Config(
        harnesses=harnesses,
        defaults=_parse_defaults(raw.get("defaults")),
        settings=_parse_settings(raw.get("settings")),
    )


def _parse_harness(entry: Any, index: int, config_dir: Path) -> Harness:
    if not isinstance(entry, dict):
        raise ConfigError(f"harness #{index + 1} must be a mapping")

    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"harness #{index + 1}: 'name' is required")

    command = entry.get("command_template")
    if not isinstance(command, str) or not command.strip():
        raise ConfigError(f"harness {name}: 'command_template' is required")

    prompt = entry.get("prompt_template") or ""
    if not isinstance(prompt, str):
        raise ConfigError(f"harness {name}: 'prompt_template' must be a string")

    env = entry.get("env") or {}
    if not isinstance(env, dict):
        raise ConfigError(f"harness {name}: 'env' must be a mapping")

    return Harness(
        name=name,
        command_template=load_template_value(command, config_dir),
        prompt_template=load_template_value(prompt, config_dir),
        models=tuple(_string_list(entry.get("models"), name, "models")),
        agents=tuple(_string_list(entry.get("agents"), name, "agents")),
        env={str(k): str(v) for k, v in env.items()},
    )


def _string_list(value: Any, harness: str, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"harness {harness}: '{field_name}' must be a list of strings")
    return list(value)


def load_template_value(value: str, config_dir: Path) -> str:
    """Return ``value``, or the contents of the file it names with a leading '@'.

    Relative paths are resolved against the config file's directory.
    """
    if not value.startswith("@"):
        return value
    template_path = Path(value[1:]).expanduser()
    if not template_path.is_absolute():
        template_path = config_dir / template_path
    try:
        return template_path.read_text()
    except FileNotFoundError:
        raise ConfigError(f"failed to load template file: {value} (file not found)")
    except OSError as e:
        raise ConfigError(f"failed to load template file: {value}: {e}") from e


def _parse_defaults(raw: Any) -> Defaults:
    if not raw:
        return Defaults()
    if not isinstance(raw, dict):
        raise ConfigError("'defaults' must be a mapping")
    return Defaults(
        harness=str(raw.get("harness") or ""),
        model=str(raw.get("model") or ""),
        agent=str(raw.get("agent") or ""),
    )


def _parse_settings(raw: Any) -> Settings:
    if not raw:
        return Settings()
    if not isinstance(raw, dict):
        raise ConfigError("'settings' must be a mapping")

    values: Dict[str, Any] = {}
    for f in fields(Settings):
        if f.name not in raw:
            continue
        caster = int if f.type in (int, "int") else float
        try:
            values[f.name] = caster(raw[f.name])
        except (TypeError, ValueError):
            raise ConfigError(f"settings.{f.name} must be a number")
    unknown = set(raw) - {f.name for f in fields(Settings)}
    if unknown:
        logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
    return Settings(**values)
