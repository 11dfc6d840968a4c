"""
Configuration loader for storymapper.

Loads storymapper.yaml to determine where documents are stored and which
generator to use. If no config file exists, returns defaults.

Example storymapper.yaml:

    store_dir: .storymaps
    generator: claude
    generator_command: claude -p --output-format json
    generator_timeout: 300
    sort_by_priority: true
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from storymapper.lib.validate import ValidationError, validate

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "storymapper.yaml"
CONFIG_ENV_VAR = "STORYMAPPER_CONFIG"

VALID_GENERATORS = ("claude", "template")


@dataclass
class StoryMapperConfig:
    """Settings from storymapper.yaml."""
    store_dir: str = ".storymaps"
    generator: str = "claude"
    generator_command: str = "claude -p --output-format json"
    generator_timeout: int = 300  # Seconds before a generation falls back
    max_stored_maps: int = 50
    recent_count: int = 5
    sort_by_priority: bool = False
    log_level: str = "INFO"

    @property
    def store_path(self) -> Path:
        return Path(self.store_dir).expanduser()


def get_config_path(path: Optional[Path] = None) -> Path:
    """Resolve the config file path: explicit > $STORYMAPPER_CONFIG > ./storymapper.yaml."""
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> StoryMapperConfig:
    """Load storymapper.yaml and return StoryMapperConfig.

    Missing file returns defaults. Unparseable YAML logs a warning and
    returns defaults.

    Raises:
        ValidationError: If the file parses but has unknown keys or bad values
    """
    config_path = get_config_path(path)
    if not config_path.exists():
        return StoryMapperConfig()

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return StoryMapperConfig()

    if not data:
        return StoryMapperConfig()

    if isinstance(data, dict) and isinstance(data.get("log_level"), str):
        data["log_level"] = data["log_level"].upper()

    try:
        validate(data, "config")
    except ValidationError as e:
        raise ValidationError(e.schema_name, f"Invalid config in {config_path}: {e}") from None

    known = {f.name for f in fields(StoryMapperConfig)}
    return StoryMapperConfig(**{k: v for k, v in data.items() if k in known})
