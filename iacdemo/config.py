"""
Stack configuration loaded from an optional YAML file.
"""
import os
from dataclasses import dataclass, fields, replace
from typing import Optional

import yaml
from rich.console import Console

from iacdemo.errors import ConfigError

console = Console(stderr=True)

DEFAULT_CONFIG_FILE = "iacdemo.yaml"


@dataclass(frozen=True)
class StackConfig:
    stack_name: str = "IacDemoStack"
    description: Optional[str] = None
    table_name: str = "iacDemoBlogTable"
    stage_name: str = "beta"
    asset_path: str = "./api-lambda/lambda-api-function.zip"
    memory_size: int = 128
    timeout: int = 10


_TYPES = {
    "stack_name": str,
    "description": str,
    "table_name": str,
    "stage_name": str,
    "asset_path": str,
    "memory_size": int,
    "timeout": int,
}


def load_config(path: Optional[str] = None) -> StackConfig:
    """
    Read the YAML config at ``path`` (or ``iacdemo.yaml`` in the working
    directory). A missing default file means defaults; a missing explicit
    file is an error.
    """
    config_path = path or DEFAULT_CONFIG_FILE
    if not os.path.exists(config_path):
        if path:
            raise ConfigError(f"config file '{path}' does not exist")
        return StackConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {config_path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read {config_path}: {exc}") from exc

    if data is None:
        return StackConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")

    known = {f.name for f in fields(StackConfig)}
    values = {}
    for key, val in data.items():
        if key not in known:
            console.print(f"[yellow]Warning:[/yellow] unknown config key '{key}' in {config_path}, ignoring.")
            continue
        if val is None:
            continue
        expected = _TYPES[key]
        # bool is an int subclass; reject it for numeric settings
        if not isinstance(val, expected) or isinstance(val, bool):
            raise ConfigError(
                f"{config_path}: '{key}' must be {expected.__name__}, got {type(val).__name__}"
            )
        values[key] = val

    return replace(StackConfig(), **values)
