"""
YAML generator configuration for idlgen.

Example::

    package: shapes
    outdir: gen/
    includes:
      - example.com/shapes/common
    include_dirs: [idl/, third_party/idl]
    fail_fast: false
    formatters: [goimports, gofmt]

Every key is optional.  Command-line flags override values read here.
"""

import yaml
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ConfigError
from .formatter import DEFAULT_FORMATTERS


@dataclass
class GeneratorConfig:
    """Parsed generator configuration."""
    package: Optional[str] = None
    outdir: Optional[str] = None
    includes: List[str] = field(default_factory=list)
    include_dirs: List[str] = field(default_factory=list)
    fail_fast: bool = False
    formatters: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATTERS))


KNOWN_KEYS = {"package", "outdir", "includes", "include_dirs", "fail_fast",
              "formatters"}


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _str_list(data: dict, key: str, default: List[str]) -> List[str]:
    """Require a list of strings under key when present."""
    value = data.get(key)
    if value is None:
        return list(default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return value


def parse_config_yaml(yaml_str: str) -> GeneratorConfig:
    """Parse a YAML configuration string into a GeneratorConfig.

    Args:
        yaml_str: YAML string containing the configuration.

    Returns:
        GeneratorConfig with defaults for absent keys.

    Raises:
        ConfigError: If the YAML is invalid, has unknown keys or wrong types.
    """
    if not yaml_str or not yaml_str.strip():
        return GeneratorConfig()

    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e

    if data is None:
        return GeneratorConfig()
    if not isinstance(data, dict):
        raise ConfigError("YAML root must be a mapping")

    unknown = sorted(str(k) for k in data if k not in KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    fail_fast = data.get("fail_fast", False)
    if fail_fast is None:
        fail_fast = False
    if not isinstance(fail_fast, bool):
        raise ConfigError("'fail_fast' must be true or false")

    return GeneratorConfig(
        package=_optional_str(data, "package"),
        outdir=_optional_str(data, "outdir"),
        includes=_str_list(data, "includes", []),
        include_dirs=_str_list(data, "include_dirs", []),
        fail_fast=fail_fast,
        formatters=_str_list(data, "formatters", list(DEFAULT_FORMATTERS)),
    )


def load_config(path: str) -> GeneratorConfig:
    with open(path) as f:
        text = f.read()
    try:
        return parse_config_yaml(text)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e.message}") from e
