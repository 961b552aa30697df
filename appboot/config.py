"""
Configuration management for appboot.

A Configuration is an ordered, immutable mapping from option key to value.
The bootstrap assembles it once from three layers, later layers winning:

1. config.yaml in the container working directory
2. values derived from the YARN container environment
3. -D dynamic parameters from the command line
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

import yaml

from appboot import environment as env_keys
from appboot import options
from appboot.errors import ConfigError
from appboot.options import ConfigOption, encode_value

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"

# Deprecated container environment prefixes and their replacements
DEPRECATED_PREFIXES = {
    "yarn.application-master.env.": "containerized.master.env.",
    "yarn.taskmanager.env.": "containerized.taskmanager.env.",
}

KeyLike = Union[str, ConfigOption]


def _key(key: KeyLike) -> str:
    return key.key if isinstance(key, ConfigOption) else key


class Configuration:
    """Ordered, read-only option mapping.

    Modifying methods return a new Configuration.
    """

    def __init__(self, values: Optional[Mapping[KeyLike, Any]] = None):
        self._values: Dict[str, Any] = {}
        for key, value in (values or {}).items():
            self._values[_key(key)] = encode_value(value)

    @classmethod
    def from_layers(cls, *layers: Mapping[KeyLike, Any]) -> "Configuration":
        """Merge layers in order; a later layer overrides an earlier one."""
        merged: Dict[str, Any] = {}
        for layer in layers:
            source = layer.to_dict() if isinstance(layer, Configuration) else layer
            for key, value in source.items():
                merged[_key(key)] = value
        return cls(merged)

    def get(self, option: ConfigOption) -> Any:
        """Get an option value, falling back to the option default.

        Raises:
            ConfigError: If the stored value cannot be converted
        """
        value = self.get_optional(option)
        if value is None:
            default = option.default
            return list(default) if isinstance(default, list) else default
        return value

    def get_optional(self, option: ConfigOption) -> Any:
        """Get an option value, or None if neither the key nor a deprecated key is set."""
        for key in option.all_keys():
            if key in self._values:
                try:
                    return option.convert(self._values[key])
                except (TypeError, ValueError) as e:
                    raise ConfigError(
                        f"Invalid value for '{key}': {self._values[key]!r} ({e})"
                    ) from e
        return None

    def contains(self, option: KeyLike) -> bool:
        if isinstance(option, ConfigOption):
            return any(key in self._values for key in option.all_keys())
        return option in self._values

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a raw value as a string."""
        if key not in self._values:
            return default
        return str(self._values[key])

    def with_values(self, values: Mapping[KeyLike, Any]) -> "Configuration":
        return Configuration.from_layers(self, values)

    def without(self, *keys: KeyLike) -> "Configuration":
        drop = {_key(k) for k in keys}
        return Configuration({k: v for k, v in self._values.items() if k not in drop})

    def keys(self) -> list[str]:
        return list(self._values)

    def to_dict(self) -> Dict[str, Any]:
        return {k: list(v) if isinstance(v, list) else v for k, v in self._values.items()}

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (str, ConfigOption)) and self.contains(key)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Configuration(keys={len(self._values)})"


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested YAML mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def load_config_file(working_directory: Path) -> Dict[str, Any]:
    """
    Load config.yaml from the working directory.

    Returns:
        Flattened key/value mapping; empty if the file does not exist

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    config_path = Path(working_directory) / CONFIG_FILE_NAME
    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}, using defaults")
        return {}

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")

    logger.info(f"Loading configuration from {config_path}")
    return _flatten(data)


def resolve_keytab_path(working_directory: Path, local_keytab_path: Optional[str]) -> Optional[str]:
    """Resolve a keytab path relative to the working directory."""
    if local_keytab_path is None:
        return None
    keytab = Path(local_keytab_path)
    if not keytab.is_absolute():
        keytab = Path(working_directory) / keytab
    return str(keytab.absolute())


def environment_layer(
    working_directory: Path,
    file_values: Mapping[str, Any],
    environment: Mapping[str, str],
) -> Dict[str, Any]:
    """Derive configuration values from the YARN container environment.

    Raises:
        ConfigError: If the node manager host variable is not set
    """
    hostname = environment.get(env_keys.ENV_NM_HOST)
    if hostname is None:
        raise ConfigError(
            f"ApplicationMaster hostname variable {env_keys.ENV_NM_HOST} not set"
        )

    layer: Dict[str, Any] = {
        options.JOBMANAGER_ADDRESS.key: hostname,
        options.REST_ADDRESS.key: hostname,
        options.REST_BIND_ADDRESS.key: hostname,
    }

    # Random REST port unless the user pinned one
    if options.REST_BIND_PORT.key not in file_values:
        layer[options.REST_BIND_PORT.key] = "0"

    local_dirs = environment.get(env_keys.ENV_LOCAL_DIRS)
    if local_dirs and options.IO_TMP_DIRS.key not in file_values:
        layer[options.IO_TMP_DIRS.key] = local_dirs

    keytab_path = resolve_keytab_path(
        working_directory, environment.get(env_keys.ENV_KEYTAB_PATH)
    )
    keytab_principal = environment.get(env_keys.ENV_KEYTAB_PRINCIPAL)
    if keytab_path is not None and keytab_principal is not None:
        layer[options.KERBEROS_LOGIN_KEYTAB.key] = keytab_path
        layer[options.KERBEROS_LOGIN_PRINCIPAL.key] = keytab_principal

    return layer


def substitute_deprecated_prefixes(configuration: Configuration) -> Configuration:
    """Copy deprecated prefixed keys to their replacement prefix.

    Keys already present under the new prefix are left alone.
    """
    additions: Dict[str, Any] = {}
    values = configuration.to_dict()
    for key, value in values.items():
        for old_prefix, new_prefix in DEPRECATED_PREFIXES.items():
            if key.startswith(old_prefix):
                new_key = new_prefix + key[len(old_prefix):]
                if new_key not in values:
                    additions[new_key] = value
    if not additions:
        return configuration
    return configuration.with_values(additions)


def load_configuration(
    working_directory: Union[str, Path],
    dynamic_parameters: Mapping[str, Any],
    environment: Optional[Mapping[str, str]] = None,
) -> Configuration:
    """
    Assemble the bootstrap configuration.

    Args:
        working_directory: Container working directory holding config.yaml
        dynamic_parameters: -D parameters from the command line
        environment: Process environment. Defaults to os.environ

    Returns:
        Configuration with precedence dynamic > environment > file

    Raises:
        ConfigError: If the file is invalid or required environment is missing
    """
    if environment is None:
        environment = os.environ

    working_directory = Path(working_directory)
    file_values = load_config_file(working_directory)
    env_values = environment_layer(working_directory, file_values, environment)

    configuration = Configuration.from_layers(file_values, env_values, dynamic_parameters)
    return substitute_deprecated_prefixes(configuration)
