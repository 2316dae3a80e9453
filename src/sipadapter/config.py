"""Configuration for sipadapter."""

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

from .exceptions import ConfigurationError

_REQUIRED = ('endpoint', 'domain', 'user', 'origin_sip_uri', 'user_agent')


@dataclass(frozen=True)
class AdapterConfig:
    """Settings the adapter reads once, when it builds its user agent."""
    endpoint: str                                        # wss://... URL
    domain: str                                          # registrar realm
    user: str                                            # authorization user
    origin_sip_uri: str                                  # our address-of-record
    user_agent: str                                      # product token, engine token is appended
    display_name: Optional[str] = None
    logger: Optional[logging.Logger] = None
    engine_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        missing = [name for name in _REQUIRED if not getattr(self, name)]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
        object.__setattr__(self, 'engine_options', MappingProxyType(dict(self.engine_options)))

    @property
    def trace_sip(self) -> bool:
        """Protocol tracing follows the verbosity of the configured logger."""
        return self.logger is not None and self.logger.isEnabledFor(logging.DEBUG)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], logger: Optional[logging.Logger] = None) -> "AdapterConfig":
        """Build a config from a flat mapping.

        Keys that are not adapter fields are forwarded to the engine, merged
        over an explicit 'engine_options' entry.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and k != 'engine_options'}
        engine_options = dict(data.get('engine_options') or {})
        engine_options.update({k: v for k, v in data.items() if k not in known})
        if logger is not None:
            values['logger'] = logger
        return cls(engine_options=engine_options, **values)

    @classmethod
    def from_yaml(cls, path: str, logger: Optional[logging.Logger] = None) -> "AdapterConfig":
        """Load config from a YAML file, with environment variable expansion.

        Environment variables in the format ${VAR_NAME} are expanded.
        """
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            raw = f.read()

        def expand_env(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))

        raw = re.sub(r'\$\{(\w+)\}', expand_env, raw)
        try:
            data = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping in {config_path}")

        return cls.from_dict(data, logger=logger)
