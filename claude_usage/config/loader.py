"""
Configuration management and loading.

Handles the data location, day bucketing time zone, directory filters and
pricing overrides.
"""

import math
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from ..core.pricing import DEFAULT_PRICING_TABLE, ModelPricing, PricingTable
from ..core.scanner import DEFAULT_SKIP_PREFIXES, DEFAULT_SKIP_SUBSTRINGS

DEFAULT_BASE_PATH = "~/.claude"
LOCAL_TIMEZONE = "local"

_ALLOWED_KEYS = {
    'base_path',
    'timezone',
    'max_files',
    'skip_directory_prefixes',
    'skip_directory_substrings',
    'default_family',
    'pricing',
}
_RATE_KEYS = ('input', 'output', 'cache_write', 'cache_read')


@dataclass(frozen=True)
class UsageConfig:
    """Complete usage configuration."""
    base_path: str = DEFAULT_BASE_PATH
    timezone: str = LOCAL_TIMEZONE
    max_files: Optional[int] = None
    skip_directory_prefixes: Tuple[str, ...] = DEFAULT_SKIP_PREFIXES
    skip_directory_substrings: Tuple[str, ...] = DEFAULT_SKIP_SUBSTRINGS
    default_family: str = DEFAULT_PRICING_TABLE.default_family
    pricing_overrides: Dict[str, ModelPricing] = field(default_factory=dict)

    def __post_init__(self):
        """Validate values that do not depend on the file format."""
        if not self.base_path or not self.base_path.strip():
            raise ValueError("base_path cannot be empty")
        if self.max_files is not None and self.max_files <= 0:
            raise ValueError("max_files must be > 0")
        # Fails early on unknown zone names
        self.tzinfo()
        self.pricing_table()

    @property
    def projects_path(self) -> Path:
        """The ``projects`` directory under the base path."""
        return Path(self.base_path).expanduser() / "projects"

    def tzinfo(self) -> Optional[tzinfo]:
        """Time zone for day bucketing; None means the local zone."""
        if self.timezone.lower() == LOCAL_TIMEZONE:
            return None
        if self.timezone.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {self.timezone}")

    def pricing_table(self) -> PricingTable:
        """Built-in rate cards with the configured overrides applied."""
        return DEFAULT_PRICING_TABLE.with_overrides(
            self.pricing_overrides,
            default_family=self.default_family,
        )


def load_config(path: Optional[str] = None) -> UsageConfig:
    """Load and validate configuration from a YAML file.

    Unknown keys are rejected so a typo cannot silently fall back to a
    default.

    Args:
        path: Path to YAML configuration file, or None for defaults

    Returns:
        Validated UsageConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return UsageConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return UsageConfig()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - _ALLOWED_KEYS
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    kwargs: Dict[str, Any] = {}

    if 'base_path' in raw_config:
        kwargs['base_path'] = _require_str(raw_config['base_path'], 'base_path')

    if 'timezone' in raw_config:
        kwargs['timezone'] = _require_str(raw_config['timezone'], 'timezone')

    if raw_config.get('max_files') is not None:
        max_files = raw_config['max_files']
        if isinstance(max_files, bool) or not isinstance(max_files, int):
            raise ValueError("'max_files' must be an integer")
        kwargs['max_files'] = max_files

    for key in ('skip_directory_prefixes', 'skip_directory_substrings'):
        if key in raw_config:
            kwargs[key] = _parse_str_list(raw_config[key], key)

    if 'default_family' in raw_config:
        kwargs['default_family'] = _require_str(raw_config['default_family'], 'default_family')

    pricing_data = raw_config.get('pricing') or {}
    if not isinstance(pricing_data, dict):
        raise ValueError("'pricing' must be a dictionary")
    kwargs['pricing_overrides'] = {
        str(family): _parse_rate_card(rates, f"pricing.{family}")
        for family, rates in pricing_data.items()
    }

    return UsageConfig(**kwargs)


def _require_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{path}' must be a non-empty string")
    return value


def _parse_str_list(value: Any, path: str) -> Tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"'{path}' must be a list")
    for item in value:
        if not isinstance(item, str) or not item:
            raise ValueError(f"'{path}' entries must be non-empty strings")
    return tuple(value)


def _parse_rate_card(data: Any, path: str) -> ModelPricing:
    """Parse and validate one family's rate card.

    Args:
        data: Mapping of rate name to price per million tokens
        path: Path for error messages

    Returns:
        Validated ModelPricing

    Raises:
        ValueError: If the rate card is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    unknown_keys = set(data.keys()) - set(_RATE_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    rates = {}
    for key in _RATE_KEYS:
        if key not in data:
            raise ValueError(f"Missing required '{key}' in {path}")
        value = data[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"'{key}' in {path} must be a number")
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"'{key}' in {path} must be a finite number >= 0")
        rates[key] = Decimal(str(value))

    return ModelPricing(
        input_per_million=rates['input'],
        output_per_million=rates['output'],
        cache_write_per_million=rates['cache_write'],
        cache_read_per_million=rates['cache_read'],
    )
