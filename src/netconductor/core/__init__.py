"""Core module - configuration, exceptions, and utilities."""

from .config import Config, get_config, set_config
from .exceptions import (
    IndexOutOfRangeError,
    NetConductorError,
    NotFoundError,
    ResolutionError,
    StoreError,
    UnsupportedUseCaseError,
    ValidationError,
)
from .utils import (
    asn_from_name,
    parse_log_level,
    segment_address,
    setup_logging,
    validate_network,
)

__all__ = [
    "Config",
    "get_config",
    "set_config",
    "NetConductorError",
    "NotFoundError",
    "ResolutionError",
    "ValidationError",
    "UnsupportedUseCaseError",
    "IndexOutOfRangeError",
    "StoreError",
    "asn_from_name",
    "parse_log_level",
    "segment_address",
    "setup_logging",
    "validate_network",
]
