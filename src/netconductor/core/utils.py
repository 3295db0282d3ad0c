"""Utility functions for netconductor."""

import logging
import re
from ipaddress import IPv4Network, IPv6Network, ip_interface, ip_network

from rich.logging import RichHandler

from .config import get_config
from .exceptions import ValidationError

LOG_LEVELS = {
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_AS_NAME_RE = re.compile(r"^as(\d+)$", re.IGNORECASE)


def parse_log_level(level: str | None) -> int:
    """Map a level name (fatal/error/warn/info/debug) to a logging level."""
    if not level:
        return logging.INFO
    return LOG_LEVELS.get(level.strip().lower(), logging.INFO)


def setup_logging(level: str | int | None = None) -> None:
    """Route netconductor logs to stderr through rich."""
    if level is None:
        level = get_config().log_level
    if isinstance(level, str):
        level = parse_log_level(level)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def validate_network(network_str: str) -> IPv4Network | IPv6Network:
    """Validate and parse a network CIDR string."""
    try:
        return ip_network(network_str, strict=False)
    except ValueError as e:
        raise ValidationError(f"Invalid network: {network_str}", str(e)) from e


def segment_address(ip_with_prefix: str) -> str:
    """Return the subnet of an interface address ("a.b.c.d/nn" -> "network/nn")."""
    try:
        iface = ip_interface(ip_with_prefix)
    except ValueError as e:
        raise ValidationError(f"Invalid interface address: {ip_with_prefix}", str(e)) from e
    return f"{iface.network.network_address}/{iface.network.prefixlen}"


def asn_from_name(name: str) -> int | None:
    """Extract the AS number from a bgp_as node name like "as65550"."""
    match = _AS_NAME_RE.match(name)
    if not match:
        return None
    return int(match.group(1))

