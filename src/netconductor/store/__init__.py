"""Topology store - interface and backends (REST, files)."""

from ..core.config import StoreConfig, get_config
from .base import TopologyStore
from .file import FileTopologyStore
from .rest import RestTopologyStore


def open_store(config: StoreConfig | None = None) -> TopologyStore:
    """Create the store backend selected in the configuration."""
    config = config or get_config().store
    if config.backend == "rest":
        return RestTopologyStore(config)
    return FileTopologyStore(config.root_dir)


__all__ = [
    "TopologyStore",
    "FileTopologyStore",
    "RestTopologyStore",
    "open_store",
]
