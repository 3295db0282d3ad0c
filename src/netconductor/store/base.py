"""Topology store interface."""

import abc
from typing import Any

from ..topology.model import Networks


class TopologyStore(abc.ABC):
    """Where topology snapshots and their metadata are read and written.

    Snapshots are keyed by ``(network, snapshot)``; the value is the RFC 8345
    dict handled by ``Networks.from_data`` / ``Networks.to_data``.
    """

    @abc.abstractmethod
    def fetch_topology(self, network: str, snapshot: str) -> dict:
        """Return topology data; raise NotFoundError if absent."""

    @abc.abstractmethod
    def store_topology(self, network: str, snapshot: str, topology_data: dict) -> dict:
        """Create or overwrite a snapshot; return the stored data."""

    @abc.abstractmethod
    def fetch_snapshot_patterns(self, network: str, snapshot: str) -> list[dict]:
        """Return the logical snapshot patterns derived from a physical snapshot."""

    @abc.abstractmethod
    def fetch_usecase_source(self, usecase: str, network: str, source_key: str) -> Any:
        """Return use-case parameter data (params, flow data, ...)."""

    def load_topology(self, network: str, snapshot: str) -> Networks:
        """Fetch a snapshot and build a fresh topology instance from it."""
        return Networks.from_data(self.fetch_topology(network, snapshot))
