"""Directory-backed topology store (JSON files)."""

import json
import logging
from pathlib import Path
from typing import Any

from ..core.config import get_config
from ..core.exceptions import NotFoundError, StoreError
from .base import TopologyStore

logger = logging.getLogger(__name__)


class FileTopologyStore(TopologyStore):
    """Topology store on the local filesystem.

    Layout::

        <root>/<network>/<snapshot>/topology.json
        <root>/<network>/<snapshot>/snapshot_patterns.json
        <root>/usecases/<usecase>/<network>/<source_key>.json
    """

    def __init__(self, root_dir: Path | str | None = None):
        self.root_dir = Path(root_dir) if root_dir else get_config().store.root_dir

    def topology_path(self, network: str, snapshot: str) -> Path:
        return self.root_dir / network / snapshot / "topology.json"

    def _read(self, path: Path, what: str) -> Any:
        if not path.exists():
            raise NotFoundError(f"{what} is not found", str(path))
        try:
            with open(path) as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt JSON file: {path}", str(e)) from e

    def fetch_topology(self, network: str, snapshot: str) -> dict:
        return self._read(
            self.topology_path(network, snapshot), f"Topology data of {network}/{snapshot}"
        )

    def store_topology(self, network: str, snapshot: str, topology_data: dict) -> dict:
        path = self.topology_path(network, snapshot)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(topology_data, f, indent=2)
        logger.info("Topology %s/%s saved to %s", network, snapshot, path)
        return topology_data

    def fetch_snapshot_patterns(self, network: str, snapshot: str) -> list[dict]:
        path = self.root_dir / network / snapshot / "snapshot_patterns.json"
        return self._read(path, f"Snapshot patterns of {network}/{snapshot}")

    def fetch_usecase_source(self, usecase: str, network: str, source_key: str) -> Any:
        path = self.root_dir / "usecases" / usecase / network / f"{source_key}.json"
        return self._read(path, f"Usecase source {usecase}/{network}/{source_key}")
