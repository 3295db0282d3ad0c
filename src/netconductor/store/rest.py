"""REST client for the topology (netomox-exp) and config-analysis backends."""

import logging
from typing import Any

import httpx

from ..core.config import StoreConfig, get_config
from ..core.exceptions import NotFoundError, StoreError
from .base import TopologyStore

logger = logging.getLogger(__name__)

LOG_DATA_LIMIT = 80


def _truncate(data: Any) -> str:
    text = str(data)
    return text if len(text) < LOG_DATA_LIMIT else f"{text[: LOG_DATA_LIMIT - 3]}..."


class RestTopologyStore(TopologyStore):
    """Topology store backed by the backend REST APIs.

    Paths under ``/topologies`` and ``/usecases`` go to the topology host,
    everything else (``/configs``, ``/batfish``) to the config-analysis host.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or get_config().store
        self._client = httpx.Client(timeout=self.config.timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RestTopologyStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def dispatch_url(self, api_path: str) -> str:
        path = api_path.lstrip("/")
        if path.startswith(("topologies", "usecases")):
            host = self.config.netomox_exp_host
        else:
            host = self.config.batfish_wrapper_host
        return f"http://{host}/{path}"

    def _request(self, method: str, api_path: str, **kwargs: Any) -> Any:
        url = self.dispatch_url(api_path)
        if "json" in kwargs:
            logger.info("%s: %s, data=%s", method, url, _truncate(kwargs["json"]))
        else:
            logger.info("%s: %s, param=%s", method, url, kwargs.get("params", {}))

        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {url} failed", str(e)) from e

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {api_path}")
        if response.is_error:
            logger.error("[ERROR] %d < %s %s", response.status_code, method, url)
            raise StoreError(f"{method} {url} returned {response.status_code}", response.text[:200])

        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"Invalid JSON from {url}", str(e)) from e

    def fetch_topology(self, network: str, snapshot: str) -> dict:
        try:
            data = self._request("GET", f"/topologies/{network}/{snapshot}/topology")
        except NotFoundError as e:
            raise NotFoundError(f"Topology data of {network}/{snapshot} is not found") from e
        if not data:
            raise NotFoundError(f"Topology data of {network}/{snapshot} is not found")
        return data

    def store_topology(self, network: str, snapshot: str, topology_data: dict) -> dict:
        return self._request(
            "POST",
            f"/topologies/{network}/{snapshot}/topology",
            json={"topology_data": topology_data},
        )

    def fetch_snapshot_patterns(self, network: str, snapshot: str) -> list[dict]:
        return self._request("GET", f"/configs/{network}/{snapshot}/snapshot_patterns")

    def fetch_usecase_source(self, usecase: str, network: str, source_key: str) -> Any:
        return self._request("GET", f"/usecases/{usecase}/{network}/{source_key}")
