"""Network sets: maximal groups of mutually reachable nodes in a layer."""

import logging
from dataclasses import dataclass

import networkx as nx

from ..core.exceptions import NotFoundError, ResolutionError
from .model import Network, Networks

logger = logging.getLogger(__name__)


@dataclass
class NetworkSets:
    """Partition of one layer's nodes into connected groups."""

    network: str
    node_sets: list[frozenset[str]]

    @property
    def node_count(self) -> int:
        return sum(len(s) for s in self.node_sets)

    def node_index(self) -> dict[str, frozenset[str]]:
        """Map each node to the set containing it."""
        return {node: node_set for node_set in self.node_sets for node in node_set}

    def all_nodes(self) -> set[str]:
        nodes: set[str] = set()
        for node_set in self.node_sets:
            nodes |= node_set
        return nodes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NetworkSets):
            return NotImplemented
        return self.network == other.network and set(self.node_sets) == set(other.node_sets)

    def to_dict(self) -> dict:
        return {
            "network": self.network,
            "network_sets": [sorted(s) for s in _sorted_sets(self.node_sets)],
        }

    def __str__(self) -> str:
        lines = [f"Network: {self.network} ({len(self.node_sets)} sets, {self.node_count} nodes)"]
        for i, node_set in enumerate(_sorted_sets(self.node_sets), start=1):
            lines.append(f"  [{i}] {', '.join(sorted(node_set))}")
        return "\n".join(lines)


def _sorted_sets(node_sets: list[frozenset[str]]) -> list[frozenset[str]]:
    return sorted(node_sets, key=lambda s: (-len(s), sorted(s)))


def build_graph(network: Network) -> nx.Graph:
    """Undirected graph of a layer; every directed link connects both ways."""
    graph = nx.Graph()
    graph.add_nodes_from(node.name for node in network.nodes)

    for link in network.links:
        for edge in (link.source, link.destination):
            if edge.node_ref not in graph:
                raise ResolutionError(
                    f"Link endpoint node {edge.node_ref} not found in {network.name}",
                    f"link: {link.name}",
                )
        graph.add_edge(link.source.node_ref, link.destination.node_ref)

    return graph


def find_network_sets(networks: Networks, layer: str = "layer3") -> NetworkSets:
    """
    Compute the network sets of a layer.

    Args:
        networks: Loaded topology snapshot
        layer: Name of the layer to partition

    Returns:
        NetworkSets of the layer (link-less nodes are singleton sets)
    """
    network = networks.find_network(layer)
    if network is None:
        raise NotFoundError(f"Network (layer) {layer} is not found in topology")

    graph = build_graph(network)
    node_sets = [frozenset(c) for c in nx.connected_components(graph)]
    logger.debug("%s: %d nodes in %d network sets", layer, graph.number_of_nodes(), len(node_sets))
    return NetworkSets(network=layer, node_sets=node_sets)


def find_all_network_sets(networks: Networks) -> list[NetworkSets]:
    """Network sets of every layer in the topology."""
    return [find_network_sets(networks, nw.name) for nw in networks.networks]
