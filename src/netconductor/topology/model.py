"""Multi-layer (RFC 8345) topology model.

A ``Networks`` instance is built fresh from the wire-format dict on every
operation, mutated in place, and serialized back with ``to_data()``. Keys the
loaded data did not carry stay absent, and keys it carried are written back
even when empty or null.
Support references and link endpoints are kept as names and resolved through
per-layer indices, so a dangling reference is a reportable error instead of
a broken pointer.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from ..core.exceptions import ResolutionError, ValidationError
from .attributes import (
    NODE_ATTRIBUTE_TYPES,
    TP_ATTRIBUTE_TYPES,
    Attribute,
    BgpProcNodeAttribute,
    L3NodeAttribute,
    PrefixSet,
    pop_attribute,
)

logger = logging.getLogger(__name__)

NS_NW = "ietf-network"
NS_TOPO = "ietf-network-topology"

NETWORKS_KEY = f"{NS_NW}:networks"
LINK_KEY = f"{NS_TOPO}:link"
TP_KEY = f"{NS_TOPO}:termination-point"
NODE_SUPPORT_KEY = "supporting-node"
TP_SUPPORT_KEY = "supporting-termination-point"


def _put_list(data: dict, key: str, items: list, present: set[str]) -> None:
    """Write a list key when it has items or was in the loaded data."""
    if items or key in present:
        data[key] = items


@dataclass(frozen=True)
class SupportingNode:
    """Reference to a node in a lower layer."""

    network_ref: str
    node_ref: str

    @classmethod
    def from_data(cls, data: dict) -> "SupportingNode":
        return cls(network_ref=data["network-ref"], node_ref=data["node-ref"])

    def to_data(self) -> dict:
        return {"network-ref": self.network_ref, "node-ref": self.node_ref}

    def __str__(self) -> str:
        return f"{self.network_ref}/{self.node_ref}"


@dataclass(frozen=True)
class SupportingTermPoint:
    """Reference to a term-point in a lower layer."""

    network_ref: str
    node_ref: str
    tp_ref: str

    @classmethod
    def from_data(cls, data: dict) -> "SupportingTermPoint":
        return cls(
            network_ref=data["network-ref"],
            node_ref=data["node-ref"],
            tp_ref=data["tp-ref"],
        )

    def to_data(self) -> dict:
        return {"network-ref": self.network_ref, "node-ref": self.node_ref, "tp-ref": self.tp_ref}

    def __str__(self) -> str:
        return f"{self.network_ref}/{self.node_ref}[{self.tp_ref}]"


@dataclass(frozen=True)
class TpRef:
    """Link edge: a term-point in the same layer as the link."""

    network_ref: str
    node_ref: str
    tp_ref: str

    def __str__(self) -> str:
        return f"{self.network_ref}/{self.node_ref}[{self.tp_ref}]"


@dataclass
class TermPoint:
    """Termination point (interface) of a node."""

    name: str
    parent_name: str
    network_name: str
    attribute: Attribute | None = None
    supports: list[SupportingTermPoint] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    present: set[str] = field(default_factory=set, compare=False, repr=False)

    @classmethod
    def from_data(cls, data: dict, parent_name: str, network_name: str) -> "TermPoint":
        data = dict(data)
        present = data.keys() & {TP_SUPPORT_KEY}
        name = data.pop("tp-id")
        supports = [SupportingTermPoint.from_data(s) for s in data.pop(TP_SUPPORT_KEY, [])]
        attribute = pop_attribute(data, TP_ATTRIBUTE_TYPES)
        return cls(
            name=name,
            parent_name=parent_name,
            network_name=network_name,
            attribute=attribute,
            supports=supports,
            extra=data,
            present=present,
        )

    def to_data(self) -> dict:
        data: dict[str, Any] = {"tp-id": self.name}
        _put_list(data, TP_SUPPORT_KEY, [s.to_data() for s in self.supports], self.present)
        if self.attribute is not None:
            data[self.attribute.KEY] = self.attribute.to_data()
        data.update(self.extra)
        return data

    @property
    def ref(self) -> TpRef:
        return TpRef(self.network_name, self.parent_name, self.name)

    def single_support(self) -> SupportingTermPoint:
        """The one supporting term-point an upper-layer tp must have."""
        if len(self.supports) != 1:
            raise ResolutionError(
                f"Term-point {self.ref} must have exactly one support",
                f"found {len(self.supports)}",
            )
        return self.supports[0]

    def __str__(self) -> str:
        return str(self.ref)


@dataclass
class Node:
    """Node of a network layer."""

    name: str
    network_name: str
    attribute: Attribute | None = None
    term_points: list[TermPoint] = field(default_factory=list)
    supports: list[SupportingNode] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    present: set[str] = field(default_factory=set, compare=False, repr=False)

    @classmethod
    def from_data(cls, data: dict, network_name: str) -> "Node":
        data = dict(data)
        present = data.keys() & {NODE_SUPPORT_KEY, TP_KEY}
        name = data.pop("node-id")
        supports = [SupportingNode.from_data(s) for s in data.pop(NODE_SUPPORT_KEY, [])]
        attribute = pop_attribute(data, NODE_ATTRIBUTE_TYPES)
        node = cls(
            name=name,
            network_name=network_name,
            attribute=attribute,
            supports=supports,
            present=present,
        )
        for tp_data in data.pop(TP_KEY, []):
            tp = TermPoint.from_data(tp_data, name, network_name)
            if node.find_term_point(tp.name) is not None:
                raise ValidationError(f"Duplicate term-point {tp.name} in {network_name}/{name}")
            node.term_points.append(tp)
        node.extra = data
        return node

    def to_data(self) -> dict:
        data: dict[str, Any] = {"node-id": self.name}
        _put_list(data, NODE_SUPPORT_KEY, [s.to_data() for s in self.supports], self.present)
        if self.attribute is not None:
            data[self.attribute.KEY] = self.attribute.to_data()
        _put_list(data, TP_KEY, [tp.to_data() for tp in self.term_points], self.present)
        data.update(self.extra)
        return data

    def find_term_point(self, name: str) -> TermPoint | None:
        return next((tp for tp in self.term_points if tp.name == name), None)

    def append_term_point(self, term_point: TermPoint) -> TermPoint:
        """Append a term-point unless one of the same name exists."""
        existing = self.find_term_point(term_point.name)
        if existing is not None:
            return existing
        term_point.parent_name = self.name
        term_point.network_name = self.network_name
        self.term_points.append(term_point)
        return term_point

    def append_support(self, support: SupportingNode) -> None:
        if support in self.supports:
            return
        self.supports.append(support)

    def append_support_by_node(self, node: "Node") -> None:
        self.append_support(SupportingNode(node.network_name, node.name))

    def supported_by(self, network_ref: str, node_ref: str) -> bool:
        return any(s.network_ref == network_ref and s.node_ref == node_ref for s in self.supports)

    def find_prefix_set(self, name_pattern: str) -> PrefixSet | None:
        """Find a BGP prefix-set whose name contains `name_pattern`."""
        if not isinstance(self.attribute, BgpProcNodeAttribute):
            return None
        return next((ps for ps in self.attribute.prefix_sets if name_pattern in ps.name), None)

    def has_flag(self, flag: str) -> bool:
        return flag in getattr(self.attribute, "flags", [])

    def __str__(self) -> str:
        return f"{self.network_name}/{self.name}"


@dataclass
class Link:
    """Directed link between two term-points of the same layer."""

    source: TpRef
    destination: TpRef
    link_id: str | None = field(default=None, compare=False)
    extra: dict[str, Any] = field(default_factory=dict, compare=False)
    # loaded without a link-id; the derived name is not written back
    anonymous: bool = field(default=False, compare=False, repr=False)

    @classmethod
    def from_data(cls, data: dict, network_name: str) -> "Link":
        data = dict(data)
        src = data.pop("source")
        dst = data.pop("destination")
        return cls(
            source=TpRef(network_name, src["source-node"], src["source-tp"]),
            destination=TpRef(network_name, dst["dest-node"], dst["dest-tp"]),
            anonymous="link-id" not in data,
            link_id=data.pop("link-id", None),
            extra=data,
        )

    @classmethod
    def between(cls, src_tp: TermPoint, dst_tp: TermPoint, network_name: str) -> "Link":
        return cls(
            source=TpRef(network_name, src_tp.parent_name, src_tp.name),
            destination=TpRef(network_name, dst_tp.parent_name, dst_tp.name),
        )

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (
            self.source.node_ref,
            self.source.tp_ref,
            self.destination.node_ref,
            self.destination.tp_ref,
        )

    @property
    def name(self) -> str:
        return self.link_id or ",".join(self.key)

    def to_data(self) -> dict:
        data: dict[str, Any] = {} if self.anonymous else {"link-id": self.name}
        data["source"] = {"source-node": self.source.node_ref, "source-tp": self.source.tp_ref}
        data["destination"] = {
            "dest-node": self.destination.node_ref,
            "dest-tp": self.destination.tp_ref,
        }
        data.update(self.extra)
        return data

    def __str__(self) -> str:
        return f"{self.source} -> {self.destination}"


class Network:
    """A layer of the topology: nodes and links indexed by name."""

    def __init__(
        self,
        name: str,
        network_types: dict[str, Any] | None = None,
        extra: dict[str, Any] | None = None,
    ):
        self.name = name
        self.network_types = network_types if network_types is not None else {}
        self.extra = extra or {}
        self._nodes: dict[str, Node] = {}
        self._links: dict[tuple[str, str, str, str], Link] = {}
        self.present: set[str] = set()

    @classmethod
    def from_data(cls, data: dict) -> "Network":
        data = dict(data)
        network = cls(data.pop("network-id"))
        network.present = data.keys() & {"network-types", "node", LINK_KEY}
        if "network-types" in data:
            network.network_types = data.pop("network-types")
        for node_data in data.pop("node", []):
            node = Node.from_data(node_data, network.name)
            if node.name in network._nodes:
                raise ValidationError(f"Duplicate node {node.name} in network {network.name}")
            network._nodes[node.name] = node
        for link_data in data.pop(LINK_KEY, []):
            network.append_link(Link.from_data(link_data, network.name))
        network.extra = data
        return network

    def to_data(self) -> dict:
        data: dict[str, Any] = {"network-id": self.name}
        if self.network_types or "network-types" in self.present:
            data["network-types"] = self.network_types
        _put_list(data, "node", [node.to_data() for node in self._nodes.values()], self.present)
        _put_list(data, LINK_KEY, [link.to_data() for link in self._links.values()], self.present)
        data.update(self.extra)
        return data

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def links(self) -> list[Link]:
        return list(self._links.values())

    def find_node(self, name: str) -> Node | None:
        return self._nodes.get(name)

    def append_node(self, node: Node) -> Node:
        """Append a node; an existing node of the same name wins."""
        existing = self._nodes.get(node.name)
        if existing is not None:
            return existing
        self._adopt(node)
        return node

    def replace_node(self, node: Node) -> bool:
        if node.name not in self._nodes:
            return False
        self._adopt(node)
        return True

    def _adopt(self, node: Node) -> None:
        node.network_name = self.name
        for tp in node.term_points:
            tp.network_name = self.name
        self._nodes[node.name] = node

    def find_link(self, src_node: str, src_tp: str, dst_node: str, dst_tp: str) -> Link | None:
        return self._links.get((src_node, src_tp, dst_node, dst_tp))

    def find_link_by_source(self, node_name: str, tp_name: str) -> Link | None:
        return next(
            (
                link
                for link in self._links.values()
                if link.source.node_ref == node_name and link.source.tp_ref == tp_name
            ),
            None,
        )

    def append_link(self, link: Link) -> Link:
        """Append a link; links are equal by their 4-tuple."""
        existing = self._links.get(link.key)
        if existing is not None:
            return existing
        self._links[link.key] = link
        return link

    def append_link_by_tp(self, src_tp: TermPoint, dst_tp: TermPoint) -> Link:
        return self.append_link(Link.between(src_tp, dst_tp, self.name))

    def replace_link(self, link: Link) -> bool:
        if link.key not in self._links:
            return False
        self._links[link.key] = link
        return True

    def find_node_by_support(self, network_ref: str, node_ref: str) -> Node | None:
        return next((n for n in self._nodes.values() if n.supported_by(network_ref, node_ref)), None)

    def append_segment_node(self, segment: str, *term_points: TermPoint) -> Node:
        """Find or create the L3 segment node of `segment` facing `term_points`.

        Each facing term-point is named ``<node>_<tp>`` after the endpoint it
        connects to; missing ones are added to an existing segment node.
        """
        name = f"Seg_{segment}"
        node = self._nodes.get(name)
        if node is None:
            attribute = L3NodeAttribute(
                node_type="segment",
                prefixes=[{"prefix": segment, "metric": 0, "flag": []}],
            )
            node = self.append_node(Node(name=name, network_name=self.name, attribute=attribute))
            logger.debug("Created segment node %s in %s", name, self.name)
        for tp in term_points:
            node.append_term_point(
                TermPoint(name=segment_tp_name(tp), parent_name=name, network_name=self.name)
            )
        return node

    def __str__(self) -> str:
        return self.name


def segment_tp_name(term_point: TermPoint) -> str:
    """Name of the segment term-point facing `term_point`."""
    return f"{term_point.parent_name}_{term_point.name}"


class Networks:
    """Ordered collection of uniquely named network layers."""

    def __init__(self, networks: list[Network] | None = None, extra: dict[str, Any] | None = None):
        self._networks: dict[str, Network] = {}
        self.extra = extra or {}  # top-level keys beside "ietf-network:networks"
        self.networks_extra: dict[str, Any] = {}
        self.present: set[str] = set()
        for network in networks or []:
            self.append_network(network)

    @classmethod
    def from_data(cls, data: dict) -> "Networks":
        """Build a topology from its RFC 8345 dict (the input is not modified)."""
        data = copy.deepcopy(data)
        try:
            body = data.pop(NETWORKS_KEY)
        except KeyError as e:
            raise ValidationError("Topology data has no networks", NETWORKS_KEY) from e
        networks = cls(extra=data)
        networks.present = body.keys() & {"network"}
        for network_data in body.pop("network", []):
            network = Network.from_data(network_data)
            if network.name in networks._networks:
                raise ValidationError(f"Duplicate network {network.name}")
            networks._networks[network.name] = network
        networks.networks_extra = body
        return networks

    def to_data(self) -> dict:
        body: dict[str, Any] = {}
        _put_list(body, "network", [nw.to_data() for nw in self._networks.values()], self.present)
        body.update(self.networks_extra)
        data: dict[str, Any] = {NETWORKS_KEY: body}
        data.update(self.extra)
        return data

    @property
    def networks(self) -> list[Network]:
        return list(self._networks.values())

    def find_network(self, name: str) -> Network | None:
        return self._networks.get(name)

    def append_network(self, network: Network) -> bool:
        if network.name in self._networks:
            return False
        self._networks[network.name] = network
        return True

    def prepend_network(self, network: Network) -> bool:
        if network.name in self._networks:
            return False
        self._networks = {network.name: network, **self._networks}
        return True

    def replace_network(self, network: Network) -> bool:
        if network.name not in self._networks:
            return False
        self._networks[network.name] = network
        return True

    def resolve_node(self, network_ref: str, node_ref: str) -> Node:
        network = self.find_network(network_ref)
        if network is None:
            raise ResolutionError(f"Unknown supporting network: {network_ref}")
        node = network.find_node(node_ref)
        if node is None:
            raise ResolutionError(f"Unknown supporting node: {node_ref}", f"network: {network_ref}")
        return node

    def resolve_tp(self, ref: SupportingTermPoint | TpRef) -> TermPoint:
        node = self.resolve_node(ref.network_ref, ref.node_ref)
        term_point = node.find_term_point(ref.tp_ref)
        if term_point is None:
            raise ResolutionError(f"Unknown supporting tp: {ref.tp_ref}", f"ref: {ref}")
        return term_point

    def check_references(self) -> list[str]:
        """List every support reference and link endpoint that does not resolve."""
        problems: list[str] = []
        for network in self.networks:
            for node in network.nodes:
                for support in node.supports:
                    if self._dangling_node(support.network_ref, support.node_ref):
                        problems.append(f"{node}: supporting-node {support}")
                for tp in node.term_points:
                    for tp_support in tp.supports:
                        try:
                            self.resolve_tp(tp_support)
                        except ResolutionError:
                            problems.append(f"{tp}: supporting-termination-point {tp_support}")
            for link in network.links:
                for edge in (link.source, link.destination):
                    node = network.find_node(edge.node_ref)
                    if node is None or node.find_term_point(edge.tp_ref) is None:
                        problems.append(f"{network.name} link {link.name}: endpoint {edge}")
        return problems

    def _dangling_node(self, network_ref: str, node_ref: str) -> bool:
        network = self.find_network(network_ref)
        return network is None or network.find_node(node_ref) is None


def load(raw: dict) -> Networks:
    """Load a topology snapshot from its wire-format dict."""
    return Networks.from_data(raw)
