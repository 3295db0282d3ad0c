"""Splice an external (eBGP peering) topology into an internal topology."""

import logging
from dataclasses import dataclass, field

from ..core.exceptions import NotFoundError, ResolutionError
from ..core.utils import asn_from_name, segment_address
from ..topology.attributes import BgpProcNodeAttribute, L3TermPointAttribute
from ..topology.model import Network, Networks, TermPoint, TpRef, segment_tp_name

logger = logging.getLogger(__name__)

# layers merged node-by-node instead of inserted as a whole
SPLICED_LAYERS = ("layer3", "bgp_proc")


@dataclass
class InsertResult:
    """Outcome of inserting external layers into the internal topology."""

    inserted: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    @property
    def over_splice(self) -> bool:
        """True if the external topology was (at least partly) spliced already."""
        return bool(self.conflicts)


class TopologySplicer:
    """Merge an external topology into an internal one.

    The internal topology is modified in place; ``to_data()`` returns the
    spliced result.
    """

    def __init__(self, int_topology_data: dict, ext_topology_data: dict):
        self.int_topology = Networks.from_data(int_topology_data)
        self.ext_topology = Networks.from_data(ext_topology_data)

    def to_data(self) -> dict:
        return self.int_topology.to_data()

    def splice(self) -> InsertResult:
        """Run every splice step; raises ResolutionError on dangling references."""
        result = self.insert_networks()
        self.insert_supports()
        self.splice_bgp_proc(result)
        self.splice_layer3(result)

        problems = self.int_topology.check_references()
        if problems:
            raise ResolutionError(
                f"Spliced topology has {len(problems)} dangling reference(s)",
                "; ".join(problems[:5]),
            )
        return result

    def insert_networks(self) -> InsertResult:
        """Prepend external layers other than layer3/bgp_proc."""
        result = InsertResult()
        for ext_network in self.ext_topology.networks:
            if ext_network.name in SPLICED_LAYERS:
                continue
            if not self.int_topology.prepend_network(ext_network):
                logger.warning(
                    "Conflict network(layer) in int/ext network: %s, ignore it.", ext_network.name
                )
                result.conflicts.append(ext_network.name)
                continue
            result.inserted.append(ext_network.name)
        return result

    def insert_supports(self) -> None:
        """Bind support-less (internal AS) bgp_as nodes to bgp_proc nodes by confederation id."""
        bgp_as_nw = self._int_network("bgp_as")
        bgp_nw = self._int_network("bgp_proc")

        for bgp_as_node in bgp_as_nw.nodes:
            # external-AS nodes are given with their supports
            if bgp_as_node.supports:
                continue
            asn = asn_from_name(bgp_as_node.name)
            if asn is None:
                logger.warning("Cannot find ASN in bgp_as node name: %s", bgp_as_node.name)
                continue
            for bgp_node in bgp_nw.nodes:
                attribute = bgp_node.attribute
                if isinstance(attribute, BgpProcNodeAttribute) and attribute.confederation_id == asn:
                    logger.debug("Bind %s to %s", bgp_as_node, bgp_node)
                    bgp_as_node.append_support_by_node(bgp_node)

    def splice_bgp_proc(self, result: InsertResult) -> None:
        """Merge external bgp_proc and link int/ext peers along bgp_as links."""
        if result.over_splice:
            logger.info("Skip splicing bgp_proc (already spliced: %s)", ", ".join(result.conflicts))
            return

        int_bgp_nw = self._int_network("bgp_proc")
        self._concat(int_bgp_nw, self._ext_network("bgp_proc"))

        for link in self._ext_network("bgp_as").links:
            src_tp = self.find_supported_bgp_proc_tp(link.source)
            dst_tp = self.find_supported_bgp_proc_tp(link.destination)
            # unidirectional: the reverse bgp_as link makes the opposite one
            int_bgp_nw.append_link_by_tp(src_tp, dst_tp)

    def splice_layer3(self, result: InsertResult) -> None:
        """Merge external layer3 and connect int/ext peers through segment nodes."""
        if result.over_splice:
            logger.info("Skip splicing layer3 (already spliced: %s)", ", ".join(result.conflicts))
            return

        int_l3_nw = self._int_network("layer3")
        self._concat(int_l3_nw, self._ext_network("layer3"))

        for link in self._ext_network("bgp_as").links:
            src_tp = self.find_supported_l3_tp(link.source)
            dst_tp = self.find_supported_l3_tp(link.destination)
            self.append_l3_link_between(int_l3_nw, src_tp, dst_tp)

    def append_l3_link_between(self, l3_nw: Network, src_tp: TermPoint, dst_tp: TermPoint) -> None:
        seg_addr = self.segment_address_by_tps(src_tp, dst_tp)
        seg_node = l3_nw.append_segment_node(seg_addr, src_tp, dst_tp)
        src_seg_tp = seg_node.find_term_point(segment_tp_name(src_tp))
        dst_seg_tp = seg_node.find_term_point(segment_tp_name(dst_tp))

        l3_nw.append_link_by_tp(src_tp, src_seg_tp)  # src -> seg
        l3_nw.append_link_by_tp(dst_seg_tp, dst_tp)  #        seg -> dst

    @staticmethod
    def segment_address_by_tps(tp1: TermPoint, tp2: TermPoint) -> str:
        # eBGP peer may not have an IP address
        for tp in (tp1, tp2):
            if isinstance(tp.attribute, L3TermPointAttribute) and tp.attribute.ip_addrs:
                return segment_address(tp.attribute.ip_addrs[0])
        raise ResolutionError(f"Cannot find segment address between {tp1} and {tp2}")

    def find_supported_tp(self, edge: TpRef) -> TermPoint:
        return self.int_topology.resolve_tp(edge)

    def find_supported_bgp_proc_tp(self, bgp_as_edge: TpRef) -> TermPoint:
        """bgp_proc term-point under a bgp_as link edge (one hop)."""
        bgp_as_tp = self.find_supported_tp(bgp_as_edge)
        return self.find_supported_tp(bgp_as_tp.single_support())

    def find_supported_l3_tp(self, bgp_as_edge: TpRef) -> TermPoint:
        """layer3 term-point under a bgp_as link edge (two hops)."""
        bgp_proc_tp = self.find_supported_bgp_proc_tp(bgp_as_edge)
        return self.find_supported_tp(bgp_proc_tp.single_support())

    @staticmethod
    def _concat(int_nw: Network, ext_nw: Network) -> None:
        for node in ext_nw.nodes:
            if int_nw.append_node(node) is not node:
                logger.warning("Node %s already exists in %s, keep internal one", node.name, int_nw)
        for link in ext_nw.links:
            int_nw.append_link(link)

    def _int_network(self, name: str) -> Network:
        network = self.int_topology.find_network(name)
        if network is None:
            raise NotFoundError(f"Network (layer) {name} is not found in internal topology")
        return network

    def _ext_network(self, name: str) -> Network:
        network = self.ext_topology.find_network(name)
        if network is None:
            raise NotFoundError(f"Network (layer) {name} is not found in external topology")
        return network


def splice_topology(int_topology_data: dict, ext_topology_data: dict) -> dict:
    """
    Splice external topology data into internal topology data.

    Args:
        int_topology_data: Internal topology (generated from configs)
        ext_topology_data: External topology carrying the bgp_as layer

    Returns:
        Spliced topology data
    """
    splicer = TopologySplicer(int_topology_data, ext_topology_data)
    splicer.splice()
    return splicer.to_data()
