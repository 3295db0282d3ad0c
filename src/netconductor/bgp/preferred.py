"""Detect the preferred eBGP peer (term-point) of an external AS."""

import logging

from ..core.exceptions import NotFoundError, ValidationError
from ..topology.attributes import BgpProcTermPointAttribute
from ..topology.model import Network, Networks, Node, TermPoint

logger = logging.getLogger(__name__)

EXT_BGP_SPEAKER_FLAG = "ext-bgp-speaker"
PREFERRED_FLAG = "ext-bgp-speaker-preferred"


class PreferredDetector:
    """Mark the bgp_proc peer actually used to steer inbound traffic.

    Among possibly several sessions to the same external AS, the preferred one
    is the session carried by a given internal L3 (node, interface).
    """

    def __init__(self, networks: Networks):
        self.networks = networks

    def detect_preferred_peer(
        self, layer_name: str, ext_asn: int, l3_node: str, l3_intf: str
    ) -> TermPoint:
        """
        Flag the external speaker term-point peering with `l3_node[l3_intf]`.

        Args:
            layer_name: Target layer (bgp_proc)
            ext_asn: External AS number
            l3_node: Internal layer3 node peering to ext_asn
            l3_intf: Interface of l3_node peering to ext_asn

        Returns:
            The term-point flagged as preferred
        """
        layer = self.networks.find_network(layer_name)
        if layer is None:
            raise NotFoundError(f"Layer:{layer_name} is not found in topology")

        self.clear_all_preferred_flags(layer)

        found = self.find_tp_with_support(layer, "layer3", l3_node, l3_intf)
        if found is None:
            raise NotFoundError(
                f"Layer:{layer_name}, Node not found that supports layer3/{l3_node}[{l3_intf}]"
            )
        bgp_proc_node, bgp_proc_tp = found

        link = layer.find_link_by_source(bgp_proc_node.name, bgp_proc_tp.name)
        if link is None:
            raise NotFoundError(
                f"Layer:{layer_name}, Link not found that source:"
                f"{bgp_proc_node.name}[{bgp_proc_tp.name}]"
            )

        speaker = layer.find_node(link.destination.node_ref)
        if speaker is None or not speaker.has_flag(EXT_BGP_SPEAKER_FLAG):
            raise NotFoundError(
                f"Layer:{layer_name}, Ext-bgp-speaker is not found: {link.destination.node_ref}"
            )

        speaker_tp = speaker.find_term_point(link.destination.tp_ref)
        if speaker_tp is None:
            raise NotFoundError(
                f"Layer:{layer_name}, Ext-bgp-speaker interface is not found: "
                f"{speaker.name}[{link.destination.tp_ref}]"
            )
        attribute = speaker_tp.attribute
        if not isinstance(attribute, BgpProcTermPointAttribute) or attribute.local_as != ext_asn:
            raise ValidationError(
                f"Layer:{layer_name}, ext-bgp-speaker ASN check failed, mismatch ASN:{ext_asn}",
                f"{speaker_tp} local-as: {getattr(attribute, 'local_as', None)}",
                http_status=500,
            )

        attribute.flags = [*attribute.flags, PREFERRED_FLAG]
        logger.info("Preferred peer of AS%s: %s", ext_asn, speaker_tp)
        return speaker_tp

    @staticmethod
    def clear_all_preferred_flags(layer: Network) -> None:
        for node in layer.nodes:
            for tp in node.term_points:
                attribute = tp.attribute
                if isinstance(attribute, BgpProcTermPointAttribute) and PREFERRED_FLAG in attribute.flags:
                    attribute.flags = [f for f in attribute.flags if f != PREFERRED_FLAG]

    @staticmethod
    def find_tp_with_support(
        layer: Network, sup_nw: str, sup_node: str, sup_intf: str
    ) -> tuple[Node, TermPoint] | None:
        """bgp_proc node/term-point supported by an L3 node/interface."""
        for node in layer.nodes:
            # bgp_proc node and term-point have a single support
            if not node.supports or node.supports[0].network_ref != sup_nw:
                continue
            if node.supports[0].node_ref != sup_node:
                continue
            for tp in node.term_points:
                if not tp.supports:
                    continue
                tp_sup = tp.supports[0]
                if (tp_sup.network_ref, tp_sup.node_ref, tp_sup.tp_ref) == (sup_nw, sup_node, sup_intf):
                    return node, tp
        return None
