"""Patch BGP policy attribute groups of bgp_proc nodes and term-points."""

import logging
from typing import Any

from ..core.exceptions import NotFoundError, ValidationError
from ..topology.attributes import Attribute, BgpProcNodeAttribute, BgpProcTermPointAttribute
from ..topology.model import TP_KEY, Networks

logger = logging.getLogger(__name__)

POLICY_LAYER = "bgp_proc"


class NodePatcher:
    """Apply node patches (RFC 8345 shaped partial node data) to a topology.

    A patch looks like::

        {
            "node-id": "192.168.255.5",
            "mddo-topology:bgp-proc-node-attributes": {"policy": [...]},
            "ietf-network-topology:termination-point": [
                {
                    "tp-id": "peer_172.16.0.1",
                    "mddo-topology:bgp-proc-termination-point-attributes": {
                        "import-policy": [...],
                    },
                },
            ],
        }

    Every attribute group present in the patch replaces the whole group of
    the target.
    """

    def __init__(self, networks: Networks):
        self.networks = networks

    def patch_nodes(self, layer_name: str, node_patches: list[dict]) -> Networks:
        """
        Apply patches to nodes of a layer.

        Args:
            layer_name: Target layer (only "bgp_proc" carries policies)
            node_patches: Per-node patch data

        Returns:
            The patched topology (modified in place)
        """
        if layer_name != POLICY_LAYER:
            raise ValidationError(f"Layer:{layer_name} is not have policy", http_status=500)

        layer = self.networks.find_network(layer_name)
        if layer is None:
            raise NotFoundError(f"Layer:{layer_name} is not found in topology")

        for node_patch in node_patches:
            node_id = node_patch.get("node-id")
            node = layer.find_node(node_id) if node_id is not None else None
            if node is None:
                raise ValidationError(
                    f"Node:{node_id} is not found in {layer_name}", http_status=500
                )

            if not isinstance(node.attribute, BgpProcNodeAttribute):
                node.attribute = BgpProcNodeAttribute()
            self._patch_attribute(
                node.attribute, node_patch.get(BgpProcNodeAttribute.KEY, {}), str(node)
            )

            for tp_patch in node_patch.get(TP_KEY, []):
                tp_id = tp_patch.get("tp-id")
                term_point = node.find_term_point(tp_id) if tp_id is not None else None
                if term_point is None:
                    raise ValidationError(
                        f"Term-point:{tp_id} is not found in {layer_name}/{node.name}",
                        http_status=500,
                    )
                if not isinstance(term_point.attribute, BgpProcTermPointAttribute):
                    term_point.attribute = BgpProcTermPointAttribute()
                self._patch_attribute(
                    term_point.attribute,
                    tp_patch.get(BgpProcTermPointAttribute.KEY, {}),
                    str(term_point),
                )

            logger.info("Patched node %s", node)

        return self.networks

    @staticmethod
    def _patch_attribute(attribute: Attribute, patch: dict[str, Any], target: str) -> None:
        patchable = getattr(attribute, "PATCHABLE", ())
        for key, value in patch.items():
            if key not in patchable:
                logger.warning("Unknown attribute key %s for %s, skipped", key, target)
                continue
            attribute.set_by_wire_key(key, value)
            logger.debug("Replaced %s of %s", key, target)
