"""Tests for BGP policy patching and preferred peer detection."""

import pytest

from builders import BGP_PROC_NODE_KEY, BGP_PROC_TP_KEY, TP_KEY, internal_topology
from netconductor.bgp import NodePatcher, PreferredDetector
from netconductor.bgp.preferred import PREFERRED_FLAG
from netconductor.core.exceptions import NotFoundError, ValidationError
from netconductor.splice import splice_topology
from netconductor.topology.attributes import BgpProcNodeAttribute
from netconductor.topology.model import load

NEW_POLICY = [{"name": "as65550-in", "statements": [{"name": "10", "actions": [{"target": "accept"}]}]}]


@pytest.fixture
def spliced(int_data, ext_data):
    return load(splice_topology(int_data, ext_data))


class TestNodePatcher:
    """Test replacing policy attribute groups."""

    def test_replace_policy(self, int_data):
        """Test the whole policy group is replaced."""
        networks = load(int_data)
        NodePatcher(networks).patch_nodes(
            "bgp_proc", [{"node-id": "192.168.255.1", BGP_PROC_NODE_KEY: {"policy": NEW_POLICY}}]
        )
        attribute = networks.find_network("bgp_proc").find_node("192.168.255.1").attribute
        assert attribute.policies == NEW_POLICY
        assert attribute.router_id == "192.168.255.1"

    def test_replace_prefix_set(self):
        """Test a prefix-set patch is decoded into prefix-sets."""
        networks = load(internal_topology(["10.0.0.0/8", "10.1.0.0/16"]))
        patch = {"prefix-set": [{"name": "as65550-advd-ipv4", "prefixes": [{"prefix": "10.2.0.0/16"}]}]}
        NodePatcher(networks).patch_nodes(
            "bgp_proc", [{"node-id": "192.168.255.1", BGP_PROC_NODE_KEY: patch}]
        )
        node = networks.find_network("bgp_proc").find_node("192.168.255.1")
        assert node.find_prefix_set("as65550-advd-ipv4").prefix_strings() == ["10.2.0.0/16"]

    def test_untouched_nodes_written_back_as_loaded(self):
        """Test patching one node leaves the wire data of other nodes as it was."""
        sparse = {
            "node-id": "10.0.0.2",
            BGP_PROC_NODE_KEY: {"router-id": "10.0.0.2", "confederation-id": None},
        }
        patched = {"node-id": "10.0.0.1", BGP_PROC_NODE_KEY: {"router-id": "10.0.0.1"}}
        data = {
            "ietf-network:networks": {
                "network": [
                    {
                        "network-id": "bgp_proc",
                        "node": [patched, sparse],
                    }
                ]
            }
        }
        networks = load(data)
        NodePatcher(networks).patch_nodes(
            "bgp_proc", [{"node-id": "10.0.0.1", BGP_PROC_NODE_KEY: {"policy": []}}]
        )
        nodes = networks.to_data()["ietf-network:networks"]["network"][0]["node"]
        assert nodes[0][BGP_PROC_NODE_KEY] == {"router-id": "10.0.0.1", "policy": []}
        assert nodes[1] == sparse

    def test_replace_tp_policies(self, int_data):
        """Test term-point import/export policies are replaced."""
        networks = load(int_data)
        patch = {
            "node-id": "192.168.255.1",
            TP_KEY: [
                {
                    "tp-id": "peer_172.16.0.2",
                    BGP_PROC_TP_KEY: {"import-policy": ["as65550-in"]},
                }
            ],
        }
        NodePatcher(networks).patch_nodes("bgp_proc", [patch])
        tp = networks.find_network("bgp_proc").find_node("192.168.255.1").find_term_point("peer_172.16.0.2")
        assert tp.attribute.import_policies == ["as65550-in"]
        assert tp.attribute.export_policies == ["ebgp-out"]

    def test_unknown_key_skipped(self, int_data, caplog):
        """Test non-policy keys are logged and ignored."""
        networks = load(int_data)
        NodePatcher(networks).patch_nodes(
            "bgp_proc",
            [{"node-id": "192.168.255.1", BGP_PROC_NODE_KEY: {"router-id": "1.1.1.1", "policy": []}}],
        )
        attribute = networks.find_network("bgp_proc").find_node("192.168.255.1").attribute
        assert attribute.router_id == "192.168.255.1"
        assert attribute.policies == []
        assert "router-id" in caplog.text

    def test_node_without_attribute(self, int_data):
        """Test patching a node that has no attribute record yet."""
        bgp_proc = int_data["ietf-network:networks"]["network"][1]
        del bgp_proc["node"][1][BGP_PROC_NODE_KEY]
        networks = load(int_data)
        NodePatcher(networks).patch_nodes(
            "bgp_proc", [{"node-id": "192.168.255.2", BGP_PROC_NODE_KEY: {"policy": NEW_POLICY}}]
        )
        attribute = networks.find_network("bgp_proc").find_node("192.168.255.2").attribute
        assert isinstance(attribute, BgpProcNodeAttribute)
        assert attribute.policies == NEW_POLICY

    def test_wrong_layer(self, int_data):
        """Test only bgp_proc carries policies."""
        with pytest.raises(ValidationError) as exc_info:
            NodePatcher(load(int_data)).patch_nodes("layer3", [])
        assert exc_info.value.http_status == 500

    def test_missing_layer(self, int_data):
        """Test a topology without bgp_proc."""
        int_data["ietf-network:networks"]["network"].pop()
        with pytest.raises(NotFoundError):
            NodePatcher(load(int_data)).patch_nodes("bgp_proc", [])

    def test_missing_node(self, int_data):
        """Test a patch naming an unknown node."""
        with pytest.raises(ValidationError, match="192.168.255.9"):
            NodePatcher(load(int_data)).patch_nodes("bgp_proc", [{"node-id": "192.168.255.9"}])

    def test_missing_tp(self, int_data):
        """Test a patch naming an unknown term-point."""
        patch = {"node-id": "192.168.255.1", TP_KEY: [{"tp-id": "peer_10.0.0.9"}]}
        with pytest.raises(ValidationError, match="peer_10.0.0.9"):
            NodePatcher(load(int_data)).patch_nodes("bgp_proc", [patch])


class TestPreferredDetector:
    """Test preferred eBGP peer detection."""

    def test_detect(self, spliced):
        """Test the speaker peering with the given interface is flagged."""
        tp = PreferredDetector(spliced).detect_preferred_peer("bgp_proc", 65550, "edge-tk01", "ge-0/0/0.0")
        assert (tp.parent_name, tp.name) == ("PNI01", "peer_172.16.0.1")
        assert PREFERRED_FLAG in tp.attribute.flags

    def test_flag_moves(self, spliced):
        """Test detection clears flags left by an earlier run."""
        bgp_proc = spliced.find_network("bgp_proc")
        stale = bgp_proc.find_node("192.168.255.1").find_term_point("peer_172.16.0.2")
        stale.attribute.flags.append(PREFERRED_FLAG)

        PreferredDetector(spliced).detect_preferred_peer("bgp_proc", 65550, "edge-tk01", "ge-0/0/0.0")
        flagged = [
            (node.name, tp.name)
            for node in bgp_proc.nodes
            for tp in node.term_points
            if tp.attribute is not None and PREFERRED_FLAG in tp.attribute.flags
        ]
        assert flagged == [("PNI01", "peer_172.16.0.1")]

    def test_asn_mismatch(self, spliced):
        """Test the speaker must belong to the given AS."""
        with pytest.raises(ValidationError) as exc_info:
            PreferredDetector(spliced).detect_preferred_peer("bgp_proc", 65999, "edge-tk01", "ge-0/0/0.0")
        assert exc_info.value.http_status == 500

    def test_peer_not_speaker(self, spliced):
        """Test the link destination must be flagged as an external speaker."""
        spliced.find_network("bgp_proc").find_node("PNI01").attribute.flags = []
        with pytest.raises(NotFoundError) as exc_info:
            PreferredDetector(spliced).detect_preferred_peer("bgp_proc", 65550, "edge-tk01", "ge-0/0/0.0")
        assert "Ext-bgp-speaker is not found: PNI01" in str(exc_info.value)

    def test_speaker_interface_missing(self, spliced):
        """Test the speaker must own the link destination term-point."""
        speaker = spliced.find_network("bgp_proc").find_node("PNI01")
        speaker.term_points = [tp for tp in speaker.term_points if tp.name != "peer_172.16.0.1"]
        with pytest.raises(NotFoundError) as exc_info:
            PreferredDetector(spliced).detect_preferred_peer("bgp_proc", 65550, "edge-tk01", "ge-0/0/0.0")
        assert "interface is not found: PNI01[peer_172.16.0.1]" in str(exc_info.value)

    def test_unknown_interface(self, spliced):
        """Test no bgp_proc peer on the given interface."""
        with pytest.raises(NotFoundError):
            PreferredDetector(spliced).detect_preferred_peer("bgp_proc", 65550, "edge-tk01", "ge-0/0/1.0")

    def test_not_spliced(self, int_data):
        """Test no link toward an external speaker."""
        with pytest.raises(NotFoundError):
            PreferredDetector(load(int_data)).detect_preferred_peer(
                "bgp_proc", 65550, "edge-tk01", "ge-0/0/0.0"
            )

    def test_missing_layer(self, spliced):
        """Test an unknown layer."""
        with pytest.raises(NotFoundError):
            PreferredDetector(spliced).detect_preferred_peer("bgp", 65550, "edge-tk01", "ge-0/0/0.0")
