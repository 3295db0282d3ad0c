"""Tests for operation entry points."""

import pytest

from builders import MemoryTopologyStore, external_topology, internal_topology, ring_topology
from netconductor import conductor
from netconductor.bgp.preferred import PREFERRED_FLAG
from netconductor.core.exceptions import NotFoundError, UnsupportedUseCaseError
from netconductor.topology.model import load

PREFIXES = ["10.0.0.0/8", "10.1.0.0/16"]


@pytest.fixture
def ring_store():
    return MemoryTopologyStore(
        topologies={
            ("sample", "original_asis"): ring_topology(),
            ("sample", "original_drawoff_1"): ring_topology((("A", "B"),)),
            ("sample", "original_drawoff_2"): ring_topology((("A", "B"), ("C", "D"))),
        },
        snapshot_patterns={
            ("sample", "original_asis"): [
                {"source_snapshot_name": "original_asis", "target_snapshot_name": "original_drawoff_1"},
                {"source_snapshot_name": "original_asis", "target_snapshot_name": "original_drawoff_2"},
            ]
        },
    )


@pytest.fixture
def usecase_store():
    return MemoryTopologyStore(
        topologies={("sample", "original_asis"): internal_topology(PREFIXES)},
        usecase_sources={
            ("pni_te", "sample", "params"): {
                "source_as": {"asn": 65550},
                "expected_traffic": {"original_targets": []},
            },
            ("pni_te", "sample", "phase_candidate_opts"): {
                "node": "edge-tk01",
                "interface": "ge-0/0/0.0",
            },
        },
    )


class TestNetworkSets:
    """Test network set operations."""

    def test_one_layer(self, ring_store):
        """Test network sets of a single layer."""
        results = conductor.network_sets(ring_store, "sample", "original_drawoff_2", "layer3")
        assert [r.to_dict()["network_sets"] for r in results] == [[["A", "D"], ["B", "C"]]]

    def test_all_layers(self, ring_store):
        """Test network sets of every layer."""
        results = conductor.network_sets(ring_store, "sample", "original_asis")
        assert [r.network for r in results] == ["layer3"]

    def test_score_snapshot_patterns(self, ring_store):
        """Test logical snapshots are ranked by score."""
        diffs = conductor.score_snapshot_patterns(ring_store, "sample", "original_asis")
        assert [(d.target_snapshot, d.score) for d in diffs] == [
            ("original_drawoff_2", 4),
            ("original_drawoff_1", 0),
        ]
        assert all(d.network == "sample" for d in diffs)

    def test_min_score(self, ring_store):
        """Test low scoring results are dropped."""
        diffs = conductor.score_snapshot_patterns(ring_store, "sample", "original_asis", min_score=1)
        assert [d.target_snapshot for d in diffs] == ["original_drawoff_2"]

    def test_min_score_from_config(self, ring_store, fresh_config):
        """Test the score floor defaults to the configured one."""
        fresh_config.partition.min_score = 5
        assert conductor.score_snapshot_patterns(ring_store, "sample", "original_asis") == []

    def test_missing_patterns(self, ring_store):
        """Test a snapshot without patterns."""
        with pytest.raises(NotFoundError):
            conductor.score_snapshot_patterns(ring_store, "sample", "original_drawoff_1")


class TestWriteBack:
    """Test operations writing the snapshot back."""

    def test_splice(self, memory_store):
        """Test the spliced topology is stored."""
        memory_store.store_topology("sample", "original_asis", internal_topology())
        spliced = conductor.splice(memory_store, "sample", "original_asis", external_topology())
        assert memory_store.topologies[("sample", "original_asis")] == spliced
        assert load(spliced).find_network("bgp_as") is not None

    def test_splice_no_overwrite(self, memory_store):
        """Test splicing without writing back."""
        original = internal_topology()
        memory_store.store_topology("sample", "original_asis", original)
        conductor.splice(memory_store, "sample", "original_asis", external_topology(), overwrite=False)
        assert memory_store.topologies[("sample", "original_asis")] == original

    def test_patch_policies(self, memory_store):
        """Test patched policies are stored."""
        memory_store.store_topology("sample", "original_asis", internal_topology())
        patch = {"node-id": "192.168.255.2", "mddo-topology:bgp-proc-node-attributes": {"policy": [{"name": "p"}]}}
        conductor.patch_policies(memory_store, "sample", "original_asis", "bgp_proc", [patch])

        stored = load(memory_store.topologies[("sample", "original_asis")])
        assert stored.find_network("bgp_proc").find_node("192.168.255.2").attribute.policies == [{"name": "p"}]

    def test_detect_preferred_peer(self, memory_store):
        """Test the preferred flag is stored."""
        memory_store.store_topology("sample", "original_asis", internal_topology())
        conductor.splice(memory_store, "sample", "original_asis", external_topology())
        result = conductor.detect_preferred_peer(
            memory_store, "sample", "original_asis", "bgp_proc", 65550, "edge-tk01", "ge-0/0/0.0"
        )
        assert result["preferred"] == {"node": "PNI01", "interface": "peer_172.16.0.1"}

        stored = load(memory_store.topologies[("sample", "original_asis")])
        tp = stored.find_network("bgp_proc").find_node("PNI01").find_term_point("peer_172.16.0.1")
        assert PREFERRED_FLAG in tp.attribute.flags

    def test_check_topology(self, memory_store):
        """Test reference check of a stored snapshot."""
        memory_store.store_topology("sample", "original_asis", internal_topology())
        assert conductor.check_topology(memory_store, "sample", "original_asis") == []


class TestCandidateTopologies:
    """Test candidate generation through the store."""

    def test_generate(self, usecase_store):
        """Test successful candidates are stored and summarized."""
        summaries = conductor.generate_candidate_topologies(
            usecase_store, "sample", "original_asis", "pni_te", candidate_number=3, phase_number=1
        )
        assert [s["snapshot"] for s in summaries] == [
            "original_candidate_1_1",
            "original_candidate_1_2",
            "original_candidate_1_3",
        ]
        assert all("topology" not in s for s in summaries)
        assert "error" in summaries[2]
        assert ("sample", "original_candidate_1_1") in usecase_store.topologies
        assert ("sample", "original_candidate_1_2") in usecase_store.topologies
        assert ("sample", "original_candidate_1_3") not in usecase_store.topologies

    def test_config_defaults(self, usecase_store, fresh_config):
        """Test candidate count and phase default to configuration."""
        fresh_config.candidate.candidate_number = 1
        fresh_config.candidate.phase_number = 2
        summaries = conductor.generate_candidate_topologies(usecase_store, "sample", "original_asis", "pni_te")
        assert [s["snapshot"] for s in summaries] == ["original_candidate_2_1"]

    def test_explicit_opts(self, usecase_store):
        """Test steering options given by the caller."""
        opts = {
            "node": "edge-tk01",
            "interface": "ge-0/0/0.0",
            "flow_data": [{"source": "a", "dest": "10.1.0.1", "rate": 1.0}],
        }
        summaries = conductor.generate_candidate_topologies(
            usecase_store, "sample", "original_asis", "pni_te", candidate_number=2, phase_candidate_opts=opts
        )
        assert len(summaries) == 1
        assert summaries[0]["candidate_condition"]["prefixes"] == ["10.1.0.0/16"]

    def test_unsupported(self, usecase_store):
        """Test unknown use cases fail before loading anything."""
        with pytest.raises(UnsupportedUseCaseError):
            conductor.generate_candidate_topologies(usecase_store, "sample", "original_asis", "foo")
        assert usecase_store.fetch_count == {}
