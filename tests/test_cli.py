"""Tests for the command line interface."""

import csv
import json

import pytest
from click.testing import CliRunner

from builders import external_topology, internal_topology, link, ring_topology
from netconductor.cli import main
from netconductor.store import FileTopologyStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_dir(tmp_path):
    store = FileTopologyStore(tmp_path / "store")
    store.store_topology("ring", "original_asis", ring_topology())
    store.store_topology("ring", "original_drawoff", ring_topology((("A", "B"), ("C", "D"))))
    patterns = [{"source_snapshot_name": "original_asis", "target_snapshot_name": "original_drawoff"}]
    (tmp_path / "store" / "ring" / "original_asis" / "snapshot_patterns.json").write_text(json.dumps(patterns))
    store.store_topology("sample", "original_asis", internal_topology(["10.0.0.0/8", "10.1.0.0/16"]))
    return tmp_path / "store"


def invoke(runner, store_dir, *args):
    return runner.invoke(main, ["--store-dir", str(store_dir), *args])


class TestSubsets:
    """Test network set commands."""

    def test_subsets(self, runner, store_dir, tmp_path):
        """Test showing and saving network sets."""
        output = tmp_path / "out" / "subsets.json"
        result = invoke(runner, store_dir, "subsets", "ring", "original_drawoff", "-o", str(output))
        assert result.exit_code == 0
        assert json.loads(output.read_text()) == [
            {"network": "layer3", "network_sets": [["A", "D"], ["B", "C"]]}
        ]

    def test_subsets_missing_snapshot(self, runner, store_dir):
        """Test an unknown snapshot."""
        result = invoke(runner, store_dir, "subsets", "ring", "nothing")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_subsets_diff_json(self, runner, store_dir, tmp_path):
        """Test scoring snapshot patterns to JSON."""
        output = tmp_path / "diff.json"
        result = invoke(runner, store_dir, "subsets-diff", "ring", "original_asis", "-o", str(output))
        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert data[0]["target_snapshot"] == "original_drawoff"
        assert data[0]["score"] == 4

    def test_subsets_diff_csv(self, runner, store_dir, tmp_path):
        """Test scoring snapshot patterns to CSV."""
        output = tmp_path / "diff.csv"
        result = invoke(
            runner, store_dir, "subsets-diff", "ring", "original_asis", "--format", "csv", "-o", str(output)
        )
        assert result.exit_code == 0
        with open(output) as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["score"] == "4"
        assert rows[0]["separated"] == "1"

    def test_subsets_diff_min_score(self, runner, store_dir):
        """Test every pattern filtered out."""
        result = invoke(runner, store_dir, "subsets-diff", "ring", "original_asis", "--min-score", "5")
        assert result.exit_code == 0
        assert "No snapshot patterns" in result.output


class TestTopologyCommands:
    """Test commands that rewrite a snapshot."""

    def test_splice_and_detect(self, runner, store_dir, tmp_path):
        """Test splicing then detecting the preferred peer."""
        ext_file = tmp_path / "ext.json"
        ext_file.write_text(json.dumps(external_topology()))

        result = invoke(runner, store_dir, "splice", "sample", "original_asis", str(ext_file))
        assert result.exit_code == 0
        stored = FileTopologyStore(store_dir).load_topology("sample", "original_asis")
        assert stored.find_network("bgp_as") is not None

        output = tmp_path / "preferred.json"
        result = invoke(
            runner,
            store_dir,
            "detect-preferred",
            "sample",
            "original_asis",
            "--asn",
            "65550",
            "--node",
            "edge-tk01",
            "--interface",
            "ge-0/0/0.0",
            "-o",
            str(output),
        )
        assert result.exit_code == 0
        assert json.loads(output.read_text())["preferred"]["node"] == "PNI01"

    def test_detect_asn_mismatch(self, runner, store_dir, tmp_path):
        """Test detection failure exits with an error."""
        ext_file = tmp_path / "ext.json"
        ext_file.write_text(json.dumps(external_topology()))
        invoke(runner, store_dir, "splice", "sample", "original_asis", str(ext_file))

        result = invoke(
            runner, store_dir, "detect-preferred", "sample", "original_asis",
            "--asn", "65999", "--node", "edge-tk01", "--interface", "ge-0/0/0.0",
        )
        assert result.exit_code == 1

    def test_patch_policies(self, runner, store_dir, tmp_path):
        """Test patching policies from a file."""
        patch_file = tmp_path / "patch.json"
        patch_file.write_text(
            json.dumps(
                [{"node-id": "192.168.255.2", "mddo-topology:bgp-proc-node-attributes": {"policy": [{"name": "p"}]}}]
            )
        )
        result = invoke(runner, store_dir, "patch-policies", "sample", "original_asis", str(patch_file))
        assert result.exit_code == 0
        stored = FileTopologyStore(store_dir).load_topology("sample", "original_asis")
        assert stored.find_network("bgp_proc").find_node("192.168.255.2").attribute.policies == [{"name": "p"}]

    def test_patch_wrong_layer(self, runner, store_dir, tmp_path):
        """Test patching a layer without policies."""
        patch_file = tmp_path / "patch.json"
        patch_file.write_text("[]")
        result = invoke(
            runner, store_dir, "patch-policies", "sample", "original_asis", str(patch_file), "--layer", "layer3"
        )
        assert result.exit_code == 1

    def test_check(self, runner, store_dir):
        """Test a clean snapshot passes the reference check."""
        result = invoke(runner, store_dir, "check", "sample", "original_asis")
        assert result.exit_code == 0

    def test_check_dangling(self, runner, store_dir):
        """Test dangling references fail the check."""
        data = internal_topology()
        data["ietf-network:networks"]["network"][0]["ietf-network-topology:link"].append(
            link("edge-tk01", "ge-0/0/7.0", "core-tk01", "ge-0/0/0.0")
        )
        FileTopologyStore(store_dir).store_topology("sample", "broken", data)
        result = invoke(runner, store_dir, "check", "sample", "broken")
        assert result.exit_code == 1


class TestCandidates:
    """Test candidate generation command."""

    @pytest.fixture
    def params(self, store_dir):
        path = store_dir / "usecases" / "pni_te" / "sample" / "params.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"source_as": {"asn": 65550}, "expected_traffic": {"original_targets": []}}))
        return path

    def test_candidates(self, runner, store_dir, params, tmp_path):
        """Test generating candidates with steering options."""
        output = tmp_path / "candidates.json"
        result = invoke(
            runner, store_dir, "candidates", "sample", "original_asis", "pni_te",
            "--count", "2", "--node", "edge-tk01", "--interface", "ge-0/0/0.0", "-o", str(output),
        )
        assert result.exit_code == 0
        summaries = json.loads(output.read_text())
        assert [s["snapshot"] for s in summaries] == ["original_candidate_1_1", "original_candidate_1_2"]
        assert (store_dir / "sample" / "original_candidate_1_2" / "topology.json").exists()

    def test_candidates_with_flows(self, runner, store_dir, params, tmp_path):
        """Test generating candidates from flow data."""
        flow_file = tmp_path / "flows.json"
        flow_file.write_text(json.dumps([{"source": "a", "dest": "10.1.0.1", "rate": 800.0}]))
        output = tmp_path / "candidates.json"
        result = invoke(
            runner, store_dir, "candidates", "sample", "original_asis", "pni_te",
            "--node", "edge-tk01", "--interface", "ge-0/0/0.0", "--flow-data", str(flow_file), "-o", str(output),
        )
        assert result.exit_code == 0
        summaries = json.loads(output.read_text())
        assert summaries[0]["candidate_condition"] == {"prefixes": ["10.1.0.0/16"], "rate": 800.0, "diff": 0.0}

    def test_unsupported_usecase(self, runner, store_dir):
        """Test an unknown use case."""
        result = invoke(runner, store_dir, "candidates", "sample", "original_asis", "bgp_te")
        assert result.exit_code == 1
        assert "Unsupported usecase" in result.output

    def test_interface_without_node(self, runner, store_dir, params):
        """Test steering options without a node are a usage error."""
        result = invoke(
            runner, store_dir, "candidates", "sample", "original_asis", "pni_te", "--interface", "ge-0/0/0.0"
        )
        assert result.exit_code == 2
        assert "--node" in result.output

    def test_malformed_usecase(self, runner, store_dir, params):
        """Test a use case without a source AS is reported, not raised."""
        params.write_text(json.dumps({"expected_traffic": {"original_targets": []}}))
        result = invoke(
            runner, store_dir, "candidates", "sample", "original_asis", "pni_te",
            "--node", "edge-tk01", "--interface", "ge-0/0/0.0",
        )
        assert result.exit_code == 1
        assert "source AS" in result.output
