"""Candidate topology generation for traffic-engineering use cases."""

import logging
from dataclasses import dataclass
from typing import Any

from ..core.exceptions import (
    IndexOutOfRangeError,
    NetConductorError,
    NotFoundError,
    UnsupportedUseCaseError,
    ValidationError,
)
from ..store.base import TopologyStore
from ..topology.attributes import PrefixSet
from ..topology.model import Networks
from .flow_table import AggregatedFlow, FlowDataTable

logger = logging.getLogger(__name__)

SUPPORTED_USECASES = ("pni_te", "multi_region_te")

DEFAULT_MAX_BANDWIDTH = 8e8  # bps, assume 80% of 10GbE


def check_usecase(name: str) -> None:
    if name not in SUPPORTED_USECASES:
        raise UnsupportedUseCaseError(name, SUPPORTED_USECASES)


def validate_usecase(usecase: dict) -> None:
    """Check the keys candidate generation reads from a use case record."""
    params = usecase.get("params")
    if not isinstance(params, dict):
        raise ValidationError("Use case has no params", "params")
    source_as = params.get("source_as")
    if not isinstance(source_as, dict) or source_as.get("asn") is None:
        raise ValidationError("Use case has no source AS", "params.source_as.asn")
    opts = usecase.get("phase_candidate_opts")
    if not isinstance(opts, dict) or not opts.get("node"):
        raise ValidationError("Use case has no steering node", "phase_candidate_opts.node")

    targets = (params.get("expected_traffic") or {}).get("original_targets") or []
    for index, target in enumerate(targets):
        try:
            float(target["expected_max_bandwidth"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(
                "Expected traffic target has no valid bandwidth",
                f"params.expected_traffic.original_targets[{index}].expected_max_bandwidth",
            ) from e


def target_prefix_set_name(asn: int | str) -> str:
    return f"as{asn}-advd-ipv4"


def candidate_snapshot_name(phase_number: int, candidate_index: int) -> str:
    return f"original_candidate_{phase_number}_{candidate_index}"


@dataclass
class CandidateTopology:
    """A generated candidate and the condition it was generated under."""

    network: str
    snapshot: str
    candidate_index: int
    candidate_condition: dict
    topology: dict | None = None
    error: NetConductorError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.topology is not None

    def to_dict(self, with_topology: bool = True) -> dict:
        data: dict[str, Any] = {
            "network": self.network,
            "snapshot": self.snapshot,
            "candidate_index": self.candidate_index,
            "candidate_condition": self.candidate_condition,
        }
        if with_topology:
            data["topology"] = self.topology
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


def pickup_prefix_set(networks: Networks, l3_node_name: str, prefix_set_name: str) -> PrefixSet:
    """Prefix-set of the bgp_proc node supporting a layer3 node."""
    bgp_proc_nw = networks.find_network("bgp_proc")
    if bgp_proc_nw is None:
        names = [nw.name for nw in networks.networks]
        raise NotFoundError(f"network:bgp_proc is not found in {names}")

    bgp_proc_node = bgp_proc_nw.find_node_by_support("layer3", l3_node_name)
    if bgp_proc_node is None:
        raise NotFoundError(
            f"bgp-proc node that supports layer3:{l3_node_name} is not found "
            f"in network:{bgp_proc_nw.name}"
        )

    prefix_set = bgp_proc_node.find_prefix_set(prefix_set_name)
    if prefix_set is None:
        raise NotFoundError(f"prefix-set: {prefix_set_name} is not found in node:{bgp_proc_node.name}")
    return prefix_set


class CandidateTopologyGenerator:
    """Generate candidate topologies by changing an advertised prefix-set.

    The use case record::

        {
            "name": "pni_te",
            "params": {
                "source_as": {"asn": 65550},
                "expected_traffic": {"original_targets": [
                    {"node": "edge-tk01", "interface": "ge-0/0/0.0",
                     "expected_max_bandwidth": 8e8},
                ]},
            },
            "phase_candidate_opts": {
                "node": "edge-tk01", "interface": "ge-0/0/0.0",
                "flow_data": [{"source": ..., "dest": ..., "rate": ...}],  # optional
            },
        }

    Without flow data each candidate omits one prefix (simple-select). With
    flow data each candidate keeps the prefix combination whose traffic is
    closest to the expected bandwidth (flow-matching).
    """

    def __init__(
        self,
        store: TopologyStore,
        network: str,
        snapshot: str,
        usecase: dict,
        default_max_bandwidth: float = DEFAULT_MAX_BANDWIDTH,
    ):
        check_usecase(usecase.get("name", ""))
        validate_usecase(usecase)
        self.store = store
        self.network = network
        self.snapshot = snapshot
        self.usecase = usecase
        self.default_max_bandwidth = default_max_bandwidth

    @property
    def opts(self) -> dict:
        return self.usecase.get("phase_candidate_opts", {})

    @property
    def source_asn(self) -> int:
        return self.usecase["params"]["source_as"]["asn"]

    @property
    def flow_data(self) -> list[dict] | None:
        return self.opts.get("flow_data")

    def generate(self, phase_number: int, candidate_number: int) -> list[CandidateTopology]:
        if self.flow_data:
            logger.info("Generate %d candidates by flow-matching", candidate_number)
            return self.candidate_topologies_by_flows(phase_number, candidate_number)
        logger.info("Generate %d candidates by simple-select", candidate_number)
        return self.candidate_topologies_by_simple_select(phase_number, candidate_number)

    def read_base_topology(self) -> Networks:
        # always reload: candidates never share a mutated instance
        return self.store.load_topology(self.network, self.snapshot)

    def _candidate(self, phase_number: int, index: int, condition: dict) -> CandidateTopology:
        return CandidateTopology(
            network=self.network,
            snapshot=candidate_snapshot_name(phase_number, index),
            candidate_index=index,
            candidate_condition=condition,
        )

    def candidate_topologies_by_simple_select(
        self, phase_number: int, candidate_number: int
    ) -> list[CandidateTopology]:
        candidates = []
        for index in range(1, candidate_number + 1):
            candidate = self._candidate(
                phase_number, index, {"omit_index": index, "omit_policy": None}
            )
            try:
                topology, omitted = self.generate_candidate_by_simple_select(index)
                candidate.topology = topology.to_data()
                candidate.candidate_condition["omit_policy"] = omitted
            except NetConductorError as e:
                logger.error("Candidate %d: %s", index, e)
                candidate.error = e
            candidates.append(candidate)
        return candidates

    def generate_candidate_by_simple_select(self, policy_index: int) -> tuple[Networks, dict]:
        """Reload the base topology and omit the `policy_index`-th (1-origin) prefix."""
        topology = self.read_base_topology()
        prefix_set = pickup_prefix_set(
            topology, self.opts["node"], target_prefix_set_name(self.source_asn)
        )
        if policy_index < 1 or policy_index > len(prefix_set.prefixes):
            raise IndexOutOfRangeError(policy_index, len(prefix_set.prefixes))

        omitted = prefix_set.prefixes.pop(policy_index - 1)
        logger.debug("Omit %s from %s", omitted.prefix, prefix_set.name)
        return topology, omitted.to_data()

    def find_observe_point(self) -> dict:
        """Expected-traffic target at the steering point (node, interface)."""
        targets = (self.usecase["params"].get("expected_traffic") or {}).get("original_targets") or []
        for target in targets:
            if target.get("node") == self.opts.get("node") and target.get(
                "interface"
            ) == self.opts.get("interface"):
                return target

        logger.warning(
            "No expected traffic for %s[%s], assume %.1e bps",
            self.opts.get("node"),
            self.opts.get("interface"),
            self.default_max_bandwidth,
        )
        return {**self.opts, "expected_max_bandwidth": self.default_max_bandwidth}

    def generate_aggregated_flows(self) -> list[AggregatedFlow]:
        topology = self.read_base_topology()
        observe_point = self.find_observe_point()
        # expected bandwidth is bps (may be a string like "0.8e9"), flow rates are Mbps
        max_bandwidth = float(observe_point["expected_max_bandwidth"]) / 1e6

        prefix_set = pickup_prefix_set(
            topology, observe_point["node"], target_prefix_set_name(self.source_asn)
        )
        table = FlowDataTable(self.flow_data or [])
        return table.aggregated_flows_by_prefix(prefix_set.prefix_strings(), max_bandwidth)

    def candidate_topologies_by_flows(
        self, phase_number: int, candidate_number: int
    ) -> list[CandidateTopology]:
        aggregated_flows = self.generate_aggregated_flows()
        if len(aggregated_flows) < candidate_number:
            logger.warning(
                "Candidate number to set %d because flows too little", len(aggregated_flows)
            )
            candidate_number = len(aggregated_flows)

        candidates = []
        for index in range(1, candidate_number + 1):
            flow = aggregated_flows[index - 1]
            candidate = self._candidate(phase_number, index, flow.to_dict())
            try:
                candidate.topology = self.generate_candidate_by_flows(flow).to_data()
            except NetConductorError as e:
                logger.error("Candidate %d: %s", index, e)
                candidate.error = e
            candidates.append(candidate)
        return candidates

    def generate_candidate_by_flows(self, flow: AggregatedFlow) -> Networks:
        """Reload the base topology and keep only the prefixes of `flow`."""
        topology = self.read_base_topology()
        prefix_set = pickup_prefix_set(
            topology, self.opts["node"], target_prefix_set_name(self.source_asn)
        )
        prefix_set.prefixes = [p for p in prefix_set.prefixes if p.prefix in flow.prefixes]
        return topology
