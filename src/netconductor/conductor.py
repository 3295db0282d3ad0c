"""Operation entry points: load from a store, run one component, write back."""

import logging

from .bgp import NodePatcher, PreferredDetector
from .candidate import CandidateTopology, CandidateTopologyGenerator, check_usecase
from .core.config import get_config
from .splice import splice_topology
from .store.base import TopologyStore
from .topology.partition import NetworkSets, find_all_network_sets, find_network_sets
from .topology.partition_diff import NetworkSetsDiff, diff_network_sets, rank_diffs

logger = logging.getLogger(__name__)


def network_sets(
    store: TopologyStore, network: str, snapshot: str, layer: str | None = None
) -> list[NetworkSets]:
    """Network sets of one layer, or of every layer when `layer` is None."""
    networks = store.load_topology(network, snapshot)
    if layer is None:
        return find_all_network_sets(networks)
    return [find_network_sets(networks, layer)]


def score_snapshot_patterns(
    store: TopologyStore,
    network: str,
    snapshot: str,
    min_score: int | None = None,
    layer: str | None = None,
) -> list[NetworkSetsDiff]:
    """
    Score every logical snapshot derived from a physical snapshot.

    Args:
        store: Topology store
        network: Network name
        snapshot: Physical snapshot name
        min_score: Drop results scoring below this (default: config)
        layer: Layer to compare (default: config)

    Returns:
        Diffs ordered by score (desc), then target snapshot name
    """
    config = get_config().partition
    min_score = config.min_score if min_score is None else min_score
    layer = layer or config.layer

    patterns = store.fetch_snapshot_patterns(network, snapshot)
    logger.info("Compare %d snapshot patterns of %s/%s", len(patterns), network, snapshot)

    cache: dict[str, NetworkSets] = {}

    def sets_of(snapshot_name: str) -> NetworkSets:
        if snapshot_name not in cache:
            cache[snapshot_name] = find_network_sets(
                store.load_topology(network, snapshot_name), layer
            )
        return cache[snapshot_name]

    diffs = []
    for pattern in patterns:
        source_name = pattern.get("source_snapshot_name", snapshot)
        target_name = pattern["target_snapshot_name"]
        diff = diff_network_sets(sets_of(source_name), sets_of(target_name), source_name, target_name)
        diff.network = network
        diffs.append(diff)

    return rank_diffs(diffs, min_score)


def splice(
    store: TopologyStore, network: str, snapshot: str, ext_data: dict, overwrite: bool = True
) -> dict:
    """Splice an external topology into a stored snapshot."""
    int_data = store.fetch_topology(network, snapshot)
    spliced = splice_topology(int_data, ext_data)
    if overwrite:
        store.store_topology(network, snapshot, spliced)
        logger.info("Saved spliced topology to %s/%s", network, snapshot)
    return spliced


def patch_policies(
    store: TopologyStore, network: str, snapshot: str, layer: str, node_patches: list[dict]
) -> dict:
    """Replace policy groups of bgp_proc nodes and write the snapshot back."""
    networks = store.load_topology(network, snapshot)
    NodePatcher(networks).patch_nodes(layer, node_patches)
    data = networks.to_data()
    store.store_topology(network, snapshot, data)
    return data


def detect_preferred_peer(
    store: TopologyStore,
    network: str,
    snapshot: str,
    layer: str,
    ext_asn: int,
    l3_node: str,
    l3_intf: str,
) -> dict:
    """Flag the preferred peer of an external AS and write the snapshot back."""
    networks = store.load_topology(network, snapshot)
    term_point = PreferredDetector(networks).detect_preferred_peer(layer, ext_asn, l3_node, l3_intf)
    data = networks.to_data()
    store.store_topology(network, snapshot, data)
    return {
        "network": network,
        "snapshot": snapshot,
        "layer": layer,
        "preferred": {"node": term_point.parent_name, "interface": term_point.name},
    }


def load_usecase(
    store: TopologyStore,
    usecase_name: str,
    network: str,
    phase_candidate_opts: dict | None = None,
) -> dict:
    """Assemble a use case record from its stored sources."""
    check_usecase(usecase_name)
    params = store.fetch_usecase_source(usecase_name, network, "params")
    if phase_candidate_opts is None:
        phase_candidate_opts = store.fetch_usecase_source(
            usecase_name, network, "phase_candidate_opts"
        )
    return {"name": usecase_name, "params": params, "phase_candidate_opts": phase_candidate_opts}


def generate_candidate_topologies(
    store: TopologyStore,
    network: str,
    snapshot: str,
    usecase_name: str,
    candidate_number: int | None = None,
    phase_number: int | None = None,
    phase_candidate_opts: dict | None = None,
) -> list[dict]:
    """
    Generate candidate topologies and store every successful one.

    Args:
        store: Topology store
        network: Network name
        snapshot: Base snapshot name
        usecase_name: Use case (pni_te, multi_region_te)
        candidate_number: Candidates to generate (default: config)
        phase_number: Phase number used in candidate snapshot names (default: config)
        phase_candidate_opts: Steering point and flow data (default: stored source)

    Returns:
        Candidate summaries (without topology data)
    """
    config = get_config().candidate
    candidate_number = config.candidate_number if candidate_number is None else candidate_number
    phase_number = config.phase_number if phase_number is None else phase_number

    usecase = load_usecase(store, usecase_name, network, phase_candidate_opts)
    generator = CandidateTopologyGenerator(
        store, network, snapshot, usecase, default_max_bandwidth=config.default_max_bandwidth
    )
    candidates: list[CandidateTopology] = generator.generate(phase_number, candidate_number)

    for candidate in candidates:
        if candidate.ok:
            store.store_topology(candidate.network, candidate.snapshot, candidate.topology)
            logger.info("Saved candidate %s/%s", candidate.network, candidate.snapshot)

    return [c.to_dict(with_topology=False) for c in candidates]


def check_topology(store: TopologyStore, network: str, snapshot: str) -> list[str]:
    """Dangling support references and link endpoints of a stored snapshot."""
    problems = store.load_topology(network, snapshot).check_references()
    for problem in problems:
        logger.warning("Dangling reference: %s", problem)
    return problems

