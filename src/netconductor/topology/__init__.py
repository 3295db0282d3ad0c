"""Topology module - multi-layer model and partition analysis."""

from .model import Link, Network, Networks, Node, TermPoint, load
from .partition import NetworkSets, find_all_network_sets, find_network_sets
from .partition_diff import NetworkSetsDiff, diff_network_sets, rank_diffs

__all__ = [
    "Link",
    "Network",
    "Networks",
    "Node",
    "TermPoint",
    "load",
    "NetworkSets",
    "find_network_sets",
    "find_all_network_sets",
    "NetworkSetsDiff",
    "diff_network_sets",
    "rank_diffs",
]
