"""Compare network sets of a physical snapshot against derived snapshots."""

import logging
from dataclasses import dataclass, field

from .partition import NetworkSets

logger = logging.getLogger(__name__)


@dataclass
class SetChange:
    """One separation or merge event.

    ``origin`` is the set on the side that held the nodes together and
    ``parts`` are the pieces it maps to on the other side.
    """

    origin: frozenset[str]
    parts: list[frozenset[str]]

    @property
    def nodes(self) -> set[str]:
        nodes: set[str] = set()
        for part in self.parts:
            nodes |= part
        return nodes

    def to_dict(self) -> dict:
        return {
            "origin": sorted(self.origin),
            "parts": sorted(sorted(p) for p in self.parts),
        }


@dataclass
class NetworkSetsDiff:
    """Partition diff between a source (baseline) and a target snapshot."""

    source_snapshot: str
    target_snapshot: str
    layer: str
    separated_sets: list[SetChange] = field(default_factory=list)
    merged_sets: list[SetChange] = field(default_factory=list)
    network: str | None = None

    @property
    def score(self) -> int:
        """Number of nodes whose set membership changed."""
        changed: set[str] = set()
        for change in self.separated_sets + self.merged_sets:
            changed |= change.nodes
        return len(changed)

    def to_dict(self) -> dict:
        return {
            "network": self.network,
            "source_snapshot": self.source_snapshot,
            "target_snapshot": self.target_snapshot,
            "layer": self.layer,
            "score": self.score,
            "merged_sets": [c.to_dict() for c in self.merged_sets],
            "separated_sets": [c.to_dict() for c in self.separated_sets],
        }

    def __str__(self) -> str:
        return (
            f"{self.source_snapshot} -> {self.target_snapshot} [{self.layer}]: "
            f"score={self.score}, separated={len(self.separated_sets)}, "
            f"merged={len(self.merged_sets)}"
        )


def _split(origin_sets: list[frozenset[str]], other: NetworkSets) -> list[SetChange]:
    # nodes absent on the other side (node-down) are not part of any piece
    index = other.node_index()
    changes = []
    for origin in origin_sets:
        parts = {}
        for node in origin:
            other_set = index.get(node)
            if other_set is not None:
                parts[other_set] = origin & other_set
        if len(parts) >= 2:
            changes.append(SetChange(origin=origin, parts=list(parts.values())))
    return changes


def diff_network_sets(
    source: NetworkSets,
    target: NetworkSets,
    source_snapshot: str = "source",
    target_snapshot: str = "target",
) -> NetworkSetsDiff:
    """
    Diff the network sets of a baseline against a derived snapshot.

    Args:
        source: Baseline (physical) network sets
        target: Derived (logical) network sets of the same layer
        source_snapshot: Baseline snapshot name
        target_snapshot: Derived snapshot name

    Returns:
        NetworkSetsDiff with separation and merge events
    """
    separated = _split(source.node_sets, target)
    merged = _split(target.node_sets, source)
    diff = NetworkSetsDiff(
        source_snapshot=source_snapshot,
        target_snapshot=target_snapshot,
        layer=source.network,
        separated_sets=separated,
        merged_sets=merged,
    )
    logger.debug("Network sets diff %s", diff)
    return diff


def rank_diffs(diffs: list[NetworkSetsDiff], min_score: int = 0) -> list[NetworkSetsDiff]:
    """Drop diffs scoring below `min_score`; order by score desc, then target name."""
    kept = [d for d in diffs if d.score >= min_score]
    return sorted(kept, key=lambda d: (-d.score, d.target_snapshot))
