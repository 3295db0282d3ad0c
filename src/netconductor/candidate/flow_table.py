"""Flow-data table: observed traffic aggregated per advertised prefix."""

import itertools
import logging
import math
from dataclasses import dataclass

from ..core.utils import validate_network

logger = logging.getLogger(__name__)


def floor2(value: float) -> float:
    """Floor to 2 decimal places (8017.119 -> 8017.11)."""
    # round first so 5.0 stored as 4.99999... does not floor to 4.99
    return math.floor(round(value * 100, 6)) / 100


@dataclass
class FlowDataRow:
    """Row of flow-data table. Rate is in Mbps."""

    source: str
    dest: str
    rate: float

    @classmethod
    def from_dict(cls, data: dict) -> "FlowDataRow":
        return cls(
            source=data.get("source", ""),
            dest=data.get("dest", ""),
            rate=float(data.get("rate", -1)),
        )

    def __str__(self) -> str:
        return f"{self.source} -> {self.dest}, {self.rate}"


@dataclass
class AggregatedFlow:
    """A combination of prefixes and the total rate of flows toward them."""

    prefixes: list[str]
    rate: float
    diff: float

    def to_dict(self) -> dict:
        return {"prefixes": self.prefixes, "rate": self.rate, "diff": self.diff}


class FlowDataTable:
    """Observed flows, matched against an advertised prefix-set."""

    def __init__(self, flow_data: list[dict]):
        self.rows = [FlowDataRow.from_dict(flow) for flow in flow_data]

    def __str__(self) -> str:
        return "\n".join(str(row) for row in self.rows)

    def rows_by_prefixes(self, prefixes: list[str]) -> dict[str, list[FlowDataRow]]:
        """Map each prefix to the flows whose destination it routes.

        A flow belongs to the longest prefix containing its destination.
        Prefixes without any flow are left out: they cannot steer traffic.
        """
        networks = [(p, validate_network(p)) for p in prefixes]
        table: dict[str, list[FlowDataRow]] = {}

        for row in self.rows:
            dest = validate_network(row.dest)
            matches = [
                (prefix, net)
                for prefix, net in networks
                if net.version == dest.version and dest.subnet_of(net)
            ]
            if not matches:
                logger.debug("Flow %s matches no prefix", row)
                continue
            prefix, _ = max(matches, key=lambda m: m[1].prefixlen)
            table.setdefault(prefix, []).append(row)

        # keep prefix-set order
        return {p: table[p] for p in prefixes if p in table}

    @staticmethod
    def enumerate_combinations(
        prefix_table: dict[str, list[FlowDataRow]], combination_count: int
    ) -> list[tuple[str, ...]]:
        """All prefix combinations of size 1..combination_count."""
        prefixes = list(prefix_table)
        combinations: list[tuple[str, ...]] = []
        for size in range(1, min(combination_count, len(prefixes)) + 1):
            combinations.extend(itertools.combinations(prefixes, size))
        return combinations

    def aggregated_flows_by_prefix(
        self,
        prefixes: list[str],
        expected_max_bandwidth: float,
        combination_count: int | None = None,
    ) -> list[AggregatedFlow]:
        """
        Rank prefix combinations by closeness to a target rate.

        Args:
            prefixes: Advertised prefixes (prefix-set entries)
            expected_max_bandwidth: Target rate (Mbps)
            combination_count: Max combination size (default: all prefixes)

        Returns:
            Aggregated flows sorted by |rate - target| ascending
        """
        if combination_count is None:
            combination_count = len(prefixes)

        prefix_table = self.rows_by_prefixes(prefixes)
        combinations = self.enumerate_combinations(prefix_table, combination_count)
        logger.debug(
            "%d prefixes with flows, %d combinations", len(prefix_table), len(combinations)
        )

        aggregates = []
        for combination in combinations:
            rate = floor2(sum(row.rate for p in combination for row in prefix_table[p]))
            aggregates.append(
                AggregatedFlow(
                    prefixes=list(combination),
                    rate=rate,
                    diff=floor2(rate - expected_max_bandwidth),
                )
            )
        return sorted(aggregates, key=lambda a: abs(a.diff))
