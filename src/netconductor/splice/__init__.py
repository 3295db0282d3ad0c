"""Topology splicing - merge external peering topology into internal topology."""

from .splicer import InsertResult, TopologySplicer, splice_topology

__all__ = [
    "InsertResult",
    "TopologySplicer",
    "splice_topology",
]
