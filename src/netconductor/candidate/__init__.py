"""Candidate topology generation - prefix withdrawal and flow matching."""

from .flow_table import AggregatedFlow, FlowDataRow, FlowDataTable
from .generator import (
    SUPPORTED_USECASES,
    CandidateTopology,
    CandidateTopologyGenerator,
    check_usecase,
    validate_usecase,
)

__all__ = [
    "AggregatedFlow",
    "FlowDataRow",
    "FlowDataTable",
    "SUPPORTED_USECASES",
    "CandidateTopology",
    "CandidateTopologyGenerator",
    "check_usecase",
    "validate_usecase",
]
