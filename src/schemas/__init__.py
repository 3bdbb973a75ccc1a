"""Pydantic Schemas Package.

This package contains Pydantic models for:
- Stage contracts (Plan, FactSet, InsightSet, Recommendation)
- Run history (WorkItem, RunHistory)

All schemas support JSON Schema export via model_json_schema().
"""

from src.schemas.contracts import (
    STAGE_CONTRACTS,
    Candidate,
    CandidateAnalysis,
    FactSet,
    GraphFilter,
    InsightSet,
    Plan,
    RankedCandidate,
    Recommendation,
    VectorSearch,
    contract_schema,
    parse_contract,
)
from src.schemas.history import RunHistory, WorkItem, WorkItemKind


__all__ = [
    "STAGE_CONTRACTS",
    "Candidate",
    "CandidateAnalysis",
    "FactSet",
    "GraphFilter",
    "InsightSet",
    "Plan",
    "RankedCandidate",
    "Recommendation",
    "RunHistory",
    "VectorSearch",
    "WorkItem",
    "WorkItemKind",
    "contract_schema",
    "parse_contract",
]
