"""Stage contracts - the inter-stage wire format.

Each reasoning stage must emit exactly one payload conforming to its
contract. Contracts are strict: unknown fields are rejected and values are
not coerced, so a payload either parses into the model or the stage has
violated its contract.

    Architect      -> Plan
    Fact-Finder    -> FactSet
    Insight-Seeker -> InsightSet
    Matchmaker     -> Recommendation
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from src.core.constants import (
    MAX_CANDIDATES,
    MAX_MATCH_SCORE,
    MIN_MATCH_SCORE,
    StageName,
)
from src.core.exceptions import StageContractError


_STRICT = ConfigDict(extra="forbid", strict=True)


# =============================================================================
# Plan (Architect)
# =============================================================================

class GraphFilter(BaseModel):
    """Fact-based filters for the graph search."""

    model_config = _STRICT

    target_skills: list[str] = Field(..., description="Exact skill names, e.g. 'Kafka'")
    target_domain: str = Field(..., description="Business domain, e.g. 'Order'")
    min_experience: str = Field(..., description="Free-text experience requirement, e.g. '3 years'")
    project_keywords: list[str] = Field(..., description="Keywords matched against project names")


class VectorSearch(BaseModel):
    """Context-based hints for the evidence search."""

    model_config = _STRICT

    technical_depth_keywords: list[str] = Field(..., description="Terms that verify technical depth")
    soft_skill_keywords: list[str] = Field(..., description="Terms about collaboration and attitude")
    evidence_to_find: str = Field(..., description="What evidence the Insight-Seeker should look for")


class Plan(BaseModel):
    """Architect output: the search strategy split into graph and vector halves."""

    model_config = _STRICT

    reasoning: str
    graph_filter: GraphFilter
    vector_search: VectorSearch


# =============================================================================
# FactSet (Fact-Finder)
# =============================================================================

class Candidate(BaseModel):
    """An employee matched by the graph query."""

    model_config = _STRICT

    id: str = Field(..., min_length=1, description="Employee id (key for evidence lookups)")
    name: str = Field(..., description="Employee name")
    position: str = Field(..., description="Current level and role")
    exp_years: float = Field(..., ge=0, description="Total years of experience")
    matched_projects: list[str] | None = Field(
        default=None,
        description="Projects that satisfied the filter",
    )


class FactSet(BaseModel):
    """Fact-Finder output: the executed query and up to five candidates."""

    model_config = _STRICT

    executed_query: str = Field(..., description="The Cypher query actually executed")
    reasoning: str = Field(..., description="Summary of the results and selection rationale")
    candidates: list[Candidate] = Field(..., max_length=MAX_CANDIDATES)
    next_step_instructions: str = Field(
        ...,
        description="Which activity logs the Insight-Seeker should focus on",
    )

    @model_validator(mode="after")
    def _unique_candidate_ids(self) -> FactSet:
        ids = [c.id for c in self.candidates]
        if len(ids) != len(set(ids)):
            raise ValueError("candidate ids must be unique")
        return self

    @property
    def candidate_ids(self) -> list[str]:
        return [c.id for c in self.candidates]


# =============================================================================
# InsightSet (Insight-Seeker)
# =============================================================================

class CandidateAnalysis(BaseModel):
    """Evidence-backed analysis of one candidate."""

    model_config = _STRICT

    id: str = Field(..., min_length=1, description="Candidate.id from the FactSet")
    technical_depth: str
    soft_skill_analysis: str
    evidence_quotes: list[str]


class InsightSet(BaseModel):
    """Insight-Seeker output."""

    model_config = _STRICT

    candidate_analyses: list[CandidateAnalysis]

    def analysis_for(self, candidate_id: str) -> CandidateAnalysis | None:
        for analysis in self.candidate_analyses:
            if analysis.id == candidate_id:
                return analysis
        return None


# =============================================================================
# Recommendation (Matchmaker)
# =============================================================================

class RankedCandidate(BaseModel):
    """One entry in the final ranked list."""

    model_config = _STRICT

    rank: int = Field(..., ge=1)
    name: str
    match_score: float = Field(..., ge=MIN_MATCH_SCORE, le=MAX_MATCH_SCORE)
    summary_justification: str
    technical_proof: str
    collaboration_proof: str


class Recommendation(BaseModel):
    """Matchmaker output: candidates sorted by descending match score."""

    model_config = _STRICT

    final_recommendation: list[RankedCandidate]
    overall_conclusion: str


# =============================================================================
# Registry and Parsing
# =============================================================================

STAGE_CONTRACTS: dict[str, type[BaseModel]] = {
    StageName.ARCHITECT.value: Plan,
    StageName.FACT_FINDER.value: FactSet,
    StageName.INSIGHT_SEEKER.value: InsightSet,
    StageName.MATCHMAKER.value: Recommendation,
}


def contract_schema(contract: type[BaseModel]) -> dict:
    """Return the JSON schema sent to the oracle for a contract."""
    return contract.model_json_schema()


def parse_contract(
    contract: type[BaseModel],
    raw_text: str,
    stage: str,
) -> BaseModel:
    """Parse oracle text into a contract model.

    Args:
        contract: Target contract model
        raw_text: JSON text produced by the oracle
        stage: Stage name, for error reporting

    Returns:
        Validated contract instance

    Raises:
        StageContractError: If the text is not valid JSON or does not
            conform to the contract. The payload is never repaired.
    """
    try:
        return contract.model_validate_json(raw_text)
    except ValidationError as e:
        raise StageContractError(
            f"Stage '{stage}' output does not conform to {contract.__name__}: "
            f"{e.error_count()} error(s): {e.errors(include_url=False)}",
            stage=stage,
            raw_output=raw_text,
        ) from e
