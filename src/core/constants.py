"""Pipeline constants shared by the stages, gateways and orchestrator.

Stage names, tool names, result caps, the gateway failure marker and the
Matchmaker scoring weights live here so prompts, validation and tests agree
on a single value.
"""

from enum import Enum


# =============================================================================
# Stage Names
# =============================================================================

class StageName(str, Enum):
    """Names of the four reasoning stages, in pipeline order."""

    ARCHITECT = "architect"
    FACT_FINDER = "fact_finder"
    INSIGHT_SEEKER = "insight_seeker"
    MATCHMAKER = "matchmaker"


DEFAULT_STAGE_ORDER: tuple[str, ...] = tuple(s.value for s in StageName)

# Display names used in instructions and logs
STAGE_TITLES: dict[str, str] = {
    StageName.ARCHITECT.value: "The Architect",
    StageName.FACT_FINDER.value: "The Fact-Finder",
    StageName.INSIGHT_SEEKER.value: "The Insight-Seeker",
    StageName.MATCHMAKER.value: "The Matchmaker",
}

PIPELINE_NAME = "nexus_hr"


# =============================================================================
# Tools
# =============================================================================

CYPHER_TOOL_NAME = "executeCypherQuery"
EVIDENCE_TOOL_NAME = "searchCandidateEvidence"

# Prefix of every Structured-Query Gateway failure string
QUERY_FAILURE_MARKER = "Query execution failed:"


# =============================================================================
# Contract Limits
# =============================================================================

MAX_CANDIDATES = 5
MIN_MATCH_SCORE = 0.0
MAX_MATCH_SCORE = 100.0

# Literal recorded when no activity-log evidence exists for a candidate
NO_EVIDENCE_MARKER = "NO_EVIDENCE_FOUND"


# =============================================================================
# Matchmaker Scoring Weights
# =============================================================================

class ScoreWeight:
    """Weights of the Matchmaker match score (sum to 1.0)."""
    STACK_DOMAIN_FIT: float = 0.4
    PROBLEM_SOLVING: float = 0.4
    COLLABORATION: float = 0.2


# =============================================================================
# Timeouts
# =============================================================================

class Timeouts:
    """Default timeout values in seconds."""
    HTTP_INFERENCE: float = 120.0  # LLM calls can be slow
    GRAPH_QUERY: float = 30.0
