"""Kafka / order-domain talent search scenario shared by the tests.

Request: a senior backend developer with Kafka experience and three or more
years in the order domain. Two candidates come back from the graph; only
one of them has activity-log evidence.
"""

from __future__ import annotations

from typing import Any

from src.core.constants import CYPHER_TOOL_NAME, EVIDENCE_TOOL_NAME, NO_EVIDENCE_MARKER
from src.schemas.contracts import (
    Candidate,
    CandidateAnalysis,
    FactSet,
    GraphFilter,
    InsightSet,
    Plan,
    RankedCandidate,
    Recommendation,
    VectorSearch,
)
from tests.fakes.fake_clients import FakeReasoningOracle, final_turn, tool_turn


REQUEST_TEXT = (
    "Find a senior backend developer with Kafka experience "
    "who has worked 3+ years in the order domain"
)

EXECUTED_QUERY = (
    "MATCH (e:Employee)-[:HAS_SKILL]->(:Skill {name: 'Kafka'}) "
    "MATCH (e)-[:WORKED_ON]->(p:Project)-[:IN_DOMAIN]->(:Domain {name: '주문'}) "
    "WHERE e.exp_years >= 3 AND toLower(e.position) CONTAINS 'senior' "
    "RETURN e.id AS id, e.name AS name, e.position AS position, "
    "e.exp_years AS exp_years, collect(DISTINCT p.name) AS matched_projects "
    "LIMIT 5"
)

GRAPH_RECORDS: list[dict[str, Any]] = [
    {
        "id": "E001",
        "name": "Kim Minsu",
        "position": "Senior Backend",
        "exp_years": 6.0,
        "matched_projects": ["Order Platform Renewal"],
    },
    {
        "id": "E002",
        "name": "Lee Jiwon",
        "position": "Senior Backend",
        "exp_years": 4.0,
        "matched_projects": ["Order Event Pipeline"],
    },
]

KIM_QUOTE = "Reduced consumer lag on the order topic from 40k to 2k by repartitioning to 24 partitions"

# Activity-log snippets the evidence gateway holds; Lee Jiwon has none
EVIDENCE_SNIPPETS = {"E001": [KIM_QUOTE]}

# Depth keywords after the Architect merges the Kafka and Order hint terms
MERGED_DEPTH_KEYWORDS = [
    "consumer lag",
    "Partitioning",
    "Throughput",
    "Transactional Consistency",
    "State Machine",
    "Idempotency",
]
SOFT_SKILL_KEYWORDS = ["code review", "incident retrospective"]


def plan() -> Plan:
    """Architect payload as the oracle emits it (before keyword merge)."""
    return Plan(
        reasoning="Kafka and the order domain are facts; lag handling and consistency need evidence.",
        graph_filter=GraphFilter(
            target_skills=["Kafka"],
            target_domain="Order",
            min_experience="3 years",
            project_keywords=["order"],
        ),
        vector_search=VectorSearch(
            technical_depth_keywords=["consumer lag"],
            soft_skill_keywords=list(SOFT_SKILL_KEYWORDS),
            evidence_to_find="Incidents or reviews where the candidate tuned Kafka consumers",
        ),
    )


def fact_set() -> FactSet:
    return FactSet(
        executed_query=EXECUTED_QUERY,
        reasoning="Two senior backend engineers with Kafka on order projects.",
        candidates=[Candidate(**record) for record in GRAPH_RECORDS],
        next_step_instructions="Focus on Kafka incident reports and order-service code reviews.",
    )


def insight_set() -> InsightSet:
    """Insight payload; Lee Jiwon has no quotes."""
    return InsightSet(
        candidate_analyses=[
            CandidateAnalysis(
                id="E001",
                technical_depth="Diagnosed and fixed consumer lag through partition tuning.",
                soft_skill_analysis="Wrote the incident retrospective and led the review.",
                evidence_quotes=[KIM_QUOTE],
            ),
            CandidateAnalysis(
                id="E002",
                technical_depth=NO_EVIDENCE_MARKER,
                soft_skill_analysis=NO_EVIDENCE_MARKER,
                evidence_quotes=[],
            ),
        ]
    )


def recommendation() -> Recommendation:
    """Matchmaker payload listed out of order with wrong ranks."""
    return Recommendation(
        final_recommendation=[
            RankedCandidate(
                rank=1,
                name="Lee Jiwon",
                match_score=52.0,
                summary_justification="Matches the stack on paper but has no evidence.",
                technical_proof=NO_EVIDENCE_MARKER,
                collaboration_proof=NO_EVIDENCE_MARKER,
            ),
            RankedCandidate(
                rank=2,
                name="Kim Minsu",
                match_score=91.0,
                summary_justification="Proven Kafka depth in the order domain.",
                technical_proof=KIM_QUOTE,
                collaboration_proof="Wrote the incident retrospective and led the review.",
            ),
        ],
        overall_conclusion="Kim Minsu is the strongest fit.",
    )


def cypher_call(query: str = EXECUTED_QUERY) -> tuple[str, dict[str, Any]]:
    return (CYPHER_TOOL_NAME, {"query": query})


def evidence_call(
    candidate_ids: list[str] | None = None,
    query_keywords: list[str] | None = None,
) -> tuple[str, dict[str, Any]]:
    return (
        EVIDENCE_TOOL_NAME,
        {
            "candidate_ids": candidate_ids if candidate_ids is not None else ["E001", "E002"],
            "query_keywords": (
                query_keywords
                if query_keywords is not None
                else [*MERGED_DEPTH_KEYWORDS, *SOFT_SKILL_KEYWORDS]
            ),
        },
    )


def full_script() -> dict[str, list]:
    """Oracle script for a successful four-stage run."""
    return {
        "architect": [final_turn(plan())],
        "fact_finder": [tool_turn(cypher_call(), prefix="ff"), final_turn(fact_set())],
        "insight_seeker": [tool_turn(evidence_call(), prefix="is"), final_turn(insight_set())],
        "matchmaker": [final_turn(recommendation())],
    }


def scripted_oracle() -> FakeReasoningOracle:
    return FakeReasoningOracle(full_script())


def merged_plan() -> Plan:
    """Architect payload after the keyword merge."""
    original = plan()
    vector_search = original.vector_search.model_copy(
        update={"technical_depth_keywords": list(MERGED_DEPTH_KEYWORDS)}
    )
    return original.model_copy(update={"vector_search": vector_search})


def finalized_insight_set() -> InsightSet:
    """Insight payload after the absence marker is filled in."""
    analyses = insight_set().candidate_analyses
    return InsightSet(
        candidate_analyses=[
            analyses[0],
            analyses[1].model_copy(update={"evidence_quotes": [NO_EVIDENCE_MARKER]}),
        ]
    )
