"""Graph filter to Cypher translation.

Builds a bounded, read-only reference query from the Architect's graph
filter. The Fact-Finder receives this query in its instructions and may
refine it before executing; every value is embedded as an escaped Cypher
string literal so user text cannot break out of the query.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from src.core.constants import MAX_CANDIDATES
from src.schemas.contracts import GraphFilter


_LEADING_INT = re.compile(r"\d+")

# Domain nodes are stored under their Korean names.
GRAPH_DOMAIN_NAMES: dict[str, str] = {
    "order": "주문",
    "payment": "결제",
    "delivery": "배송",
    "shipping": "배송",
}


def extract_min_years(requirement: str | None) -> int | None:
    """Extract the leading integer of an experience requirement.

    >>> extract_min_years("3 years")
    3
    >>> extract_min_years("10+ years")
    10
    >>> extract_min_years("senior") is None
    True
    """
    if not requirement:
        return None
    match = _LEADING_INT.search(requirement)
    return int(match.group()) if match else None


def cypher_literal(value: str) -> str:
    """Quote a string as a Cypher literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def cypher_list(values: Iterable[str]) -> str:
    return "[" + ", ".join(cypher_literal(v) for v in values) + "]"


def graph_domain_name(domain: str) -> str:
    """Map an English domain name to the name stored in the graph."""
    return GRAPH_DOMAIN_NAMES.get(domain.strip().lower(), domain.strip())


def _clean(values: Iterable[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


def build_candidate_query(graph_filter: GraphFilter, limit: int = MAX_CANDIDATES) -> str:
    """Build the reference candidate query for a graph filter.

    Employees must have every target skill (exact name), have worked on a
    project in the target domain (case-insensitive containment), and meet
    the experience threshold. Project keywords only influence ordering.

    Args:
        graph_filter: Architect's graph filter
        limit: Result cap, never above MAX_CANDIDATES

    Returns:
        Cypher query text ending in a LIMIT clause
    """
    limit = max(1, min(limit, MAX_CANDIDATES))
    skills = _clean(graph_filter.target_skills)
    domain = graph_domain_name(graph_filter.target_domain)
    keywords = _clean(graph_filter.project_keywords)
    min_years = extract_min_years(graph_filter.min_experience)

    lines = ["MATCH (e:Employee)"]
    if min_years is not None:
        lines.append(f"WHERE e.exp_years >= {min_years}")
    for index, skill in enumerate(skills):
        lines.append(f"MATCH (e)-[:HAS_SKILL]->(s{index}:Skill {{name: {cypher_literal(skill)}}})")

    if domain:
        lines.append("MATCH (e)-[:WORKED_ON]->(p:Project)-[:IN_DOMAIN]->(d:Domain)")
        lines.append(f"WHERE toLower(d.name) CONTAINS toLower({cypher_literal(domain)})")
    else:
        lines.append("OPTIONAL MATCH (e)-[:WORKED_ON]->(p:Project)")

    lines.append("WITH e, collect(DISTINCT p.name) AS matched_projects")
    if keywords:
        lines.append(
            "WITH e, matched_projects, "
            "size([name IN matched_projects WHERE "
            f"ANY(k IN {cypher_list(keywords)} WHERE toLower(name) CONTAINS toLower(k))]) AS keyword_hits"
        )
        order_by = "keyword_hits DESC, e.exp_years DESC"
    else:
        order_by = "e.exp_years DESC"

    lines.append(
        "RETURN e.id AS id, e.name AS name, e.position AS position, "
        "e.exp_years AS exp_years, matched_projects"
    )
    lines.append(f"ORDER BY {order_by}")
    lines.append(f"LIMIT {limit}")
    return "\n".join(lines)
