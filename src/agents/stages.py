"""The four Nexus HR reasoning stages.

    Architect      -> Plan            (no tools)
    Fact-Finder    -> FactSet         (executeCypherQuery)
    Insight-Seeker -> InsightSet      (searchCandidateEvidence)
    Matchmaker     -> Recommendation  (no tools)

Each stage adds its own rules on top of schema validation in ``finalize``.
Rule violations raise StageContractError; payloads are never repaired except
where a rule defines the repair (keyword merge, evidence backfill, rank
rewrite).
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from pydantic import ValidationError

from src.agents.base import ReasoningStage
from src.agents.cypher import build_candidate_query
from src.agents.prompts import (
    ARCHITECT_INSTRUCTIONS,
    DOMAIN_ALIASES,
    DOMAIN_CONSISTENCY_TERMS,
    FACT_FINDER_INSTRUCTIONS,
    INSIGHT_SEEKER_INSTRUCTIONS,
    TECHNOLOGY_ALIASES,
    TECHNOLOGY_DEPTH_TERMS,
    matchmaker_instructions,
)
from src.clients.evidence import EvidenceGatewayProtocol
from src.clients.graph_gateway import GraphQueryGateway
from src.clients.llm_gateway import ModelSettings, ReasoningOracle
from src.core.config import Settings
from src.core.constants import (
    CYPHER_TOOL_NAME,
    EVIDENCE_TOOL_NAME,
    NO_EVIDENCE_MARKER,
    STAGE_TITLES,
    StageName,
)
from src.core.exceptions import StageContractError
from src.core.logging import get_logger
from src.schemas.contracts import (
    STAGE_CONTRACTS,
    CandidateAnalysis,
    FactSet,
    InsightSet,
    Plan,
    RankedCandidate,
    Recommendation,
)
from src.schemas.history import RunHistory, WorkItem, WorkItemKind
from src.tools.gateway_tools import cypher_query_tool, evidence_search_tool


logger = get_logger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def merge_keywords(existing: Iterable[str], additions: Iterable[str]) -> list[str]:
    """Append ``additions`` to ``existing``, dropping case-insensitive duplicates.

    First occurrence wins; order is preserved.
    """
    merged: list[str] = []
    seen: set[str] = set()
    for keyword in [*existing, *additions]:
        key = keyword.strip().casefold()
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(keyword.strip())
    return merged


def _mentions(text: str, aliases: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(
        re.search(rf"(?<![a-z]){re.escape(alias)}(?![a-z])", lowered)
        for alias in aliases
    )


def _prior_output(history: RunHistory, stage: StageName) -> Any | None:
    """Re-validate the latest payload a prior stage appended to the history."""
    payload = history.latest_output(stage.value)
    if payload is None:
        return None
    try:
        return STAGE_CONTRACTS[stage.value].model_validate(payload)
    except ValidationError:
        logger.warning("Ignoring unreadable prior output", stage=stage.value)
        return None


def _calls(new_items: Sequence[WorkItem], tool_name: str) -> list[WorkItem]:
    return [
        item
        for item in new_items
        if item.kind is WorkItemKind.TOOL_CALL and item.tool_name == tool_name
    ]


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _strings(item)


def _returned_texts(new_items: Sequence[WorkItem], tool_name: str) -> list[str]:
    """Texts a tool actually returned in this stage.

    Only the ``results`` of a JSON payload count, so keywords or ids the
    gateway echoes back are never treated as evidence.
    """
    call_ids = {c.call_id for c in _calls(new_items, tool_name)}
    texts: list[str] = []
    for item in new_items:
        if item.kind is not WorkItemKind.TOOL_RESULT or item.call_id not in call_ids:
            continue
        try:
            payload = json.loads(item.content)
        except ValueError:
            texts.append(item.content)
            continue
        if isinstance(payload, dict) and "results" in payload:
            texts.extend(_strings(payload["results"]))
        else:
            texts.append(item.content)
    return texts


def _normalize_query(query: str) -> str:
    return " ".join(query.split())


def has_no_evidence(analysis: CandidateAnalysis | None) -> bool:
    """True when an analysis carries no quote other than the absence marker."""
    if analysis is None:
        return True
    return all(q.strip() in ("", NO_EVIDENCE_MARKER) for q in analysis.evidence_quotes)


# =============================================================================
# Architect
# =============================================================================

class ArchitectStage(ReasoningStage[Plan]):
    """Splits the request into a graph filter and an evidence-search strategy."""

    contract = Plan

    @property
    def description(self) -> str:
        return "Plans the graph filter and evidence keywords for a talent search"

    def build_instructions(self, history: RunHistory) -> str:
        return ARCHITECT_INSTRUCTIONS

    def depth_terms_for(self, plan: Plan, request_text: str) -> list[str]:
        """Collect the hint-table terms the plan must carry.

        Technologies are recognized in target_skills or the request text;
        domains only in target_domain.
        """
        skills_text = " ".join(plan.graph_filter.target_skills)
        terms: list[str] = []
        for technology, aliases in TECHNOLOGY_ALIASES.items():
            if _mentions(skills_text, aliases) or _mentions(request_text, aliases):
                terms.extend(TECHNOLOGY_DEPTH_TERMS[technology])
        for domain, aliases in DOMAIN_ALIASES.items():
            if _mentions(plan.graph_filter.target_domain, aliases):
                terms.extend(DOMAIN_CONSISTENCY_TERMS[domain])
        return terms

    def finalize(
        self,
        output: Plan,
        history: RunHistory,
        new_items: tuple[WorkItem, ...],
    ) -> Plan:
        terms = self.depth_terms_for(output, history.request_text)
        merged = merge_keywords(output.vector_search.technical_depth_keywords, terms)
        if merged == output.vector_search.technical_depth_keywords:
            return output
        logger.info("Merged depth keywords into plan", added=len(merged) - len(output.vector_search.technical_depth_keywords))
        vector_search = output.vector_search.model_copy(update={"technical_depth_keywords": merged})
        return output.model_copy(update={"vector_search": vector_search})


# =============================================================================
# Fact-Finder
# =============================================================================

class FactFinderStage(ReasoningStage[FactSet]):
    """Translates the graph filter into Cypher and reports up to five candidates."""

    contract = FactSet

    @property
    def description(self) -> str:
        return "Queries the talent graph for candidates matching the plan's graph filter"

    def build_instructions(self, history: RunHistory) -> str:
        plan = _prior_output(history, StageName.ARCHITECT)
        if plan is None:
            return FACT_FINDER_INSTRUCTIONS
        reference = build_candidate_query(plan.graph_filter)
        return (
            f"{FACT_FINDER_INSTRUCTIONS}\n\n"
            "[Reference Query]\n"
            "This query satisfies the graph_filter. Run it as is or refine it.\n"
            f"{reference}"
        )

    def finalize(
        self,
        output: FactSet,
        history: RunHistory,
        new_items: tuple[WorkItem, ...],
    ) -> FactSet:
        calls = _calls(new_items, CYPHER_TOOL_NAME)
        if not calls:
            raise StageContractError(
                f"Stage '{self.name}' reported candidates without calling {CYPHER_TOOL_NAME}",
                stage=self.name,
            )
        executed = {_normalize_query(c.parsed_arguments().get("query", "")) for c in calls}
        if _normalize_query(output.executed_query) not in executed:
            raise StageContractError(
                f"Stage '{self.name}' executed_query does not match any query it ran",
                stage=self.name,
            )
        return output


# =============================================================================
# Insight-Seeker
# =============================================================================

class InsightSeekerStage(ReasoningStage[InsightSet]):
    """Collects activity-log evidence for every Fact-Finder candidate."""

    contract = InsightSet

    @property
    def description(self) -> str:
        return "Finds evidence of technical depth and collaboration for each candidate"

    def build_instructions(self, history: RunHistory) -> str:
        facts = _prior_output(history, StageName.FACT_FINDER)
        plan = _prior_output(history, StageName.ARCHITECT)
        sections = [INSIGHT_SEEKER_INSTRUCTIONS]
        if facts is not None:
            sections.append(f"[Candidate IDs]\n{facts.candidate_ids}")
            sections.append(f"[Focus]\n{facts.next_step_instructions}")
        if plan is not None:
            sections.append(
                "[Keywords]\n"
                f"technical_depth_keywords: {plan.vector_search.technical_depth_keywords}\n"
                f"soft_skill_keywords: {plan.vector_search.soft_skill_keywords}\n"
                f"evidence_to_find: {plan.vector_search.evidence_to_find}"
            )
        return "\n\n".join(sections)

    def _check_search_coverage(
        self,
        candidate_ids: list[str],
        plan: Plan | None,
        new_items: tuple[WorkItem, ...],
    ) -> None:
        calls = _calls(new_items, EVIDENCE_TOOL_NAME)
        if not calls:
            raise StageContractError(
                f"Stage '{self.name}' analyzed candidates without calling {EVIDENCE_TOOL_NAME}",
                stage=self.name,
            )
        searched_ids: set[str] = set()
        searched_keywords: set[str] = set()
        for call in calls:
            arguments = call.parsed_arguments()
            searched_ids.update(str(i) for i in arguments.get("candidate_ids") or [])
            searched_keywords.update(
                str(k).strip().casefold() for k in arguments.get("query_keywords") or []
            )

        missing_ids = [i for i in candidate_ids if i not in searched_ids]
        if missing_ids:
            raise StageContractError(
                f"Stage '{self.name}' never searched evidence for candidates {missing_ids}",
                stage=self.name,
            )
        if plan is None:
            return
        required = [
            *plan.vector_search.technical_depth_keywords,
            *plan.vector_search.soft_skill_keywords,
        ]
        missing_keywords = [k for k in required if k.strip().casefold() not in searched_keywords]
        if missing_keywords:
            raise StageContractError(
                f"Stage '{self.name}' never searched with keywords {missing_keywords}",
                stage=self.name,
            )

    def _check_quotes(self, output: InsightSet, new_items: tuple[WorkItem, ...]) -> None:
        """Every quote must appear verbatim in what the evidence search returned."""
        returned = _returned_texts(new_items, EVIDENCE_TOOL_NAME)
        for analysis in output.candidate_analyses:
            for quote in analysis.evidence_quotes:
                text = quote.strip()
                if text in ("", NO_EVIDENCE_MARKER):
                    continue
                if not any(text in source for source in returned):
                    raise StageContractError(
                        f"Stage '{self.name}' quoted evidence for '{analysis.id}' "
                        f"that no {EVIDENCE_TOOL_NAME} result contains: {text!r}",
                        stage=self.name,
                    )

    def finalize(
        self,
        output: InsightSet,
        history: RunHistory,
        new_items: tuple[WorkItem, ...],
    ) -> InsightSet:
        facts = _prior_output(history, StageName.FACT_FINDER)
        if facts is None:
            self._check_quotes(output, new_items)
            return output
        candidate_ids = facts.candidate_ids

        dangling = [a.id for a in output.candidate_analyses if a.id not in candidate_ids]
        if dangling:
            raise StageContractError(
                f"Stage '{self.name}' analyzed unknown candidate ids {dangling}",
                stage=self.name,
            )
        if not candidate_ids:
            return output

        self._check_search_coverage(candidate_ids, _prior_output(history, StageName.ARCHITECT), new_items)
        self._check_quotes(output, new_items)

        analyses: list[CandidateAnalysis] = []
        for candidate_id in candidate_ids:
            analysis = output.analysis_for(candidate_id)
            if analysis is None:
                logger.info("Backfilling missing analysis", stage=self.name, candidate_id=candidate_id)
                analysis = CandidateAnalysis(
                    id=candidate_id,
                    technical_depth=NO_EVIDENCE_MARKER,
                    soft_skill_analysis=NO_EVIDENCE_MARKER,
                    evidence_quotes=[NO_EVIDENCE_MARKER],
                )
            elif not analysis.evidence_quotes:
                analysis = analysis.model_copy(update={"evidence_quotes": [NO_EVIDENCE_MARKER]})
            analyses.append(analysis)
        return InsightSet(candidate_analyses=analyses)


# =============================================================================
# Matchmaker
# =============================================================================

class MatchmakerStage(ReasoningStage[Recommendation]):
    """Scores and ranks candidates from the facts and the evidence."""

    contract = Recommendation

    @property
    def description(self) -> str:
        return "Ranks candidates by weighted match score with quoted proof"

    def build_instructions(self, history: RunHistory) -> str:
        return matchmaker_instructions()

    def _evidence_by_name(self, history: RunHistory) -> dict[str, list[CandidateAnalysis | None]] | None:
        facts = _prior_output(history, StageName.FACT_FINDER)
        insights = _prior_output(history, StageName.INSIGHT_SEEKER)
        if facts is None or insights is None:
            return None
        by_name: dict[str, list[CandidateAnalysis | None]] = {}
        for candidate in facts.candidates:
            by_name.setdefault(candidate.name, []).append(insights.analysis_for(candidate.id))
        return by_name

    def finalize(
        self,
        output: Recommendation,
        history: RunHistory,
        new_items: tuple[WorkItem, ...],
    ) -> Recommendation:
        ordered = sorted(output.final_recommendation, key=lambda c: -c.match_score)
        ranked: list[RankedCandidate] = [
            entry if entry.rank == rank else entry.model_copy(update={"rank": rank})
            for rank, entry in enumerate(ordered, start=1)
        ]

        evidence = self._evidence_by_name(history)
        if evidence is not None:
            recommended: set[str] = set()
            for entry in ranked:
                if entry.name not in evidence:
                    raise StageContractError(
                        f"Stage '{self.name}' recommended unknown candidate '{entry.name}'",
                        stage=self.name,
                    )
                if entry.name in recommended:
                    raise StageContractError(
                        f"Stage '{self.name}' recommended '{entry.name}' more than once",
                        stage=self.name,
                    )
                recommended.add(entry.name)
                # A shared name is only trusted when every bearer has evidence.
                if any(has_no_evidence(a) for a in evidence[entry.name]) and not (
                    NO_EVIDENCE_MARKER in entry.technical_proof
                    and NO_EVIDENCE_MARKER in entry.collaboration_proof
                ):
                    raise StageContractError(
                        f"Stage '{self.name}' cited proof for '{entry.name}' who has no evidence",
                        stage=self.name,
                    )
        return output.model_copy(update={"final_recommendation": ranked})


# =============================================================================
# Factory
# =============================================================================

def build_stages(
    settings: Settings,
    oracle: ReasoningOracle,
    graph_gateway: GraphQueryGateway,
    evidence_gateway: EvidenceGatewayProtocol,
) -> dict[str, ReasoningStage[Any]]:
    """Create every stage, keyed by stage name.

    Args:
        settings: Application settings (model settings, turn bound, top_k)
        oracle: Reasoning oracle shared by all stages
        graph_gateway: Structured-Query Gateway for the Fact-Finder
        evidence_gateway: Evidence-Lookup Gateway for the Insight-Seeker
    """
    model_settings = ModelSettings(
        model=settings.default_llm_model,
        temperature=settings.temperature,
        top_p=settings.top_p,
        max_tokens=settings.max_output_tokens,
    )
    common: dict[str, Any] = {"settings": model_settings, "max_turns": settings.max_stage_turns}
    return {
        StageName.ARCHITECT.value: ArchitectStage(StageName.ARCHITECT.value, oracle, **common),
        StageName.FACT_FINDER.value: FactFinderStage(
            StageName.FACT_FINDER.value,
            oracle,
            tools=[cypher_query_tool(graph_gateway)],
            **common,
        ),
        StageName.INSIGHT_SEEKER.value: InsightSeekerStage(
            StageName.INSIGHT_SEEKER.value,
            oracle,
            tools=[evidence_search_tool(evidence_gateway, default_top_k=settings.evidence_top_k)],
            **common,
        ),
        StageName.MATCHMAKER.value: MatchmakerStage(StageName.MATCHMAKER.value, oracle, **common),
    }


def stage_title(name: str) -> str:
    """Display name of a stage, falling back to its key."""
    return STAGE_TITLES.get(name, name)
