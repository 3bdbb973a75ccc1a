"""Reasoning stages of the talent search pipeline."""

from src.agents.base import ReasoningStage, StageRun
from src.agents.cypher import build_candidate_query, extract_min_years
from src.agents.stages import (
    ArchitectStage,
    FactFinderStage,
    InsightSeekerStage,
    MatchmakerStage,
    build_stages,
)


__all__ = [
    "ArchitectStage",
    "FactFinderStage",
    "InsightSeekerStage",
    "MatchmakerStage",
    "ReasoningStage",
    "StageRun",
    "build_candidate_query",
    "build_stages",
    "extract_min_years",
]
