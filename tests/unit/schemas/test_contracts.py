"""Unit tests for the stage contracts.

Contracts are strict: unknown fields, wrong types and broken limits are
rejected rather than repaired.
"""

import json

import pytest
from pydantic import ValidationError

from src.core.constants import MAX_CANDIDATES, StageName
from src.core.exceptions import StageContractError
from src.schemas.contracts import (
    STAGE_CONTRACTS,
    Candidate,
    FactSet,
    InsightSet,
    Plan,
    RankedCandidate,
    Recommendation,
    contract_schema,
    parse_contract,
)
from tests.fakes import scenario


def _candidate(index: int) -> dict:
    return {
        "id": f"E{index:03d}",
        "name": f"Employee {index}",
        "position": "Senior Backend",
        "exp_years": 5.0,
    }


class TestRoundTrip:
    """Serialized payloads parse back into equal models."""

    @pytest.mark.parametrize(
        "model",
        [scenario.plan(), scenario.fact_set(), scenario.insight_set(), scenario.recommendation()],
        ids=["plan", "fact_set", "insight_set", "recommendation"],
    )
    def test_round_trip(self, model) -> None:
        restored = type(model).model_validate_json(model.model_dump_json())

        assert restored == model


class TestPlan:
    """Tests for the Architect contract."""

    def test_unknown_field_rejected(self) -> None:
        payload = scenario.plan().model_dump()
        payload["graph_filter"]["seniority"] = "senior"

        with pytest.raises(ValidationError):
            Plan.model_validate(payload)

    def test_missing_vector_search_rejected(self) -> None:
        payload = scenario.plan().model_dump()
        del payload["vector_search"]

        with pytest.raises(ValidationError):
            Plan.model_validate(payload)

    def test_string_is_not_coerced_to_list(self) -> None:
        payload = scenario.plan().model_dump()
        payload["graph_filter"]["target_skills"] = "Kafka"

        with pytest.raises(ValidationError):
            Plan.model_validate(payload)


class TestFactSet:
    """Tests for the Fact-Finder contract."""

    def _payload(self, count: int) -> dict:
        return {
            "executed_query": "MATCH (e:Employee) RETURN e LIMIT 5",
            "reasoning": "r",
            "candidates": [_candidate(i) for i in range(count)],
            "next_step_instructions": "n",
        }

    def test_five_candidates_accepted(self) -> None:
        facts = FactSet.model_validate(self._payload(MAX_CANDIDATES))

        assert len(facts.candidates) == MAX_CANDIDATES
        assert facts.candidate_ids[0] == "E000"

    def test_six_candidates_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FactSet.model_validate(self._payload(MAX_CANDIDATES + 1))

    def test_empty_candidates_accepted(self) -> None:
        assert FactSet.model_validate(self._payload(0)).candidates == []

    def test_duplicate_ids_rejected(self) -> None:
        payload = self._payload(2)
        payload["candidates"][1]["id"] = payload["candidates"][0]["id"]

        with pytest.raises(ValidationError, match="unique"):
            FactSet.model_validate(payload)

    def test_matched_projects_optional(self) -> None:
        assert Candidate.model_validate(_candidate(1)).matched_projects is None

    def test_empty_id_rejected(self) -> None:
        payload = _candidate(1)
        payload["id"] = ""

        with pytest.raises(ValidationError):
            Candidate.model_validate(payload)

    def test_numeric_string_experience_rejected(self) -> None:
        payload = _candidate(1)
        payload["exp_years"] = "5"

        with pytest.raises(ValidationError):
            Candidate.model_validate(payload)


class TestInsightSet:
    """Tests for the Insight-Seeker contract."""

    def test_analysis_for(self) -> None:
        insights = scenario.insight_set()

        assert insights.analysis_for("E001").evidence_quotes == [scenario.KIM_QUOTE]
        assert insights.analysis_for("E999") is None

    def test_quotes_must_be_a_list(self) -> None:
        with pytest.raises(ValidationError):
            InsightSet.model_validate(
                {
                    "candidate_analyses": [
                        {
                            "id": "E001",
                            "technical_depth": "t",
                            "soft_skill_analysis": "s",
                            "evidence_quotes": "quote",
                        }
                    ]
                }
            )


class TestRecommendation:
    """Tests for the Matchmaker contract."""

    def _entry(self, **overrides) -> dict:
        entry = {
            "rank": 1,
            "name": "Kim Minsu",
            "match_score": 90.0,
            "summary_justification": "s",
            "technical_proof": "t",
            "collaboration_proof": "c",
        }
        entry.update(overrides)
        return entry

    @pytest.mark.parametrize("score", [-1.0, 100.5])
    def test_score_out_of_range_rejected(self, score: float) -> None:
        with pytest.raises(ValidationError):
            RankedCandidate.model_validate(self._entry(match_score=score))

    def test_rank_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            RankedCandidate.model_validate(self._entry(rank=0))

    def test_bounds_accepted(self) -> None:
        assert RankedCandidate.model_validate(self._entry(match_score=0.0)).match_score == 0.0
        assert RankedCandidate.model_validate(self._entry(match_score=100.0)).match_score == 100.0

    def test_empty_recommendation_accepted(self) -> None:
        rec = Recommendation.model_validate({"final_recommendation": [], "overall_conclusion": "none"})

        assert rec.final_recommendation == []


class TestParseContract:
    """Tests for parse_contract."""

    def test_parses_valid_text(self) -> None:
        text = scenario.plan().model_dump_json()

        assert parse_contract(Plan, text, "architect") == scenario.plan()

    def test_invalid_json_is_contract_error(self) -> None:
        with pytest.raises(StageContractError) as exc_info:
            parse_contract(Plan, "not json", "architect")

        assert exc_info.value.stage == "architect"
        assert exc_info.value.raw_output == "not json"

    def test_schema_mismatch_is_contract_error(self) -> None:
        with pytest.raises(StageContractError, match="FactSet"):
            parse_contract(FactSet, json.dumps({"candidates": []}), "fact_finder")


class TestRegistry:
    """Tests for the stage -> contract registry."""

    def test_every_stage_has_a_contract(self) -> None:
        assert set(STAGE_CONTRACTS) == {s.value for s in StageName}

    def test_schema_lists_required_fields(self) -> None:
        schema = contract_schema(Recommendation)

        assert set(schema["required"]) == {"final_recommendation", "overall_conclusion"}
