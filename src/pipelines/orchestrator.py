"""Talent search pipeline orchestrator.

Runs the reasoning stages in a fixed order over one shared run history:

    PLANNING -> FACT_FINDING -> INSIGHT_SEEKING -> MATCHMAKING -> DONE
    (any state) -> FAILED

The stage list is configurable so the same orchestrator serves the
Architect-only, Architect + Fact-Finder and full four-stage variants. Each
stage sees the full history produced by the previous ones; after a stage
succeeds its new items and one stage-output item are appended in a single
extend. Any stage failure ends the run with PipelineExecutionError naming
the stage. There are no retries and no partial results.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.agents.base import ReasoningStage
from src.agents.stages import build_stages, stage_title
from src.clients.evidence import EvidenceGatewayProtocol
from src.clients.graph_gateway import GraphQueryGateway
from src.clients.llm_gateway import ReasoningOracle
from src.core.config import Settings
from src.core.constants import DEFAULT_STAGE_ORDER, PIPELINE_NAME, StageName
from src.core.exceptions import (
    AgentValidationError,
    PipelineExecutionError,
    StageContractError,
)
from src.core.logging import bind_run_context, clear_run_context, get_logger
from src.schemas.history import RunHistory, WorkItem


logger = get_logger(__name__)


# =============================================================================
# Enums
# =============================================================================

class RunState(str, Enum):
    """State of a pipeline run."""

    PLANNING = "planning"
    FACT_FINDING = "fact_finding"
    INSIGHT_SEEKING = "insight_seeking"
    MATCHMAKING = "matchmaking"
    DONE = "done"
    FAILED = "failed"


STAGE_STATES: dict[str, RunState] = {
    StageName.ARCHITECT.value: RunState.PLANNING,
    StageName.FACT_FINDER.value: RunState.FACT_FINDING,
    StageName.INSIGHT_SEEKER.value: RunState.INSIGHT_SEEKING,
    StageName.MATCHMAKER.value: RunState.MATCHMAKING,
}


# =============================================================================
# Result Schemas
# =============================================================================

class StageOutput(BaseModel):
    """Output of one completed stage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    output_text: str = Field(..., description="Payload serialized as JSON text")
    output_parsed: dict[str, Any] = Field(..., description="Payload as structured data")


class WorkflowResult(BaseModel):
    """Result of a successful run, one field per executed stage.

    Serializes with camelCase keys (``factFinder``, ``outputText``...) when
    dumped with ``by_alias=True``. The run history is kept for callers but
    excluded from serialization.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    architect: StageOutput
    fact_finder: StageOutput | None = None
    insight_seeker: StageOutput | None = None
    matchmaker: StageOutput | None = None
    state_trail: list[RunState] = Field(default_factory=list)
    history: RunHistory = Field(default_factory=RunHistory, exclude=True)


# =============================================================================
# Orchestrator
# =============================================================================

def validate_stage_order(stage_order: Sequence[str]) -> tuple[str, ...]:
    """Check that a stage order is a non-empty prefix of the full pipeline.

    Raises:
        ValueError: For an empty, unknown or out-of-order stage list
    """
    order = tuple(stage_order)
    if not order:
        raise ValueError("At least one stage is required")
    if order != DEFAULT_STAGE_ORDER[: len(order)]:
        raise ValueError(
            f"Stage order {list(order)} must be a prefix of {list(DEFAULT_STAGE_ORDER)}"
        )
    return order


class TalentSearchPipeline:
    """Sequential orchestrator for the Nexus HR stages.

    Example:
        pipeline = TalentSearchPipeline(stages)
        result = await pipeline.run_workflow("Senior backend with Kafka...")
        result.matchmaker.output_parsed["final_recommendation"]
    """

    def __init__(
        self,
        stages: Mapping[str, ReasoningStage[Any]],
        stage_order: Sequence[str] = DEFAULT_STAGE_ORDER,
        name: str = PIPELINE_NAME,
    ) -> None:
        """Initialize pipeline.

        Args:
            stages: Stage instances keyed by stage name
            stage_order: Stages to run, a prefix of the full pipeline
            name: Pipeline name used in errors and logs

        Raises:
            ValueError: If the order is invalid or a stage is missing
        """
        self.name = name
        self._stage_order = validate_stage_order(stage_order)
        missing = [s for s in self._stage_order if s not in stages]
        if missing:
            raise ValueError(f"No stage instance for {missing}")
        self._stages = dict(stages)

    @property
    def stage_order(self) -> tuple[str, ...]:
        return self._stage_order

    async def run_workflow(self, input_text: str) -> WorkflowResult:
        """Run the configured stages for one talent search request.

        Args:
            input_text: Natural-language request

        Returns:
            WorkflowResult with one StageOutput per executed stage

        Raises:
            AgentValidationError: If input_text is blank, before any stage runs
            PipelineExecutionError: If any stage fails; the cause is chained
        """
        if not isinstance(input_text, str) or not input_text.strip():
            raise AgentValidationError(
                "input_text must be a non-empty string",
                field="input_text",
                value=input_text,
            )

        bind_run_context(run_id=uuid.uuid4().hex, pipeline=self.name)
        try:
            return await self._run_stages(input_text)
        finally:
            clear_run_context()

    async def _run_stages(self, input_text: str) -> WorkflowResult:
        history = RunHistory.start(input_text)
        trail: list[RunState] = []
        outputs: dict[str, StageOutput] = {}
        run_start = time.time()
        logger.info("Pipeline run started", stages=list(self._stage_order))

        for stage_name in self._stage_order:
            stage = self._stages[stage_name]
            trail.append(STAGE_STATES[stage_name])
            logger.info("Stage started", stage=stage_name, title=stage_title(stage_name))
            stage_start = time.time()

            try:
                stage_run = await stage.run(history)
                if stage_run.final_output is None:
                    raise StageContractError(
                        f"Stage '{stage_name}' finished without a structured output",
                        stage=stage_name,
                    )
            except Exception as e:
                trail.append(RunState.FAILED)
                logger.error(
                    "Pipeline run failed",
                    stage=stage_name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise PipelineExecutionError(
                    self.name,
                    stage_name,
                    str(e),
                    state_trail=[s.value for s in trail],
                ) from e

            output_item = WorkItem.stage_output(stage_name, stage_run.final_output)
            history = history.extend([*stage_run.new_items, output_item])
            outputs[stage_name] = StageOutput(
                output_text=output_item.content,
                output_parsed=output_item.payload or {},
            )
            logger.info(
                "Stage completed",
                stage=stage_name,
                new_items=len(stage_run.new_items),
                duration_ms=round((time.time() - stage_start) * 1000, 1),
            )

        trail.append(RunState.DONE)
        logger.info(
            "Pipeline run completed",
            history_items=len(history),
            duration_ms=round((time.time() - run_start) * 1000, 1),
        )
        return WorkflowResult(
            **outputs,
            state_trail=trail,
            history=history,
        )


def create_talent_search_pipeline(
    settings: Settings,
    oracle: ReasoningOracle,
    graph_gateway: GraphQueryGateway,
    evidence_gateway: EvidenceGatewayProtocol,
) -> TalentSearchPipeline:
    """Build a pipeline running ``settings.pipeline_stages``."""
    stages = build_stages(settings, oracle, graph_gateway, evidence_gateway)
    return TalentSearchPipeline(stages, stage_order=settings.pipeline_stages)
