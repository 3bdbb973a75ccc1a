"""Talent search pipeline.

- TalentSearchPipeline: sequential stage orchestrator
- WorkflowResult / StageOutput: run results
- RunState: run state machine
"""

from src.pipelines.orchestrator import (
    STAGE_STATES,
    RunState,
    StageOutput,
    TalentSearchPipeline,
    WorkflowResult,
    create_talent_search_pipeline,
    validate_stage_order,
)


__all__ = [
    "STAGE_STATES",
    "RunState",
    "StageOutput",
    "TalentSearchPipeline",
    "WorkflowResult",
    "create_talent_search_pipeline",
    "validate_stage_order",
]
