"""Core module - Configuration, logging, constants and exceptions.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - StageName, pipeline constants
    - Exception classes: AgentError, StageContractError, etc.
"""

from src.core.config import Settings, get_settings
from src.core.constants import (
    CYPHER_TOOL_NAME,
    DEFAULT_STAGE_ORDER,
    EVIDENCE_TOOL_NAME,
    MAX_CANDIDATES,
    NO_EVIDENCE_MARKER,
    PIPELINE_NAME,
    QUERY_FAILURE_MARKER,
    ScoreWeight,
    StageName,
    Timeouts,
)
from src.core.exceptions import (
    AgentError,
    AgentValidationError,
    OracleInvocationError,
    PipelineExecutionError,
    StageContractError,
    StageTurnLimitError,
    ToolExecutionError,
)
from src.core.logging import configure_logging, get_logger


__all__ = [
    "CYPHER_TOOL_NAME",
    "DEFAULT_STAGE_ORDER",
    "EVIDENCE_TOOL_NAME",
    "MAX_CANDIDATES",
    "NO_EVIDENCE_MARKER",
    "PIPELINE_NAME",
    "QUERY_FAILURE_MARKER",
    # Exceptions
    "AgentError",
    "AgentValidationError",
    "OracleInvocationError",
    "PipelineExecutionError",
    "ScoreWeight",
    # Configuration
    "Settings",
    "StageContractError",
    "StageName",
    "StageTurnLimitError",
    "Timeouts",
    "ToolExecutionError",
    # Logging
    "configure_logging",
    "get_logger",
    "get_settings",
]
