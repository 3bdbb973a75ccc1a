"""Custom exceptions for the Nexus HR pipeline.

All exceptions are namespaced to avoid shadowing Python builtins and inherit
from AgentError so callers can catch any pipeline error with one clause.

Taxonomy:
    - Gateway execution failures never raise; they become marker strings.
    - Contract violations (StageContractError) are fatal for the run.
    - Oracle invocation failures (OracleInvocationError) are fatal for the run.
    - Malformed input (AgentValidationError) is rejected before any stage runs.
"""

from collections.abc import Sequence
from typing import Any


class AgentError(Exception):
    """Base exception for all agent-related errors."""

    def __init__(self, message: str, agent_name: str | None = None) -> None:
        """Initialize agent error.

        Args:
            message: Error description
            agent_name: Name of the stage/agent that raised the error
        """
        self.agent_name = agent_name
        super().__init__(message)


class AgentValidationError(AgentError):
    """Raised when input validation fails.

    Distinct from Python's built-in ValueError to provide
    structured error information for API responses.
    """

    def __init__(
        self,
        message: str,
        field: str,
        value: Any | None = None,
        errors: list[dict[str, str]] | None = None,
        agent_name: str | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            field: The field that failed validation
            value: The invalid value
            errors: List of validation errors for multiple fields
            agent_name: Name of the agent if applicable
        """
        self.field = field
        self.value = value
        self.errors = errors
        super().__init__(message, agent_name)


class StageContractError(AgentError):
    """Raised when a stage finishes without a conformant structured payload.

    Covers missing output, unparseable output, schema mismatches and
    violations of a stage's own post-conditions.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        raw_output: str | None = None,
    ) -> None:
        """Initialize contract error.

        Args:
            message: Error description
            stage: Name of the stage whose contract was violated
            raw_output: Raw oracle text, when there was any
        """
        self.stage = stage
        self.raw_output = raw_output
        super().__init__(message, agent_name=stage)


class StageTurnLimitError(StageContractError):
    """Raised when a stage's tool loop does not converge within max_turns."""

    def __init__(self, stage: str, max_turns: int) -> None:
        self.max_turns = max_turns
        super().__init__(
            f"Stage '{stage}' exceeded {max_turns} turns without a final output",
            stage=stage,
        )


class OracleInvocationError(AgentError):
    """Raised when the reasoning oracle cannot be reached or refuses a call.

    Transport, quota and authentication failures all map here; there is
    no retry inside the pipeline.
    """

    def __init__(
        self,
        message: str,
        model: str,
        status_code: int | None = None,
        error_code: str | None = None,
        agent_name: str | None = None,
    ) -> None:
        """Initialize oracle error.

        Args:
            message: Error description
            model: Model that was requested
            status_code: HTTP status code if applicable
            error_code: Provider error code if returned
            agent_name: Stage that issued the call
        """
        self.model = model
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, agent_name)


class ToolExecutionError(AgentError):
    """Raised when a tool cannot be executed.

    Tools are the gateways a stage may invoke (graph query, evidence lookup).
    """

    def __init__(
        self,
        message: str,
        tool_name: str,
        agent_name: str | None = None,
    ) -> None:
        """Initialize tool error.

        Args:
            message: Error description
            tool_name: Name of the tool that failed
            agent_name: Name of the stage that invoked the tool
        """
        self.tool_name = tool_name
        super().__init__(message, agent_name)


class PipelineExecutionError(AgentError):
    """Raised when a pipeline run fails at a stage.

    This is the single error a failed run surfaces to its caller. The
    underlying cause is chained via ``__cause__``.

    Attributes:
        pipeline_name: Name of the pipeline that failed
        stage_name: Name of the stage that failed
        message: Error message
        state_trail: States the failed run passed through, ending in "failed"
    """

    def __init__(
        self,
        pipeline_name: str,
        stage_name: str,
        message: str,
        state_trail: Sequence[str] | None = None,
    ) -> None:
        self.pipeline_name = pipeline_name
        self.stage_name = stage_name
        self.message = message
        self.state_trail = list(state_trail or [])
        super().__init__(
            f"Pipeline '{pipeline_name}' failed at stage '{stage_name}': {message}",
            agent_name=stage_name,
        )
