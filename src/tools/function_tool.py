"""Function tools - gateways exposed to reasoning stages.

A FunctionTool pairs an argument model with an async handler returning
text. Arguments arrive as JSON from the oracle and are validated before the
handler runs. Bad arguments and handler failures come back to the model as
text so it can correct itself within the same stage.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from src.clients.llm_gateway import ToolDefinition


logger = logging.getLogger(__name__)

INVALID_ARGUMENTS_MARKER = "Invalid tool arguments:"
TOOL_FAILURE_MARKER = "Tool execution failed:"


@dataclass(frozen=True)
class FunctionTool:
    """A named, schema-described tool a stage may invoke.

    Attributes:
        name: Tool name advertised to the model
        description: What the tool does, for the model
        args_model: Pydantic model validating the call arguments
        handler: Coroutine receiving validated arguments, returning text
    """

    name: str
    description: str
    args_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[str]]

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.args_model.model_json_schema(),
        )

    async def invoke(self, arguments: str) -> str:
        """Validate arguments and run the handler.

        Args:
            arguments: JSON-encoded arguments from the model

        Returns:
            Handler output, or a marker-prefixed error description
        """
        try:
            args = self.args_model.model_validate_json(arguments or "{}")
        except ValidationError as e:
            logger.warning("Rejected arguments for tool %s: %s", self.name, e)
            return f"{INVALID_ARGUMENTS_MARKER} {self.name}: {e.errors(include_url=False)}"

        try:
            output = await self.handler(args)
        except Exception as e:
            logger.error("Tool %s raised: %s", self.name, e)
            return f"{TOOL_FAILURE_MARKER} {self.name}: {e}"

        if not isinstance(output, str):
            logger.error("Tool %s returned %s instead of text", self.name, type(output).__name__)
            return f"{TOOL_FAILURE_MARKER} {self.name}: non-text output"
        return output
