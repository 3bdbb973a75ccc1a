"""Reasoning stage base class.

A stage is a named unit of work bound to one instruction text, one output
contract, zero or more tools and model settings. Given the run history it
asks the oracle for turns until the oracle produces a final payload:

    1. Oracle turn requests tools -> record calls, run them concurrently,
       record results, ask again.
    2. Oracle turn has text        -> parse and validate against the contract,
       apply the stage's own rules, return.
    3. Oracle turn has neither     -> return with no final output.

The loop is bounded by ``max_turns``; running out raises
StageTurnLimitError. Stages never mutate the history they are given, they
return the items they produced.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar

from pydantic import BaseModel

from src.clients.llm_gateway import (
    ModelSettings,
    OracleRequest,
    ReasoningOracle,
    ToolCall,
)
from src.core.exceptions import StageTurnLimitError, ToolExecutionError
from src.core.logging import get_logger
from src.schemas.contracts import contract_schema, parse_contract
from src.schemas.history import RunHistory, WorkItem
from src.tools.function_tool import TOOL_FAILURE_MARKER, FunctionTool


logger = get_logger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)

DEFAULT_MAX_TURNS = 10


@dataclass(frozen=True)
class StageRun(Generic[OutputT]):
    """Result of one stage invocation.

    Attributes:
        new_items: Tool calls and results produced during the stage, in order
        final_output: Validated payload, or None if the oracle produced none
        raw_output: Oracle text the payload was parsed from
    """

    new_items: tuple[WorkItem, ...]
    final_output: OutputT | None
    raw_output: str | None = None


class ReasoningStage(ABC, Generic[OutputT]):
    """Abstract base class for the pipeline's reasoning stages.

    Subclasses set ``contract`` and implement ``description`` and
    ``build_instructions``; they may override ``finalize`` to enforce
    stage-specific rules on a schema-valid payload.
    """

    contract: ClassVar[type[BaseModel]]

    def __init__(
        self,
        name: str,
        oracle: ReasoningOracle,
        *,
        tools: Sequence[FunctionTool] = (),
        settings: ModelSettings | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
    ) -> None:
        """Initialize stage.

        Args:
            name: Unique stage name (also the result key)
            oracle: Reasoning oracle used for every turn
            tools: Tools the stage may invoke
            settings: Model settings for this stage
            max_turns: Upper bound on oracle turns
        """
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.name = name
        self._oracle = oracle
        self._tools = {tool.name: tool for tool in tools}
        self.settings = settings or ModelSettings()
        self.max_turns = max_turns

    @property
    @abstractmethod
    def description(self) -> str:
        """Return a one-line description of the stage."""
        ...

    @abstractmethod
    def build_instructions(self, history: RunHistory) -> str:
        """Return the system instructions for this run.

        Args:
            history: Run history so far (prior stage outputs included)
        """
        ...

    def finalize(
        self,
        output: OutputT,
        history: RunHistory,
        new_items: tuple[WorkItem, ...],
    ) -> OutputT:
        """Apply stage rules to a schema-valid payload.

        Raises:
            StageContractError: If the payload breaks a stage rule
        """
        return output

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    async def run(self, history: RunHistory) -> StageRun[OutputT]:
        """Execute the stage against the history produced so far.

        Args:
            history: Run history (not modified)

        Returns:
            StageRun with the new items and the validated payload

        Raises:
            StageContractError: If the payload is malformed or breaks a rule
            StageTurnLimitError: If no final payload arrives within max_turns
            OracleInvocationError: If the oracle call fails
        """
        instructions = self.build_instructions(history)
        tool_definitions = [tool.definition for tool in self._tools.values()]
        output_schema = contract_schema(self.contract)
        items: list[WorkItem] = []

        for turn in range(1, self.max_turns + 1):
            request = OracleRequest(
                stage=self.name,
                instructions=instructions,
                items=(*history.items, *items),
                output_name=self.contract.__name__,
                output_schema=output_schema,
                tools=tool_definitions,
                settings=self.settings,
            )
            model_turn = await self._oracle.complete(request)

            if model_turn.wants_tools:
                logger.info(
                    "Stage requested tools",
                    stage=self.name,
                    turn=turn,
                    tools=[call.name for call in model_turn.tool_calls],
                )
                items.extend(await self._run_tools(model_turn.tool_calls))
                continue

            content = (model_turn.content or "").strip()
            if not content:
                logger.warning("Stage finished without output", stage=self.name, turn=turn)
                return StageRun(new_items=tuple(items), final_output=None)

            new_items = tuple(items)
            output = parse_contract(self.contract, content, self.name)
            output = self.finalize(output, history, new_items)  # type: ignore[arg-type]
            logger.info("Stage produced output", stage=self.name, turns=turn, new_items=len(new_items))
            return StageRun(new_items=new_items, final_output=output, raw_output=content)  # type: ignore[arg-type]

        raise StageTurnLimitError(self.name, self.max_turns)

    async def _run_tools(self, calls: Sequence[ToolCall]) -> list[WorkItem]:
        """Run one turn's tool calls concurrently.

        Call items precede result items; results keep the call order.
        """
        outputs = await asyncio.gather(*(self._invoke_tool(call) for call in calls))
        call_items = [
            WorkItem.tool_call(self.name, call.id, call.name, call.arguments)
            for call in calls
        ]
        result_items = [
            WorkItem.tool_result(self.name, call.id, call.name, output)
            for call, output in zip(calls, outputs, strict=True)
        ]
        return [*call_items, *result_items]

    async def _invoke_tool(self, call: ToolCall) -> str:
        tool = self._tools.get(call.name)
        if tool is None:
            error = ToolExecutionError(
                f"Unknown tool '{call.name}'. Available: {self.tool_names}",
                tool_name=call.name,
                agent_name=self.name,
            )
            logger.warning("Stage requested unknown tool", stage=self.name, tool=call.name)
            return f"{TOOL_FAILURE_MARKER} {error}"
        return await tool.invoke(call.arguments)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
