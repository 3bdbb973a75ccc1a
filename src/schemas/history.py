"""Run history - the ordered, append-only record shared across stages.

A RunHistory is an immutable value. Stages receive the history produced so
far and return the items they created; only the orchestrator extends the
history, and extending returns a new value instead of mutating the old one.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WorkItemKind(str, Enum):
    """Kinds of work items in a run history."""

    USER_MESSAGE = "user_message"
    STAGE_OUTPUT = "stage_output"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


class WorkItem(BaseModel):
    """One atomic unit of conversation or tool history."""

    model_config = ConfigDict(frozen=True)

    kind: WorkItemKind
    content: str = Field(default="", description="Message text, tool output, or payload JSON")
    stage: str | None = Field(default=None, description="Stage that produced the item")
    call_id: str | None = Field(default=None, description="Links a tool call to its result")
    tool_name: str | None = None
    arguments: str | None = Field(default=None, description="JSON-encoded tool arguments")
    payload: dict[str, Any] | None = Field(
        default=None,
        description="Parsed structured output (stage_output only)",
    )

    @classmethod
    def user_message(cls, text: str) -> WorkItem:
        return cls(kind=WorkItemKind.USER_MESSAGE, content=text)

    @classmethod
    def stage_output(cls, stage: str, output: BaseModel) -> WorkItem:
        return cls(
            kind=WorkItemKind.STAGE_OUTPUT,
            stage=stage,
            content=output.model_dump_json(),
            payload=output.model_dump(mode="json"),
        )

    @classmethod
    def tool_call(
        cls,
        stage: str,
        call_id: str,
        tool_name: str,
        arguments: str,
    ) -> WorkItem:
        return cls(
            kind=WorkItemKind.TOOL_CALL,
            stage=stage,
            call_id=call_id,
            tool_name=tool_name,
            arguments=arguments,
        )

    @classmethod
    def tool_result(
        cls,
        stage: str,
        call_id: str,
        tool_name: str,
        output: str,
    ) -> WorkItem:
        return cls(
            kind=WorkItemKind.TOOL_RESULT,
            stage=stage,
            call_id=call_id,
            tool_name=tool_name,
            content=output,
        )

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode tool-call arguments; malformed JSON yields an empty dict."""
        if not self.arguments:
            return {}
        try:
            decoded = json.loads(self.arguments)
        except json.JSONDecodeError:
            return {}
        return decoded if isinstance(decoded, dict) else {}


class RunHistory(BaseModel):
    """Immutable ordered sequence of work items for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    items: tuple[WorkItem, ...] = ()

    @classmethod
    def start(cls, request_text: str) -> RunHistory:
        """Seed a history with the user's request."""
        return cls(items=(WorkItem.user_message(request_text),))

    def extend(self, new_items: Iterable[WorkItem]) -> RunHistory:
        """Return a new history with ``new_items`` appended."""
        return RunHistory(items=(*self.items, *new_items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[WorkItem]:  # type: ignore[override]
        return iter(self.items)

    @property
    def request_text(self) -> str:
        """Text of the first user message, or empty string."""
        for item in self.items:
            if item.kind is WorkItemKind.USER_MESSAGE:
                return item.content
        return ""

    def latest_output(self, stage: str) -> dict[str, Any] | None:
        """Most recent structured payload emitted by ``stage``."""
        for item in reversed(self.items):
            if item.kind is WorkItemKind.STAGE_OUTPUT and item.stage == stage:
                return item.payload
        return None

    def tool_calls(
        self,
        stage: str | None = None,
        tool_name: str | None = None,
    ) -> list[WorkItem]:
        """Tool-call items, optionally filtered by stage and tool name."""
        return [
            item
            for item in self.items
            if item.kind is WorkItemKind.TOOL_CALL
            and (stage is None or item.stage == stage)
            and (tool_name is None or item.tool_name == tool_name)
        ]
