"""LLM Gateway client - the reasoning oracle behind every stage.

HTTP client for an OpenAI-compatible chat completions API. One call is one
model turn: the model either requests tool calls or answers with a JSON
payload shaped by the stage's output contract. The tool loop itself lives
in the reasoning stage, not here.

Transport, HTTP and authentication failures raise OracleInvocationError;
there is no retry at this layer.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.core.config import Settings
from src.core.constants import Timeouts
from src.core.exceptions import OracleInvocationError
from src.schemas.history import WorkItem, WorkItemKind


logger = logging.getLogger(__name__)


# =============================================================================
# Request/Response Models
# =============================================================================

class ModelSettings(BaseModel):
    """Sampling and length controls for one stage."""

    model_config = ConfigDict(frozen=True)

    model: str | None = Field(default=None, description="Model override; None uses the client default")
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    max_tokens: int = Field(default=2048, gt=0)
    parallel_tool_calls: bool = True


class ToolDefinition(BaseModel):
    """Function tool advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: str = "{}"


class ModelTurn(BaseModel):
    """One model response: tool calls, final text, or neither."""

    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    finish_reason: str | None = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


class OracleRequest(BaseModel):
    """Everything the oracle needs for one turn."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    stage: str
    instructions: str
    items: Sequence[WorkItem]
    output_name: str
    output_schema: dict[str, Any]
    tools: list[ToolDefinition] = Field(default_factory=list)
    settings: ModelSettings = Field(default_factory=ModelSettings)


@runtime_checkable
class ReasoningOracle(Protocol):
    """Single-turn reasoning oracle; enables fake oracles in tests."""

    async def complete(self, request: OracleRequest) -> ModelTurn:
        ...


# =============================================================================
# Message Building
# =============================================================================

def build_messages(instructions: str, items: Sequence[WorkItem]) -> list[dict[str, Any]]:
    """Translate run history into chat messages.

    Consecutive tool-call items are grouped into a single assistant message
    so that every tool result directly follows the message that requested it.

    Args:
        instructions: Stage instructions, sent as the system message
        items: History items in order

    Returns:
        OpenAI-format message list
    """
    messages: list[dict[str, Any]] = [{"role": "system", "content": instructions}]
    pending_calls: list[dict[str, Any]] = []

    def flush_calls() -> None:
        if pending_calls:
            messages.append({
                "role": "assistant",
                "content": None,
                "tool_calls": list(pending_calls),
            })
            pending_calls.clear()

    for item in items:
        if item.kind is WorkItemKind.TOOL_CALL:
            pending_calls.append({
                "id": item.call_id,
                "type": "function",
                "function": {"name": item.tool_name, "arguments": item.arguments or "{}"},
            })
            continue

        flush_calls()
        if item.kind is WorkItemKind.USER_MESSAGE:
            messages.append({"role": "user", "content": item.content})
        elif item.kind is WorkItemKind.STAGE_OUTPUT:
            messages.append({"role": "assistant", "content": item.content})
        elif item.kind is WorkItemKind.TOOL_RESULT:
            messages.append({
                "role": "tool",
                "tool_call_id": item.call_id,
                "content": item.content,
            })

    flush_calls()
    return messages


# =============================================================================
# LLM Gateway Oracle
# =============================================================================

class LLMGatewayOracle:
    """Reasoning oracle backed by an OpenAI-compatible gateway.

    Usage:
        oracle = LLMGatewayOracle("http://localhost:8080", default_model="gpt-4.1")
        turn = await oracle.complete(request)
        await oracle.close()

    Attributes:
        base_url: Base URL of the gateway
        default_model: Model used when a stage does not override it
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        default_model: str = "gpt-4.1",
        api_key: str | None = None,
        timeout: float = Timeouts.HTTP_INFERENCE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the oracle client.

        Args:
            base_url: Gateway URL
            default_model: Default model id
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMGatewayOracle:
        api_key = settings.llm_api_key.get_secret_value() if settings.llm_api_key else None
        return cls(
            base_url=settings.llm_gateway_url,
            default_model=settings.default_llm_model,
            api_key=api_key,
            timeout=float(settings.llm_timeout_seconds),
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Release HTTP client resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_payload(self, request: OracleRequest) -> dict[str, Any]:
        """Build the chat completions request body."""
        settings = request.settings
        payload: dict[str, Any] = {
            "model": settings.model or self.default_model,
            "messages": build_messages(request.instructions, request.items),
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_tokens": settings.max_tokens,
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": request.output_name,
                    "schema": request.output_schema,
                    "strict": False,
                },
            },
        }
        if request.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in request.tools
            ]
            payload["parallel_tool_calls"] = settings.parallel_tool_calls
        return payload

    async def complete(self, request: OracleRequest) -> ModelTurn:
        """Request one model turn.

        Args:
            request: Stage instructions, history, tools and output contract

        Returns:
            ModelTurn with tool calls or final content

        Raises:
            OracleInvocationError: On transport, HTTP or response-shape errors
        """
        payload = self.build_payload(request)
        model = payload["model"]

        logger.info(
            "Calling LLM gateway: stage=%s, model=%s, messages=%d, tools=%d",
            request.stage, model, len(payload["messages"]), len(request.tools),
        )

        try:
            response = await self._get_client().post("/v1/chat/completions", json=payload)
        except httpx.HTTPError as e:
            logger.error("LLM gateway transport error: stage=%s, error=%s", request.stage, e)
            raise OracleInvocationError(
                message=f"LLM gateway request failed: {e}",
                model=model,
                agent_name=request.stage,
            ) from e

        if response.status_code >= 400:
            error_msg, error_code = self._extract_error(response)
            logger.error(
                "LLM gateway error: stage=%s, model=%s, status=%s, code=%s, message=%s",
                request.stage, model, response.status_code, error_code, error_msg,
            )
            raise OracleInvocationError(
                message=error_msg,
                model=model,
                status_code=response.status_code,
                error_code=error_code,
                agent_name=request.stage,
            )

        return self._parse_turn(response, model, request.stage)

    @staticmethod
    def _extract_error(response: httpx.Response) -> tuple[str, str | None]:
        try:
            error = response.json().get("error", {})
        except ValueError:
            return response.text or f"HTTP {response.status_code}", None
        if isinstance(error, dict):
            return error.get("message") or response.text, error.get("code")
        return str(error), None

    @staticmethod
    def _parse_turn(response: httpx.Response, model: str, stage: str) -> ModelTurn:
        try:
            data = response.json()
            choice = data["choices"][0]
            message = choice.get("message") or {}
            tool_calls = [
                ToolCall(
                    id=call["id"],
                    name=call["function"]["name"],
                    arguments=call["function"].get("arguments") or "{}",
                )
                for call in message.get("tool_calls") or []
            ]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OracleInvocationError(
                message=f"Malformed LLM gateway response: {e}",
                model=model,
                status_code=response.status_code,
                agent_name=stage,
            ) from e

        return ModelTurn(
            content=message.get("content"),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason"),
        )
