"""Unit tests for the LLM gateway oracle.

The HTTP layer is replaced with httpx.MockTransport; no gateway is needed.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from src.clients.llm_gateway import (
    LLMGatewayOracle,
    ModelSettings,
    OracleRequest,
    ReasoningOracle,
    ToolDefinition,
    build_messages,
)
from src.core.config import Settings
from src.core.exceptions import OracleInvocationError
from src.schemas.contracts import Plan, contract_schema
from src.schemas.history import RunHistory, WorkItem
from tests.fakes import scenario


def _request(**overrides: Any) -> OracleRequest:
    fields: dict[str, Any] = {
        "stage": "architect",
        "instructions": "Plan the search.",
        "items": RunHistory.start(scenario.REQUEST_TEXT).items,
        "output_name": "Plan",
        "output_schema": contract_schema(Plan),
    }
    fields.update(overrides)
    return OracleRequest(**fields)


def _oracle(handler, **kwargs: Any) -> LLMGatewayOracle:
    return LLMGatewayOracle(
        base_url="http://llm-gateway.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _completion(message: dict[str, Any], finish_reason: str = "stop") -> dict[str, Any]:
    return {"choices": [{"index": 0, "message": message, "finish_reason": finish_reason}]}


# =============================================================================
# Message Building
# =============================================================================

class TestBuildMessages:
    """Tests for history -> chat message translation."""

    def test_system_message_first(self) -> None:
        messages = build_messages("Be precise.", RunHistory.start("hello").items)

        assert messages[0] == {"role": "system", "content": "Be precise."}
        assert messages[1] == {"role": "user", "content": "hello"}

    def test_stage_output_is_assistant_message(self) -> None:
        items = [WorkItem.stage_output("architect", scenario.plan())]

        messages = build_messages("x", items)

        assert messages[1]["role"] == "assistant"
        assert json.loads(messages[1]["content"])["graph_filter"]["target_skills"] == ["Kafka"]

    def test_parallel_tool_calls_grouped(self) -> None:
        items = [
            WorkItem.tool_call("fact_finder", "c1", "executeCypherQuery", '{"query": "A"}'),
            WorkItem.tool_call("fact_finder", "c2", "executeCypherQuery", '{"query": "B"}'),
            WorkItem.tool_result("fact_finder", "c1", "executeCypherQuery", "[]"),
            WorkItem.tool_result("fact_finder", "c2", "executeCypherQuery", "[]"),
        ]

        messages = build_messages("x", items)

        assert [m["role"] for m in messages] == ["system", "assistant", "tool", "tool"]
        assert [c["id"] for c in messages[1]["tool_calls"]] == ["c1", "c2"]
        assert messages[1]["tool_calls"][0]["function"] == {
            "name": "executeCypherQuery",
            "arguments": '{"query": "A"}',
        }
        assert messages[2]["tool_call_id"] == "c1"
        assert messages[3]["tool_call_id"] == "c2"


# =============================================================================
# Payload
# =============================================================================

class TestBuildPayload:
    """Tests for the chat completions request body."""

    def test_structured_output_and_sampling(self) -> None:
        oracle = LLMGatewayOracle(default_model="gpt-4.1")

        payload = oracle.build_payload(_request(settings=ModelSettings(temperature=0.2, top_p=0.9, max_tokens=512)))

        assert payload["model"] == "gpt-4.1"
        assert payload["temperature"] == 0.2
        assert payload["top_p"] == 0.9
        assert payload["max_tokens"] == 512
        assert payload["response_format"]["type"] == "json_schema"
        assert payload["response_format"]["json_schema"]["name"] == "Plan"

    def test_no_tools_omits_tool_fields(self) -> None:
        payload = LLMGatewayOracle().build_payload(_request())

        assert "tools" not in payload
        assert "parallel_tool_calls" not in payload

    def test_tools_and_parallel_flag(self) -> None:
        tool = ToolDefinition(name="executeCypherQuery", description="d", parameters={"type": "object"})

        payload = LLMGatewayOracle().build_payload(_request(tools=[tool]))

        assert payload["tools"][0]["function"]["name"] == "executeCypherQuery"
        assert payload["parallel_tool_calls"] is True

    def test_stage_model_override(self) -> None:
        payload = LLMGatewayOracle(default_model="gpt-4.1").build_payload(
            _request(settings=ModelSettings(model="gpt-4.1-mini"))
        )

        assert payload["model"] == "gpt-4.1-mini"


# =============================================================================
# Completion
# =============================================================================

class TestComplete:
    """Tests for LLMGatewayOracle.complete."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(LLMGatewayOracle(), ReasoningOracle)

    @pytest.mark.asyncio
    async def test_final_content(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion({"role": "assistant", "content": '{"a": 1}'}))

        oracle = _oracle(handler, api_key="secret")
        turn = await oracle.complete(_request())
        await oracle.close()

        assert turn.content == '{"a": 1}'
        assert not turn.wants_tools
        assert turn.finish_reason == "stop"
        assert seen[0].url.path == "/v1/chat/completions"
        assert seen[0].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_tool_calls_parsed(self) -> None:
        message = {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "executeCypherQuery", "arguments": '{"query": "RETURN 1"}'},
                }
            ],
        }
        oracle = _oracle(lambda r: httpx.Response(200, json=_completion(message, "tool_calls")))

        turn = await oracle.complete(_request())

        assert turn.wants_tools
        assert turn.tool_calls[0].id == "call_1"
        assert turn.tool_calls[0].arguments == '{"query": "RETURN 1"}'

    @pytest.mark.asyncio
    async def test_http_error_raises_with_code(self) -> None:
        body = {"error": {"message": "Rate limit reached", "code": "rate_limit_exceeded"}}
        oracle = _oracle(lambda r: httpx.Response(429, json=body))

        with pytest.raises(OracleInvocationError) as exc_info:
            await oracle.complete(_request())

        assert exc_info.value.status_code == 429
        assert exc_info.value.error_code == "rate_limit_exceeded"
        assert exc_info.value.agent_name == "architect"
        assert "Rate limit reached" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        oracle = _oracle(lambda r: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(OracleInvocationError, match="Bad Gateway"):
            await oracle.complete(_request())

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(OracleInvocationError, match="connection refused"):
            await _oracle(handler).complete(_request())

    @pytest.mark.asyncio
    async def test_malformed_response_raises(self) -> None:
        oracle = _oracle(lambda r: httpx.Response(200, json={"choices": []}))

        with pytest.raises(OracleInvocationError, match="Malformed"):
            await oracle.complete(_request())


class TestFromSettings:
    """Tests for settings wiring."""

    def test_from_settings(self) -> None:
        settings = Settings(
            llm_gateway_url="http://gw:8080/",
            llm_api_key="k",
            default_llm_model="gpt-4.1",
            llm_timeout_seconds=30,
        )

        oracle = LLMGatewayOracle.from_settings(settings)

        assert oracle.base_url == "http://gw:8080"
        assert oracle.default_model == "gpt-4.1"
        assert oracle.timeout == 30.0
