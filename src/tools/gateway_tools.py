"""Tool bindings for the Structured-Query and Evidence-Lookup gateways."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.clients.evidence import EvidenceGatewayProtocol
from src.clients.graph_gateway import GraphQueryGateway
from src.core.constants import CYPHER_TOOL_NAME, EVIDENCE_TOOL_NAME
from src.tools.function_tool import FunctionTool


class CypherQueryArgs(BaseModel):
    """Arguments of executeCypherQuery."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(..., min_length=1, description="Read-only Cypher query to execute")


class EvidenceSearchArgs(BaseModel):
    """Arguments of searchCandidateEvidence."""

    model_config = ConfigDict(extra="forbid")

    candidate_ids: list[str] = Field(..., description="Candidate ids exactly as returned by the Fact-Finder")
    query_keywords: list[str] = Field(..., description="Technical-depth and soft-skill keywords from the plan")
    top_k: int | None = Field(default=None, ge=1, le=50, description="Maximum snippets per candidate")


def cypher_query_tool(gateway: GraphQueryGateway) -> FunctionTool:
    """Expose the graph gateway as executeCypherQuery."""

    async def handler(args: CypherQueryArgs) -> str:
        return await gateway.execute(args.query)

    return FunctionTool(
        name=CYPHER_TOOL_NAME,
        description=(
            "Execute a Cypher query against the Neo4j talent graph and return "
            "the matching records as JSON. Failures are returned as text."
        ),
        args_model=CypherQueryArgs,
        handler=handler,
    )


def evidence_search_tool(
    gateway: EvidenceGatewayProtocol,
    default_top_k: int = 5,
) -> FunctionTool:
    """Expose the evidence gateway as searchCandidateEvidence."""

    async def handler(args: EvidenceSearchArgs) -> str:
        return await gateway.search(
            candidate_ids=args.candidate_ids,
            query_keywords=args.query_keywords,
            top_k=args.top_k or default_top_k,
        )

    return FunctionTool(
        name=EVIDENCE_TOOL_NAME,
        description=(
            "Search candidates' activity logs (code reviews, incident reports, "
            "design documents) for evidence matching the given keywords."
        ),
        args_model=EvidenceSearchArgs,
        handler=handler,
    )
