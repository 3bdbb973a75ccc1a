"""Tools the reasoning stages may invoke.

- executeCypherQuery: Structured-Query Gateway (Fact-Finder)
- searchCandidateEvidence: Evidence-Lookup Gateway (Insight-Seeker)
"""

from src.tools.function_tool import (
    INVALID_ARGUMENTS_MARKER,
    TOOL_FAILURE_MARKER,
    FunctionTool,
)
from src.tools.gateway_tools import (
    CypherQueryArgs,
    EvidenceSearchArgs,
    cypher_query_tool,
    evidence_search_tool,
)


__all__ = [
    "INVALID_ARGUMENTS_MARKER",
    "TOOL_FAILURE_MARKER",
    "CypherQueryArgs",
    "EvidenceSearchArgs",
    "FunctionTool",
    "cypher_query_tool",
    "evidence_search_tool",
]
