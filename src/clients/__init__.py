"""Gateway clients.

- GraphQueryGateway / GraphStoreHandle: Neo4j structured queries
- EvidenceGatewayProtocol / StubEvidenceGateway: activity-log evidence lookup
- LLMGatewayOracle: reasoning oracle over an OpenAI-compatible chat API
"""

from src.clients.evidence import EvidenceGatewayProtocol, StubEvidenceGateway
from src.clients.graph_gateway import (
    GraphQueryGateway,
    GraphStoreHandle,
    Neo4jClientConfig,
    normalize_record,
    normalize_value,
)
from src.clients.llm_gateway import (
    LLMGatewayOracle,
    ModelSettings,
    ModelTurn,
    OracleRequest,
    ReasoningOracle,
    ToolCall,
    ToolDefinition,
    build_messages,
)


__all__ = [
    "EvidenceGatewayProtocol",
    "GraphQueryGateway",
    "GraphStoreHandle",
    "LLMGatewayOracle",
    "ModelSettings",
    "ModelTurn",
    "Neo4jClientConfig",
    "OracleRequest",
    "ReasoningOracle",
    "StubEvidenceGateway",
    "ToolCall",
    "ToolDefinition",
    "build_messages",
    "normalize_record",
    "normalize_value",
]
