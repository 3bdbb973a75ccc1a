"""Test configuration and shared fixtures."""

import pytest

from src.clients.graph_gateway import GraphQueryGateway, GraphStoreHandle, Neo4jClientConfig
from src.core.config import Settings
from tests.fakes import scenario
from tests.fakes.fake_clients import (
    FakeDriverFactory,
    FakeEvidenceGateway,
    FakeNeo4jDriver,
    FakeReasoningOracle,
)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        environment="test",
        neo4j_uri="bolt://localhost:7688",
        neo4j_user="test",
        neo4j_password="test",
        llm_gateway_url="http://llm-gateway.test",
        log_level="DEBUG",
    )


@pytest.fixture
def neo4j_config() -> Neo4jClientConfig:
    return Neo4jClientConfig(
        uri="bolt://localhost:7688",
        user="test",
        password="test",
        database="talent",
        query_timeout=5.0,
    )


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest.fixture
def fake_driver() -> FakeNeo4jDriver:
    """Fake Neo4j driver returning the scenario's candidate records."""
    return FakeNeo4jDriver(records=scenario.GRAPH_RECORDS)


@pytest.fixture
def graph_store(neo4j_config: Neo4jClientConfig, fake_driver: FakeNeo4jDriver) -> GraphStoreHandle:
    return GraphStoreHandle(neo4j_config, driver_factory=FakeDriverFactory(fake_driver))


@pytest.fixture
def graph_gateway(graph_store: GraphStoreHandle) -> GraphQueryGateway:
    return GraphQueryGateway(graph_store)


@pytest.fixture
def evidence_gateway() -> FakeEvidenceGateway:
    return FakeEvidenceGateway(snippets=scenario.EVIDENCE_SNIPPETS)


@pytest.fixture
def scripted_oracle() -> FakeReasoningOracle:
    """Oracle scripted for a successful four-stage Kafka/order run."""
    return scenario.scripted_oracle()
