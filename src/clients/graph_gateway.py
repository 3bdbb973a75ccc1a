"""Structured-Query Gateway for the Neo4j talent graph.

Executes Cypher queries issued by the Fact-Finder stage and normalizes the
results into JSON records. Failures are returned as text prefixed with
QUERY_FAILURE_MARKER instead of raising, so the issuing stage can read the
error and retry with a corrected query in the same turn.

Graph schema queried by the stages:
    (Employee {id, name, position, exp_years})-[:HAS_SKILL]->(Skill {name})
    (Employee)-[:WORKED_ON]->(Project {name})
    (Project)-[:IN_DOMAIN]->(Domain {name})

Pattern: Repository pattern with async adapter over the sync driver
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from neo4j import READ_ACCESS, GraphDatabase, Query
from neo4j.graph import Node, Path, Relationship

from src.core.config import Settings
from src.core.constants import QUERY_FAILURE_MARKER, Timeouts


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class Neo4jClientConfig:
    """Connection settings for the graph store.

    Attributes:
        uri: Neo4j Bolt URI (e.g., "bolt://localhost:7687")
        user: Neo4j username
        password: Neo4j password
        database: Database name (default: "neo4j")
        max_connection_pool_size: Maximum connections in pool
        query_timeout: Transaction timeout per query, in seconds
    """

    uri: str
    user: str
    password: str
    database: str = "neo4j"
    max_connection_pool_size: int = 50
    query_timeout: float = Timeouts.GRAPH_QUERY

    @classmethod
    def from_settings(cls, settings: Settings) -> Neo4jClientConfig:
        """Create config from application settings."""
        return cls(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password.get_secret_value(),
            database=settings.neo4j_database,
            query_timeout=settings.graph_timeout_seconds,
        )


# =============================================================================
# Store Handle
# =============================================================================


class GraphStoreHandle:
    """Owned, lazily created Neo4j driver.

    One handle is created per process (or per test) and passed to every
    gateway that needs the store. The driver is built on first use and
    released by ``close()``.

    Usage:
        handle = GraphStoreHandle(Neo4jClientConfig.from_settings(settings))
        gateway = GraphQueryGateway(handle)
        ...
        handle.close()
    """

    def __init__(
        self,
        config: Neo4jClientConfig,
        driver_factory: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize handle.

        Args:
            config: Connection settings
            driver_factory: Callable building a driver; defaults to
                ``neo4j.GraphDatabase.driver``
        """
        self._config = config
        self._driver_factory = driver_factory or GraphDatabase.driver
        self._driver: Any = None
        self._lock = threading.Lock()

    @property
    def config(self) -> Neo4jClientConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._driver is not None

    def get_driver(self) -> Any:
        """Return the driver, creating it on first use.

        Gateways call this from executor threads, so creation is guarded
        by a lock and at most one driver is ever built per handle.
        """
        if self._driver is not None:
            return self._driver
        with self._lock:
            if self._driver is None:
                self._driver = self._driver_factory(
                    self._config.uri,
                    auth=(self._config.user, self._config.password),
                    max_connection_pool_size=self._config.max_connection_pool_size,
                )
                logger.info("Initialized Neo4j driver: %s", self._config.uri)
            return self._driver

    def close(self) -> None:
        """Close the driver if it was created."""
        with self._lock:
            if self._driver is not None:
                self._driver.close()
                self._driver = None
                logger.info("Neo4j driver closed")

    async def health_check(self) -> bool:
        """Check if Neo4j is reachable.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            return await asyncio.get_running_loop().run_in_executor(
                None,
                self._health_check_sync,
            )
        except Exception as e:
            logger.warning("Neo4j health check failed: %s", e)
            return False

    def _health_check_sync(self) -> bool:
        with self.get_driver().session(database=self._config.database) as session:
            record = session.run("RETURN 1 AS n").single()
            return record is not None and record["n"] == 1


# =============================================================================
# Result Normalization
# =============================================================================


def normalize_value(value: Any) -> Any:
    """Convert a driver value into a JSON-serializable value.

    Nodes and relationships are flattened to their property maps (element
    ids, labels and types are dropped), paths become the list of their node
    property maps, temporal values become ISO strings. Python ints already
    arrive unwrapped from the driver.
    """
    if isinstance(value, (Node, Relationship)):
        return {key: normalize_value(item) for key, item in value.items()}
    if isinstance(value, Path):
        return [normalize_value(node) for node in value.nodes]
    if isinstance(value, dict):
        return {str(key): normalize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "iso_format"):
        return value.iso_format()
    return str(value)


def normalize_record(record: Any) -> dict[str, Any]:
    """Map each field of a record to its normalized value."""
    return {key: normalize_value(record[key]) for key in record.keys()}


# =============================================================================
# Gateway
# =============================================================================


class GraphQueryGateway:
    """Executes Cypher against the talent graph and returns JSON text.

    One session is opened and closed per call. The gateway performs no
    syntactic validation; the issuing stage owns query correctness.
    """

    def __init__(self, store: GraphStoreHandle) -> None:
        self._store = store

    async def execute(self, query: str) -> str:
        """Run a query.

        Args:
            query: Cypher query text

        Returns:
            JSON-encoded list of records on success, or a string starting
            with QUERY_FAILURE_MARKER describing the failure.
        """
        try:
            records = await asyncio.get_running_loop().run_in_executor(
                None,
                self._execute_sync,
                query,
            )
        except Exception as e:
            logger.warning("Cypher query failed: %s", e)
            return f"{QUERY_FAILURE_MARKER} {e}"

        logger.info("Cypher query returned %d record(s)", len(records))
        return json.dumps(records, indent=2, ensure_ascii=False)

    def _execute_sync(self, query: str) -> list[dict[str, Any]]:
        config = self._store.config
        driver = self._store.get_driver()
        with driver.session(
            database=config.database,
            default_access_mode=READ_ACCESS,
        ) as session:
            result = session.run(Query(query, timeout=config.query_timeout))
            return [normalize_record(record) for record in result]
