"""Application configuration using Pydantic Settings.

Environment variables are loaded with the NEXUS_HR_ prefix.

The Neo4j credential defaults below are INSECURE placeholders intended for a
local development database only. Production deployments must override
NEXUS_HR_NEO4J_URI, NEXUS_HR_NEO4J_USER and NEXUS_HR_NEO4J_PASSWORD.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.constants import DEFAULT_STAGE_ORDER


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    service_name: str = "nexus-hr"
    port: int = 8082
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")

    # Neo4j configuration (local development defaults only)
    neo4j_uri: str = Field(
        default="bolt://localhost:7687",
        description="Neo4j Bolt URI"
    )
    neo4j_user: str = Field(default="neo4j", description="Neo4j username")
    neo4j_password: SecretStr = Field(
        default=SecretStr("password"),
        description="Neo4j password (insecure default, local development only)"
    )
    neo4j_database: str = Field(default="neo4j", description="Neo4j database name")
    graph_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Transaction timeout for a single Cypher query"
    )

    # Reasoning oracle (OpenAI-compatible LLM gateway)
    llm_gateway_url: str = Field(
        default="http://localhost:8080",
        description="LLM Gateway service URL"
    )
    llm_api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token for the LLM gateway, if it requires one"
    )
    default_llm_model: str = Field(
        default="gpt-4.1",
        description="Default LLM model for stage reasoning"
    )
    llm_timeout_seconds: int = Field(default=120, description="LLM request timeout")
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    top_p: float = Field(default=1.0, ge=0.0, le=1.0)
    max_output_tokens: int = Field(default=2048, gt=0)
    max_stage_turns: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum oracle turns a stage may take before aborting"
    )

    # Pipeline configuration
    pipeline_stages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STAGE_ORDER),
        description="Ordered stage names to run"
    )
    evidence_top_k: int = Field(default=5, ge=1, le=50)

    model_config = SettingsConfigDict(
        env_prefix="NEXUS_HR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
