"""Application configuration and environment-driven settings.

Defines the Settings class based on pydantic-settings to centralize configuration for:
- API keys and model names (router, RAG responder, fine-tuned post generator)
- Embedding model and the system-wide embedding dimension
- Vector store (PostgreSQL + pgvector) and collection names per content type
- Chunking, retrieval and re-ranking knobs
- Agent selection and generation sampling settings
- Client and observability settings

The agent catalog is read-only configuration built once and injected into the
selector and agents.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ragchat.schemas import AgentName

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Strongly-typed application settings loaded from environment variables.

    Uses pydantic-settings to populate fields from a .env file or process env.
    See individual field names for semantics and safe defaults.
    """
    # Required
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")

    # Models
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_SELECTOR_MODEL: str = "gpt-4o-mini"
    OPENAI_FINETUNED_MODEL: str = ""
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIM: int = 512

    # Vector store
    DATABASE_URL: str = "postgresql+psycopg2://rag_user:rag_pass@db:5432/rag_db"
    INIT_DB_ON_STARTUP: bool = True
    MEDIUM_COLLECTION: str = "medium_articles"
    LINKEDIN_COLLECTION: str = "linkedin_posts"
    RAG_COLLECTION: str = "medium_articles"

    # Ingestion
    CHUNK_SIZE: int = 500
    CHUNK_OVERLAP: int = 50

    # Retrieval
    RETRIEVAL_FINAL_K: int = 5
    RETRIEVAL_OVERFETCH_FACTOR: int = 2
    RERANKER_ENABLED: bool = True
    RERANKER_MODEL_NAME: str = "BAAI/bge-reranker-v2-m3"
    RAG_TEST_DEFAULT_TOP_K: int = 5

    # Selection / generation
    SELECTOR_HISTORY_WINDOW: int = 5
    SELECTOR_TEMPERATURE: float = 0.0
    LINKEDIN_TEMPERATURE: float = 0.8
    RAG_TEMPERATURE: float = 0.3

    # Chat client
    API_BASE_URL: str = "http://localhost:8000"
    CLIENT_TIMEOUT_SECONDS: int = 90

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_CONSOLE_EXPORT: bool = False

    @property
    def LINKEDIN_MODEL(self) -> str:
        """Model used by the post generator; the fine-tuned model when configured."""
        return self.OPENAI_FINETUNED_MODEL or self.OPENAI_MODEL

    @property
    def RETRIEVAL_OVERFETCH_K(self) -> int:
        """Number of nearest neighbours fetched before re-ranking."""
        return self.RETRIEVAL_FINAL_K * max(1, self.RETRIEVAL_OVERFETCH_FACTOR)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


@dataclass(frozen=True)
class AgentConfig:
    """Display name and routing description of one specialized agent."""
    name: str
    description: str


def default_agent_catalog() -> Dict[AgentName, AgentConfig]:
    """Return the catalog of routable agents keyed by agent name."""
    return {
        AgentName.LINKEDIN: AgentConfig(
            name="LinkedIn Agent",
            description=(
                "For writing or polishing a LinkedIn post in a certain voice and tone. "
                "The user provides a topic or starter content and the post is drafted or polished."
            ),
        ),
        AgentName.RAG: AgentConfig(
            name="RAG Agent",
            description=(
                "For answering questions using the ingested articles and documentation, "
                "including technical how-to and explanation requests."
            ),
        ),
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with the project format.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL.
    """
    name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)


settings = Settings()

if not settings.OPENAI_API_KEY:
    # Allow local scaffolding and tests before .env is populated
    logger.warning("OPENAI_API_KEY not set. Set it in .env before ingesting or chatting.")
