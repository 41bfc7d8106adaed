"""
Environment-driven application settings.

All configuration is read once with os.getenv into a frozen Settings value.
Missing credentials do not prevent startup: the corresponding component
reports itself as not ready in /health, and a warning is logged.
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKER = "your"


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"

    embedder_backend: str = "huggingface"
    """huggingface (remote inference API) or sentence_transformers (local)"""

    vector_backend: str = "pinecone"
    """pinecone (REST) or faiss (local catalog)"""

    embedding_dimension: int = 512

    huggingface_api_key: str = ""
    huggingface_base_url: str = "https://api-inference.huggingface.co"
    huggingface_model_name: str = "BAAI/bge-large-en-v1.5"
    huggingface_timeout_seconds: float = 120
    huggingface_connect_timeout_seconds: float = 10
    huggingface_retry_attempts: int = 3
    huggingface_retry_delay_ms: int = 1000

    sentence_transformer_model: str = "all-MiniLM-L6-v2"

    pinecone_api_key: str = ""
    pinecone_env: str = ""
    pinecone_index_name: str = ""
    pinecone_index_host: str = ""

    catalog_path: str = "data/catalog.json"
    indexes_dir: str = "data/indexes"

    supabase_url: str = ""
    supabase_key: str = ""

    neo4j_http_url: str = ""
    neo4j_user: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"

    result_cache_ttl_seconds: float = 300
    intent_cache_ttl_seconds: float = 300
    explanation_cache_ttl_seconds: float = 86400

    default_top_k: int = 10

    def __post_init__(self) -> None:
        if self.embedder_backend not in ("huggingface", "sentence_transformers"):
            raise ValueError(f"Unknown EMBEDDER_BACKEND '{self.embedder_backend}'")

        if self.vector_backend not in ("pinecone", "faiss"):
            raise ValueError(f"Unknown VECTOR_BACKEND '{self.vector_backend}'")

        if self.embedding_dimension < 1:
            raise ValueError(f"EMBEDDING_DIMENSION must be >= 1, got {self.embedding_dimension}")

    @property
    def history_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def graph_enabled(self) -> bool:
        return bool(self.neo4j_http_url)

    def pinecone_host(self) -> str:
        """Explicit index host, else the legacy host derived from env and index name."""
        if self.pinecone_index_host:
            return self.pinecone_index_host
        if self.pinecone_env and self.pinecone_index_name:
            return f"https://{self.pinecone_index_name}.svc.{self.pinecone_env}.pinecone.io"
        return ""

    def missing_credentials(self) -> List[str]:
        """Names of required keys that are empty or still hold placeholder text."""
        required = []
        if self.embedder_backend == "huggingface":
            required.append(("HUGGINGFACE_API_KEY", self.huggingface_api_key))
        if self.vector_backend == "pinecone":
            required.append(("PINECONE_API_KEY", self.pinecone_api_key))
            required.append(("PINECONE_INDEX_HOST", self.pinecone_host()))
        if self.supabase_url:
            required.append(("SUPABASE_KEY", self.supabase_key))
        if self.neo4j_http_url:
            required.append(("NEO4J_PASSWORD", self.neo4j_password))

        return [name for name, value in required if is_placeholder(value)]


def is_placeholder(value: Optional[str]) -> bool:
    return not value or PLACEHOLDER_MARKER in value.lower()


def redact(secret: Optional[str], visible: int = 4) -> str:
    """
    Printable form of a secret.

    Examples:
        redact("hf_abcdef123") -> "hf_a***"
        redact("") -> "<unset>"
    """
    if not secret:
        return "<unset>"
    return f"{secret[:visible]}***"


def load_settings() -> Settings:
    """
    Read settings from the environment.

    Raises:
        ValueError: If a numeric variable cannot be parsed or a backend name is unknown
    """
    result_ttl = _get_float("RESULT_CACHE_TTL_SECONDS", 300)

    settings = Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        embedder_backend=os.getenv("EMBEDDER_BACKEND", "huggingface").lower(),
        vector_backend=os.getenv("VECTOR_BACKEND", "pinecone").lower(),
        embedding_dimension=_get_int("EMBEDDING_DIMENSION", 512),
        huggingface_api_key=os.getenv("HUGGINGFACE_API_KEY", ""),
        huggingface_base_url=os.getenv(
            "HUGGINGFACE_BASE_URL", "https://api-inference.huggingface.co"
        ),
        huggingface_model_name=os.getenv("HUGGINGFACE_MODEL_NAME", "BAAI/bge-large-en-v1.5"),
        huggingface_timeout_seconds=_get_float("HUGGINGFACE_TIMEOUT_SECONDS", 120),
        huggingface_connect_timeout_seconds=_get_float("HUGGINGFACE_CONNECT_TIMEOUT_SECONDS", 10),
        huggingface_retry_attempts=_get_int("HUGGINGFACE_RETRY_ATTEMPTS", 3),
        huggingface_retry_delay_ms=_get_int("HUGGINGFACE_RETRY_DELAY_MS", 1000),
        sentence_transformer_model=os.getenv("SENTENCE_TRANSFORMER_MODEL", "all-MiniLM-L6-v2"),
        pinecone_api_key=os.getenv("PINECONE_API_KEY", ""),
        pinecone_env=os.getenv("PINECONE_ENV", ""),
        pinecone_index_name=os.getenv("PINECONE_INDEX_NAME", ""),
        pinecone_index_host=os.getenv("PINECONE_INDEX_HOST", ""),
        catalog_path=os.getenv("CATALOG_PATH", "data/catalog.json"),
        indexes_dir=os.getenv("INDEXES_DIR", "data/indexes"),
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        neo4j_http_url=os.getenv("NEO4J_HTTP_URL", ""),
        neo4j_user=os.getenv("NEO4J_USER", "neo4j"),
        neo4j_password=os.getenv("NEO4J_PASSWORD", ""),
        neo4j_database=os.getenv("NEO4J_DATABASE", "neo4j"),
        result_cache_ttl_seconds=result_ttl,
        intent_cache_ttl_seconds=_get_float("INTENT_CACHE_TTL_SECONDS", result_ttl),
        explanation_cache_ttl_seconds=_get_float("EXPLANATION_CACHE_TTL_SECONDS", 86400),
        default_top_k=_get_int("DEFAULT_TOP_K", 10),
    )

    for name in settings.missing_credentials():
        logger.warning(f"{name} is not configured; dependent components will report not ready")

    logger.info(
        f"Settings loaded: embedder={settings.embedder_backend}, "
        f"vector_index={settings.vector_backend}, dimension={settings.embedding_dimension}, "
        f"huggingface_key={redact(settings.huggingface_api_key)}, "
        f"pinecone_key={redact(settings.pinecone_api_key)}, "
        f"history={'on' if settings.history_enabled else 'off'}, "
        f"graph={'on' if settings.graph_enabled else 'off'}"
    )
    return settings


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from e


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got '{raw}'") from e
