"""
Runtime Configuration for the Labor-Law RAG

Settings are read from the environment (and a local .env file) once at
startup. Component-level tuning lives in the dataclass configs next to each
component (ChunkConfig, EmbeddingConfig, VectorStoreConfig, IngestionConfig,
RetrievalConfig); this module only carries credentials and service choices.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Embedding providers and their default multilingual models
EMBEDDING_MODELS = {
    "voyage": "voyage-multilingual-2",
    "cohere": "embed-multilingual-v3.0",
}

DEFAULT_LLM_MODEL = "qwen/qwen3-235b-a22b"
DEFAULT_LLM_FALLBACK_MODEL = "meta/llama-3.3-70b-instruct"
NIM_BASE_URL = "https://integrate.api.nvidia.com/v1"


class ConfigurationError(Exception):
    """Raised when required settings are missing at startup."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required settings: {', '.join(self.missing)}. "
            "Set them in the environment or in .env."
        )


@dataclass
class Settings:
    """Credentials and service choices for one process."""
    pinecone_api_key: Optional[str] = None
    pinecone_index: str = "law-agent"
    embedding_provider: str = "voyage"  # "voyage" or "cohere"
    embedding_model: str = EMBEDDING_MODELS["voyage"]
    voyage_api_key: Optional[str] = None
    cohere_api_key: Optional[str] = None
    nvidia_api_key: Optional[str] = None
    llm_model: str = DEFAULT_LLM_MODEL
    llm_fallback_model: str = DEFAULT_LLM_FALLBACK_MODEL
    llm_base_url: str = NIM_BASE_URL
    data_dir: Path = field(default_factory=lambda: Path("data"))

    # Environment variable behind each field, used in error messages
    ENV_NAMES = {
        "pinecone_api_key": "PINECONE_API_KEY",
        "voyage_api_key": "VOYAGE_API_KEY",
        "cohere_api_key": "COHERE_API_KEY",
        "nvidia_api_key": "NVIDIA_API_KEY",
    }

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            dotenv: Load a .env file from the working directory first

        Returns:
            Settings with defaults for anything unset
        """
        if dotenv:
            load_dotenv()

        provider = os.getenv("EMBEDDING_PROVIDER", "voyage").strip().lower()
        if provider not in EMBEDDING_MODELS:
            provider = "voyage"

        return cls(
            pinecone_api_key=os.getenv("PINECONE_API_KEY") or None,
            pinecone_index=os.getenv("PINECONE_INDEX", "law-agent"),
            embedding_provider=provider,
            embedding_model=os.getenv("EMBEDDING_MODEL") or EMBEDDING_MODELS[provider],
            voyage_api_key=os.getenv("VOYAGE_API_KEY") or None,
            cohere_api_key=os.getenv("COHERE_API_KEY") or None,
            nvidia_api_key=os.getenv("NVIDIA_API_KEY") or None,
            llm_model=os.getenv("LLM_MODEL", DEFAULT_LLM_MODEL),
            llm_fallback_model=os.getenv("LLM_FALLBACK_MODEL", DEFAULT_LLM_FALLBACK_MODEL),
            data_dir=Path(os.getenv("DATA_DIR", "data")),
        )

    @property
    def embedding_key_name(self) -> str:
        """Settings field holding the key for the active embedding provider."""
        return "cohere_api_key" if self.embedding_provider == "cohere" else "voyage_api_key"

    def require(self, *names: str) -> "Settings":
        """
        Check that the named settings are present.

        Raises:
            ConfigurationError: listing every missing variable at once
        """
        missing = [
            self.ENV_NAMES.get(name, name.upper())
            for name in names
            if not getattr(self, name, None)
        ]
        if missing:
            raise ConfigurationError(missing)
        return self

    def to_dict(self) -> dict:
        """Non-secret view for logging and the health endpoint."""
        return {
            "pinecone_index": self.pinecone_index,
            "embedding_provider": self.embedding_provider,
            "embedding_model": self.embedding_model,
            "llm_model": self.llm_model,
            "llm_fallback_model": self.llm_fallback_model,
            "data_dir": str(self.data_dir),
        }
