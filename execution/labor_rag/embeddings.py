"""
Embedding Service for the Labor-Law RAG

Provides embeddings via Voyage AI (voyage-multilingual-2) or Cohere
(embed-multilingual-v3.0). Both models handle Lithuanian and return
1024-dimensional vectors, so an index built with one can be queried only
with the same one.

Architecture:
    BaseEmbeddingService  -- shared caching, truncation, embed_document(s), embed_query
        EmbeddingService          -- Cohere embed-multilingual-v3.0 provider
        VoyageEmbeddingService    -- Voyage AI voyage-multilingual-2 provider
"""

import os
import json
import hashlib
import logging
from typing import Optional, Union
from dataclasses import dataclass
from pathlib import Path

import cohere
import voyageai

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    """Configuration for embedding service."""
    provider: str = "voyage"  # "voyage" or "cohere"
    model: str = "voyage-multilingual-2"
    dimensions: int = 1024
    batch_size: int = 128  # Voyage supports up to 128, Cohere 96
    # Inputs longer than this are cut before the call
    max_input_chars: int = 30000
    cache_dir: Optional[str] = None
    use_cache: bool = True


class BaseEmbeddingService:
    """
    Base class for API-based embedding services.

    Provides shared functionality:
    - Memory and file-based caching
    - Input truncation
    - Document vs query input type distinction

    Subclasses only need to implement:
    - _init_client(): Initialize the provider-specific API client

    And set these class attributes:
    - _provider_name: Human-readable provider name for error messages
    - _env_var_name: Environment variable name for the API key
    - _doc_input_type: Input type string for document embeddings
    - _query_input_type: Input type string for query embeddings
    """

    _provider_name: str = "Base"
    _env_var_name: str = ""
    _doc_input_type: str = "document"
    _query_input_type: str = "query"

    def __init__(self, config: Optional[EmbeddingConfig] = None, api_key: Optional[str] = None):
        """
        Initialize embedding service.

        Args:
            config: Optional configuration. Uses defaults if not provided.
            api_key: Provider key; read from the environment when omitted
        """
        self.config = config or EmbeddingConfig()
        self._client = None
        self._cache = {}

        if self.config.cache_dir:
            self._cache_path = Path(self.config.cache_dir)
            self._cache_path.mkdir(parents=True, exist_ok=True)
        else:
            self._cache_path = None

        self._init_client(api_key or os.getenv(self._env_var_name))

    def _init_client(self, api_key: Optional[str]):
        """Initialize the provider-specific API client. Must be overridden by subclasses."""
        raise NotImplementedError("Subclasses must implement _init_client()")

    def _require_client(self):
        if not self._client:
            raise RuntimeError(
                f"{self._provider_name} client not initialized. "
                f"Check {self._env_var_name}."
            )

    def truncate(self, text: str) -> str:
        return text[:self.config.max_input_chars]

    def embed_document(self, text: str) -> list[float]:
        """
        Embed one ingestion unit.

        Args:
            text: Embedding text of the unit, truncated to max_input_chars

        Returns:
            Embedding vector
        """
        self._require_client()
        result = self._embed_batch([self.truncate(text)], input_type=self._doc_input_type)
        return result[0] if result else []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed several documents in provider-sized batches."""
        if not texts:
            return []
        self._require_client()

        embeddings = []
        size = self.config.batch_size
        for i in range(0, len(texts), size):
            batch = [self.truncate(t) for t in texts[i:i + size]]
            embeddings.extend(self._embed_batch(batch, input_type=self._doc_input_type))
        return embeddings

    def embed_query(self, query: str) -> list[float]:
        """
        Generate embedding for a search query.

        Uses different input_type for better query-document matching.
        """
        self._require_client()
        result = self._embed_batch([query], input_type=self._query_input_type)
        return result[0] if result else []

    def _embed_batch(
        self,
        texts: list[str],
        input_type: str = "document"
    ) -> list[list[float]]:
        """Embed a batch of texts using the provider API."""
        results = []
        uncached_texts = []
        uncached_indices = []

        for i, text in enumerate(texts):
            cached = self._get_cached(self._get_cache_key(text, input_type))
            if cached is not None:
                results.append((i, cached))
            else:
                uncached_texts.append(text)
                uncached_indices.append(i)

        if uncached_texts:
            try:
                response = self._client.embed(
                    texts=uncached_texts,
                    model=self.config.model,
                    input_type=input_type,
                )
            except Exception as e:
                logger.error(f"{self._provider_name} embedding failed: {e}")
                raise

            for idx, embedding in zip(uncached_indices, response.embeddings):
                embedding = list(embedding)
                self._set_cached(self._get_cache_key(texts[idx], input_type), embedding)
                results.append((idx, embedding))

        results.sort(key=lambda x: x[0])
        return [emb for _, emb in results]

    def _get_cache_key(self, text: str, input_type: str) -> str:
        """Generate cache key for text."""
        content = f"{self.config.model}:{input_type}:{text}"
        return hashlib.sha256(content.encode()).hexdigest()[:32]

    def _get_cached(self, key: str) -> Optional[list[float]]:
        """Get cached embedding."""
        if not self.config.use_cache:
            return None

        if key in self._cache:
            return self._cache[key]

        if self._cache_path:
            cache_file = self._cache_path / f"{key}.json"
            if cache_file.exists():
                try:
                    with open(cache_file) as f:
                        embedding = json.load(f)
                except (OSError, ValueError) as e:
                    logger.debug(f"Failed to read embedding cache file {cache_file}: {e}")
                    return None
                self._cache[key] = embedding
                return embedding

        return None

    def _set_cached(self, key: str, embedding: list[float]) -> None:
        """Cache an embedding."""
        if not self.config.use_cache:
            return

        self._cache[key] = embedding

        if self._cache_path:
            cache_file = self._cache_path / f"{key}.json"
            try:
                with open(cache_file, 'w') as f:
                    json.dump(embedding, f)
            except OSError as e:
                logger.warning(f"Failed to cache embedding: {e}")

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self.config.dimensions


class EmbeddingService(BaseEmbeddingService):
    """
    Generates embeddings using Cohere's embed-multilingual-v3.0 model.

    Cohere distinguishes search_document and search_query input types.
    """

    _provider_name = "Cohere"
    _env_var_name = "COHERE_API_KEY"
    _doc_input_type = "search_document"
    _query_input_type = "search_query"

    def _init_client(self, api_key: Optional[str]):
        """Initialize the Cohere client."""
        if not api_key:
            logger.warning(
                "COHERE_API_KEY not found. Embeddings will fail. "
                "Set the environment variable or use a different provider."
            )
            return

        self._client = cohere.Client(api_key)
        logger.info(f"Cohere client initialized with model {self.config.model}")


class VoyageEmbeddingService(BaseEmbeddingService):
    """
    Embedding service using Voyage AI's voyage-multilingual-2 model.

    The index in production was built with this model.
    """

    _provider_name = "Voyage AI"
    _env_var_name = "VOYAGE_API_KEY"
    _doc_input_type = "document"
    _query_input_type = "query"

    def _init_client(self, api_key: Optional[str]):
        """Initialize the Voyage AI client."""
        if not api_key:
            logger.warning(
                "VOYAGE_API_KEY not found. Embeddings will fail. "
                "Get your API key at https://dash.voyageai.com/"
            )
            return

        self._client = voyageai.Client(api_key=api_key)
        logger.info(f"Voyage AI client initialized with model {self.config.model}")


def get_embedding_service(
    provider: str = "voyage",
    settings=None,
    cache_dir: Optional[str] = None,
) -> Union[VoyageEmbeddingService, EmbeddingService]:
    """
    Factory function to get appropriate embedding service.

    Args:
        provider: "voyage" (default) or "cohere"; ignored when settings are given
        settings: Optional Settings carrying provider, model and keys
        cache_dir: Optional directory for the file cache

    Returns:
        Configured embedding service
    """
    if settings is not None:
        provider = settings.embedding_provider
        model = settings.embedding_model
        key = getattr(settings, settings.embedding_key_name)
    else:
        model = None
        key = None

    if provider == "cohere":
        config = EmbeddingConfig(
            provider="cohere",
            model=model or "embed-multilingual-v3.0",
            batch_size=96,
            cache_dir=cache_dir,
        )
        return EmbeddingService(config, api_key=key)

    config = EmbeddingConfig(
        provider="voyage",
        model=model or "voyage-multilingual-2",
        batch_size=128,
        cache_dir=cache_dir,
    )
    return VoyageEmbeddingService(config, api_key=key)


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    provider = os.getenv("EMBEDDING_PROVIDER", "voyage")
    print(f"Using embedding provider: {provider}")

    service = get_embedding_service(provider=provider)

    if len(sys.argv) > 1:
        query = " ".join(sys.argv[1:])
    else:
        query = "Kokia yra kasmetinių atostogų trukmė?"

    print(f"Query: {query}")
    embedding = service.embed_query(query)
    print(f"Embedding dimensions: {len(embedding)}")
    print(f"First 10 values: {embedding[:10]}")
