"""
OpenAI-compatible embedder.

Works with any API that follows the OpenAI embeddings format: OpenAI, Azure
OpenAI, and local servers with an OpenAI compatibility layer (LocalAI, Ollama,
vLLM). Gemini and other providers are reachable through such gateways too.

Example Usage:
--------------
    embedder = OpenAIEmbedder(
        base_url="https://api.openai.com/v1",
        api_key="sk-xxx",
        model="text-embedding-3-small"
    )
    vectors = await embedder.embed(["Project: Alpha Launch"])
"""

import httpx
from loguru import logger

from ...errors import EmbeddingError, classify_http_error
from ..base import BaseEmbedder


class OpenAIEmbedder(BaseEmbedder):
    """
    Embedder backed by an OpenAI-compatible ``/embeddings`` endpoint.

    Attributes:
        base_url: The API base URL (e.g., "https://api.openai.com/v1")
        api_key: API authentication key
        model: Model identifier (e.g., "text-embedding-3-small")
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the OpenAI-compatible embedder.

        Args:
            base_url: API endpoint base URL (trailing slash will be stripped)
            api_key: Authentication key for the API
            model: Model name to use for embeddings
            timeout: Per-request timeout in seconds
            client: Optional pre-built client (tests inject a MockTransport here).
                The caller keeps ownership of it: aclose() leaves it open.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._dimension = 1536  # Default for text-embedding-3-small, updated on first call

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for a list of texts in one API call.

        Raises:
            RateLimitError, AuthenticationError, TransientError, ...: On HTTP errors
            EmbeddingError: On transport failures or malformed responses
        """
        if not texts:
            return []

        url = f"{self.base_url}/embeddings"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "input": texts,
            "model": self.model
        }

        try:
            resp = await self.client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Embedding request failed: {type(e).__name__}: {e}")
            raise EmbeddingError(
                "Embedding request failed",
                details={"model": self.model, "text_count": len(texts)},
                original_error=e,
            )

        if resp.status_code >= 400:
            logger.error(f"Embedding provider returned HTTP {resp.status_code}")
            raise classify_http_error(resp.status_code, resp.text, dict(resp.headers))

        try:
            results = resp.json().get("data", [])
            # Sort by index to ensure correct order
            results.sort(key=lambda x: x.get("index", 0))
            vector_list = [item["embedding"] for item in results]
        except (ValueError, KeyError, AttributeError, TypeError) as e:
            raise EmbeddingError(
                "Malformed embedding response",
                details={"model": self.model},
                original_error=e,
            )

        if len(vector_list) != len(texts):
            raise EmbeddingError(
                "Embedding response size mismatch",
                details={"expected": len(texts), "received": len(vector_list)},
            )

        if vector_list:
            self._dimension = len(vector_list[0])

        return vector_list

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self.model

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
