"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from typing import Any, List, Optional
import httpx
from config import (
    HUGGINGFACE_API_KEY,
    EMBEDDING_MODEL,
    EMBEDDING_DIMENSION,
    EMBEDDING_MAX_CHARS,
)
from errors import (
    ConfigurationError,
    EmbeddingProviderError,
    UnexpectedResponseFormatError,
)
from services.sanitizer import sanitize

logger = logging.getLogger(__name__)


def normalize_embedding(embedding: List[float], dimension: int = EMBEDDING_DIMENSION) -> List[float]:
    """
    Pad or truncate an embedding to exactly ``dimension`` values.

    Longer vectors keep their first ``dimension`` elements; shorter ones are
    right-padded with zeros.
    """
    if len(embedding) == dimension:
        return list(embedding)

    if len(embedding) > dimension:
        logger.debug(f"Truncating embedding from {len(embedding)} to {dimension} dimensions")
        return list(embedding[:dimension])

    logger.debug(f"Padding embedding from {len(embedding)} to {dimension} dimensions")
    return list(embedding) + [0.0] * (dimension - len(embedding))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API feature extraction."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        dimension: int = EMBEDDING_DIMENSION,
        max_chars: int = EMBEDDING_MAX_CHARS,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-MiniLM-L6-v2)
            dimension: Fixed output dimension every vector is normalized to
            max_chars: Input is truncated to this many characters before sending
            max_retries: Maximum attempts for 503 (model loading), timeouts and network errors
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds

        Raises:
            ConfigurationError: If no API key is available
        """
        if not api_key:
            raise ConfigurationError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.dimension = dimension
        self.max_chars = max_chars
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = (
            f"https://router.huggingface.co/hf-inference/models/{model_name}/pipeline/feature-extraction"
        )

        logger.info(f"Initialized EmbeddingModel with model: {model_name} (dimension {dimension})")

    def embed(self, text: str) -> List[float]:
        """
        Generate a fixed-dimension embedding for a single text.

        Empty input skips the network call and yields a zero vector.

        Args:
            text: Text to embed

        Returns:
            Embedding vector of length ``self.dimension``

        Raises:
            EmbeddingProviderError: On auth, rate limit, HTTP or network failure
            UnexpectedResponseFormatError: If the provider returns an unknown shape
        """
        if not text or not text.strip():
            logger.warning("Empty text provided, returning zero vector")
            return [0.0] * self.dimension

        sanitized = sanitize(text[:self.max_chars])
        if not sanitized:
            logger.warning("Text was empty after sanitization, returning zero vector")
            return [0.0] * self.dimension

        payload = self._embed_with_retry(sanitized)
        return normalize_embedding(self._parse_vector(payload), self.dimension)

    def _parse_vector(self, payload: Any) -> List[float]:
        """Accept a flat vector or a singly-nested vector of vectors."""
        if isinstance(payload, list) and payload:
            if all(_is_number(v) for v in payload):
                return [float(v) for v in payload]

            first = payload[0]
            if isinstance(first, list) and first and all(_is_number(v) for v in first):
                return [float(v) for v in first]

        preview = repr(payload)[:200]
        logger.error(f"Unexpected embedding response format: {preview}")
        raise UnexpectedResponseFormatError(
            f"Unexpected API response format: {type(payload).__name__}",
            {"preview": preview}
        )

    def _embed_with_retry(self, text: str) -> Any:
        """
        Internal method to call HF API with exponential backoff retry strategy.

        HF free tier models "sleep" and take 15-20s to load on first query.
        503 responses, timeouts and network errors are retried with
        exponential backoff. Auth and rate-limit errors are raised at once.

        Args:
            text: Sanitized text to embed

        Returns:
            Decoded JSON response body

        Raises:
            EmbeddingProviderError: If the request fails or retries are exhausted
            UnexpectedResponseFormatError: If the body is not JSON
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": text,
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )

                elapsed = time.time() - start_time

                # Handle 503 Service Unavailable (model loading)
                if response.status_code == 503:
                    last_error = "Model loading (503)"
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )

                    if attempt < self.max_retries - 1:
                        time.sleep(delay)
                        delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s
                    continue

                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise EmbeddingProviderError(
                        "Rate limit exceeded. Please try again later.", status_code=429
                    )

                if response.status_code in (401, 403):
                    logger.error("Authentication failed for Hugging Face API")
                    raise EmbeddingProviderError(
                        "Invalid API key. Check HUGGINGFACE_API_KEY.",
                        status_code=response.status_code
                    )

                if response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingProviderError(error_msg, status_code=response.status_code)

                try:
                    body = response.json()
                except ValueError as e:
                    raise UnexpectedResponseFormatError(
                        f"Embedding response was not valid JSON: {e}"
                    ) from e

                if elapsed > 10.0:
                    logger.info(f"Model loading delay detected: {elapsed:.1f}s (attempt {attempt + 1})")
                else:
                    logger.debug(f"Generated embedding in {elapsed:.2f}s")

                return body

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

            if attempt < self.max_retries - 1:
                time.sleep(delay)
                delay = min(delay * 2, 60.0)

        # All retries exhausted
        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingProviderError(error_msg, details={"attempts": self.max_retries})

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
