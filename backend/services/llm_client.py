"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, GENERATION_MODEL, DEFAULT_TEMPERATURE
from errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for interfacing with Groq API for text generation."""

    def __init__(self, api_key: Optional[str] = None, model: str = GENERATION_MODEL):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model used when generate() is not given one

        Raises:
            ConfigurationError: If no API key is available
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ConfigurationError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = Groq(api_key=self.api_key)
        logger.info("LLMClient initialized successfully")

    @staticmethod
    def build_messages(
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, str]]] = None,
        system_prompt: Optional[str] = None
    ) -> List[Dict[str, str]]:
        """
        Assemble a chat message list: system prompt, prior messages, then prompt.

        Raises:
            ValueError: If neither prompt nor messages is given
        """
        if not prompt and not messages:
            raise ValueError("Either prompt or messages must be provided")

        chat_messages: List[Dict[str, str]] = []
        if system_prompt:
            chat_messages.append({"role": "system", "content": system_prompt})
        for message in messages or []:
            chat_messages.append({"role": message["role"], "content": message["content"]})
        if prompt:
            chat_messages.append({"role": "user", "content": prompt})
        return chat_messages

    def generate(
        self,
        prompt: Optional[str] = None,
        messages: Optional[List[Dict[str, str]]] = None,
        system_prompt: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = DEFAULT_TEMPERATURE,
        model: Optional[str] = None
    ) -> LLMResponse:
        """
        Generate response using Groq API.

        Args:
            prompt: User prompt, appended as the final user message
            messages: Prior conversation as ``{"role", "content"}`` dicts
            system_prompt: Optional system instruction
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            model: Model name (defaults to the client's model)

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            ValueError: If neither prompt nor messages is given
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        chat_messages = self.build_messages(prompt, messages, system_prompt)
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model} ({len(chat_messages)} messages)")

            response = self.client.chat.completions.create(
                model=model,
                messages=chat_messages,
                max_tokens=max_tokens,
                temperature=temperature
            )

        except RateLimitError as e:
            self._raise(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e, retry_after=60
            )
        except AuthenticationError as e:
            self._raise(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e
            )
        except APITimeoutError as e:
            self._raise("TIMEOUT_ERROR", "Request timed out. Please try again.", model, start_time, e)
        except APIError as e:
            self._raise("API_ERROR", f"Groq API error: {str(e)}", model, start_time, e)
        except Exception as e:
            self._raise(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e, error_type=type(e).__name__
            )

        latency_ms = int((time.time() - start_time) * 1000)
        text = (response.choices[0].message.content or "").strip()

        if not text:
            self._raise("EMPTY_RESPONSE", "Model returned an empty response.", model, start_time)

        usage = response.usage
        tokens_input = getattr(usage, "prompt_tokens", 0) or 0
        tokens_output = getattr(usage, "completion_tokens", 0) or 0

        logger.info(
            f"Generated response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model
        )

    @staticmethod
    def _raise(
        code: str,
        message: str,
        model: str,
        start_time: float,
        original: Optional[Exception] = None,
        **extra: Any
    ) -> None:
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {"model": model, "latency_ms": latency_ms, **extra}
        if original is not None:
            details["original_error"] = str(original)

        error = LLMError(code=code, message=message, details=details)
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={original or message}",
            exc_info=original is not None,
            extra={"error_code": error.code, "error_details": error.details}
        )
        raise LLMClientError(error) from original
