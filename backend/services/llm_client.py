"""Generation backends: the shared interface and the hosted Groq client."""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, GROQ_MODEL, LLM_PROVIDER, MAX_OUTPUT_TOKENS

logger = logging.getLogger(__name__)


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


class GenerationBackend(ABC):
    """A text-generation provider: one prompt in, generated text out."""

    model_name: str = ""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Raises:
            LLMClientError: If the provider call fails
        """

    def health_check(self) -> bool:
        return True


class GroqClient(GenerationBackend):
    """Client for interfacing with the hosted Groq API for text generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GROQ_MODEL,
        max_tokens: int = MAX_OUTPUT_TOKENS
    ):
        """
        Initialize Groq client with API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Model name
            max_tokens: Maximum tokens to generate per call
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model_name = model
        self.max_tokens = max_tokens
        self.client = Groq(api_key=self.api_key)
        logger.info(f"GroqClient initialized with model {model}")

    def generate(self, prompt: str) -> str:
        """
        Generate a response using the Groq API.

        Args:
            prompt: Complete prompt with context and question

        Returns:
            Generated text

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()
        model = self.model_name

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=0.2
            )

            latency_ms = int((time.time() - start_time) * 1000)
            text = response.choices[0].message.content or ""

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={response.usage.prompt_tokens}, "
                f"output_tokens={response.usage.completion_tokens}, "
                f"latency={latency_ms}ms"
            )
            return text

        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                e, start_time, retry_after=60
            )

        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                e, start_time
            )

        except APITimeoutError as e:
            raise self._error("TIMEOUT_ERROR", "Request timed out. Please try again.", e, start_time)

        except APIError as e:
            raise self._error("API_ERROR", f"Groq API error: {str(e)}", e, start_time)

        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                e, start_time, error_type=type(e).__name__
            )

    def _error(self, code: str, message: str, cause: Exception, start_time: float, **details) -> LLMClientError:
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": self.model_name,
                "latency_ms": latency_ms,
                "original_error": str(cause),
                **details
            }
        )
        logger.error(
            f"{code}: model={self.model_name}, latency={latency_ms}ms, error={cause}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)


def create_generation_backend(provider: str = LLM_PROVIDER) -> GenerationBackend:
    """
    Build the generation backend selected by configuration.

    Args:
        provider: "ollama" (local) or "groq" (hosted)

    Raises:
        ValueError: If the provider is unknown or misconfigured
    """
    provider = provider.lower()
    if provider == "groq":
        return GroqClient()
    if provider == "ollama":
        from services.ollama_client import OllamaClient
        return OllamaClient()
    raise ValueError(f"Unknown LLM_PROVIDER: {provider!r} (expected 'ollama' or 'groq')")
