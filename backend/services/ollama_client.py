"""Local generation backend talking to a self-hosted Ollama server."""
import time
import logging
from typing import Optional
import httpx

from services.llm_client import GenerationBackend, LLMError, LLMClientError
from config import OLLAMA_HOST, OLLAMA_PORT, OLLAMA_MODEL, OLLAMA_TIMEOUT

logger = logging.getLogger(__name__)


class OllamaClient(GenerationBackend):
    """Wrapper for the Ollama /api/generate endpoint (non-streaming)."""

    def __init__(
        self,
        host: str = OLLAMA_HOST,
        port: int = OLLAMA_PORT,
        model: str = OLLAMA_MODEL,
        timeout: float = OLLAMA_TIMEOUT,
        base_url: Optional[str] = None
    ):
        """
        Initialize the Ollama client.

        Args:
            host: Ollama host name
            port: Ollama port
            model: Model tag to generate with (e.g. llama3.2:3b)
            timeout: Request timeout in seconds
            base_url: Full base URL, overriding host and port
        """
        self.base_url = base_url or f"http://{host}:{port}"
        self.model_name = model
        self.timeout = timeout
        logger.info(f"Initialized OllamaClient at {self.base_url} with model: {model}")

    def generate(self, prompt: str) -> str:
        """
        Generate a completion for the prompt.

        Returns:
            Generated text

        Raises:
            LLMClientError: On timeouts, connection failures and non-200 responses
        """
        start_time = time.time()
        payload = {"model": self.model_name, "prompt": prompt, "stream": False}

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(f"{self.base_url}/api/generate", json=payload)
        except httpx.TimeoutException as e:
            raise self._error("TIMEOUT_ERROR", f"Request timeout after {self.timeout}s", e, start_time)
        except httpx.RequestError as e:
            raise self._error("CONNECTION_ERROR", f"Failed to reach Ollama: {str(e)}", e, start_time)

        if response.status_code != 200:
            raise self._error(
                "API_ERROR",
                f"Ollama returned status {response.status_code}: {response.text}",
                None, start_time, status_code=response.status_code
            )

        try:
            text = response.json()["response"]
        except (ValueError, KeyError) as e:
            raise self._error("API_ERROR", "Failed to decode Ollama response", e, start_time)

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Generated response: model={self.model_name}, latency={latency_ms}ms")
        return text

    def health_check(self) -> bool:
        """Return True when the Ollama server answers /api/tags."""
        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.get(f"{self.base_url}/api/tags")
            return response.status_code == 200
        except httpx.RequestError as e:
            logger.warning(f"Ollama health check failed: {str(e)}")
            return False

    def _error(self, code: str, message: str, cause: Optional[Exception], start_time: float, **details) -> LLMClientError:
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": self.model_name,
                "latency_ms": latency_ms,
                "original_error": str(cause) if cause else None,
                **details
            }
        )
        logger.error(
            f"{code}: model={self.model_name}, latency={latency_ms}ms, error={message}",
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
