"""
HireSignal - Inference Runtime
Chat-completion calls to the language-model endpoint with failure classification.
"""

import logging
import time
import requests
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from ..config import InferenceConfig
from ..errors import InferenceTransportError, QuotaExceededError, RateLimitedError

logger = logging.getLogger(__name__)

BODY_SNIPPET_CHARS = 300


def _message_content(data: Any) -> Optional[str]:
    """Assistant text from a chat-completions body, or None if the shape is wrong."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices") or [{}]
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if content is None:
        return ""
    return content if isinstance(content, str) else None


@dataclass
class InferenceResult:
    """Result from a chat completion request."""
    text: str
    latency_ms: float
    model: str
    temperature: float


class InferenceRuntime:
    """
    Interface to an OpenAI-compatible chat-completions endpoint.

    Does not retry. Rate-limit and quota responses are raised as their own
    error classes so the caller decides whether a subject is lost or the
    whole request fails.
    """

    def __init__(self, config: InferenceConfig):
        """
        Initialize inference runtime.

        Args:
            config: Inference configuration.
        """
        self.base_url = config.base_url.rstrip('/')
        self.timeout = config.timeout
        self.api_key = config.api_key
        self.default_model = config.model

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def check_health(self) -> bool:
        """Check if the endpoint is reachable."""
        try:
            response = requests.get(f"{self.base_url}/models", headers=self._headers(), timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def chat(
        self,
        system: str,
        user: str,
        temperature: float,
        model: Optional[str] = None
    ) -> InferenceResult:
        """
        Send one system + user exchange and return the assistant text.

        Args:
            system: System instruction.
            user: Per-invocation user message.
            temperature: Sampling temperature.
            model: Model identifier. Defaults to the configured model.

        Returns:
            InferenceResult with raw text and latency.

        Raises:
            RateLimitedError: HTTP 429.
            QuotaExceededError: HTTP 402.
            InferenceTransportError: Any other non-2xx, request failure or malformed envelope.
        """
        model = model or self.default_model
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature
        }

        start_time = time.time()
        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.warning("Inference timed out after %ss (model=%s)", self.timeout, model)
            raise InferenceTransportError("Inference request timed out")
        except requests.exceptions.ConnectionError as exc:
            logger.warning("Inference connection failed: %s", exc)
            raise InferenceTransportError("Could not reach inference endpoint")
        except requests.exceptions.RequestException as exc:
            logger.warning("Inference request failed: %s", exc)
            raise InferenceTransportError(f"Inference request failed: {type(exc).__name__}")
        latency_ms = (time.time() - start_time) * 1000

        status = response.status_code
        if status == 429:
            logger.warning("Inference rate limited (model=%s)", model)
            raise RateLimitedError("Inference rate limit reached, try again later")
        if status == 402:
            logger.warning("Inference quota exhausted (model=%s)", model)
            raise QuotaExceededError("Inference quota exhausted")
        if not 200 <= status < 300:
            body = response.text[:BODY_SNIPPET_CHARS]
            logger.error("Inference failed: HTTP %s: %s", status, body)
            raise InferenceTransportError(f"Inference failed with HTTP {status}", status=status, body=body)

        try:
            data = response.json()
        except ValueError:
            raise InferenceTransportError("Inference returned a non-JSON envelope", status=status,
                                          body=response.text[:BODY_SNIPPET_CHARS])

        text = _message_content(data)
        if text is None:
            raise InferenceTransportError("Inference returned an unexpected envelope", status=status,
                                          body=response.text[:BODY_SNIPPET_CHARS])
        logger.info("Inference completed in %.0f ms (model=%s)", latency_ms, model)

        return InferenceResult(
            text=text,
            latency_ms=latency_ms,
            model=model,
            temperature=temperature
        )
