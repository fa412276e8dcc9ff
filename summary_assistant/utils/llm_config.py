"""
LLM client for the generative-text service.

Talks to the Gemini ``generateContent`` REST endpoint: one prompt in, one
text out. Every failure (HTTP error status, transport error, unexpected
response shape) is raised as ``SummaryServiceError`` carrying the upstream
status and body for diagnostics.
"""
import logging

import requests

from summary_assistant.services.errors import SummaryServiceError

logger = logging.getLogger(__name__)


class GenerativeTextClient:
    def __init__(self, endpoint: str, api_key: str | None, model: str,
                 timeout: float | None = 120.0, session: requests.Session | None = None):
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def generate(self, prompt: str) -> str:
        """
        Send a single prompt and return the first candidate's text.

        Raises:
            SummaryServiceError: on a missing API key, a non-2xx response,
                a transport error, or a response without candidate text
        """
        if not self.api_key:
            raise SummaryServiceError("Generative service API key not configured")

        try:
            response = self.session.post(
                self.url,
                params={"key": self.api_key},
                json={"contents": [{"parts": [{"text": prompt}]}]},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise SummaryServiceError(f"Generative service request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Generative service returned {response.status_code}: {response.text}")
            raise SummaryServiceError(
                f"Generative service failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise SummaryServiceError(
                f"Unexpected response from generative service: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e


def get_generative_client(config, api_key: str | None = None) -> GenerativeTextClient:
    """Build a client from a ``PipelineConfig``; ``api_key`` overrides the configured key."""
    client = GenerativeTextClient(
        endpoint=config.generative_service_endpoint,
        api_key=api_key or config.generative_service_key,
        model=config.model,
        timeout=config.generative_timeout_seconds,
    )
    logger.info(f"Generative client configured: {config.model} at {config.generative_service_endpoint}")
    return client
