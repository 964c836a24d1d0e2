"""
BackendClient: HTTP client for the backend API.

This is the default answering collaborator of the ConversationManager.
HTTP error responses from the backend become AnswerResult failures; an
unreachable backend or an unreadable response raises, so the manager treats
it as a transport failure.
"""

import json

import httpx

from config import ApiConfig
from conversation import AnswerResult
from logging_utils import get_logger

logger = get_logger(__name__)


class BackendError(Exception):
    """Base class for transport-level failures talking to the backend."""


class BackendUnavailableError(BackendError):
    """The backend could not be reached (connection refused, timeout, ...)."""


class MalformedResponseError(BackendError):
    """The backend answered with something that is not the documented JSON shape."""


CONNECTION_TEST_PROFILE = {
    "goals": ["General Fitness"],
    "level": "Beginner",
    "equipment": ["No Equipment"],
    "time": "15-30 minutes",
}


def friendly_error_message(error: Exception | str) -> str:
    """Map a backend/transport error to text suitable for the user."""
    text = str(error)
    if isinstance(error, BackendUnavailableError) or "Failed to connect" in text:
        return "Unable to connect to server. Please check your internet connection."
    if "429" in text or "Rate limit" in text:
        return "Too many requests. Please wait a moment and try again."
    if "500" in text:
        return "Server error. Please try again later."
    if "401" in text or "403" in text:
        return "Authentication error. Please contact support."
    return text or "Something went wrong. Please try again."


class BackendClient:
    """
    Talks to server.py over HTTP.

    Usage:
        client = BackendClient(config.api)
        if client.check_health():
            result = client.ask("Hi!", profile_record, [])
    """

    def __init__(self, config: ApiConfig, http_client: httpx.Client | None = None):
        """
        Args:
            config: Backend location and timeout.
            http_client: Preconfigured httpx client (tests pass a MockTransport one).
        """
        self.config = config
        self.is_healthy = False
        self._http = http_client or httpx.Client(timeout=config.timeout)
        logger.debug("Backend client initialized with URL: %s", config.base_url)

    def close(self) -> None:
        self._http.close()

    def check_health(self) -> bool:
        """GET the health endpoint; remembers the outcome in is_healthy."""
        try:
            response = self._http.get(self.config.url(self.config.health_endpoint))
            response.raise_for_status()
            logger.debug("Backend health check passed: %s", response.json())
            self.is_healthy = True
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.error("Backend health check failed: %s", e)
            self.is_healthy = False
        return self.is_healthy

    def ask(
        self,
        message: str,
        profile: dict,
        prior_context: list[dict[str, str]],
    ) -> AnswerResult:
        """
        Send one chat turn to the backend.

        Raises:
            BackendUnavailableError: the request did not complete.
            MalformedResponseError: the response is not the documented JSON.
        """
        payload = {
            "messages": [*prior_context, {"role": "user", "content": message.strip()}],
            "userProfile": profile or {},
        }
        logger.debug("Sending message to backend: %d messages", len(payload["messages"]))

        try:
            response = self._http.post(self.config.url(self.config.chat_endpoint), json=payload)
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"Failed to connect to backend: {e}") from e

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            if response.is_error:
                return AnswerResult.failure(f"HTTP {response.status_code}: {response.reason_phrase}")
            raise MalformedResponseError(f"Backend returned non-JSON response: {e}") from e

        if response.is_error:
            error = f"HTTP {response.status_code}: {response.reason_phrase}"
            details = None
            if isinstance(data, dict):
                error = data.get("error") or data.get("details") or error
                details = data.get("details")
            logger.warning("Backend returned %s: %s", response.status_code, error)
            return AnswerResult.failure(str(error), str(details) if details is not None else None)

        try:
            return AnswerResult.from_payload(data)
        except ValueError as e:
            raise MalformedResponseError(str(e)) from e

    def test_connection(self) -> AnswerResult:
        """Round-trip a short message with a sample profile."""
        return self.ask("Hi! Just testing the connection.", CONNECTION_TEST_PROFILE, [])

    def debug_info(self) -> dict:
        return {
            "base_url": self.config.base_url,
            "is_healthy": self.is_healthy,
            "endpoints": {
                "chat": self.config.chat_endpoint,
                "health": self.config.health_endpoint,
            },
        }
