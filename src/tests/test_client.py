"""
Tests for client.py (BackendClient over httpx).

Uses httpx.MockTransport so no server is needed.
"""

import os
import sys
import json
import pytest

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from client import (
    CONNECTION_TEST_PROFILE,
    BackendClient,
    BackendUnavailableError,
    MalformedResponseError,
    friendly_error_message,
)
from config import ApiConfig

API = ApiConfig(base_url="http://backend.test/api", timeout=5.0)


def make_client(handler):
    """BackendClient whose requests are answered by handler(request)."""
    return BackendClient(API, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


# =============================================================================
# Test check_health
# =============================================================================

class TestCheckHealth:
    """Tests for check_health."""

    def test_healthy(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"status": "OK"})

        client = make_client(handler)

        assert client.check_health() is True
        assert client.is_healthy is True
        assert seen == ["http://backend.test/api/health"]

    def test_error_status(self):
        client = make_client(lambda request: httpx.Response(503, json={"status": "down"}))

        assert client.check_health() is False
        assert client.is_healthy is False

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert make_client(handler).check_health() is False

    def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        assert client.check_health() is False


# =============================================================================
# Test ask
# =============================================================================

class TestAsk:
    """Tests for ask."""

    def test_posts_context_and_profile(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "message": "Squat deep", "usage": {"total_tokens": 9}})

        client = make_client(handler)
        prior = [{"role": "assistant", "content": "Hi!"}]

        result = client.ask("  Knees hurt?  ", {"goals": "Endurance"}, prior)

        assert result.success is True
        assert result.message == "Squat deep"
        assert result.usage == {"total_tokens": 9}
        assert captured["url"] == "http://backend.test/api/chat"
        assert captured["body"] == {
            "messages": [
                {"role": "assistant", "content": "Hi!"},
                {"role": "user", "content": "Knees hurt?"},
            ],
            "userProfile": {"goals": "Endurance"},
        }

    def test_prior_context_not_mutated(self):
        client = make_client(lambda request: httpx.Response(200, json={"success": True, "message": "ok"}))
        prior = []

        client.ask("hi", {}, prior)

        assert prior == []

    def test_error_status_uses_error_field(self):
        client = make_client(lambda request: httpx.Response(
            429, json={"success": False, "error": "Rate limit exceeded", "details": "slow down"},
        ))

        result = client.ask("hi", {}, [])

        assert result.success is False
        assert result.error == "Rate limit exceeded"
        assert result.details == "slow down"

    def test_error_status_falls_back_to_details(self):
        client = make_client(lambda request: httpx.Response(500, json={"details": "stack"}))

        assert client.ask("hi", {}, []).error == "stack"

    def test_error_status_without_json(self):
        client = make_client(lambda request: httpx.Response(502, text="Bad Gateway"))

        result = client.ask("hi", {}, [])

        assert result.success is False
        assert result.error == "HTTP 502: Bad Gateway"

    def test_unreachable_raises(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(BackendUnavailableError):
            make_client(handler).ask("hi", {}, [])

    def test_non_json_success_raises(self):
        client = make_client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(MalformedResponseError):
            client.ask("hi", {}, [])

    def test_wrong_shape_raises(self):
        client = make_client(lambda request: httpx.Response(200, json={"reply": "hi"}))

        with pytest.raises(MalformedResponseError):
            client.ask("hi", {}, [])

    def test_structured_message_encoded(self):
        client = make_client(lambda request: httpx.Response(
            200, json={"success": True, "message": ["Day 1", "Day 2"]},
        ))

        assert client.ask("plan", {}, []).message == '["Day 1", "Day 2"]'

    def test_connection_test_profile(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "message": "pong"})

        result = make_client(handler).test_connection()

        assert result.message == "pong"
        assert captured["body"]["userProfile"] == CONNECTION_TEST_PROFILE


# =============================================================================
# Test helpers
# =============================================================================

class TestFriendlyErrorMessage:
    """Tests for friendly_error_message."""

    @pytest.mark.parametrize("error, expected", [
        (BackendUnavailableError("Failed to connect to backend"), "Unable to connect to server"),
        ("HTTP 429: Too Many Requests", "Too many requests"),
        ("Rate limit exceeded", "Too many requests"),
        ("HTTP 500: Internal Server Error", "Server error"),
        ("HTTP 401: Unauthorized", "Authentication error"),
        ("HTTP 403: Forbidden", "Authentication error"),
    ])
    def test_known_errors(self, error, expected):
        assert friendly_error_message(error).startswith(expected)

    def test_unknown_error_passes_through(self):
        assert friendly_error_message("Invalid request") == "Invalid request"

    def test_empty_error(self):
        assert friendly_error_message("") == "Something went wrong. Please try again."


class TestDebugInfo:
    def test_debug_info(self):
        client = make_client(lambda request: httpx.Response(200, json={}))

        assert client.debug_info() == {
            "base_url": "http://backend.test/api",
            "is_healthy": False,
            "endpoints": {"chat": "/chat", "health": "/health"},
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
