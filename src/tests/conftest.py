"""
Shared test fixtures for AI Gym Buddy tests.

This module provides:
- Config fixtures (no .env, no config file)
- Questions, collectors and stage machines
- Scripted answering collaborators
- Mock OpenAI client fixtures
"""

import os
import sys
import pytest
from unittest.mock import Mock

# Add src to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# =============================================================================
# Helpers
# =============================================================================

COMPLETE_ANSWERS = {
    "goals": "Muscle Building",
    "level": "Intermediate",
    "equipment": ["Gym Membership", "Home Weights"],
    "time": "45-60 minutes",
}


def fill_profile(collector, answers=None, name="Alex"):
    """Answer every question in order and step past the last one."""
    answers = answers or COMPLETE_ANSWERS
    if name:
        collector.set_name(name)
    for question in collector.questions:
        assert collector.record_answer(question.id, answers[question.id])
        collector.advance()
    return collector


class ScriptedAnswerer:
    """Answering collaborator that replays queued results and records calls."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def ask(self, message, profile, prior_context):
        self.calls.append((message, profile, list(prior_context)))
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        if result is None:
            from conversation import AnswerResult
            return AnswerResult.ok(f"Reply to: {message}")
        return result


# =============================================================================
# Fixtures: Config
# =============================================================================

@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the config reads."""
    for key in (
        "OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENAI_MODEL", "OPENAI_TEMPERATURE",
        "OPENAI_MAX_TOKENS", "HOST", "PORT", "APP_ENV", "FRONTEND_URL",
        "GYMBUDDY_API_URL", "GYMBUDDY_API_TIMEOUT", "GYMBUDDY_DEBUG", "LLM_LOG_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("config.load_dotenv", lambda *args, **kwargs: False)
    return monkeypatch


@pytest.fixture
def mock_llm_config():
    """LLMConfig with a fake key."""
    from config import LLMConfig
    return LLMConfig(
        api_key="sk-test",
        base_url="https://test.api.com",
        model="test-model",
        temperature=0.5,
        max_tokens=100,
    )


@pytest.fixture
def mock_app_config(mock_llm_config):
    """AppConfig for tests: fake key, debug on."""
    from config import ApiConfig, AppConfig, ServerConfig
    return AppConfig(
        api=ApiConfig(base_url="http://backend.test/api", timeout=5.0),
        llm=mock_llm_config,
        server=ServerConfig(environment="test", max_history_messages=4),
        debug=True,
    )


# =============================================================================
# Fixtures: Core components
# =============================================================================

@pytest.fixture
def questions():
    from user_profile import DEFAULT_QUESTIONS
    return DEFAULT_QUESTIONS


@pytest.fixture
def collector():
    """Fresh ProfileCollector with the default questions."""
    from user_profile import ProfileCollector
    return ProfileCollector()


@pytest.fixture
def completed_collector(collector):
    """ProfileCollector with every question answered."""
    return fill_profile(collector)


@pytest.fixture
def stage_machine():
    from stage_machine import StageMachine
    return StageMachine()


@pytest.fixture
def answerer():
    """Collaborator that answers everything successfully."""
    return ScriptedAnswerer()


# =============================================================================
# Fixtures: LLM
# =============================================================================

@pytest.fixture
def mock_openai_client():
    """Create a mock OpenAI client."""
    mock_client = Mock()
    mock_completion = Mock()
    mock_completion.choices = [Mock(message=Mock(content="Mock response"))]
    mock_completion.usage = Mock(prompt_tokens=10, completion_tokens=5)
    mock_client.chat.completions.create.return_value = mock_completion
    return mock_client


@pytest.fixture
def mock_llm_client(mock_llm_config, mock_openai_client):
    """Create an LLMClient backed by the mock OpenAI client."""
    from unittest.mock import patch

    with patch('llm.OpenAI', return_value=mock_openai_client):
        from llm import LLMClient
        client = LLMClient(mock_llm_config)
        return client
