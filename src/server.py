"""
Backend: thin FastAPI proxy between the chat UI and the language-model provider.

Endpoints:
- GET  /api/health  liveness plus whether an API key is configured
- POST /api/chat    {messages, userProfile} -> {success, message, usage}
                    or {success: false, error, details}

Provider errors are returned as JSON failures with a matching status code so
the client can show them in the transcript.

Usage:
    uvicorn server:app --port 3001
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import openai
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import AppConfig, load_config
from llm import LLMClient
from logging_utils import get_logger
from prompts import build_system_prompt
from schemas import ChatFailure, ChatRequest, ChatSuccess, HealthResponse

logger = get_logger(__name__)


def _failure(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ChatFailure(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def build_messages(request: ChatRequest, max_history: int) -> list[dict[str, str]]:
    """System prompt followed by the most recent user/assistant turns."""
    turns = [t for t in request.messages if t.role != "system"]
    if max_history > 0:
        turns = turns[-max_history:]
    return [
        {"role": "system", "content": build_system_prompt(request.userProfile)},
        *({"role": t.role, "content": t.content} for t in turns),
    ]


def create_app(config: AppConfig | None = None, llm: LLMClient | None = None) -> FastAPI:
    """
    Build the backend application.

    Args:
        config: Application config. Loads default if None.
        llm: LLM client. Built from config when an API key is configured.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s server running on port %s", config.name, config.server.port)
        logger.info("Environment: %s", config.server.environment)
        logger.info("OpenAI API key: %s", "configured" if config.llm.api_key_configured else "MISSING")
        yield
        logger.info("Server stopped")

    app = FastAPI(title=f"{config.name} API", version=config.version, lifespan=lifespan)
    app.state.config = config
    app.state.llm = llm if llm is not None else (
        LLMClient(config.llm, log_path=config.server.llm_log_path) if config.llm.api_key_configured else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="OK",
            message=f"{config.name} API is running",
            environment=config.server.environment,
            timestamp=datetime.now(timezone.utc).isoformat(),
            api_key_configured=app.state.llm is not None,
            usage=app.state.llm.stats.to_dict() if app.state.llm is not None else None,
        )

    @app.post("/api/chat")
    def chat(request: ChatRequest):
        client: LLMClient | None = app.state.llm
        if client is None:
            return _failure(500, "OpenAI API key not configured", "Set OPENAI_API_KEY on the server")

        if not request.messages or request.messages[-1].role != "user":
            return _failure(400, "Invalid request", "messages must end with a user message")
        if not request.messages[-1].content.strip():
            return _failure(400, "Invalid request", "message content is empty")

        messages = build_messages(request, config.server.max_history_messages)
        logger.info(
            "Chat request: turns=%d profile_keys=%s",
            len(messages) - 1, sorted(request.userProfile.keys()),
        )

        try:
            response = client.chat(messages)
        except openai.AuthenticationError as e:
            logger.error("Provider rejected credentials: %s", e)
            return _failure(401, "Invalid OpenAI API key", str(e))
        except openai.RateLimitError as e:
            logger.warning("Provider rate limit: %s", e)
            return _failure(429, "Rate limit exceeded", str(e))
        except openai.APIError as e:
            logger.error("Provider error: %s", e)
            return _failure(502, "AI service error", str(e))
        except Exception as e:
            logger.exception("Chat processing failed")
            return _failure(500, "Failed to get response from AI", str(e))

        if not response.content.strip():
            return _failure(502, "Empty response from AI service")

        logger.info("Model responded: %d chars, %d tokens", len(response.content), response.total_tokens)
        return ChatSuccess(message=response.content, usage=response.usage()).model_dump()

    return app


app = create_app()
