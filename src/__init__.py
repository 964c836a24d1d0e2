"""
AI Gym Buddy: onboarding wizard plus personal-trainer chat.

Key design principles:
1. No global mutable state - each session owns its GymBuddyApp
2. Explicit collaborators - the answering backend is passed in, never imported
3. Stages as an explicit state machine with observers
4. Expected failures are returned as values; only transport problems raise

Modules:
- stage_machine.py: Stage enum, StageMachine
- user_profile.py: Question, Profile, ProfileCollector
- conversation.py: Message, AnswerResult, ConversationManager, render_markdown
- app.py: GymBuddyApp controller and StageView
- config.py: Immutable AppConfig, ApiConfig, LLMConfig, ServerConfig
- llm.py: LLMClient for the model provider
- prompts.py: system prompt templates
- schemas.py / server.py: FastAPI backend
- client.py: BackendClient, the default answering collaborator
- ui.py / main.py: Streamlit front end and CLI
"""

from stage_machine import Stage, StageMachine
from user_profile import Question, QuestionKind, Profile, ProfileCollector
from conversation import AnswerResult, ConversationManager, Message, Role, render_markdown
from config import AppConfig, load_config
from client import BackendClient
from app import GymBuddyApp

__all__ = [
    # Stages
    "Stage",
    "StageMachine",
    # Profile
    "Question",
    "QuestionKind",
    "Profile",
    "ProfileCollector",
    # Conversation
    "AnswerResult",
    "ConversationManager",
    "Message",
    "Role",
    "render_markdown",
    # Config
    "AppConfig",
    "load_config",
    # Backend client
    "BackendClient",
    # Controller
    "GymBuddyApp",
]
