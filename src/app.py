"""
GymBuddyApp: application controller.

Wires the StageMachine, ProfileCollector and ConversationManager together.
Presentation layers (ui.py, the console chat in main.py) call the action
methods and draw whatever `view` describes; the view is rebuilt after every
transition and every action.

Transitions are only started from action methods. Stage listeners never
transition themselves, since the StageMachine rejects reentrant moves.
"""

import html
from dataclasses import dataclass, field

from client import BackendClient
from config import AppConfig, load_config
from conversation import Answerer, ConversationManager, Message, SubmitFailure, render_markdown
from logging_utils import LoggerAdapter, get_logger
from stage_machine import Stage, StageMachine
from user_profile import Progress, ProfileCollector, Question, ValidationResult

BACKEND_DOWN = "Backend server is not available. Please try again later."
NOT_CHATTING = "The chat is not active"


@dataclass
class StageView:
    """Everything a presentation layer needs to draw the current stage."""
    stage: Stage
    heading: str
    body: list[str] = field(default_factory=list)
    question: Question | None = None
    selected: str | tuple[str, ...] | None = None
    progress: Progress | None = None
    messages: list[Message] = field(default_factory=list)
    can_go_back: bool = False
    error: str | None = None

    def rendered_messages(self) -> list[tuple[Message, str]]:
        """Messages paired with display markup. Raw HTML in the text is escaped first."""
        return [(m, render_markdown(html.escape(m.content, quote=False))) for m in self.messages]


class GymBuddyApp:
    """
    One user session.

    Usage:
        app = GymBuddyApp(config)
        app.start()
        app.begin_onboarding()
        app.submit_answer("Weight Loss")
        ...
        app.start_chat()
        app.send_message("Plan my week")
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        answerer: Answerer | None = None,
    ):
        """
        Args:
            config: Application config. Loads default if None.
            answerer: Answering collaborator. A BackendClient if None.
        """
        self.config = config or load_config()
        self._logger = get_logger("app")
        self.log = LoggerAdapter(self._logger, verbose=self.config.debug)

        self.stages = StageMachine(logger=get_logger("stage_machine"))
        self.profile = ProfileCollector(self.config.questions, logger=get_logger("user_profile"))
        self.answerer = answerer if answerer is not None else BackendClient(self.config.api)
        self.conversation: ConversationManager | None = None
        self.error: str | None = None
        self.view = self.render()

        self._unsubscribe = self.stages.subscribe(self.handle_stage_change)
        self.log(f"{self.config.name} initialized")

    def start(self) -> bool:
        """
        Check the backend when the collaborator supports it, then draw the first stage.

        Returns:
            False if the backend is unreachable (the view then carries the error).
        """
        check_health = getattr(self.answerer, "check_health", None)
        if check_health is not None and not check_health():
            self.error = BACKEND_DOWN
            self.view = self.render()
            return False

        self.error = None
        self.view = self.render()
        return True

    def close(self) -> None:
        self._unsubscribe()
        close = getattr(self.answerer, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------
    # Stage handling
    # ------------------------------------------------------------------

    def handle_stage_change(self, new_stage: Stage, previous_stage: Stage) -> None:
        self.log(f"Stage changed: {previous_stage.value} -> {new_stage.value}")
        self._deactivate(previous_stage)
        self._activate(new_stage)
        self.view = self.render()

    def _deactivate(self, stage: Stage) -> None:
        if stage is Stage.CHATTING:
            self.conversation = None

    def _activate(self, stage: Stage) -> None:
        if stage is Stage.CHATTING:
            self.conversation = ConversationManager(
                self.profile, self.answerer, logger=get_logger("conversation"),
            )
            self.conversation.add_greeting()

    def render(self) -> StageView:
        """Rebuild the view for the current stage."""
        stage = self.stages.current()
        can_go_back = bool(self.stages.history)

        if self.error:
            return StageView(stage=stage, heading="Oops!", body=[self.error], error=self.error)

        if stage is Stage.WELCOME:
            return StageView(
                stage=stage,
                heading=f"Welcome to {self.config.name}!",
                body=[
                    "Your personal AI fitness coach is here to help you achieve your fitness goals.",
                    "Get personalized workout plans, exercise advice, and motivation tailored just for you.",
                    "Let's start by learning about your fitness goals and preferences.",
                ],
            )

        if stage is Stage.ONBOARDING:
            question = self.profile.current_question()
            return StageView(
                stage=stage,
                heading="Let's Get to Know You",
                question=question,
                selected=self.profile.profile.get(question.id) if question else None,
                progress=self.profile.progress(),
                can_go_back=self.profile.progress().can_go_back,
            )

        if stage is Stage.SUMMARY:
            return StageView(
                stage=stage,
                heading="Your Fitness Profile",
                body=self.profile.summary_text().split("\n"),
                can_go_back=can_go_back,
            )

        return StageView(
            stage=stage,
            heading=f"Chat with Your {self.config.name}",
            body=["Ask me anything about fitness, workouts, or nutrition!"],
            messages=self.conversation.transcript if self.conversation else [],
            can_go_back=can_go_back,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def begin_onboarding(self) -> bool:
        if not self.stages.advance():
            return False
        if self.profile.current_question() is None:
            # No questions configured
            return self.stages.advance()
        return True

    def set_name(self, name: str) -> bool:
        return self.profile.set_name(name)

    def submit_answer(self, answer) -> ValidationResult:
        """
        Record the answer to the current question and move on.

        After the last question the profile is completed and the Summary opens.
        """
        question = self.profile.current_question()
        if question is None:
            return ValidationResult(False, "No question to answer")

        result = self.profile.record_answer(question.id, answer)
        if not result:
            self.view = self.render()
            return result

        if self.profile.advance() is None:
            self.stages.advance()
        self.view = self.render()
        return result

    def previous_question(self) -> bool:
        moved = self.profile.retreat() is not None
        self.view = self.render()
        return moved

    def back_to_onboarding(self) -> bool:
        """The summary's "Edit Profile": step back without discarding answers."""
        return self.stages.go_back()

    def start_chat(self) -> bool:
        return self.stages.advance()

    def send_message(self, text: str) -> Message | SubmitFailure:
        """
        Raises:
            RuntimeError: if called outside the chatting stage.
        """
        if self.conversation is None:
            raise RuntimeError(NOT_CHATTING)
        result = self.conversation.submit(text)
        self.view = self.render()
        return result

    def new_conversation(self) -> bool:
        if self.conversation is None:
            return False
        self.conversation.clear()
        self.view = self.render()
        return True

    def export_history(self) -> str:
        if self.conversation is None:
            return ""
        return self.conversation.export_history()

    def edit_profile(self, confirmed: bool) -> bool:
        """
        Throw the profile and conversation away and restart onboarding.

        The caller asks the user first; nothing happens unless confirmed.
        """
        if not confirmed:
            return False
        self.profile.reset()
        if self.stages.current() is Stage.ONBOARDING:
            self.view = self.render()
            return True
        return self.stages.transition_to(Stage.ONBOARDING)

    def debug_info(self) -> dict:
        debug = getattr(self.answerer, "debug_info", None)
        return {
            "stage_machine": self.stages.debug_info(),
            "profile": self.profile.debug_info(),
            "conversation": self.conversation.debug_info() if self.conversation else None,
            "answerer": debug() if debug else None,
        }
