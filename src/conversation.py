"""
Conversation Manager: chat transcript and single-flight submission.

Keeps the ordered transcript of the active conversation, sends each user
message (with the profile and prior context) to an answering collaborator,
and formats replies for display.

Design principles:
- The collaborator reports application errors as AnswerResult(success=False),
  which is a normal outcome, not an exception
- Anything the collaborator raises is caught here and shown as a system message
- System messages are transcript-only; they never reach the model
- At most one submission is outstanding per manager
"""

import itertools
import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from logging_utils import get_logger
from user_profile import ProfileCollector, format_answer


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    """One transcript entry."""
    id: int
    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> str:
        """Stable element id for the presentation layer."""
        return f"msg_{self.id}"

    def to_context(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class AnswerResult:
    """
    What the answering collaborator returns.

    Mirrors the backend's JSON shape:
        {"success": true, "message": "...", "usage": {...}}
        {"success": false, "error": "...", "details": "..."}
    """
    success: bool
    message: str = ""
    error: str = ""
    details: str | None = None
    usage: dict[str, Any] | None = None

    @classmethod
    def ok(cls, message: str, usage: dict[str, Any] | None = None) -> "AnswerResult":
        return cls(success=True, message=message, usage=usage)

    @classmethod
    def failure(cls, error: str, details: str | None = None) -> "AnswerResult":
        return cls(success=False, error=error, details=details)

    @classmethod
    def from_payload(cls, payload: Mapping) -> "AnswerResult":
        """
        Parse the JSON shape.

        Raises:
            ValueError: if the payload does not follow the contract.
        """
        if not isinstance(payload, Mapping) or not isinstance(payload.get("success"), bool):
            raise ValueError(f"Answer payload has no boolean 'success': {payload!r}")

        if payload["success"]:
            message = payload.get("message")
            if message is not None and not isinstance(message, str):
                # Some upstreams hand back structured content
                message = json.dumps(message)
            usage = payload.get("usage")
            return cls.ok(message or "", usage if isinstance(usage, dict) else None)

        details = payload.get("details")
        return cls.failure(
            str(payload.get("error") or ""),
            str(details) if details is not None else None,
        )


class Answerer(Protocol):
    """The external component that turns a message into a reply."""

    def ask(
        self,
        message: str,
        profile: dict[str, Any],
        prior_context: list[dict[str, str]],
    ) -> AnswerResult:
        ...


class FailureReason(str, Enum):
    BUSY = "busy"            # a submission is already outstanding
    EMPTY = "empty"          # nothing to send after trimming
    UPSTREAM = "upstream"    # collaborator reported success=False
    TRANSPORT = "transport"  # collaborator raised or broke its contract


@dataclass(frozen=True)
class SubmitFailure:
    """A submission that did not produce an assistant reply."""
    reason: FailureReason
    error: str
    system_message: Message | None = None
    details: str | None = None

    @property
    def rejected(self) -> bool:
        """True when the submission never reached the collaborator."""
        return self.reason in (FailureReason.BUSY, FailureReason.EMPTY)


UNKNOWN_ERROR = "Unknown error occurred"
GENERIC_ERROR_MESSAGE = "Sorry, something went wrong. Please try again."
NO_HISTORY = "No conversation history yet."
EMPTY_MESSAGE = "Empty message"

GREETING_GENERIC = "Hi there! I'm your AI Gym Buddy! 💪"
GREETING_INCOMPLETE_NOTE = (
    "I see you haven't completed your profile yet, but I can still help you "
    "with general fitness advice! What questions do you have?"
)
GREETING_PERSONAL = (
    "Hi {name}! I'm excited to help you with your {goals} goals. "
    "What would you like to work on today?"
)


# Applied in this order. Newlines are converted first, so the line-anchored
# rules below only ever match at the very start of the text.
_FORMAT_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"\n"), "<br>"),
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"`([^`]+)`"), r"<code>\1</code>"),
    (re.compile(r"^\d+\.\s(.+)$", re.MULTILINE), r'<div class="list-item">\g<0></div>'),
    (re.compile(r"^[-•]\s(.+)$", re.MULTILINE), r'<div class="list-item">• \1</div>'),
    (re.compile(r"^(Workout|Exercise|Day \d+):", re.MULTILINE), r"<strong>\g<0></strong>"),
    (re.compile(r"<br><strong>"), "<br><br><strong>"),
)


def render_markdown(content: str) -> str:
    """
    Convert the model's light markdown into presentation markup.

    Not idempotent: running it on its own output wraps markers again.
    """
    if not content or not isinstance(content, str):
        return EMPTY_MESSAGE

    for pattern, replacement in _FORMAT_RULES:
        content = pattern.sub(replacement, content)
    return content


class ConversationManager:
    """
    Owns the transcript for one conversation.

    Usage:
        manager = ConversationManager(collector, BackendClient(config.api))
        manager.add_greeting()
        result = manager.submit("Give me a 20 minute workout")
        if isinstance(result, Message):
            print(render_markdown(result.content))
    """

    def __init__(
        self,
        profile: ProfileCollector,
        answerer: Answerer,
        logger: logging.Logger | None = None,
    ):
        self.profile = profile
        self.answerer = answerer
        self.logger = logger or get_logger(__name__)
        self._transcript: list[Message] = []
        self._ids = itertools.count(1)
        self._in_flight = False

    @property
    def is_loading(self) -> bool:
        return self._in_flight

    @property
    def transcript(self) -> list[Message]:
        return list(self._transcript)

    def context(self) -> list[dict[str, str]]:
        """Transcript as sent to the model: system messages left out."""
        return [m.to_context() for m in self._transcript if m.role is not Role.SYSTEM]

    def add_message(self, role: Role, content: str) -> Message:
        message = Message(id=next(self._ids), role=Role(role), content=str(content))
        self._transcript.append(message)
        self.logger.debug("Added %s message: %.50s", message.role.value, message.content)
        return message

    # ------------------------------------------------------------------
    # Greeting
    # ------------------------------------------------------------------

    def greeting_text(self) -> str:
        if self.profile.is_complete():
            profile = self.profile.profile
            return GREETING_PERSONAL.format(
                name=profile.name or "there",
                goals=format_answer(profile.get("goals"), separator=" and "),
            )
        return f"{GREETING_GENERIC}\n\n{GREETING_INCOMPLETE_NOTE}"

    def add_greeting(self) -> Message:
        return self.add_message(Role.ASSISTANT, self.greeting_text())

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, text: str) -> Message | SubmitFailure:
        """
        Send a user message and record the reply.

        Returns:
            The assistant Message on success, otherwise a SubmitFailure.
            BUSY/EMPTY failures leave the transcript untouched.
        """
        if self._in_flight:
            self.logger.warning("Already processing a message")
            return SubmitFailure(FailureReason.BUSY, "A message is already being processed")

        trimmed = (text or "").strip()
        if not trimmed:
            self.logger.warning("Empty message not sent")
            return SubmitFailure(FailureReason.EMPTY, "Message is empty")

        self._in_flight = True
        try:
            prior_context = self.context()
            self.add_message(Role.USER, trimmed)
            return self._exchange(trimmed, prior_context)
        finally:
            self._in_flight = False

    def _exchange(self, text: str, prior_context: list[dict[str, str]]) -> Message | SubmitFailure:
        try:
            raw = self.answerer.ask(text, self.profile.to_dict(), prior_context)
            result = raw if isinstance(raw, AnswerResult) else AnswerResult.from_payload(raw)
        except Exception as e:
            self.logger.exception("Answering collaborator failed")
            notice = self.add_message(Role.SYSTEM, GENERIC_ERROR_MESSAGE)
            return SubmitFailure(FailureReason.TRANSPORT, str(e) or e.__class__.__name__, notice)

        if result.success and result.message:
            return self.add_message(Role.ASSISTANT, result.message)

        error = result.error or UNKNOWN_ERROR
        self.logger.warning("Collaborator reported failure: %s (%s)", error, result.details)
        notice = self.add_message(Role.SYSTEM, f"Sorry, I encountered an error: {error}")
        return SubmitFailure(FailureReason.UPSTREAM, error, notice, result.details)

    # ------------------------------------------------------------------
    # Display and export
    # ------------------------------------------------------------------

    @staticmethod
    def renderable_text(content: str) -> str:
        return render_markdown(content)

    def export_history(self) -> str:
        """Whole transcript, system messages included, as "ROLE: content" blocks."""
        if not self._transcript:
            return NO_HISTORY
        return "\n\n".join(f"{m.role.value.upper()}: {m.content}" for m in self._transcript)

    def clear(self) -> Message:
        """Start over: empty transcript plus a fresh greeting."""
        self._transcript.clear()
        self.logger.debug("Chat cleared and restarted")
        return self.add_greeting()

    def debug_info(self) -> dict:
        return {
            "is_loading": self._in_flight,
            "transcript_length": len(self._transcript),
            "context_length": len(self.context()),
        }
