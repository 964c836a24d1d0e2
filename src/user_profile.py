"""
Profile Collector: onboarding questions and the user's fitness profile.

Walks a fixed, ordered list of questions, records and validates answers, and
renders the completed profile for people (summary) and for the model (context).

Design:
- Questions are immutable configuration with a closed set of kinds
- Answers are validated against the question's kind before being stored
- Completion is recomputed from the stored fields on every call
"""

import logging
import math
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from logging_utils import get_logger


class QuestionKind(str, Enum):
    """How many options a question accepts."""
    SINGLE_SELECT = "select"
    MULTI_SELECT = "checkbox"


Answer = str | tuple[str, ...]


@dataclass(frozen=True)
class Question:
    """A single onboarding question."""
    id: str
    kind: QuestionKind
    prompt: str
    options: tuple[str, ...]

    @property
    def is_multi_select(self) -> bool:
        return self.kind is QuestionKind.MULTI_SELECT

    @classmethod
    def from_dict(cls, data: Mapping) -> "Question":
        """
        Build a Question from its config-file form.

        Accepts {"id", "type", "question", "options"}; "type" is "select"
        or "checkbox".
        """
        options = data["options"]
        if not isinstance(options, (list, tuple)):
            raise TypeError(f"options for {data['id']!r} must be a list")
        return cls(
            id=data["id"],
            kind=QuestionKind(data.get("type", QuestionKind.SINGLE_SELECT.value)),
            prompt=data["question"],
            options=tuple(options),
        )


DEFAULT_QUESTIONS: tuple[Question, ...] = (
    Question(
        id="goals",
        kind=QuestionKind.SINGLE_SELECT,
        prompt="What are your primary fitness goals?",
        options=("Weight Loss", "Muscle Building", "General Fitness", "Strength Training", "Endurance"),
    ),
    Question(
        id="level",
        kind=QuestionKind.SINGLE_SELECT,
        prompt="What is your current fitness level?",
        options=("Beginner", "Intermediate", "Advanced"),
    ),
    Question(
        id="equipment",
        kind=QuestionKind.MULTI_SELECT,
        prompt="What equipment do you have access to?",
        options=("Gym Membership", "Home Weights", "Resistance Bands", "No Equipment"),
    ),
    Question(
        id="time",
        kind=QuestionKind.SINGLE_SELECT,
        prompt="How much time can you dedicate per workout?",
        options=("15-30 minutes", "30-45 minutes", "45-60 minutes", "60+ minutes"),
    ),
)

REQUIRED_FIELDS: tuple[str, ...] = ("goals", "level", "equipment", "time")

SUMMARY_NOT_COMPLETED = "Profile not yet completed"
CONTEXT_NOT_COMPLETED = "User profile not yet completed"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating an answer. Truthy when valid."""
    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class Progress:
    """Onboarding progress snapshot."""
    current_index: int
    current_number: int
    total: int
    answered: int
    percent: int
    is_complete: bool
    can_go_back: bool
    can_go_next: bool


@dataclass
class Profile:
    """Answers collected during onboarding, keyed by question id."""
    name: str = ""
    answers: dict[str, Answer] = field(default_factory=dict)
    completed_at: datetime | None = None

    def get(self, question_id: str) -> Answer | None:
        return self.answers.get(question_id)

    def has_value(self, question_id: str) -> bool:
        value = self.answers.get(question_id)
        if isinstance(value, str):
            return bool(value.strip())
        return bool(value)

    def copy(self) -> "Profile":
        return replace(self, answers=dict(self.answers))

    def to_dict(self, questions: tuple[Question, ...] = DEFAULT_QUESTIONS) -> dict:
        """
        Wire form of the profile, as sent to the backend.

        Unset single-select fields are "" and unset multi-select fields are [].
        """
        data: dict = {"name": self.name}
        for question in questions:
            value = self.answers.get(question.id)
            if question.is_multi_select:
                data[question.id] = list(value) if value else []
            else:
                data[question.id] = value or ""
        for question_id, value in self.answers.items():
            if question_id not in data:
                data[question_id] = list(value) if isinstance(value, tuple) else value
        data["completedAt"] = self.completed_at.isoformat() if self.completed_at else None
        return data


def format_answer(value: Answer | None, separator: str = ", ") -> str:
    """Render a stored answer (single value or tuple) as text."""
    if value is None:
        return ""
    if isinstance(value, tuple):
        return separator.join(value)
    return value


def _is_empty(answer) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, Collection):
        return len(answer) == 0
    return False


class ProfileCollector:
    """
    Walks the onboarding questions and builds the user's Profile.

    Usage:
        collector = ProfileCollector()
        question = collector.current_question()
        if collector.record_answer(question.id, "Weight Loss"):
            collector.advance()
    """

    def __init__(
        self,
        questions: tuple[Question, ...] = DEFAULT_QUESTIONS,
        required_fields: tuple[str, ...] = REQUIRED_FIELDS,
        logger: logging.Logger | None = None,
    ):
        self.questions = tuple(questions)
        self.required_fields = tuple(required_fields)
        self.logger = logger or get_logger(__name__)
        self._by_id = {question.id: question for question in self.questions}
        self._profile = Profile()
        self._cursor = 0

    @property
    def profile(self) -> Profile:
        """A copy of the current profile."""
        return self._profile.copy()

    @property
    def cursor(self) -> int:
        return self._cursor

    def question(self, question_id: str) -> Question | None:
        return self._by_id.get(question_id)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def current_question(self) -> Question | None:
        """The question under the cursor, or None past the last one."""
        if self._cursor >= len(self.questions):
            return None
        return self.questions[self._cursor]

    def has_next_question(self) -> bool:
        return self._cursor < len(self.questions) - 1

    def advance(self) -> Question | None:
        """
        Move to the next question.

        At (or past) the last question the profile is marked complete
        and None is returned.
        """
        if self.has_next_question():
            self._cursor += 1
            return self.current_question()

        self.mark_complete()
        return None

    def retreat(self) -> Question | None:
        """Move back one question; None (no-op) at the first question."""
        if self._cursor > 0:
            self._cursor -= 1
            return self.current_question()
        return None

    def mark_complete(self) -> None:
        self._profile.completed_at = datetime.now()
        self.logger.debug("Profile marked as complete")

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def validate_answer(self, question_id: str, answer) -> ValidationResult:
        """Check an answer against the question's kind and options."""
        question = self._by_id.get(question_id)
        if question is None:
            return ValidationResult(False, "Question not found")

        if _is_empty(answer):
            return ValidationResult(False, "Answer is required")

        if question.kind is QuestionKind.SINGLE_SELECT:
            if not isinstance(answer, str) or answer not in question.options:
                return ValidationResult(False, "Invalid option selected")
            return ValidationResult(True)

        if isinstance(answer, str) or not isinstance(answer, Collection):
            return ValidationResult(False, "Multiple selections expected")

        invalid = [option for option in answer if option not in question.options]
        if invalid:
            return ValidationResult(False, f"Invalid options: {', '.join(map(str, invalid))}")
        return ValidationResult(True)

    def record_answer(self, question_id: str, answer) -> ValidationResult:
        """
        Validate and store an answer, overwriting any earlier one.

        Returns:
            ValidationResult, truthy on success. On failure nothing is stored.
        """
        result = self.validate_answer(question_id, answer)
        if not result:
            self.logger.warning("Rejected answer for %s: %s", question_id, result.error)
            return result

        if self._by_id[question_id].is_multi_select:
            value: Answer = tuple(dict.fromkeys(answer))
        else:
            value = answer
        self._profile.answers[question_id] = value
        self.logger.debug("Set %s: %s", question_id, format_answer(value))
        return result

    def clear_answer(self, question_id: str) -> bool:
        """Remove a stored answer. False if there was none."""
        return self._profile.answers.pop(question_id, None) is not None

    def set_name(self, name: str) -> bool:
        if not isinstance(name, str) or not name.strip():
            self.logger.warning("Invalid name provided")
            return False
        self._profile.name = name.strip()
        return True

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def is_complete(self) -> bool:
        """True iff every required field holds a non-empty answer."""
        return all(self._profile.has_value(field_id) for field_id in self.required_fields)

    def progress(self) -> Progress:
        total = len(self.questions)
        answered = self._cursor
        percent = math.floor(answered / total * 100 + 0.5) if total else 0
        return Progress(
            current_index=self._cursor,
            current_number=self._cursor + 1,
            total=total,
            answered=answered,
            percent=percent,
            is_complete=self.is_complete(),
            can_go_back=self._cursor > 0,
            can_go_next=self.has_next_question(),
        )

    def reset(self) -> None:
        """Clear all answers, the name and completion; back to question one."""
        self._profile = Profile()
        self._cursor = 0
        self.logger.debug("Profile reset")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def summary_text(self) -> str:
        """Human-readable summary, one field per line."""
        if not self.is_complete():
            return SUMMARY_NOT_COMPLETED

        profile = self._profile
        parts = []
        if profile.name:
            parts.append(f"Name: {profile.name}")
        parts.append(f"Goals: {format_answer(profile.get('goals'))}")
        parts.append(f"Fitness Level: {format_answer(profile.get('level'))}")
        parts.append(f"Available Equipment: {format_answer(profile.get('equipment'))}")
        parts.append(f"Workout Duration: {format_answer(profile.get('time'))}")
        return "\n".join(parts)

    def context_text(self) -> str:
        """Profile block for the model's system context."""
        if not self.is_complete():
            return CONTEXT_NOT_COMPLETED

        profile = self._profile
        completed = profile.completed_at.strftime("%Y-%m-%d") if profile.completed_at else "Unknown"
        return "\n".join([
            "User Profile:",
            f"- Name: {profile.name or 'Not provided'}",
            f"- Primary Goals: {format_answer(profile.get('goals'))}",
            f"- Fitness Level: {format_answer(profile.get('level'))}",
            f"- Available Equipment: {format_answer(profile.get('equipment'))}",
            f"- Preferred Workout Duration: {format_answer(profile.get('time'))}",
            f"- Profile Completed: {completed}",
        ])

    def to_dict(self) -> dict:
        """Wire form of the profile for the answering collaborator."""
        return self._profile.to_dict(self.questions)

    def debug_info(self) -> dict:
        current = self.current_question()
        return {
            "profile": self.to_dict(),
            "cursor": self._cursor,
            "is_complete": self.is_complete(),
            "progress": self.progress(),
            "current_question": current.id if current else None,
        }
