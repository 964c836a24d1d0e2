"""
StageMachine: which phase of the user journey is active.

Stages: Welcome -> Onboarding -> Summary -> Chatting

Design:
- The stage set and forward flow are data (Stage enum, STAGE_FLOW table)
- Transitions are only initiated from outside; there are no timers
- Subscribers are notified synchronously after every successful transition
- A reentrancy flag rejects transitions started while one is running
"""

import logging
import math
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from logging_utils import get_logger


class Stage(str, Enum):
    """Phases of the user journey, in canonical order."""
    WELCOME = "welcome"
    ONBOARDING = "onboarding"
    SUMMARY = "summary"
    CHATTING = "chatting"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)

# Forward flow: what comes after what. CHATTING has no successor.
STAGE_FLOW: dict[Stage, Stage] = {
    Stage.WELCOME: Stage.ONBOARDING,
    Stage.ONBOARDING: Stage.SUMMARY,
    Stage.SUMMARY: Stage.CHATTING,
}

# Called with (new_stage, previous_stage)
StageListener = Callable[[Stage, Stage], None]

DEFAULT_MAX_HISTORY = 50


def parse_stage(value) -> Stage | None:
    """Return the Stage for a Stage or its string value, else None."""
    if isinstance(value, Stage):
        return value
    try:
        return Stage(value)
    except (ValueError, TypeError):
        return None


@dataclass(frozen=True)
class StageInfo:
    """Position of the current stage within the journey."""
    current_stage: Stage
    current_index: int
    total_stages: int
    progress: int
    can_go_back: bool
    can_go_next: bool
    history: list[Stage]


class StageMachine:
    """
    Tracks the active stage and notifies subscribers of transitions.

    Usage:
        stages = StageMachine()
        unsubscribe = stages.subscribe(lambda new, old: print(old, "->", new))
        stages.advance()      # welcome -> onboarding
        stages.go_back()      # onboarding -> welcome
        unsubscribe()
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        max_history: int = DEFAULT_MAX_HISTORY,
    ):
        self.logger = logger or get_logger(__name__)
        self._current = Stage.WELCOME
        self._history: deque[Stage] = deque(maxlen=max_history)
        self._listeners: list[StageListener] = []
        self._transitioning = False
        self.logger.debug("StageMachine initialized at stage: %s", self._current.value)

    def current(self) -> Stage:
        return self._current

    @property
    def history(self) -> list[Stage]:
        return list(self._history)

    @property
    def is_transitioning(self) -> bool:
        return self._transitioning

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition_to(self, stage, save_to_history: bool = True) -> bool:
        """
        Move to a new stage.

        Args:
            stage: Target Stage (or its string value).
            save_to_history: Push the current stage for go_back().

        Returns:
            False if the stage is unknown or a transition is already running,
            True otherwise (including the no-op transition to the current stage).
        """
        target = parse_stage(stage)
        if target is None:
            self.logger.error("Invalid stage: %r", stage)
            return False

        if self._transitioning:
            self.logger.warning("Already transitioning, ignoring move to %s", target.value)
            return False

        if target is self._current:
            return True

        self._transitioning = True
        try:
            if save_to_history:
                self._history.append(self._current)

            previous = self._current
            self._current = target
            self.logger.debug("Stage changed: %s -> %s", previous.value, target.value)
            self._notify(target, previous)
        finally:
            self._transitioning = False
        return True

    def go_back(self) -> bool:
        """Return to the most recent stage in history without re-recording it."""
        if not self._history:
            self.logger.warning("No previous stage to go back to")
            return False

        previous = self._history.pop()
        if self.transition_to(previous, save_to_history=False):
            return True

        self._history.append(previous)
        return False

    def advance(self) -> bool:
        """Follow STAGE_FLOW to the next stage."""
        next_stage = STAGE_FLOW.get(self._current)
        if next_stage is None:
            self.logger.warning("No next stage for: %s", self._current.value)
            return False
        return self.transition_to(next_stage)

    def reset(self) -> bool:
        """
        Clear history and return to Welcome.

        Listeners are notified like any other transition. Refused, with the
        history untouched, while another transition is running.
        """
        if self._transitioning:
            self.logger.warning("Already transitioning, ignoring reset")
            return False

        self._history.clear()
        result = self.transition_to(Stage.WELCOME, save_to_history=False)
        self.logger.info("Reset to welcome stage")
        return result

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: StageListener) -> Callable[[], None]:
        """
        Register a listener for stage changes.

        Returns:
            A function that removes the listener again.
        """
        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {type(listener).__name__}")

        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: StageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, new_stage: Stage, previous_stage: Stage) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(new_stage, previous_stage)
            except Exception:
                self.logger.exception(
                    "Error in stage listener %r (%s -> %s)",
                    listener, previous_stage.value, new_stage.value,
                )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def can_navigate_to(self, stage) -> bool:
        """
        True for any stage in history, or at most one step ahead of the current one.

        Pure query, used to enable or disable navigation controls.
        """
        target = parse_stage(stage)
        if target is None:
            return False
        if target in self._history:
            return True
        return STAGE_ORDER.index(target) <= STAGE_ORDER.index(self._current) + 1

    def stage_info(self) -> StageInfo:
        index = STAGE_ORDER.index(self._current)
        total = len(STAGE_ORDER)
        return StageInfo(
            current_stage=self._current,
            current_index=index,
            total_stages=total,
            progress=math.floor((index + 1) / total * 100 + 0.5),
            can_go_back=bool(self._history),
            can_go_next=index < total - 1,
            history=self.history,
        )

    def debug_info(self) -> dict:
        return {
            "current_stage": self._current.value,
            "history": [stage.value for stage in self._history],
            "listeners": len(self._listeners),
            "is_transitioning": self._transitioning,
            "stage_info": self.stage_info(),
        }
