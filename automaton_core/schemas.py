"""
Schema Module for automaton-core
Enumerations and small Pydantic value models shared by the store and the algorithms.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

BLANK = "□"
"""Blank tape symbol."""

WILDCARD = "~"
"""Turing-machine "don't care" symbol, valid in read and write position."""

LAMBDA = ""
"""Label of an empty-string transition in a finite automaton."""


class EventKind(str, Enum):
    """Kinds of change notifications fired by an automaton."""
    STATE_ADDED = "STATE_ADDED"
    STATE_REMOVED = "STATE_REMOVED"
    TRANSITION_ADDED = "TRANSITION_ADDED"
    TRANSITION_REMOVED = "TRANSITION_REMOVED"
    TRANSITION_REPLACED = "TRANSITION_REPLACED"
    INITIAL_CHANGED = "INITIAL_CHANGED"
    FINAL_ADDED = "FINAL_ADDED"
    FINAL_REMOVED = "FINAL_REMOVED"


class Direction(str, Enum):
    """Tape head movements."""
    LEFT = "L"
    RIGHT = "R"
    STAY = "S"


class Color(str, Enum):
    """Depth-first search colouring."""
    WHITE = "white"
    GREY = "grey"
    BLACK = "black"


class AutomatonEvent(BaseModel):
    """
    A single change notification.
    `transition` and `old_transition` hold transition models; they are typed
    loosely so this module stays independent of `models`.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: EventKind
    state: Optional[int] = Field(default=None, description="Id of the affected state")
    transition: Optional[Any] = None
    old_transition: Optional[Any] = None
    previous_state: Optional[int] = Field(
        default=None, description="Previous initial state for INITIAL_CHANGED"
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "state": self.state,
            "transition": str(self.transition) if self.transition is not None else None,
            "old_transition": (
                str(self.old_transition) if self.old_transition is not None else None
            ),
            "previous_state": self.previous_state,
        }


class ConversionProgress(BaseModel):
    """How far an interactive NFA to DFA conversion is from the full answer."""
    states_remaining: int = 0
    transitions_remaining: int = 0

    @property
    def is_done(self) -> bool:
        return self.states_remaining + self.transitions_remaining == 0

    def describe(self) -> str:
        if self.is_done:
            return "The DFA is fully built!"
        lines = ["The DFA has not been completed."]
        if self.states_remaining == 0:
            lines.append("All the states are there.")
        else:
            plural = "" if self.states_remaining == 1 else "s"
            lines.append(f"{self.states_remaining} more state{plural} must be placed.")
        if self.transitions_remaining == 0:
            lines.append("All the transitions are there.")
        else:
            plural = "" if self.transitions_remaining == 1 else "s"
            lines.append(
                f"{self.transitions_remaining} more transition{plural} must be placed."
            )
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "states_remaining": self.states_remaining,
            "transitions_remaining": self.transitions_remaining,
            "is_done": self.is_done,
        }
