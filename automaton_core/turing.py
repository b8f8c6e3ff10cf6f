"""
Turing Machines
===============
Multi-tape Turing-machine store with building blocks, and the tape value type.

A building block is a state that owns a nested TuringMachine. The nested
machine keeps a back-reference to its owner (`parent`, `parent_state`) so the
simulator can climb out of it again.
"""

from typing import Dict, Optional, Sequence, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from .automaton import Automaton
from .exceptions import StructuralError
from .models import Point, State, TMTransition, Transition
from .schemas import BLANK, Direction

log = structlog.get_logger()


class TuringMachine(Automaton):
    """Automaton of TMTransition objects, all with the machine's tape count."""

    transition_type = TMTransition

    def __init__(self, tapes: int = 1) -> None:
        if tapes < 1:
            raise StructuralError(f"A Turing machine needs at least one tape, got {tapes}")
        super().__init__()
        self.tapes = tapes
        self.blocks: Dict[int, "TuringMachine"] = {}
        self.parent: Optional["TuringMachine"] = None
        self.parent_state: Optional[int] = None

    def _check_transition(self, transition: Transition) -> None:
        super()._check_transition(transition)
        if transition.tapes != self.tapes:
            raise StructuralError(
                f"Transition has {transition.tapes} tapes, machine has {self.tapes}"
            )

    def create_transition(
        self,
        source: int,
        target: int,
        reads: Union[str, Sequence[str]],
        writes: Union[str, Sequence[str]],
        moves: Union[str, Sequence[str]],
        control: Optional[Point] = None,
    ) -> TMTransition:
        """Build and add a transition from raw tokens."""
        try:
            transition = TMTransition(
                source=source,
                target=target,
                reads=reads,
                writes=writes,
                moves=moves,
                control=control,
            )
        except ValidationError as e:
            raise StructuralError(f"Malformed transition: {e}") from e
        self.add_transition(transition)
        return transition

    # --- building blocks ---

    def set_block(self, state_id: int, inner: "TuringMachine") -> None:
        """Make `state_id` a building block running `inner`."""
        self._require_state(state_id)
        if inner is self:
            raise StructuralError("A machine cannot be its own building block")
        if inner.tapes != self.tapes:
            raise StructuralError(
                f"Building block has {inner.tapes} tapes, machine has {self.tapes}"
            )
        self.remove_block(state_id)
        inner.parent = self
        inner.parent_state = state_id
        self.blocks[state_id] = inner
        log.debug("block_attached", state=state_id, inner_states=len(inner))

    def remove_block(self, state_id: int) -> Optional["TuringMachine"]:
        inner = self.blocks.pop(state_id, None)
        if inner is not None:
            inner.parent = None
            inner.parent_state = None
        return inner

    def block_for(self, state_id: int) -> Optional["TuringMachine"]:
        return self.blocks.get(state_id)

    def is_block(self, state_id: int) -> bool:
        return state_id in self.blocks

    def create_block(
        self, inner: Optional["TuringMachine"] = None, point: Optional[Point] = None
    ) -> State:
        """New state owning `inner` (an empty machine when omitted)."""
        state = self.create_state(point)
        self.set_block(state.id, inner if inner is not None else TuringMachine(self.tapes))
        return state

    @property
    def outermost(self) -> "TuringMachine":
        machine = self
        while machine.parent is not None:
            machine = machine.parent
        return machine

    def remove_state(self, state_id: int) -> None:
        self._require_state(state_id)
        self.remove_block(state_id)
        super().remove_state(state_id)

    def _empty_copy(self) -> "TuringMachine":
        return type(self)(self.tapes)

    def copy(self) -> "TuringMachine":
        other = super().copy()
        for state_id, inner in self.blocks.items():
            other.set_block(state_id, inner.copy())
        return other

    def describe(self) -> str:
        lines = [super().describe()]
        for state_id in sorted(self.blocks):
            inner = self.blocks[state_id].describe().replace("\n", "\n\t")
            lines.append(f"Block at state {state_id}:\n\t{inner}")
        return "\n".join(lines)


class Tape(BaseModel):
    """
    One tape: cells plus head position. Immutable; `write` and `move` return
    new tapes. Cells beyond either end read as blank.
    """
    model_config = ConfigDict(frozen=True)

    cells: Tuple[str, ...] = ()
    head: int = 0

    @classmethod
    def from_input(cls, text: str) -> "Tape":
        return cls(cells=tuple(text), head=0)

    def read(self) -> str:
        if 0 <= self.head < len(self.cells):
            return self.cells[self.head]
        return BLANK

    def write(self, symbol: str) -> "Tape":
        cells = list(self.cells)
        head = self.head
        if head < 0:
            cells = [BLANK] * (-head) + cells
            head = 0
        if head >= len(cells):
            cells.extend([BLANK] * (head - len(cells) + 1))
        cells[head] = symbol
        return Tape(cells=tuple(cells), head=head)

    def move(self, direction: Direction) -> "Tape":
        if direction == Direction.LEFT:
            return Tape(cells=self.cells, head=self.head - 1)
        if direction == Direction.RIGHT:
            return Tape(cells=self.cells, head=self.head + 1)
        return self

    def contents(self) -> str:
        """Written part of the tape with surrounding blanks removed."""
        return "".join(self.cells).strip(BLANK)

    def output(self) -> str:
        """Symbols from the head up to the first blank."""
        out = []
        position = self.head
        while 0 <= position < len(self.cells) and self.cells[position] != BLANK:
            out.append(self.cells[position])
            position += 1
        return "".join(out)

    def __str__(self) -> str:
        cells = list(self.cells) or [BLANK]
        head = min(max(self.head, 0), len(cells) - 1)
        return "".join(f"[{c}]" if i == head else c for i, c in enumerate(cells))
