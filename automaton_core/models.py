"""
Model Module for automaton-core
States and the transition variants stored by an automaton, plus the parser
for Turing machine read tokens.
"""

from functools import lru_cache
from typing import Any, Dict, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .schemas import BLANK, LAMBDA, WILDCARD, Direction

Point = Tuple[float, float]


class State(BaseModel):
    """A vertex of an automaton. Only `id` matters to the algorithms."""
    id: int = Field(..., ge=0, frozen=True, description="Stable id, unique within the owning automaton")
    name: str = Field(default="", description="Display name, defaults to q<id>")
    label: Optional[str] = Field(default=None, description="Free text shown under the state")
    point: Point = Field(default=(0.0, 0.0), description="Position on the canvas")

    @model_validator(mode="before")
    @classmethod
    def default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and "id" in data:
            data = dict(data)
            data["name"] = f"q{data['id']}"
        return data

    def __str__(self) -> str:
        return f"{self.name} (id={self.id})"


class Transition(BaseModel):
    """
    Directed edge between two states of the same automaton.
    Two transitions are equal when their kind, endpoints and payload agree;
    the cosmetic control point is ignored.
    """
    model_config = ConfigDict(frozen=True)

    source: int = Field(..., ge=0)
    target: int = Field(..., ge=0)
    control: Optional[Point] = Field(default=None, description="Curve control point")

    def payload(self) -> Tuple:
        return ()

    def key(self) -> Tuple:
        return (type(self).__name__, self.source, self.target, self.payload())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transition):
            return NotImplemented
        return self.key() == other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    def moved(self, source: int, target: int) -> "Transition":
        """Same payload, new endpoints."""
        return self.model_copy(update={"source": source, "target": target})

    def description(self) -> str:
        return ""

    def __str__(self) -> str:
        return f"[{self.source}] -> [{self.target}]: \"{self.description()}\""


class FSATransition(Transition):
    """Finite-automaton transition. The empty label is a lambda move."""
    label: str = LAMBDA

    def payload(self) -> Tuple:
        return (self.label,)

    @property
    def is_lambda(self) -> bool:
        return self.label == LAMBDA

    def description(self) -> str:
        return self.label if self.label else "λ"


# --- Turing machine read specifications ---

class ReadSpec(NamedTuple):
    """Parsed form of a single-tape read token."""
    kind: str  # exact | wildcard | negated | binding
    symbols: Tuple[str, ...] = ()
    variable: Optional[str] = None

    def matches(self, symbol: str) -> bool:
        if self.kind == "wildcard":
            return True
        if self.kind == "exact":
            return symbol == self.symbols[0]
        if self.kind == "negated":
            return symbol != self.symbols[0]
        # binding: an empty symbol list accepts anything
        return not self.symbols or symbol in self.symbols


@lru_cache(maxsize=1024)
def parse_read(token: str) -> ReadSpec:
    """
    Parse a normalised read token.

    Forms:
        "a"        exact symbol
        "~"        wildcard
        "!a"       any symbol but a
        "a,b}w"    a or b, bound to variable w
        "}w"       any symbol, bound to variable w
    """
    if token == WILDCARD:
        return ReadSpec("wildcard")
    if "}" in token:
        if "!" in token:
            raise ValueError("Read string cannot mix variable assignment with the NOT (!) operator")
        choices, _, variable = token.partition("}")
        if len(variable) != 1:
            raise ValueError(f"Variable name in '{token}' must be exactly one character")
        symbols = tuple(c for c in choices.split(",") if c != "") if choices else ()
        if any(len(c) != 1 for c in symbols):
            raise ValueError(f"Variable choices in '{token}' must be single characters")
        return ReadSpec("binding", symbols, variable)
    if token.startswith("!") and len(token) == 2:
        return ReadSpec("negated", (token[1],))
    if len(token) == 1:
        return ReadSpec("exact", (token,))
    raise ValueError(f"Read string '{token}' must have exactly one character")


class TMTransition(Transition):
    """
    Multi-tape Turing-machine transition: one read token, write token and move per tape.
    Negated and variable-binding reads are only allowed on single-tape machines.
    """
    reads: Tuple[str, ...]
    writes: Tuple[str, ...]
    moves: Tuple[Direction, ...]

    @field_validator("reads", mode="before")
    @classmethod
    def normalize_reads(cls, v: Any) -> Tuple[str, ...]:
        if isinstance(v, str):
            v = (v,)
        normalized = []
        for token in v:
            token = token or BLANK
            if token == "!":
                token = "!" + BLANK
            parse_read(token)
            normalized.append(token)
        return tuple(normalized)

    @field_validator("writes", mode="before")
    @classmethod
    def normalize_writes(cls, v: Any) -> Tuple[str, ...]:
        if isinstance(v, str):
            v = (v,)
        normalized = []
        for token in v:
            token = token or BLANK
            if len(token) != 1:
                raise ValueError(f"Write string '{token}' must have exactly one character")
            normalized.append(token)
        return tuple(normalized)

    @field_validator("moves", mode="before")
    @classmethod
    def normalize_moves(cls, v: Any) -> Tuple[Any, ...]:
        if isinstance(v, (str, Direction)):
            v = (v,)
        moves = []
        for m in v:
            if isinstance(m, str):
                m = m.strip().upper()
            try:
                moves.append(Direction(m))
            except ValueError:
                raise ValueError("Direction must be L, R, or S!")
        return tuple(moves)

    @model_validator(mode="after")
    def validate_tapes(self):
        if not self.reads:
            raise ValueError("Attempted to create a transition with 0 tapes!")
        if not (len(self.reads) == len(self.writes) == len(self.moves)):
            raise ValueError(
                "Read symbols, write symbols, and directions must have equal numbers of elements!"
            )
        if len(self.reads) > 1:
            for token in self.reads:
                if parse_read(token).kind in ("negated", "binding"):
                    raise ValueError(
                        f"Read '{token}' is only allowed on single-tape machines"
                    )
        return self

    @property
    def tapes(self) -> int:
        return len(self.reads)

    def read_spec(self, tape: int) -> ReadSpec:
        return parse_read(self.reads[tape])

    @property
    def is_negated(self) -> bool:
        return any(parse_read(r).kind == "negated" for r in self.reads)

    def payload(self) -> Tuple:
        return (self.reads, self.writes, tuple(m.value for m in self.moves))

    def description(self) -> str:
        return " | ".join(
            f"{r} ; {w} , {m.value}" for r, w, m in zip(self.reads, self.writes, self.moves)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "reads": list(self.reads),
            "writes": list(self.writes),
            "moves": [m.value for m in self.moves],
        }
