"""Custom exceptions for automaton-core."""

from typing import Any, Optional


class AutomatonError(Exception):
    """Base exception for all automaton-core errors."""

    pass


class StructuralError(AutomatonError, ValueError):
    """Raised when a mutation would break the automaton's structure."""

    pass


class IncompatibleTransitionError(StructuralError):
    """Raised when a transition variant does not fit the automaton kind."""

    pass


class ConsistencyError(AutomatonError):
    """Raised when an algorithm's bookkeeping would become inconsistent."""

    pass


class DuplicateSetError(ConsistencyError):
    """Raised when two DFA states are registered for the same set of NFA states."""

    def __init__(self, states: Any, existing: int, rejected: int) -> None:
        self.states = states
        self.existing = existing
        self.rejected = rejected
        super().__init__(
            f"Set {sorted(states)} is already represented by state {existing}; "
            f"cannot register state {rejected}"
        )


class InvalidExpansionError(ConsistencyError):
    """Raised when a proposed subset-construction expansion is wrong."""

    pass


class InvalidPartitionError(ConsistencyError):
    """Raised when a proposed split is not the correct partition of a group."""

    pass


class PreconditionError(AutomatonError):
    """Raised when an operation is requested before its preconditions hold."""

    pass


class MissingInitialStateError(PreconditionError):
    """Raised when an automaton or building block has no initial state."""

    def __init__(self, message: str, automaton: Optional[Any] = None) -> None:
        self.automaton = automaton
        super().__init__(message)


class UnsplittableGroupError(PreconditionError):
    """Raised when asked to split a group that cannot be split."""

    pass


class NotDeterministicError(PreconditionError):
    """Raised when a DFA-only algorithm is given a nondeterministic automaton."""

    pass


class SimulationLimitError(AutomatonError):
    """Raised when a simulation exceeds the configured number of rounds."""

    def __init__(self, rounds: int) -> None:
        self.rounds = rounds
        super().__init__(f"Simulation did not finish within {rounds} rounds")
