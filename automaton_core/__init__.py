"""
Core of the automaton workbench.
Centralized exports for the store, the conversion algorithms and the simulators.
"""

from .exceptions import (
    AutomatonError,
    StructuralError,
    IncompatibleTransitionError,
    ConsistencyError,
    DuplicateSetError,
    InvalidExpansionError,
    InvalidPartitionError,
    PreconditionError,
    MissingInitialStateError,
    UnsplittableGroupError,
    NotDeterministicError,
    SimulationLimitError,
)

from .schemas import (
    BLANK,
    WILDCARD,
    LAMBDA,
    EventKind,
    Direction,
    AutomatonEvent,
    ConversionProgress,
)

from .models import State, Transition, FSATransition, TMTransition, parse_read

from .automaton import Automaton

from .fsa import (
    FiniteStateAutomaton,
    FSAConfiguration,
    FSASimulator,
    closure,
    add_trap_state,
    remove_multiple_character_labels,
)

from .reachability import (
    UnreachableStatesDetector,
    UselessStatesDetector,
    remove_unreachable_states,
)

from .nfa_to_dfa import NFAToDFA, SubsetConstruction, convert_to_dfa

from .minimizer import Minimizer, PartitionNode

from .turing import Tape, TuringMachine

from .tm_simulator import (
    TMConfiguration,
    TMSimulator,
    AcceptanceFilter,
    AcceptByFinalStateFilter,
    AcceptByHaltingFilter,
)

from .config import Profile, get_profile, load_profile, set_profile

__all__ = [
    # Errors
    "AutomatonError",
    "StructuralError",
    "IncompatibleTransitionError",
    "ConsistencyError",
    "DuplicateSetError",
    "InvalidExpansionError",
    "InvalidPartitionError",
    "PreconditionError",
    "MissingInitialStateError",
    "UnsplittableGroupError",
    "NotDeterministicError",
    "SimulationLimitError",
    # Schemas and models
    "BLANK",
    "WILDCARD",
    "LAMBDA",
    "EventKind",
    "Direction",
    "AutomatonEvent",
    "ConversionProgress",
    "State",
    "Transition",
    "FSATransition",
    "TMTransition",
    "parse_read",
    # Store
    "Automaton",
    "FiniteStateAutomaton",
    "FSAConfiguration",
    "FSASimulator",
    "closure",
    "add_trap_state",
    "remove_multiple_character_labels",
    # Algorithms
    "UnreachableStatesDetector",
    "UselessStatesDetector",
    "remove_unreachable_states",
    "NFAToDFA",
    "SubsetConstruction",
    "convert_to_dfa",
    "Minimizer",
    "PartitionNode",
    # Turing machines
    "Tape",
    "TuringMachine",
    "TMConfiguration",
    "TMSimulator",
    "AcceptanceFilter",
    "AcceptByFinalStateFilter",
    "AcceptByHaltingFilter",
    # Config
    "Profile",
    "get_profile",
    "load_profile",
    "set_profile",
]
