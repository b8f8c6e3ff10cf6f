"""
Automaton Store
===============
Mutable graph of states and transitions with an initial state, a set of final
states and change notification.

Adjacency lists and the sorted state list are private caches. Every mutation
drops them and the next read rebuilds them from the canonical containers:
the state map and the ordered transition list.
"""

from typing import Callable, Dict, Iterable, List, Optional, Set, Type

import structlog

from .exceptions import IncompatibleTransitionError, StructuralError
from .models import Point, State, Transition
from .schemas import AutomatonEvent, EventKind

log = structlog.get_logger()

Listener = Callable[[AutomatonEvent], None]


class Automaton:
    """
    Base automaton store.

    Subclasses narrow `transition_type` and may add checks in
    `_check_transition`. States are addressed by id everywhere.
    """

    transition_type: Type[Transition] = Transition

    def __init__(self) -> None:
        self._states: Dict[int, State] = {}
        self._final_states: Set[int] = set()
        self._initial_state: Optional[int] = None
        self._transitions: List[Transition] = []
        self._transition_set: Set[Transition] = set()
        self._listeners: List[Listener] = []
        self._invalidate()

    # --- caches ---

    def _invalidate(self) -> None:
        self._sorted_states: Optional[List[State]] = None
        self._from_index: Optional[Dict[int, List[Transition]]] = None
        self._to_index: Optional[Dict[int, List[Transition]]] = None

    def _build_indices(self) -> None:
        from_index: Dict[int, List[Transition]] = {sid: [] for sid in self._states}
        to_index: Dict[int, List[Transition]] = {sid: [] for sid in self._states}
        for t in self._transitions:
            from_index[t.source].append(t)
            to_index[t.target].append(t)
        self._from_index = from_index
        self._to_index = to_index

    # --- listeners ---

    def subscribe(self, listener: Listener) -> Listener:
        """Register a listener. Listeners are called in registration order."""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _fire(self, kind: EventKind, **fields) -> None:
        event = AutomatonEvent(kind=kind, **fields)
        for listener in list(self._listeners):
            listener(event)

    # --- states ---

    def _next_free_id(self) -> int:
        i = 0
        while i in self._states:
            i += 1
        return i

    def _new_state(self, state_id: int, point: Optional[Point]) -> State:
        return State(id=state_id, point=point or (0.0, 0.0))

    def _add_state(self, state: State) -> State:
        self._states[state.id] = state
        self._invalidate()
        self._fire(EventKind.STATE_ADDED, state=state.id)
        return state

    def create_state(self, point: Optional[Point] = None) -> State:
        """Create a state with the lowest unused id."""
        return self._add_state(self._new_state(self._next_free_id(), point))

    def create_state_with_id(self, state_id: int, point: Optional[Point] = None) -> State:
        """Create a state with a caller-chosen id, e.g. when restoring a saved automaton."""
        if state_id in self._states:
            raise StructuralError(f"State id {state_id} is already in use")
        if state_id < 0:
            raise StructuralError(f"State id must be non-negative, got {state_id}")
        return self._add_state(self._new_state(state_id, point))

    def remove_state(self, state_id: int) -> None:
        """Remove a state and every transition touching it."""
        self._require_state(state_id)
        touching = self.transitions_from(state_id) + self.transitions_to(state_id)
        for t in touching:
            if t in self._transition_set:
                self.remove_transition(t)
        self.remove_final_state(state_id)
        if self._initial_state == state_id:
            self.set_initial_state(None)
        del self._states[state_id]
        self._invalidate()
        log.debug("state_removed", state=state_id, transitions_removed=len(set(touching)))
        self._fire(EventKind.STATE_REMOVED, state=state_id)

    def has_state(self, state_id: int) -> bool:
        return state_id in self._states

    def get_state(self, state_id: int) -> Optional[State]:
        return self._states.get(state_id)

    def _require_state(self, state_id: Optional[int]) -> State:
        state = self._states.get(state_id) if state_id is not None else None
        if state is None:
            raise StructuralError(f"State {state_id} is not in this automaton")
        return state

    @property
    def states(self) -> List[State]:
        """All states in ascending id order."""
        if self._sorted_states is None:
            self._sorted_states = [self._states[k] for k in sorted(self._states)]
        return list(self._sorted_states)

    @property
    def state_ids(self) -> List[int]:
        return [s.id for s in self.states]

    # --- initial and final states ---

    @property
    def initial_state(self) -> Optional[int]:
        return self._initial_state

    def set_initial_state(self, state_id: Optional[int]) -> Optional[int]:
        """Designate the initial state (None clears it). Returns the previous one."""
        if state_id is not None:
            self._require_state(state_id)
        previous = self._initial_state
        self._initial_state = state_id
        self._fire(EventKind.INITIAL_CHANGED, state=state_id, previous_state=previous)
        return previous

    def is_initial_state(self, state_id: int) -> bool:
        return self._initial_state is not None and self._initial_state == state_id

    @property
    def final_states(self) -> List[int]:
        return sorted(self._final_states)

    def add_final_state(self, state_id: int) -> None:
        self._require_state(state_id)
        self._final_states.add(state_id)
        self._fire(EventKind.FINAL_ADDED, state=state_id)

    def remove_final_state(self, state_id: int) -> None:
        if state_id not in self._final_states:
            return
        self._final_states.remove(state_id)
        self._fire(EventKind.FINAL_REMOVED, state=state_id)

    def is_final_state(self, state_id: int) -> bool:
        return state_id in self._final_states

    # --- transitions ---

    def _check_transition(self, transition: Transition) -> None:
        if not isinstance(transition, self.transition_type):
            raise IncompatibleTransitionError(
                f"{type(self).__name__} cannot hold a {type(transition).__name__}"
            )
        for endpoint in (transition.source, transition.target):
            if endpoint not in self._states:
                raise StructuralError(
                    f"Transition endpoint {endpoint} is not a state of this automaton"
                )

    def add_transition(self, transition: Transition) -> bool:
        """Add a transition. Returns False when an equal transition is already present."""
        self._check_transition(transition)
        if transition in self._transition_set:
            return False
        self._transitions.append(transition)
        self._transition_set.add(transition)
        self._invalidate()
        self._fire(EventKind.TRANSITION_ADDED, transition=transition)
        return True

    def remove_transition(self, transition: Transition) -> None:
        if transition not in self._transition_set:
            raise StructuralError(f"Transition {transition} is not in this automaton")
        self._transition_set.remove(transition)
        self._transitions.remove(transition)
        self._invalidate()
        self._fire(EventKind.TRANSITION_REMOVED, transition=transition)

    def replace_transition(self, old: Transition, new: Transition) -> None:
        """
        Swap `old` for `new`, keeping `old`'s place in the enumeration order.
        If `new` is already present `old` is simply removed.
        """
        self._check_transition(new)
        if old == new:
            return
        if new in self._transition_set:
            self.remove_transition(old)
            return
        if old not in self._transition_set:
            raise StructuralError("Replacing transition that is not already in the automaton!")
        index = self._transitions.index(old)
        self._transitions[index] = new
        self._transition_set.remove(old)
        self._transition_set.add(new)
        self._invalidate()
        self._fire(EventKind.TRANSITION_REPLACED, transition=new, old_transition=old)

    def has_transition(self, transition: Transition) -> bool:
        return transition in self._transition_set

    @property
    def transitions(self) -> List[Transition]:
        """All transitions in insertion order."""
        return list(self._transitions)

    def transitions_from(self, state_id: int) -> List[Transition]:
        if self._from_index is None:
            self._build_indices()
        return list(self._from_index.get(state_id, []))

    def transitions_to(self, state_id: int) -> List[Transition]:
        if self._to_index is None:
            self._build_indices()
        return list(self._to_index.get(state_id, []))

    def transitions_between(self, source: int, target: int) -> List[Transition]:
        return [t for t in self.transitions_from(source) if t.target == target]

    # --- whole-automaton operations ---

    def _empty_copy(self) -> "Automaton":
        return type(self)()

    def copy(self) -> "Automaton":
        """Deep copy with the same ids, designations and transition order. Listeners are not copied."""
        other = self._empty_copy()
        for state in self.states:
            other._add_state(state.model_copy())
        for state_id in self.final_states:
            other.add_final_state(state_id)
        if self._initial_state is not None:
            other.set_initial_state(self._initial_state)
        for t in self._transitions:
            other.add_transition(t)
        return other

    def clear(self) -> None:
        for t in list(self._transitions):
            self.remove_transition(t)
        for state_id in list(self._states):
            self.remove_state(state_id)

    def remove_states(self, state_ids: Iterable[int]) -> None:
        for state_id in list(state_ids):
            if state_id in self._states:
                self.remove_state(state_id)

    def describe(self) -> str:
        lines = [f"{type(self).__name__} with {len(self._states)} states"]
        for state in self.states:
            prefix = "--> " if self.is_initial_state(state.id) else ""
            suffix = " **FINAL**" if self.is_final_state(state.id) else ""
            lines.append(f"{prefix}{state}{suffix}")
            for t in self.transitions_from(state.id):
                lines.append(f"\t{t}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} states={len(self._states)} "
            f"transitions={len(self._transitions)} initial={self._initial_state}>"
        )
