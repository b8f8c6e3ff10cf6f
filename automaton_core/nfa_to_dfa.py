"""
NFA to DFA conversion by subset construction.

Each DFA state stands for a set of NFA states. `SubsetConstruction` keeps the
two-way map between those sets and the DFA states it created, and expands
states either one symbol at a time (tutoring) or all at once.
"""

from collections import deque
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

import structlog

from .exceptions import (
    DuplicateSetError,
    InvalidExpansionError,
    MissingInitialStateError,
    StructuralError,
)
from .fsa import (
    FiniteStateAutomaton,
    closure,
    has_multiple_character_labels,
    remove_multiple_character_labels,
)
from .models import FSATransition, State
from .schemas import AutomatonEvent, ConversionProgress, EventKind

log = structlog.get_logger()


def label_for_states(states: Iterable[int]) -> str:
    """Label of a DFA state, e.g. "0,1,3"."""
    return ",".join(str(s) for s in sorted(states))


def states_on_terminal(terminal: str, states: Iterable[int], nfa: FiniteStateAutomaton) -> List[int]:
    """NFA states reachable from `states` on `terminal`, closed under lambda moves."""
    reached: Set[int] = set()
    for state in states:
        for t in nfa.transitions_from(state):
            if t.label == terminal:
                reached.update(closure([t.target], nfa))
    return sorted(reached)


class SubsetConstruction:
    """
    Drives one NFA to DFA conversion.

    The DFA starts with the state for the lambda closure of the NFA's initial
    state. States are expanded on demand; `complete()` finishes the job.
    A reference answer is computed up front so `progress()` can tell how
    much is missing.
    """

    def __init__(self, nfa: FiniteStateAutomaton, compute_answer: bool = True):
        if nfa.initial_state is None:
            log.warning("conversion_without_initial_state")
            raise MissingInitialStateError("Cannot convert an automaton without an initial state", nfa)
        if has_multiple_character_labels(nfa):
            remove_multiple_character_labels(nfa)

        self.nfa = nfa
        self.dfa = FiniteStateAutomaton()
        self.alphabet: List[str] = nfa.alphabet()

        self._set_to_state: Dict[FrozenSet[int], int] = {}
        self._state_to_set: Dict[int, FrozenSet[int]] = {}
        self._expanded: Set[int] = set()
        self.dfa.subscribe(self._on_dfa_change)

        initial = self.create_state_with_states(closure([nfa.initial_state], nfa))
        self.dfa.set_initial_state(initial.id)

        self.answer: Optional[FiniteStateAutomaton] = None
        if compute_answer:
            self.answer = _construct(nfa)

    def _on_dfa_change(self, event: AutomatonEvent) -> None:
        # Keep the maps in step with edits made to the DFA from outside
        if event.kind == EventKind.STATE_REMOVED and event.state in self._state_to_set:
            key = self._state_to_set.pop(event.state)
            if self._set_to_state.get(key) == event.state:
                del self._set_to_state[key]
            self._expanded.discard(event.state)
        elif event.kind == EventKind.TRANSITION_REMOVED:
            # The source lost an outgoing edge and has to be expanded again
            self._expanded.discard(event.transition.source)

    # --- bookkeeping ---

    def register_state(self, state_id: int, states: Iterable[int]) -> None:
        """Record that DFA state `state_id` represents the NFA set `states`."""
        key = frozenset(states)
        existing = self._set_to_state.get(key)
        if existing is not None and existing != state_id:
            log.error(
                "duplicate_set_registration",
                states=sorted(key),
                existing=existing,
                rejected=state_id,
            )
            raise DuplicateSetError(key, existing, state_id)
        if not self.dfa.has_state(state_id):
            raise StructuralError(f"State {state_id} is not in the DFA")
        old = self._state_to_set.get(state_id)
        if old is not None and old != key:
            del self._set_to_state[old]
        self._set_to_state[key] = state_id
        self._state_to_set[state_id] = key

    def states_for(self, state_id: int) -> List[int]:
        """NFA states represented by a DFA state."""
        if state_id not in self._state_to_set:
            raise StructuralError(f"DFA state {state_id} does not represent a set of NFA states")
        return sorted(self._state_to_set[state_id])

    def state_for(self, states: Iterable[int]) -> Optional[int]:
        """DFA state representing the NFA set, if one exists."""
        return self._set_to_state.get(frozenset(states))

    def create_state_with_states(self, states: Iterable[int]) -> State:
        states = sorted(set(states))
        key = frozenset(states)
        if key in self._set_to_state:
            raise DuplicateSetError(key, self._set_to_state[key], -1)
        state = self.dfa.create_state()
        state.label = label_for_states(states)
        if any(self.nfa.is_final_state(s) for s in states):
            self.dfa.add_final_state(state.id)
        self.register_state(state.id, states)
        return state

    def is_expanded(self, state_id: int) -> bool:
        return state_id in self._expanded

    # --- expansion ---

    def expand_state(self, state_id: int) -> List[int]:
        """
        Add every outgoing transition of a DFA state.
        Returns the ids of DFA states created along the way. A state is only
        expanded once; later calls return an empty list.
        """
        if state_id in self._expanded:
            return []
        sources = self.states_for(state_id)
        created: List[int] = []
        for letter in self.alphabet:
            targets = states_on_terminal(letter, sources, self.nfa)
            if not targets:
                continue
            to_state = self.state_for(targets)
            if to_state is None:
                to_state = self.create_state_with_states(targets).id
                created.append(to_state)
            self.dfa.add_transition(FSATransition(source=state_id, target=to_state, label=letter))
        self._expanded.add(state_id)
        log.debug("state_expanded", state=state_id, nfa_states=sources, created=created)
        return created

    def expand_on_symbol(
        self,
        state_id: int,
        symbol: str,
        target: Optional[Iterable[int]] = None,
        target_state: Optional[int] = None,
    ) -> FSATransition:
        """
        Expand a single transition, checking a caller's proposal.

        Args:
            state_id: DFA state to expand from
            symbol: terminal to expand on
            target: proposed set of NFA states the expansion reaches
            target_state: proposed existing DFA state the transition ends in

        Raises:
            InvalidExpansionError: lambda symbol, no expansion on the symbol,
                or a wrong proposal. Nothing is changed in that case.
        """
        if symbol == "":
            raise InvalidExpansionError("One can't have lambda in the DFA!")
        sources = self.states_for(state_id)
        end_states = states_on_terminal(symbol, sources, self.nfa)
        if not end_states:
            raise InvalidExpansionError(
                f"The group {{{label_for_states(sources)}}} does not expand on the terminal {symbol}!"
            )
        if target is not None and frozenset(target) != frozenset(end_states):
            raise InvalidExpansionError("That list of states is incorrect!")

        existing = self.state_for(end_states)
        if target_state is not None and target_state != existing:
            raise InvalidExpansionError(
                f"The group {{{label_for_states(sources)}}} does not go to state "
                f"{target_state} on terminal {symbol}!"
            )
        if existing is None:
            existing = self.create_state_with_states(end_states).id

        transition = FSATransition(source=state_id, target=existing, label=symbol)
        self.dfa.add_transition(transition)
        return transition

    def complete(self) -> FiniteStateAutomaton:
        """Expand every state not yet expanded, including the ones this creates."""
        queue: deque = deque(s.id for s in self.dfa.states if s.id not in self._expanded)
        while queue:
            state_id = queue.popleft()
            if state_id in self._expanded:
                continue
            queue.extend(self.expand_state(state_id))
        log.info(
            "dfa_conversion_complete",
            states=len(self.dfa),
            transitions=len(self.dfa.transitions),
        )
        return self.dfa

    # --- progress ---

    def progress(self) -> ConversionProgress:
        answer = self.answer if self.answer is not None else _construct(self.nfa)
        return ConversionProgress(
            states_remaining=len(answer) - len(self.dfa),
            transitions_remaining=len(answer.transitions) - len(self.dfa.transitions),
        )

    def is_done(self) -> bool:
        return self.progress().is_done


class NFAToDFA:
    """
    Stateless building blocks of the conversion. DFA states are found by
    their "0,1" labels, so these work on any DFA built with them.
    """

    def closure(self, states: Iterable[int], nfa: FiniteStateAutomaton) -> List[int]:
        return closure(states, nfa)

    def states_on_terminal(
        self, terminal: str, states: Iterable[int], nfa: FiniteStateAutomaton
    ) -> List[int]:
        return states_on_terminal(terminal, states, nfa)

    def create_initial_state(
        self, nfa: FiniteStateAutomaton, dfa: FiniteStateAutomaton
    ) -> State:
        if nfa.initial_state is None:
            log.warning("conversion_without_initial_state")
            raise MissingInitialStateError("Cannot convert an automaton without an initial state", nfa)
        state = self.create_state_with_states(dfa, closure([nfa.initial_state], nfa), nfa)
        dfa.set_initial_state(state.id)
        return state

    def create_state_with_states(
        self, dfa: FiniteStateAutomaton, states: Iterable[int], nfa: FiniteStateAutomaton
    ) -> State:
        states = sorted(set(states))
        state = dfa.create_state()
        state.label = label_for_states(states)
        if any(nfa.is_final_state(s) for s in states):
            dfa.add_final_state(state.id)
        return state

    def state_for_states(self, states: Iterable[int], dfa: FiniteStateAutomaton) -> Optional[int]:
        label = label_for_states(states)
        for state in dfa.states:
            if state.label == label:
                return state.id
        return None

    def expand_state(
        self, state_id: int, nfa: FiniteStateAutomaton, dfa: FiniteStateAutomaton
    ) -> List[int]:
        """Add the outgoing transitions of a DFA state. Returns the states created."""
        state = dfa.get_state(state_id)
        if state is None:
            raise StructuralError(f"State {state_id} is not in the DFA")
        sources = [int(s) for s in state.label.split(",") if s] if state.label else []
        created: List[int] = []
        for letter in nfa.alphabet():
            targets = states_on_terminal(letter, sources, nfa)
            if not targets:
                continue
            to_state = self.state_for_states(targets, dfa)
            if to_state is None:
                to_state = self.create_state_with_states(dfa, targets, nfa).id
                created.append(to_state)
            dfa.add_transition(FSATransition(source=state_id, target=to_state, label=letter))
        return created

    def convert_to_dfa(self, nfa: FiniteStateAutomaton) -> FiniteStateAutomaton:
        return convert_to_dfa(nfa)


def _construct(nfa: FiniteStateAutomaton) -> FiniteStateAutomaton:
    return SubsetConstruction(nfa, compute_answer=False).complete()


def convert_to_dfa(nfa: FiniteStateAutomaton) -> FiniteStateAutomaton:
    """
    Equivalent DFA for `nfa`.
    A deterministic input is returned as a copy.
    """
    if not nfa.is_nfa():
        return nfa.copy()
    return _construct(nfa)
