"""
Finite State Automata
=====================
The finite-automaton flavour of the store plus the helpers the conversion
algorithms share: alphabet retrieval, lambda closure, nondeterminism
detection, label splitting, trap states and a step-with-closure simulator.
"""

from collections import deque
from typing import Iterable, List, Optional, Set, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from .automaton import Automaton
from .exceptions import MissingInitialStateError, StructuralError
from .models import FSATransition, Point

log = structlog.get_logger()


class FiniteStateAutomaton(Automaton):
    """Automaton whose transitions carry plain string labels."""

    transition_type = FSATransition

    def create_transition(
        self, source: int, target: int, label: str = "", control: Optional[Point] = None
    ) -> FSATransition:
        """Build and add a labelled transition."""
        try:
            transition = FSATransition(source=source, target=target, label=label, control=control)
        except ValidationError as e:
            raise StructuralError(f"Malformed transition: {e}") from e
        self.add_transition(transition)
        return transition

    def alphabet(self) -> List[str]:
        """Every non-empty label, in order of first appearance."""
        letters: List[str] = []
        for t in self.transitions:
            if t.label and t.label not in letters:
                letters.append(t.label)
        return letters

    def has_lambda_transitions(self) -> bool:
        return any(t.is_lambda for t in self.transitions)

    def nondeterministic_states(self) -> List[int]:
        """
        States with a lambda move, or with two outgoing labels where one is a
        prefix of the other (which covers equal labels).
        """
        found: Set[int] = set()
        for state in self.states:
            outgoing = self.transitions_from(state.id)
            for i, t1 in enumerate(outgoing):
                if t1.is_lambda:
                    found.add(state.id)
                    continue
                for t2 in outgoing[i + 1:]:
                    if t2.label.startswith(t1.label) or t1.label.startswith(t2.label):
                        found.add(state.id)
        return sorted(found)

    def is_nfa(self) -> bool:
        return bool(self.nondeterministic_states())

    def is_dfa(self) -> bool:
        return not self.is_nfa()

    def accepts(self, text: str) -> bool:
        """Convenience wrapper around FSASimulator."""
        return FSASimulator(self).simulate_input(text)


# --- shared helpers ---

def closure(states: Iterable[int], automaton: FiniteStateAutomaton) -> List[int]:
    """Every state reachable from `states` through lambda transitions, sorted."""
    seen: Set[int] = set(states)
    queue: deque = deque(seen)
    while queue:
        current = queue.popleft()
        for t in automaton.transitions_from(current):
            if t.is_lambda and t.target not in seen:
                seen.add(t.target)
                queue.append(t.target)
    return sorted(seen)


def has_multiple_character_labels(automaton: FiniteStateAutomaton) -> bool:
    return any(len(t.label) > 1 for t in automaton.transitions)


def remove_multiple_character_labels(automaton: FiniteStateAutomaton) -> int:
    """
    Replace every transition labelled with more than one character by a chain of
    single-character transitions through fresh states. Returns the number of
    transitions split.
    """
    split = 0
    for t in automaton.transitions:
        if len(t.label) <= 1:
            continue
        previous = t.source
        for ch in t.label[:-1]:
            middle = automaton.create_state().id
            automaton.add_transition(FSATransition(source=previous, target=middle, label=ch))
            previous = middle
        automaton.add_transition(FSATransition(source=previous, target=t.target, label=t.label[-1]))
        automaton.remove_transition(t)
        split += 1
    if split:
        log.info("multiple_character_labels_split", count=split)
    return split


def needs_trap_state(automaton: FiniteStateAutomaton) -> bool:
    letters = automaton.alphabet()
    for state in automaton.states:
        present = {t.label for t in automaton.transitions_from(state.id)}
        if any(letter not in present for letter in letters):
            return True
    return False


def add_trap_state(automaton: FiniteStateAutomaton) -> Optional[int]:
    """
    Complete the automaton with a non-final trap state receiving every missing
    transition. Returns the trap's id, or None when nothing was missing.
    """
    if not needs_trap_state(automaton):
        return None
    letters = automaton.alphabet()
    trap = automaton.create_state().id
    for state in automaton.states:
        present = {t.label for t in automaton.transitions_from(state.id)}
        for letter in letters:
            if letter not in present:
                automaton.add_transition(FSATransition(source=state.id, target=trap, label=letter))
    log.info("trap_state_added", trap=trap)
    return trap


# --- simulation ---

class FSAConfiguration(BaseModel):
    """One snapshot of a finite-automaton run."""
    model_config = ConfigDict(frozen=True)

    state: int
    input: str
    unprocessed: str
    parent: Optional["FSAConfiguration"] = None

    def trace(self) -> List[int]:
        path: List[int] = []
        config: Optional[FSAConfiguration] = self
        while config is not None:
            path.append(config.state)
            config = config.parent
        return list(reversed(path))

    def __str__(self) -> str:
        return f"q{self.state} | {self.unprocessed!r}"


FSAConfiguration.model_rebuild()


class FSASimulator:
    """Breadth-first simulator that follows lambda moves eagerly."""

    def __init__(self, automaton: FiniteStateAutomaton):
        self.automaton = automaton
        self.configurations: List[FSAConfiguration] = []

    def _with_closure(
        self, configs: Iterable[FSAConfiguration], seen: Set[Tuple[int, str]]
    ) -> List[FSAConfiguration]:
        result: List[FSAConfiguration] = []
        for config in configs:
            for state in closure([config.state], self.automaton):
                key = (state, config.unprocessed)
                if key in seen:
                    continue
                seen.add(key)
                if state == config.state:
                    result.append(config)
                else:
                    result.append(
                        FSAConfiguration(
                            state=state,
                            input=config.input,
                            unprocessed=config.unprocessed,
                            parent=config,
                        )
                    )
        return result

    def initial_configurations(self, text: str) -> List[FSAConfiguration]:
        initial = self.automaton.initial_state
        if initial is None:
            raise MissingInitialStateError("The automaton has no initial state", self.automaton)
        start = FSAConfiguration(state=initial, input=text, unprocessed=text)
        return self._with_closure([start], set())

    def step_configuration(self, config: FSAConfiguration) -> List[FSAConfiguration]:
        successors: List[FSAConfiguration] = []
        for t in self.automaton.transitions_from(config.state):
            if t.is_lambda or not config.unprocessed.startswith(t.label):
                continue
            successors.append(
                FSAConfiguration(
                    state=t.target,
                    input=config.input,
                    unprocessed=config.unprocessed[len(t.label):],
                    parent=config,
                )
            )
        return self._with_closure(successors, set())

    def is_accept(self, config: FSAConfiguration) -> bool:
        return config.unprocessed == "" and self.automaton.is_final_state(config.state)

    def is_accepted(self) -> bool:
        return any(self.is_accept(c) for c in self.configurations)

    def step(self) -> List[FSAConfiguration]:
        """Advance every live configuration by one transition."""
        seen: Set[Tuple[int, str]] = set()
        next_round: List[FSAConfiguration] = []
        for config in self.configurations:
            for successor in self.step_configuration(config):
                key = (successor.state, successor.unprocessed)
                if key not in seen:
                    seen.add(key)
                    next_round.append(successor)
        self.configurations = next_round
        return next_round

    def simulate_input(self, text: str) -> bool:
        self.configurations = self.initial_configurations(text)
        while self.configurations:
            if self.is_accepted():
                return True
            self.step()
        return False
