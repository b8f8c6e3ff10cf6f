"""
Reachability Module
===================
Detection of states that can never take part in a computation.

This module provides:
- Unreachable state detection (depth-first search from the initial state)
- Productive state detection (states that can reach a final state)
- Useless state cleanup (states that are unreachable or unproductive)
"""

from typing import Dict, List, Set
import logging

from .automaton import Automaton
from .exceptions import MissingInitialStateError
from .schemas import Color

logger = logging.getLogger(__name__)


class UnreachableStatesDetector:
    """
    Finds the states that no path from the initial state reaches.

    The search colours every state white, turns a state grey when it is entered
    and black when all of its successors are finished. Whatever is not black at
    the end is unreachable. An automaton without an initial state has no
    reachable states at all.
    """

    def __init__(self, automaton: Automaton, verbose: bool = False):
        self.automaton = automaton
        self.verbose = verbose
        self.colors: Dict[int, Color] = {}

    def _log(self, message: str):
        if self.verbose:
            logger.info(f"[Reachability] {message}")

    def initialize_colors(self) -> None:
        self.colors = {state.id: Color.WHITE for state in self.automaton.states}

    def visit(self, state_id: int) -> None:
        """
        Depth-first visit from `state_id`.
        Uses an explicit stack so long chains do not hit the recursion limit.
        """
        self.colors[state_id] = Color.GREY
        stack = [(state_id, iter(self.automaton.transitions_from(state_id)))]
        while stack:
            current, successors = stack[-1]
            advanced = False
            for transition in successors:
                target = transition.target
                if self.colors.get(target) == Color.WHITE:
                    self.colors[target] = Color.GREY
                    stack.append((target, iter(self.automaton.transitions_from(target))))
                    advanced = True
                    break
            if not advanced:
                self.colors[current] = Color.BLACK
                stack.pop()

    def get_unreachable_states(self) -> List[int]:
        """
        Ids of all states not reachable from the initial state, ascending.

        Time Complexity: O(|States| + |Transitions|)
        """
        self.initialize_colors()
        initial = self.automaton.initial_state
        if initial is None:
            self._log("No initial state; every state is unreachable")
        else:
            self.visit(initial)
        unreachable = [sid for sid, color in self.colors.items() if color != Color.BLACK]
        self._log(f"Unreachable states: {sorted(unreachable)}")
        return sorted(unreachable)

    def get_reachable_states(self) -> Set[int]:
        unreachable = set(self.get_unreachable_states())
        return {s.id for s in self.automaton.states} - unreachable


def remove_unreachable_states(automaton: Automaton) -> List[int]:
    """Remove every unreachable state in place. Returns the removed ids."""
    unreachable = UnreachableStatesDetector(automaton).get_unreachable_states()
    automaton.remove_states(unreachable)
    if unreachable:
        logger.info(f"[Reachability] Removed {len(unreachable)} unreachable states: {unreachable}")
    return unreachable


class UselessStatesDetector:
    """
    A state is useful only if:
    1. It is reachable from the initial state (forward reachability)
    2. It can reach at least one final state (backward reachability)
    """

    def __init__(self, automaton: Automaton, verbose: bool = False):
        self.automaton = automaton
        self.verbose = verbose

    def _log(self, message: str):
        if self.verbose:
            logger.info(f"[Reachability] {message}")

    def find_productive_states(self) -> Set[int]:
        """
        States that can reach a final state, found by a backward search from
        the final states.
        """
        productive: Set[int] = set(self.automaton.final_states)
        stack = list(productive)
        while stack:
            current = stack.pop()
            for t in self.automaton.transitions_to(current):
                if t.source not in productive:
                    productive.add(t.source)
                    stack.append(t.source)
        return productive

    def get_useless_states(self) -> Set[int]:
        if self.automaton.initial_state is None:
            raise MissingInitialStateError(
                "Automaton does not have an initial state!", self.automaton
            )
        reachable = UnreachableStatesDetector(self.automaton).get_reachable_states()
        productive = self.find_productive_states()
        useful = reachable & productive

        self._log(f"Reachable states: {sorted(reachable)}")
        self._log(f"Productive states: {sorted(productive)}")
        self._log(f"Useful states (intersection): {sorted(useful)}")

        return {s.id for s in self.automaton.states} - useful

    def clean_automaton(self) -> Automaton:
        """
        Copy of the automaton without its useless states.
        The initial state always survives; if it is useless itself, every
        transition is dropped as well.
        """
        useless = self.get_useless_states()
        cleaned = self.automaton.copy()
        initial = cleaned.initial_state
        cleaned.remove_states(s for s in useless if s != initial)
        if initial in useless:
            for t in cleaned.transitions:
                cleaned.remove_transition(t)
        self._log(f"Cleanup complete. Removed {len(useless - {initial})} states")
        return cleaned
