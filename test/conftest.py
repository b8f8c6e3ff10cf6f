import sys
import os

import pytest

# Ensure the repository root is on sys.path so automaton_core imports without installation
HERE = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(HERE, ".."))

if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from automaton_core import FiniteStateAutomaton, TuringMachine, set_profile


@pytest.fixture(autouse=True)
def reset_profile():
    """Every test starts from the packaged profile."""
    set_profile(None)
    yield
    set_profile(None)


@pytest.fixture
def make_fsa():
    """Factory: make_fsa(3, [(0, "a", 1), ...], initial=0, finals=[2])."""
    def _make(n_states, transitions, initial=0, finals=()):
        fsa = FiniteStateAutomaton()
        for _ in range(n_states):
            fsa.create_state()
        if initial is not None:
            fsa.set_initial_state(initial)
        for f in finals:
            fsa.add_final_state(f)
        for source, label, target in transitions:
            fsa.create_transition(source, target, label)
        return fsa
    return _make


@pytest.fixture
def make_tm():
    """Factory: make_tm(3, [(0, "a", "x", "R", 1), ...], initial=0, finals=[2], tapes=1)."""
    def _make(n_states, transitions, initial=0, finals=(), tapes=1):
        tm = TuringMachine(tapes)
        for _ in range(n_states):
            tm.create_state()
        if initial is not None:
            tm.set_initial_state(initial)
        for f in finals:
            tm.add_final_state(f)
        for source, reads, writes, moves, target in transitions:
            tm.create_transition(source, target, reads, writes, moves)
        return tm
    return _make


@pytest.fixture
def scenario_nfa(make_fsa):
    """NFA {0, 1}, initial 0, final 1: 0-a->0, 0-a->1, 0-b->0."""
    return make_fsa(2, [(0, "a", 0), (0, "a", 1), (0, "b", 0)], finals=[1])


@pytest.fixture
def ends_with_ab_nfa(make_fsa):
    """(a|b)*ab with a lambda move in front."""
    return make_fsa(
        4,
        [(0, "", 1), (1, "a", 1), (1, "b", 1), (1, "a", 2), (2, "b", 3)],
        finals=[3],
    )


def all_strings(alphabet, max_length):
    from itertools import product
    for n in range(max_length + 1):
        for letters in product(alphabet, repeat=n):
            yield "".join(letters)


@pytest.fixture
def sample_strings():
    return list(all_strings("ab", 5))
