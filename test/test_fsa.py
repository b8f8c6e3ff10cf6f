import pytest

from automaton_core import FSASimulator, MissingInitialStateError, closure
from automaton_core.fsa import (
    add_trap_state,
    has_multiple_character_labels,
    needs_trap_state,
    remove_multiple_character_labels,
)


def test_alphabet_in_order_of_appearance(make_fsa):
    fsa = make_fsa(2, [(0, "b", 1), (0, "", 1), (1, "a", 0), (1, "b", 1)])
    assert fsa.alphabet() == ["b", "a"]


def test_lambda_closure(make_fsa):
    fsa = make_fsa(4, [(0, "", 1), (1, "", 2), (2, "a", 3), (3, "", 0)])
    assert closure([0], fsa) == [0, 1, 2]
    assert closure([3], fsa) == [0, 1, 2, 3]
    assert closure([], fsa) == []


# --- Determinism ---

def test_lambda_move_is_nondeterministic(make_fsa):
    fsa = make_fsa(2, [(0, "", 1)])
    assert fsa.nondeterministic_states() == [0]
    assert fsa.is_nfa()


def test_same_label_twice_is_nondeterministic(scenario_nfa):
    assert scenario_nfa.nondeterministic_states() == [0]


def test_prefix_labels_are_nondeterministic(make_fsa):
    fsa = make_fsa(3, [(0, "a", 1), (0, "ab", 2)])
    assert fsa.is_nfa()


def test_dfa(make_fsa):
    fsa = make_fsa(2, [(0, "a", 1), (0, "b", 0), (1, "a", 1)])
    assert fsa.is_dfa()
    assert not fsa.has_lambda_transitions()


# --- Preparation helpers ---

def test_split_multiple_character_labels(make_fsa):
    fsa = make_fsa(2, [(0, "abc", 1), (1, "d", 0)], finals=[1])
    assert fsa.accepts("abc")
    assert has_multiple_character_labels(fsa)

    assert remove_multiple_character_labels(fsa) == 1
    assert not has_multiple_character_labels(fsa)
    assert len(fsa) == 4
    assert len(fsa.transitions) == 4
    assert fsa.accepts("abc")
    assert fsa.accepts("abcdabc")
    assert not fsa.accepts("ab")


def test_trap_state_completes_automaton(make_fsa):
    fsa = make_fsa(2, [(0, "a", 1), (1, "b", 1)], finals=[1])
    assert needs_trap_state(fsa)
    trap = add_trap_state(fsa)
    assert trap == 2
    assert not fsa.is_final_state(trap)
    for state in fsa.states:
        labels = sorted(t.label for t in fsa.transitions_from(state.id))
        assert labels == ["a", "b"]
    assert fsa.accepts("abb")
    assert not fsa.accepts("ba")


def test_complete_automaton_needs_no_trap(make_fsa):
    fsa = make_fsa(1, [(0, "a", 0)])
    assert add_trap_state(fsa) is None
    assert len(fsa) == 1


# --- Simulation ---

def test_simulate_nfa(ends_with_ab_nfa):
    assert ends_with_ab_nfa.accepts("ab")
    assert ends_with_ab_nfa.accepts("babab")
    assert not ends_with_ab_nfa.accepts("aba")
    assert not ends_with_ab_nfa.accepts("")


def test_lambda_reaches_final(make_fsa):
    fsa = make_fsa(2, [(0, "", 1)], finals=[1])
    assert fsa.accepts("")
    assert not fsa.accepts("a")


def test_initial_configurations_follow_lambda_moves(ends_with_ab_nfa):
    simulator = FSASimulator(ends_with_ab_nfa)
    configs = simulator.initial_configurations("ab")
    assert sorted(c.state for c in configs) == [0, 1]


def test_trace(make_fsa):
    fsa = make_fsa(3, [(0, "a", 1), (1, "", 2)], finals=[2])
    simulator = FSASimulator(fsa)
    simulator.configurations = simulator.initial_configurations("a")
    simulator.step()
    accepting = [c for c in simulator.configurations if simulator.is_accept(c)]
    assert len(accepting) == 1
    assert accepting[0].trace() == [0, 1, 2]


def test_simulate_without_initial_state(make_fsa):
    fsa = make_fsa(1, [], initial=None)
    with pytest.raises(MissingInitialStateError):
        fsa.accepts("a")
