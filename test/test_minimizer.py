import pytest

from automaton_core import (
    InvalidPartitionError,
    Minimizer,
    MissingInitialStateError,
    NotDeterministicError,
    PreconditionError,
    UnsplittableGroupError,
    convert_to_dfa,
)


@pytest.fixture
def ends_with_ab_dfa(make_fsa):
    """0: nothing useful seen, 1: last symbol a, 2: ends with ab."""
    return make_fsa(
        3,
        [(0, "a", 1), (0, "b", 0), (1, "a", 1), (1, "b", 2), (2, "a", 1), (2, "b", 0)],
        finals=[2],
    )


@pytest.fixture
def equivalent_pair_dfa(make_fsa):
    """States 1 and 2 are equivalent."""
    return make_fsa(
        3,
        [(0, "a", 1), (0, "b", 2), (1, "a", 1), (1, "b", 0), (2, "a", 2), (2, "b", 0)],
        finals=[1, 2],
    )


def leaf_sets(minimizer):
    return [leaf.states for leaf in minimizer.leaves()]


# --- Preparation ---

def test_initial_tree_splits_by_final_status(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    assert minimizer.tree.states == [0, 1, 2]
    assert leaf_sets(minimizer) == [[0, 1], [2]]
    assert minimizer.trap_state is None


def test_rejects_nfa(scenario_nfa):
    with pytest.raises(NotDeterministicError):
        Minimizer(scenario_nfa)


def test_requires_initial_state(make_fsa):
    with pytest.raises(MissingInitialStateError):
        Minimizer(make_fsa(1, [], initial=None))


def test_works_on_prepared_copy(make_fsa):
    dfa = make_fsa(4, [(0, "a", 1), (3, "a", 0)], finals=[1])
    minimizer = Minimizer(dfa)
    assert minimizer.trap_state is not None
    assert 3 not in minimizer.dfa.state_ids
    assert len(dfa) == 4
    assert len(dfa.transitions) == 2


# --- Splitting queries ---

def test_split_of_three_states_on_distinguishing_symbol(equivalent_pair_dfa):
    minimizer = Minimizer(equivalent_pair_dfa)
    groups = minimizer.split_on_symbol([0, 1, 2], "b")

    assert len(groups) == 2
    assert all(groups)
    assert set(groups[0]) | set(groups[1]) == {0, 1, 2}
    assert set(groups[0]) & set(groups[1]) == set()
    assert {frozenset(g) for g in groups} == {frozenset({0}), frozenset({1, 2})}
    assert minimizer.split_on_symbol([0, 1, 2], "a") == [[0, 1, 2]]


def test_equivalent_states_stay_together(equivalent_pair_dfa):
    minimizer = Minimizer(equivalent_pair_dfa)
    minimizer.build_tree()
    assert leaf_sets(minimizer) == [[0], [1, 2]]
    assert len(minimizer.minimum_dfa()) == 2


def test_splittable_queries(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    group = minimizer.group_for_state(0)
    assert group.states == [0, 1]
    assert not minimizer.is_splittable_on_symbol(group, "a")
    assert minimizer.is_splittable_on_symbol(group, "b")
    assert minimizer.is_splittable(group)
    assert minimizer.symbol_to_split(group) == "b"
    assert [g.states for g in minimizer.target_groups(group, "b")] == [[0, 1], [2]]
    assert minimizer.split_on_symbol(group, "b") == [[0], [1]]
    assert minimizer.distinguishable_group() is group
    assert not minimizer.is_minimized()


# --- Proposed splits ---

def test_check_split_rejects_wrong_proposals(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    group = minimizer.group_for_state(0)

    with pytest.raises(InvalidPartitionError):
        minimizer.check_split(group, "a", [[0], [1]])
    with pytest.raises(InvalidPartitionError):
        minimizer.check_split(group, "b", [[0, 1], []])
    with pytest.raises(InvalidPartitionError):
        minimizer.check_split(group, "b", [[0], [0, 1]])
    with pytest.raises(InvalidPartitionError):
        minimizer.check_split(group, "b", [[0, 1]])
    assert group.is_leaf
    assert leaf_sets(minimizer) == [[0, 1], [2]]


def test_check_split_accepts_any_order(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    group = minimizer.group_for_state(0)
    children = minimizer.check_split(group, "b", [[1], [0]])
    assert [c.states for c in children] == [[0], [1]]
    assert group.symbol == "b"
    assert minimizer.is_minimized()

    with pytest.raises(UnsplittableGroupError):
        minimizer.check_split(group, "b", [[1], [0]])


def test_check_split_of_unsplittable_group(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    finals = minimizer.group_for_state(2)
    assert minimizer.check_split(finals, None, []) == []
    assert finals.is_leaf
    with pytest.raises(InvalidPartitionError):
        minimizer.check_split(finals, "a", [[2]])


def test_split_node_errors(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    with pytest.raises(UnsplittableGroupError):
        minimizer.split_node(minimizer.tree)
    with pytest.raises(UnsplittableGroupError):
        minimizer.split_node(minimizer.group_for_state(2))
    with pytest.raises(UnsplittableGroupError):
        minimizer.split_node(minimizer.group_for_state(0), "a")


# --- Minimum DFA ---

def test_minimum_dfa_requires_finished_tree(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    with pytest.raises(PreconditionError):
        minimizer.minimum_dfa()


def test_reminimizing_keeps_one_group_per_state(ends_with_ab_dfa):
    minimizer = Minimizer(ends_with_ab_dfa)
    minimizer.build_tree()
    assert sorted(leaf_sets(minimizer)) == [[0], [1], [2]]
    minimum = minimizer.minimum_dfa()
    assert len(minimum) == 3

    again = Minimizer(minimum)
    again.build_tree()
    assert sorted(leaf_sets(again)) == [[s] for s in minimum.state_ids]
    assert len(again.minimum_dfa()) == len(minimum)


def test_minimal_dfa_needs_no_split(make_fsa):
    dfa = make_fsa(2, [(0, "a", 0), (0, "b", 1), (1, "a", 0), (1, "b", 1)], finals=[1])
    minimizer = Minimizer(dfa)
    assert minimizer.is_minimized()
    minimizer.build_tree()
    assert leaf_sets(minimizer) == [[0], [1]]


def test_redundant_state_is_merged(make_fsa, sample_strings):
    dfa = make_fsa(
        3,
        [(0, "a", 1), (0, "b", 2), (1, "a", 1), (1, "b", 2), (2, "a", 0), (2, "b", 2)],
        finals=[2],
    )
    minimum = Minimizer(dfa)
    minimum.build_tree()
    result = minimum.minimum_dfa()

    assert len(result) == 2
    assert sorted(s.label for s in result.states) == ["0,1", "2"]
    assert result.is_dfa()
    for text in sample_strings:
        assert result.accepts(text) == dfa.accepts(text), text


def test_trap_group_is_dropped(make_fsa):
    dfa = make_fsa(2, [(0, "a", 1)], finals=[1])
    minimizer = Minimizer(dfa)
    assert minimizer.trap_state == 2
    minimizer.build_tree()
    result = minimizer.minimum_dfa()

    assert len(result) == 2
    assert result.accepts("a")
    assert not result.accepts("aa")
    assert not result.accepts("")


def test_repeated_passes_until_stable(make_fsa):
    # length divisible by 4, with two copies of every state
    transitions = [(i, "a", (i + 1) % 8) for i in range(8)]
    dfa = make_fsa(8, transitions, finals=[0, 4])
    minimizer = Minimizer(dfa)
    minimizer.build_tree()
    result = minimizer.minimum_dfa()
    assert len(result) == 4
    for n in range(12):
        assert result.accepts("a" * n) == (n % 4 == 0)


def test_minimize_converted_nfa(ends_with_ab_nfa, sample_strings):
    dfa = convert_to_dfa(ends_with_ab_nfa)
    minimizer = Minimizer(dfa)
    minimizer.build_tree()
    result = minimizer.minimum_dfa()
    assert len(result) == 3
    for text in sample_strings:
        assert result.accepts(text) == ends_with_ab_nfa.accepts(text), text
