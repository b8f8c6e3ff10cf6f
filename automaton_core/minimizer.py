"""
DFA minimization by partition refinement.

The refinement is kept as a tree: the root holds every state, its children
the non-final and final groups, and every split adds children below a leaf.
The current partition is the list of leaves. Splits can be made
automatically or proposed by a caller and checked.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Union

import structlog

from .exceptions import (
    InvalidPartitionError,
    MissingInitialStateError,
    NotDeterministicError,
    PreconditionError,
    UnsplittableGroupError,
)
from .fsa import FiniteStateAutomaton, add_trap_state, remove_multiple_character_labels
from .models import FSATransition
from .reachability import remove_unreachable_states

log = structlog.get_logger()


class PartitionNode:
    """A group of states in the refinement tree."""

    def __init__(self, states: Iterable[int], parent: Optional["PartitionNode"] = None):
        self.states: List[int] = sorted(states)
        self.parent = parent
        self.symbol: Optional[str] = None
        self.children: List["PartitionNode"] = []

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def add_child(self, states: Iterable[int]) -> "PartitionNode":
        child = PartitionNode(states, parent=self)
        self.children.append(child)
        return child

    def leaves(self) -> List["PartitionNode"]:
        """Leaves below this node, left to right."""
        if self.is_leaf:
            return [self]
        result: List[PartitionNode] = []
        for child in self.children:
            result.extend(child.leaves())
        return result

    def __contains__(self, state_id: object) -> bool:
        return state_id in self.states

    def __len__(self) -> int:
        return len(self.states)

    def __repr__(self) -> str:
        symbol = f" on {self.symbol!r}" if self.symbol is not None else ""
        return f"<PartitionNode {self.states}{symbol} children={len(self.children)}>"


Group = Union[PartitionNode, Sequence[int]]


def _ids(group: Group) -> List[int]:
    return group.states if isinstance(group, PartitionNode) else sorted(group)


class Minimizer:
    """
    Builds the minimum DFA for a deterministic automaton.

    The algorithms run on a prepared copy (`self.dfa`): unreachable states
    removed, multi-character labels split, and a trap state added when some
    state lacks a transition on some symbol. The caller's automaton is never
    changed.
    """

    def __init__(self, dfa: FiniteStateAutomaton):
        if dfa.initial_state is None:
            log.warning("minimize_without_initial_state")
            raise MissingInitialStateError("Cannot minimize an automaton without an initial state", dfa)
        if dfa.is_nfa():
            raise NotDeterministicError("Minimization requires a deterministic automaton")

        self.original = dfa
        self.dfa: FiniteStateAutomaton = dfa.copy()
        remove_unreachable_states(self.dfa)
        remove_multiple_character_labels(self.dfa)
        self.trap_state: Optional[int] = add_trap_state(self.dfa)
        self.alphabet: List[str] = self.dfa.alphabet()
        self._delta: Dict[tuple, int] = {
            (t.source, t.label): t.target for t in self.dfa.transitions
        }

        self.tree = PartitionNode(self.dfa.state_ids)
        nonfinal = [s for s in self.dfa.state_ids if not self.dfa.is_final_state(s)]
        final = self.dfa.final_states
        for group in (nonfinal, final):
            if group:
                self.tree.add_child(group)

    # --- tree queries ---

    def leaves(self) -> List[PartitionNode]:
        return self.tree.leaves()

    def group_for_state(self, state_id: int) -> Optional[PartitionNode]:
        for leaf in self.leaves():
            if state_id in leaf:
                return leaf
        return None

    def target_groups(self, group: Group, symbol: str) -> List[PartitionNode]:
        """Distinct leaves the group's states move into on `symbol`, in leaf order."""
        targets = {self._delta.get((s, symbol)) for s in _ids(group)}
        return [leaf for leaf in self.leaves() if any(t in leaf for t in targets)]

    def is_splittable_on_symbol(self, group: Group, symbol: str) -> bool:
        return len(_ids(group)) > 1 and len(self.target_groups(group, symbol)) > 1

    def is_splittable(self, group: Group) -> bool:
        return any(self.is_splittable_on_symbol(group, symbol) for symbol in self.alphabet)

    def split_on_symbol(self, group: Group, symbol: str) -> List[List[int]]:
        """
        Partition the group by the leaf each state reaches on `symbol`.
        Groups come out in the order of their target leaves.
        """
        states = _ids(group)
        result: List[List[int]] = []
        for leaf in self.leaves():
            members = [s for s in states if self._delta.get((s, symbol)) in leaf]
            if members:
                result.append(members)
        return result

    def symbol_to_split(self, group: Group) -> Optional[str]:
        """First symbol of the alphabet that splits the group, if any."""
        for symbol in self.alphabet:
            if self.is_splittable_on_symbol(group, symbol):
                return symbol
        return None

    def distinguishable_group(self) -> Optional[PartitionNode]:
        """First leaf that can still be split."""
        for leaf in self.leaves():
            if self.is_splittable(leaf):
                return leaf
        return None

    def is_minimized(self) -> bool:
        return self.distinguishable_group() is None

    # --- splitting ---

    def _require_unsplit(self, node: PartitionNode) -> None:
        if node.is_root:
            raise UnsplittableGroupError("The root group is split by final state status only")
        if not node.is_leaf:
            raise UnsplittableGroupError(f"Group {node.states} has already been split")

    def _attach(self, node: PartitionNode, symbol: str, groups: List[List[int]]) -> List[PartitionNode]:
        node.symbol = symbol
        children = [node.add_child(g) for g in groups]
        log.debug("group_split", group=node.states, symbol=symbol, children=groups)
        return children

    def check_split(
        self,
        node: PartitionNode,
        symbol: Optional[str],
        groups: Sequence[Iterable[int]],
    ) -> List[PartitionNode]:
        """
        Validate a proposed split of `node` and apply it when correct.

        A group that cannot be split must be proposed with no symbol and no
        groups; the tree is then left as it is.

        Raises:
            UnsplittableGroupError: the node is the root or was already split
            InvalidPartitionError: the proposal is wrong; the tree is unchanged
        """
        self._require_unsplit(node)
        groups = [sorted(g) for g in groups]

        if not self.is_splittable(node):
            if symbol is None and not groups:
                return []
            log.info("invalid_partition", group=node.states, reason="unsplittable")
            raise InvalidPartitionError(f"Group {node.states} cannot be split")

        if not groups or any(not g for g in groups):
            log.info("invalid_partition", group=node.states, reason="empty_group")
            raise InvalidPartitionError("Every group must contain at least one state")

        proposed = [s for g in groups for s in g]
        if sorted(proposed) != node.states:
            log.info("invalid_partition", group=node.states, reason="not_a_partition")
            raise InvalidPartitionError(
                f"The groups must contain each state of {node.states} exactly once"
            )

        if symbol is None or not self.is_splittable_on_symbol(node, symbol):
            log.info("invalid_partition", group=node.states, reason="wrong_symbol", symbol=symbol)
            raise InvalidPartitionError(f"Group {node.states} cannot be split on {symbol!r}")

        correct = self.split_on_symbol(node, symbol)
        if {frozenset(g) for g in groups} != {frozenset(g) for g in correct}:
            log.info("invalid_partition", group=node.states, reason="wrong_groups", symbol=symbol)
            raise InvalidPartitionError(f"That is not the split of {node.states} on {symbol!r}")

        return self._attach(node, symbol, correct)

    def split_node(self, node: PartitionNode, symbol: Optional[str] = None) -> List[PartitionNode]:
        """Split a leaf automatically, on `symbol` or on the first symbol that works."""
        self._require_unsplit(node)
        if symbol is None:
            symbol = self.symbol_to_split(node)
        if symbol is None or not self.is_splittable_on_symbol(node, symbol):
            raise UnsplittableGroupError(f"Group {node.states} cannot be split")
        return self._attach(node, symbol, self.split_on_symbol(node, symbol))

    def _split_depth_first(self, node: PartitionNode) -> None:
        if node.is_leaf:
            if not self.is_splittable(node):
                return
            self.split_node(node)
        for child in list(node.children):
            self._split_depth_first(child)

    def complete_subtree(self, node: PartitionNode) -> None:
        """
        Split everything below `node` until none of its leaves can be split.
        Each child is resolved completely before its next sibling; a later
        split can make an earlier leaf splittable again, so passes repeat.
        """
        while True:
            pending = next((leaf for leaf in node.leaves() if self.is_splittable(leaf)), None)
            if pending is None:
                return
            self._split_depth_first(pending)

    def build_tree(self) -> PartitionNode:
        self.complete_subtree(self.tree)
        log.info("minimization_tree_complete", groups=[leaf.states for leaf in self.leaves()])
        return self.tree

    # --- result ---

    def minimum_dfa(self) -> FiniteStateAutomaton:
        """
        One state per leaf, labelled with its member ids. Transitions come from
        each group's first member. The group holding the added trap state is
        left out unless it contains the initial state.
        """
        if not self.is_minimized():
            raise PreconditionError("The partition tree is not finished")

        initial = self.dfa.initial_state
        groups = [
            leaf
            for leaf in self.leaves()
            if self.trap_state is None or self.trap_state not in leaf or initial in leaf
        ]

        result = FiniteStateAutomaton()
        group_state: Dict[int, int] = {}
        for leaf in groups:
            first = self.dfa.get_state(leaf.states[0])
            state = result.create_state(first.point)
            state.label = ",".join(str(s) for s in leaf.states)
            for member in leaf.states:
                group_state[member] = state.id
            if initial in leaf:
                result.set_initial_state(state.id)
            if self.dfa.is_final_state(leaf.states[0]):
                result.add_final_state(state.id)

        for leaf in groups:
            source = group_state[leaf.states[0]]
            for t in self.dfa.transitions_from(leaf.states[0]):
                target = group_state.get(t.target)
                if target is not None:
                    result.add_transition(FSATransition(source=source, target=target, label=t.label))

        log.info("minimum_dfa_built", states=len(result), transitions=len(result.transitions))
        return result
