"""
Turing Machine Simulator
========================
Runs (possibly hierarchical) multi-tape Turing machines.

Each step descends into building blocks, picks the first matching transition
(negated reads last), climbs back out to the owning state when nothing
matches, and either applies the transition to every tape at once or marks
the configuration halted.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .config import Profile, get_profile
from .exceptions import MissingInitialStateError, SimulationLimitError, StructuralError
from .models import TMTransition
from .schemas import WILDCARD
from .turing import Tape, TuringMachine

log = structlog.get_logger()


class TMConfiguration(BaseModel):
    """
    Snapshot of a run: the machine level and state the run is in, the tapes,
    the variable bindings made so far and the configuration it came from.
    Everything but `halted` is frozen.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    machine: TuringMachine = Field(..., frozen=True)
    state: int = Field(..., frozen=True)
    tapes: Tuple[Tape, ...] = Field(..., frozen=True)
    bindings: Dict[str, str] = Field(default_factory=dict, frozen=True)
    parent: Optional["TMConfiguration"] = Field(default=None, frozen=True)
    halted: bool = False

    def trace(self) -> List[int]:
        """States visited from the initial configuration up to this one."""
        path: List[int] = []
        config: Optional[TMConfiguration] = self
        while config is not None:
            path.append(config.state)
            config = config.parent
        return list(reversed(path))

    def contents(self) -> List[str]:
        return [tape.contents() for tape in self.tapes]

    def __str__(self) -> str:
        tapes = " | ".join(str(t) for t in self.tapes)
        flag = " (halted)" if self.halted else ""
        return f"q{self.state}: {tapes}{flag}"


TMConfiguration.model_rebuild()


# --- acceptance filters ---

class AcceptanceFilter:
    """Decides one aspect of acceptance."""

    def accepts(self, config: TMConfiguration) -> bool:
        raise NotImplementedError


class AcceptByFinalStateFilter(AcceptanceFilter):
    """Final state of the outermost machine; finals inside blocks do not count."""

    def accepts(self, config: TMConfiguration) -> bool:
        return config.machine.parent is None and config.machine.is_final_state(config.state)


class AcceptByHaltingFilter(AcceptanceFilter):
    def accepts(self, config: TMConfiguration) -> bool:
        return config.halted


def filters_for(profile: Profile) -> List[AcceptanceFilter]:
    filters: List[AcceptanceFilter] = []
    if profile.accept_by_final_state:
        filters.append(AcceptByFinalStateFilter())
    if profile.accept_by_halting:
        filters.append(AcceptByHaltingFilter())
    return filters


class TMSimulator:
    """
    Steps a frontier of configurations one round at a time.

    Successors produced in a round only become visible in the next one.
    Halted configurations that do not accept are dropped from the frontier.
    """

    def __init__(self, machine: TuringMachine, profile: Optional[Profile] = None):
        self.machine = machine
        self.profile = profile or get_profile()
        self.filters = filters_for(self.profile)
        self.configurations: List[TMConfiguration] = []
        self.rounds = 0

    # --- configurations ---

    def initial_configurations(self, text: Union[str, Sequence[str]]) -> List[TMConfiguration]:
        """
        `text` is copied to every tape, or given one string per tape.
        """
        initial = self.machine.initial_state
        if initial is None:
            log.error("simulation_without_initial_state")
            raise MissingInitialStateError("The machine has no initial state", self.machine)
        texts = [text] * self.machine.tapes if isinstance(text, str) else list(text)
        if len(texts) != self.machine.tapes:
            raise StructuralError(
                f"Got {len(texts)} inputs for a machine with {self.machine.tapes} tapes"
            )
        tapes = tuple(Tape.from_input(t) for t in texts)
        return [TMConfiguration(machine=self.machine, state=initial, tapes=tapes)]

    def _descend(self, machine: TuringMachine, state: int) -> Tuple[TuringMachine, int]:
        while True:
            inner = machine.block_for(state)
            if inner is None:
                return machine, state
            if inner.initial_state is None:
                log.error("block_without_initial_state", state=state)
                raise MissingInitialStateError(
                    f"The building block at state {state} has no initial state", inner
                )
            machine, state = inner, inner.initial_state

    def _match(
        self, transition: TMTransition, symbols: List[str], bindings: Dict[str, str]
    ) -> Optional[Dict[str, str]]:
        """Bindings after taking `transition`, or None when it does not match."""
        result = dict(bindings)
        for tape, symbol in enumerate(symbols):
            spec = transition.read_spec(tape)
            if not spec.matches(symbol):
                return None
            if spec.variable is not None:
                result[spec.variable] = symbol
        return result

    def _find_transition(
        self, machine: TuringMachine, state: int, config: TMConfiguration
    ) -> Tuple[Optional[TMTransition], Dict[str, str]]:
        symbols = [tape.read() for tape in config.tapes]
        # sorted() is stable, so only negated reads are moved
        outgoing = sorted(machine.transitions_from(state), key=lambda t: t.is_negated)
        for transition in outgoing:
            bindings = self._match(transition, symbols, config.bindings)
            if bindings is not None:
                return transition, bindings
        return None, config.bindings

    def _apply(
        self, transition: TMTransition, tapes: Tuple[Tape, ...], bindings: Dict[str, str]
    ) -> Tuple[Tape, ...]:
        result = []
        for tape, write, move in zip(tapes, transition.writes, transition.moves):
            if write != WILDCARD:
                tape = tape.write(bindings.get(write, write))
            result.append(tape.move(move))
        return tuple(result)

    def step_configuration(self, config: TMConfiguration) -> List[TMConfiguration]:
        """
        One step of one configuration. Returns the single successor, the same
        configuration marked halted when nothing matches, or nothing when it
        had already halted.
        """
        if config.halted:
            return []

        machine, state = self._descend(config.machine, config.state)
        transition, bindings = self._find_transition(machine, state, config)
        while transition is None and machine.parent is not None:
            machine, state = machine.parent, machine.parent_state
            transition, bindings = self._find_transition(machine, state, config)

        if transition is None:
            config.halted = True
            log.debug("configuration_halted", state=config.state, tapes=config.contents())
            return [config]

        return [
            TMConfiguration(
                machine=machine,
                state=transition.target,
                tapes=self._apply(transition, config.tapes, bindings),
                bindings=bindings,
                parent=config,
            )
        ]

    def step_block(self, config: TMConfiguration) -> List[TMConfiguration]:
        """Step until the run is back in the outermost machine or halts."""
        current = self.step_configuration(config)
        steps = 1
        while current and not current[0].halted and current[0].machine is not self.machine:
            if steps >= self.profile.max_rounds:
                raise SimulationLimitError(steps)
            current = self.step_configuration(current[0])
            steps += 1
        return current

    # --- acceptance ---

    def is_accept(self, config: TMConfiguration) -> bool:
        return all(f.accepts(config) for f in self.filters)

    def is_accepted(self) -> bool:
        return any(self.is_accept(c) for c in self.configurations)

    # --- rounds ---

    def step(self) -> List[TMConfiguration]:
        next_round: List[TMConfiguration] = []
        for config in self.configurations:
            for successor in self.step_configuration(config):
                if successor.halted and not self.is_accept(successor):
                    continue
                next_round.append(successor)
        self.configurations = next_round
        self.rounds += 1
        return next_round

    def simulate_input(self, text: Union[str, Sequence[str]]) -> bool:
        """
        Run until some configuration accepts (True) or none is left (False).

        Raises:
            SimulationLimitError: after `profile.max_rounds` rounds
        """
        self.configurations = self.initial_configurations(text)
        self.rounds = 0
        while self.configurations:
            if self.is_accepted():
                log.info("input_accepted", rounds=self.rounds)
                return True
            if self.rounds >= self.profile.max_rounds:
                log.warning("simulation_limit_reached", rounds=self.rounds)
                raise SimulationLimitError(self.rounds)
            self.step()
        log.info("input_rejected", rounds=self.rounds)
        return False
