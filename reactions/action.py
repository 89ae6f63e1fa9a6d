"""
Actions: a set of incoming particles that may turn into outgoing ones.

An action collects candidate process branches, picks one of them with
probability proportional to its weight, samples the final state with the
sampler registered for the branch's process type and finally swaps the
incoming for the outgoing particles in the particle collection.

Lifecycle:
    PROPOSED -> VALIDATED | DISCARDED
    VALIDATED -> FINAL_STATE_GENERATED | FAILED
    FINAL_STATE_GENERATED -> PERFORMED | DISCARDED (stale or Pauli-blocked)
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np

from .conservation import QuantumNumbers
from .constants import WEIGHT_FLOOR
from .exceptions import (
    ActionStateError,
    ChannelSelectionError,
    ConservationViolation,
    KinematicsError,
)
from .finalstate import get_sampler
from .particles import ParticleData, Particles, ProcessCounter
from .pauli import PauliBlocker
from .processbranch import ProcessBranch, ProcessType

logger = logging.getLogger(__name__)


class ActionState(Enum):
    PROPOSED = "proposed"
    VALIDATED = "validated"
    DISCARDED = "discarded"
    FINAL_STATE_GENERATED = "final_state_generated"
    FAILED = "failed"
    PERFORMED = "performed"

    @property
    def is_terminal(self) -> bool:
        return self in (ActionState.DISCARDED, ActionState.FAILED, ActionState.PERFORMED)


class OutcomeStatus(Enum):
    OK = "ok"
    INFEASIBLE = "infeasible"


@dataclass(frozen=True)
class Outcome:
    """Result of ``generate_final_state``. Truthy only when a final state exists."""

    status: OutcomeStatus
    branch: Optional[ProcessBranch] = None
    reason: str = ""
    attempts: int = 0

    @classmethod
    def ok(cls, branch: ProcessBranch, attempts: int = 1) -> "Outcome":
        return cls(OutcomeStatus.OK, branch, "", attempts)

    @classmethod
    def infeasible(cls, reason: str, branch: Optional[ProcessBranch] = None,
                   attempts: int = 0) -> "Outcome":
        return cls(OutcomeStatus.INFEASIBLE, branch, reason, attempts)

    def __bool__(self) -> bool:
        return self.status is OutcomeStatus.OK


@dataclass(frozen=True)
class InteractionRecord:
    """Plain data describing one interaction, for output writers."""

    process_type: ProcessType
    id_process: Optional[int]
    time: float
    sqrt_s: float
    total_weight: float
    partial_weight: float
    incoming: Tuple[ParticleData, ...]
    outgoing: Tuple[ParticleData, ...]


# Pauli blocker: outgoing particle -> phase-space occupancy in [0, 1]
Blocker = Callable[[ParticleData], float]


class Action(ABC):
    """
    Base class for processes turning incoming into outgoing particles.

    Subclasses supply ``sqrt_s``, the interaction point and the set of
    process types they accept; everything else is shared.
    """

    weight_floor: float = WEIGHT_FLOOR
    allowed_process_types: FrozenSet[ProcessType] = frozenset()

    def __init__(self, incoming: Iterable[ParticleData], time_of_execution: float, rng):
        self.incoming: Tuple[ParticleData, ...] = tuple(p.copy() for p in incoming)
        self.time_of_execution = float(time_of_execution)
        self.rng = rng
        self.subprocesses: List[ProcessBranch] = []
        self.total_weight = 0.0
        self.process_type = ProcessType.NONE
        self.state = ActionState.PROPOSED
        self._outgoing: List[ParticleData] = []
        self._chosen: Optional[ProcessBranch] = None
        self._id_process: Optional[int] = None

    # -------------------- Ordering --------------------

    def __lt__(self, other: "Action") -> bool:
        return self.time_of_execution < other.time_of_execution

    # -------------------- Branches --------------------

    def add_process(self, branch: ProcessBranch):
        """Add a subprocess unless its weight is at or below the floor."""
        if self.state not in (ActionState.PROPOSED, ActionState.VALIDATED):
            raise ActionStateError(f"Cannot add processes to {self.describe()} in state {self.state.value}")
        if branch.process_type not in self.allowed_process_types:
            raise ValueError(f"{type(self).__name__} does not accept {branch.process_type.name} branches")
        self._check_branch(branch)
        if branch.weight <= self.weight_floor or not branch.is_selectable:
            logger.debug(f"Dropping {branch} from {self.describe()}")
            return
        self.subprocesses.append(branch)
        self.total_weight += branch.weight

    def add_processes(self, branches: Iterable[ProcessBranch]):
        for branch in branches:
            self.add_process(branch)

    def _check_branch(self, branch: ProcessBranch):
        """Hook for subclass-specific branch validation."""

    def raw_weight_value(self) -> float:
        """Cross section (scattering) or width (decay) summed over all subprocesses."""
        return self.total_weight

    def partial_weight(self) -> float:
        """Weight of the selected subprocess (0 before selection)."""
        return self._chosen.weight if self._chosen is not None else 0.0

    def get_type(self) -> ProcessType:
        return self.process_type

    # -------------------- Admission checks --------------------

    def _incoming_present(self, world) -> bool:
        if isinstance(world, Particles):
            return all(world.is_valid(p) for p in self.incoming)
        current = {p.id: p for p in world}
        return all(
            p.id in current and current[p.id].history.id_process == p.history.id_process
            for p in self.incoming
        )

    def is_valid(self, world) -> bool:
        """
        Check whether the action still applies.

        Another action may have removed or changed one of the incoming
        particles in the meantime. ``world`` is a Particles collection or any
        iterable of ParticleData.
        """
        valid = self._incoming_present(world)
        if not valid:
            if not self.state.is_terminal:
                logger.debug(f"{self.describe()} is stale, discarding")
                self.state = ActionState.DISCARDED
        elif self.state is ActionState.PROPOSED:
            self.state = ActionState.VALIDATED
        return valid

    def is_pauli_blocked(self, world, blocker: Blocker) -> bool:
        """
        Blocking probability 1 - prod(1 - f_i) over outgoing fermions, with f_i
        the occupancy at the place the fermion would land.

        A PauliBlocker must be built on ``world``; the incoming particles are
        left out of its occupancy sum since ``perform`` removes them.
        """
        if self.state is not ActionState.FINAL_STATE_GENERATED:
            raise ActionStateError(
                f"Pauli blocking of {self.describe()} needs a final state (state {self.state.value})"
            )
        if isinstance(blocker, PauliBlocker):
            if blocker.particles is not world:
                raise ValueError(f"{blocker!r} is bound to another particle collection")
            blocker = blocker.without(self.incoming)
        fermions = [p for p in self._outgoing if p.type.is_fermion]
        if not fermions:
            return False
        unblocked = 1.0
        for p in fermions:
            f = min(max(float(blocker(p)), 0.0), 1.0)
            unblocked *= 1.0 - f
        blocked = self.rng.canonical() < 1.0 - unblocked
        if blocked:
            logger.debug(f"{self.describe()} Pauli-blocked (P={1.0 - unblocked:.4f})")
            self.state = ActionState.DISCARDED
        return blocked

    # -------------------- Channel selection --------------------

    def choose_channel(self) -> ProcessBranch:
        """
        Decide for a particular subprocess via Monte-Carlo: draw r in
        [0, total_weight) and walk the branches in insertion order.
        """
        random_weight = self.rng.uniform(0.0, self.total_weight)
        weight_sum = 0.0
        for proc in self.subprocesses:
            weight_sum += proc.weight
            if random_weight <= weight_sum:
                logger.debug(f"{self.describe()} chose {proc}")
                return proc
        logger.error(
            f"Problem in choose_channel for {self.describe()}: "
            f"{len(self.subprocesses)} branches, r={random_weight!r}, "
            f"sum={weight_sum!r}, total_weight={self.total_weight!r}"
        )
        raise ChannelSelectionError(
            f"No channel selected for {self.describe()} (r={random_weight}, "
            f"total_weight={self.total_weight}, walked sum={weight_sum})"
        )

    def generate_final_state(self, max_attempts: int = 1) -> Outcome:
        """
        Select a subprocess and sample its final state.

        An infeasible branch is re-drawn up to ``max_attempts`` times before
        the action fails. Fatal faults (selection walk, missing
        hadronization backend) propagate as exceptions.
        """
        if self.state not in (ActionState.PROPOSED, ActionState.VALIDATED):
            raise ActionStateError(
                f"Cannot generate a final state for {self.describe()} in state {self.state.value}"
            )
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if not self.subprocesses or self.total_weight <= 0.0:
            self.state = ActionState.FAILED
            logger.debug(f"{self.describe()} has no channels")
            return Outcome.infeasible(f"No channels available for {self.describe()}")

        reason = ""
        branch = None
        for attempt in range(1, max_attempts + 1):
            branch = self.choose_channel()
            sampler = get_sampler(branch.process_type)
            try:
                outgoing = sampler(self, branch)
            except KinematicsError as e:
                reason = str(e)
                logger.debug(f"{self.describe()}: attempt {attempt} infeasible: {reason}")
                continue
            self._set_final_state(branch, outgoing)
            return Outcome.ok(branch, attempt)

        self.state = ActionState.FAILED
        return Outcome.infeasible(reason, branch, max_attempts)

    def _set_final_state(self, branch: ProcessBranch, outgoing: List[ParticleData]):
        position = self.interaction_point()
        collisions = max(p.history.collisions for p in self.incoming) + 1
        mothers = [p.pdgcode for p in self.incoming] + [0]
        for p in outgoing:
            p.position = position.copy()
            p.formation_time = max(p.formation_time, self.time_of_execution)
            p.history.collisions = collisions
            p.history.process_type = branch.process_type
            p.history.time_last_collision = self.time_of_execution
            p.history.p1, p.history.p2 = mothers[0], mothers[1]
        self._chosen = branch
        self.process_type = branch.process_type
        self._outgoing = outgoing
        self.state = ActionState.FINAL_STATE_GENERATED

    # -------------------- Perform --------------------

    def perform(self, particles: Particles, id_process: ProcessCounter) -> List[ParticleData]:
        """
        Replace the incoming by the outgoing particles in ``particles``.

        Every outgoing particle gets a fresh id and the current process id;
        the counter is advanced once. The action cannot be performed again.
        """
        if self.state is ActionState.PERFORMED:
            raise ActionStateError(f"{self.describe()} was already performed")
        if self.state is not ActionState.FINAL_STATE_GENERATED:
            raise ActionStateError(
                f"{self.describe()} cannot be performed in state {self.state.value}"
            )
        if not self._incoming_present(particles):
            raise ActionStateError(f"{self.describe()} is stale; call is_valid before perform")

        current = id_process.value
        for p in self._outgoing:
            p.history.id_process = current
        self._outgoing = [p.copy() for p in particles.replace(list(self.incoming), self._outgoing)]
        id_process.advance()
        self._id_process = current
        self.state = ActionState.PERFORMED

        logger.info(
            f"Process {current}: {self.process_type.name} "
            f"{' '.join(p.type.name for p in self.incoming)} → "
            f"{' '.join(p.type.name for p in self._outgoing)}"
        )
        self.check_conservation(current)
        return list(self._outgoing)

    # -------------------- Diagnostics --------------------

    def check_conservation(self, id_process: int):
        """Raise ConservationViolation if momentum, charge or baryon number changed."""
        before = QuantumNumbers.of(self.incoming)
        after = QuantumNumbers.of(self._outgoing)
        deviations = before.report_deviations(after)
        if not deviations:
            return
        dump = {
            "id_process": id_process,
            "action": self.describe(),
            "process_type": self.process_type.name,
            "sqrt_s": self.sqrt_s(),
            "total_weight": self.total_weight,
            "partial_weight": self.partial_weight(),
            "incoming": [repr(p) for p in self.incoming],
            "outgoing": [repr(p) for p in self._outgoing],
            "before": before.as_dict(),
            "after": after.as_dict(),
        }
        message = (f"Conservation law violated in process {id_process} ({self.describe()}): "
                   + "; ".join(deviations))
        logger.error(message)
        raise ConservationViolation(message, dump)

    def incoming_particles(self) -> List[ParticleData]:
        return [p.copy() for p in self.incoming]

    def outgoing_particles(self) -> List[ParticleData]:
        return [p.copy() for p in self._outgoing]

    @property
    def id_process(self) -> Optional[int]:
        return self._id_process

    @property
    def chosen_branch(self) -> Optional[ProcessBranch]:
        return self._chosen

    def interaction_record(self) -> InteractionRecord:
        return InteractionRecord(
            process_type=self.process_type,
            id_process=self._id_process,
            time=self.time_of_execution,
            sqrt_s=self.sqrt_s(),
            total_weight=self.total_weight,
            partial_weight=self.partial_weight(),
            incoming=tuple(p.copy() for p in self.incoming),
            outgoing=tuple(p.copy() for p in self._outgoing),
        )

    def describe(self) -> str:
        species = " ".join(p.type.name for p in self.incoming)
        return (f"{type(self).__name__}[{species}, t={self.time_of_execution:.4f}, "
                f"sqrt_s={self.sqrt_s():.4f} GeV, w={self.total_weight:.6g}]")

    def __repr__(self) -> str:
        return f"{self.describe()} ({self.state.value})"

    # -------------------- Kind-specific --------------------

    @abstractmethod
    def sqrt_s(self) -> float:
        """Total energy in the centre-of-momentum frame."""

    @abstractmethod
    def interaction_point(self) -> np.ndarray:
        """Four-position (t, x, y, z) at which the outgoing particles are created."""
