"""
DecayAction: one particle decaying into two or three daughters.
"""

from __future__ import annotations
from typing import Iterable

import numpy as np

from .action import Action
from .decaymodes import decay_branches
from .particles import ParticleData
from .processbranch import ProcessBranch, ProcessType


class DecayAction(Action):
    """
    Decay of a single particle. The weights of the subprocesses are partial
    widths (GeV), so ``total_width`` is the width at the particle's mass.
    """

    allowed_process_types = frozenset({ProcessType.DECAY})

    def __init__(self, particle: ParticleData, time_of_execution: float, rng):
        super().__init__([particle], time_of_execution, rng)

    @classmethod
    def from_particle(cls, particle: ParticleData, time_of_execution: float, rng) -> "DecayAction":
        """DecayAction with every decay mode open at the particle's mass already added."""
        action = cls(particle, time_of_execution, rng)
        action.add_decays(decay_branches(particle.type, particle.effective_mass))
        return action

    def add_decays(self, branches: Iterable[ProcessBranch]):
        self.add_processes(branches)

    def total_width(self) -> float:
        return self.total_weight

    def _check_branch(self, branch: ProcessBranch):
        if branch.particle_number() not in (2, 3):
            raise ValueError(
                f"Decays into {branch.particle_number()} particles are not supported: {branch}"
            )

    def sqrt_s(self) -> float:
        return self.incoming[0].effective_mass

    def interaction_point(self) -> np.ndarray:
        position = np.array(self.incoming[0].position, dtype=float)
        position[0] = self.time_of_execution
        return position
