"""
ScatterAction: two incoming particles producing one or more outgoing ones.
"""

from __future__ import annotations
from typing import Iterable, List, Optional

import numpy as np

from .action import Action
from .crosssections import (
    elastic_cross_section,
    resonance_cross_section,
    string_excitation_cross_section,
)
from .kinematics import lorentz_boost_array
from .particles import ParticleData
from .processbranch import ProcessBranch, ProcessType


class ScatterAction(Action):
    """
    Two-body collision. Subprocess weights are cross sections in mb.

    ``hadronizer`` is only used if a string-excitation branch is chosen.
    """

    allowed_process_types = frozenset({
        ProcessType.ELASTIC,
        ProcessType.TWO_TO_ONE,
        ProcessType.TWO_TO_TWO,
        ProcessType.STRING,
    })

    def __init__(self, in_part1: ParticleData, in_part2: ParticleData,
                 time_of_execution: float, rng, hadronizer=None):
        super().__init__([in_part1, in_part2], time_of_execution, rng)
        self.hadronizer = hadronizer

    def add_collision(self, branch: ProcessBranch):
        self.add_process(branch)

    def add_collisions(self, branches: Iterable[ProcessBranch]):
        self.add_processes(branches)

    # -------------------- Cross sections --------------------

    def elastic_cross_section(self, elast_par: float) -> ProcessBranch:
        return elastic_cross_section(self.incoming[0], self.incoming[1], elast_par)

    def resonance_cross_section(self) -> List[ProcessBranch]:
        return resonance_cross_section(self.incoming[0], self.incoming[1], self.sqrt_s())

    def string_excitation_cross_section(self, string_par: float,
                                        threshold: Optional[float] = None) -> ProcessBranch:
        return string_excitation_cross_section(self.sqrt_s(), string_par, threshold)

    # -------------------- Kinematics --------------------

    def sqrt_s(self) -> float:
        return (self.incoming[0].momentum + self.incoming[1].momentum).mass

    def beta_cm(self) -> np.ndarray:
        """Velocity of the centre-of-momentum frame in the lab."""
        return (self.incoming[0].momentum + self.incoming[1].momentum).beta()

    def is_elastic(self) -> bool:
        return self.process_type is ProcessType.ELASTIC

    def particle_distance(self) -> float:
        """
        Squared transverse distance of the pair in the centre-of-momentum frame
        (UrQMD criterion): d^2 = dx^2 - (dx . dp)^2 / dp^2.
        """
        beta = -self.beta_cm()
        a, b = self.incoming
        xa = lorentz_boost_array(a.position, beta)[1:]
        xb = lorentz_boost_array(b.position, beta)[1:]
        pa = a.momentum.boost(beta).p
        pb = b.momentum.boost(beta).p
        pos_diff = xa - xb
        mom_diff = pa - pb
        mom_diff_sqr = float(np.dot(mom_diff, mom_diff))
        # zero momentum difference: fall back to the plain distance
        if mom_diff_sqr < 1e-6:
            return float(np.dot(pos_diff, pos_diff))
        proj = float(np.dot(pos_diff, mom_diff))
        return float(np.dot(pos_diff, pos_diff)) - proj * proj / mom_diff_sqr

    def interaction_point(self) -> np.ndarray:
        position = 0.5 * (np.asarray(self.incoming[0].position, dtype=float)
                          + np.asarray(self.incoming[1].position, dtype=float))
        position[0] = self.time_of_execution
        return position
