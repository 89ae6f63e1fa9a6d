"""
Cross-section providers for two-body collisions.

Every function returns ProcessBranch objects with weights in mb.
"""

from __future__ import annotations
import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import FM2_MB, HBARC, WEIGHT_FLOOR
from .exceptions import KinematicsError
from .kinematics import pcm
from .particles import ParticleData, ParticleType
from .processbranch import ProcessBranch, ProcessType

logger = logging.getLogger(__name__)

# Default threshold (GeV) above which string excitation opens.
STRING_THRESHOLD = 2.2

NUCLEONS = (2212, 2112)
DELTAS = (2224, 2214, 2114, 1114)


def breit_wigner(s: float, mass: float, width: float) -> float:
    """Relativistic Breit-Wigner in s, equal to 1 at the pole."""
    return s * width * width / ((s - mass * mass) ** 2 + s * width * width)


def elastic_cross_section(particle_a: ParticleData, particle_b: ParticleData,
                          elast_par: float) -> ProcessBranch:
    """Constant elastic cross section ``elast_par`` (mb); the final state repeats the incoming species."""
    return ProcessBranch((particle_a.pdgcode, particle_b.pdgcode), elast_par, ProcessType.ELASTIC)


def resonance_cross_section(particle_a: ParticleData, particle_b: ParticleData,
                            srts: float) -> List[ProcessBranch]:
    """
    2 -> 1 resonance formation for every registered resonance that decays
    into the incoming pair:

        sigma = sym * (2J_R+1)/((2J_a+1)(2J_b+1)) * 4 pi / p_cm^2 * BW(s) * BR
    """
    type_a, type_b = particle_a.type, particle_b.type
    try:
        p_cm = pcm(srts, particle_a.effective_mass, particle_b.effective_mass)
    except KinematicsError:
        return []
    if p_cm < 1e-9:
        return []

    s = srts * srts
    pair = sorted((type_a.pdgcode, type_b.pdgcode))
    charge = type_a.charge + type_b.charge
    baryon = type_a.baryon_number + type_b.baryon_number
    symmetry_factor = 2.0 if type_a.pdgcode == type_b.pdgcode else 1.0

    branches = []
    for resonance in ParticleType.list_all():
        if resonance.is_stable:
            continue
        if resonance.charge != charge or resonance.baryon_number != baryon:
            continue
        br = sum(mode.branching_ratio for mode in resonance.decay_modes
                 if sorted(mode.daughters) == pair)
        if br <= 0.0 or srts <= resonance.minimum_mass():
            continue
        spin_factor = (resonance.spin + 1) / ((type_a.spin + 1) * (type_b.spin + 1))
        xsection = (symmetry_factor * spin_factor * 4.0 * math.pi / (p_cm * p_cm)
                    * breit_wigner(s, resonance.mass, resonance.width) * br
                    * HBARC * HBARC * FM2_MB)
        if xsection > WEIGHT_FLOOR:
            logger.debug(f"{type_a.name} {type_b.name} -> {resonance.name}: {xsection:.4f} mb")
            branches.append(ProcessBranch((resonance.pdgcode,), xsection, ProcessType.TWO_TO_ONE))
    return branches


def nucleon_delta_final_states(particle_a: ParticleData,
                               particle_b: ParticleData) -> List[Tuple[int, int]]:
    """(N, Δ) pairs with the charge of the incoming nucleon pair."""
    if particle_a.pdgcode not in NUCLEONS or particle_b.pdgcode not in NUCLEONS:
        return []
    charge = particle_a.type.charge + particle_b.type.charge
    return [
        (n, d) for n in NUCLEONS for d in DELTAS
        if ParticleType.find(n).charge + ParticleType.find(d).charge == charge
    ]


def two_to_two_cross_section(srts: float, final_states: Iterable[Sequence[int]],
                             plateau: float = 20.0, rise: float = 0.1) -> List[ProcessBranch]:
    """
    Generic 2 -> 2 production rising from threshold to ``plateau`` mb over a
    scale of ``rise`` GeV, shared equally among the open final states.
    """
    final_states = [tuple(fs) for fs in final_states]
    open_states = []
    for fs in final_states:
        threshold = sum(ParticleType.find(pdg).minimum_mass() for pdg in fs)
        if srts > threshold:
            open_states.append((fs, srts - threshold))
    if not open_states:
        return []
    branches = []
    for fs, excess in open_states:
        x = excess / rise
        xsection = plateau * x * x / (1.0 + x * x) / len(open_states)
        branches.append(ProcessBranch(fs, xsection, ProcessType.TWO_TO_TWO))
    return branches


def string_excitation_cross_section(srts: float, string_par: float,
                                    threshold: Optional[float] = None) -> ProcessBranch:
    """Constant ``string_par`` (mb) above threshold; continuum final state."""
    threshold = STRING_THRESHOLD if threshold is None else threshold
    weight = string_par if srts > threshold else 0.0
    return ProcessBranch((), weight, ProcessType.STRING)
