"""
Final-state samplers: one function per process type.

Each sampler takes the action and the chosen branch and returns the
outgoing particles with lab-frame momenta. Positions, history and process
ids are filled in by the action afterwards.

Samplers raise KinematicsError when the branch cannot be realised at the
available energy; the action turns that into an infeasible outcome.

Key format of the table: ProcessType -> sampler
"""

from __future__ import annotations
import logging
from typing import Callable, Dict, List, Sequence, Tuple

from .constants import STRING_FORMATION_TIME
from .exceptions import HadronizationUnavailable, KinematicsError
from .kinematics import (
    FourVector,
    generate_three_body_decay,
    generate_two_body_decay,
    isotropic_direction,
    pcm,
)
from .particles import ParticleData, ParticleType
from .processbranch import ProcessBranch, ProcessType

logger = logging.getLogger(__name__)

Sampler = Callable[..., List[ParticleData]]

_REGISTRY: Dict[ProcessType, Sampler] = {}


def register(process_type: ProcessType):
    """Decorator registering ``fn`` as the sampler of ``process_type``."""
    def wrap(fn: Sampler) -> Sampler:
        _REGISTRY[process_type] = fn
        return fn
    return wrap


def get_sampler(process_type: ProcessType) -> Sampler:
    try:
        return _REGISTRY[process_type]
    except KeyError:
        raise LookupError(f"No final-state sampler registered for {process_type.name}") from None


def list_registered_samplers() -> Dict[str, str]:
    return {k.name: v.__name__ for k, v in _REGISTRY.items()}


# -----------------------------
# Mass sampling
# -----------------------------
def sample_two_masses(srts: float, types: Sequence[ParticleType], rng) -> Tuple[float, float]:
    """
    Masses of a two-particle final state at total energy ``srts``.

    Stable species get their pole mass, resonances a spectral-function mass
    within the phase space left by their partner.
    """
    t1, t2 = types
    min1, min2 = t1.minimum_mass(), t2.minimum_mass()
    both_stable = t1.is_stable and t2.is_stable
    if srts + 1e-12 < min1 + min2 or (srts <= min1 + min2 and not both_stable):
        raise KinematicsError(
            f"Not enough energy for {t1.name} {t2.name}: sqrt(s)={srts:.6f} GeV, "
            f"threshold={min1 + min2:.6f} GeV"
        )
    m1 = t1.sample_mass(srts - min2, rng) if not t1.is_stable else t1.mass
    m2 = t2.sample_mass(srts - m1, rng) if not t2.is_stable else t2.mass
    if m1 + m2 > srts:
        raise KinematicsError(
            f"Sampled masses {m1:.6f} + {m2:.6f} exceed sqrt(s)={srts:.6f} GeV"
        )
    return m1, m2


def _make_outgoing(final_state: Sequence[int], momenta: Sequence[FourVector], beta) -> List[ParticleData]:
    out = []
    for pdg, p4 in zip(final_state, momenta):
        out.append(ParticleData(type=ParticleType.find(pdg), momentum=p4.boost(beta)))
    return out


# -----------------------------
# Decay
# -----------------------------
@register(ProcessType.DECAY)
def sample_decay(action, branch: ProcessBranch) -> List[ParticleData]:
    """1 -> 2 or 1 -> 3 in the rest frame of the parent, boosted to the lab."""
    rng = action.rng
    M = action.sqrt_s()
    types = [ParticleType.find(pdg) for pdg in branch.final_state]
    threshold = sum(t.minimum_mass() for t in types)
    if M + 1e-12 < threshold:
        raise KinematicsError(
            f"Decay {action.describe()} -> {branch.final_state} forbidden: "
            f"M={M:.6f} GeV < threshold {threshold:.6f} GeV"
        )

    if len(types) == 2:
        masses = sample_two_masses(M, types, rng)
        momenta = generate_two_body_decay(M, masses, rng)
    elif len(types) == 3:
        masses = tuple(t.mass if t.is_stable else t.minimum_mass() for t in types)
        momenta = generate_three_body_decay(M, masses, rng)
    else:
        raise KinematicsError(f"{len(types)}-body decays are not supported")

    beta = action.incoming[0].velocity()
    return _make_outgoing(branch.final_state, momenta, beta)


# -----------------------------
# Scattering
# -----------------------------
@register(ProcessType.ELASTIC)
def sample_elastic(action, branch: ProcessBranch) -> List[ParticleData]:
    """Isotropic momentum exchange in the centre-of-momentum frame; masses are kept."""
    a, b = action.incoming
    srts = action.sqrt_s()
    m1, m2 = a.effective_mass, b.effective_mass
    p_mag = pcm(srts, m1, m2)
    p_vec = p_mag * isotropic_direction(action.rng)
    momenta = [FourVector.from_mass(m1, p_vec), FourVector.from_mass(m2, -p_vec)]
    logger.debug(f"Elastic scattering at sqrt(s)={srts:.4f} GeV, p_cm={p_mag:.4f} GeV")
    return _make_outgoing(branch.final_state, momenta, action.beta_cm())


@register(ProcessType.TWO_TO_ONE)
def sample_resonance_formation(action, branch: ProcessBranch) -> List[ParticleData]:
    """The resonance takes the full four-momentum of the pair; its mass is sqrt(s)."""
    (pdg,) = branch.final_state
    resonance = ParticleType.find(pdg)
    srts = action.sqrt_s()
    if resonance.is_stable:
        raise KinematicsError(f"2 -> 1 into stable {resonance.name} is not possible")
    if srts <= resonance.minimum_mass():
        raise KinematicsError(
            f"Energy too low to form {resonance.name}: sqrt(s)={srts:.6f} GeV, "
            f"lightest decay threshold {resonance.minimum_mass():.6f} GeV"
        )
    a, b = action.incoming
    total = a.momentum + b.momentum
    return [ParticleData(type=resonance, momentum=total)]


@register(ProcessType.TWO_TO_TWO)
def sample_two_to_two(action, branch: ProcessBranch) -> List[ParticleData]:
    """Isotropic two-body phase space, resonance masses drawn from their spectral function."""
    if branch.particle_number() != 2:
        raise KinematicsError(f"2 -> 2 branch with {branch.particle_number()} particles")
    srts = action.sqrt_s()
    types = [ParticleType.find(pdg) for pdg in branch.final_state]
    masses = sample_two_masses(srts, types, action.rng)
    momenta = generate_two_body_decay(srts, masses, action.rng)
    return _make_outgoing(branch.final_state, momenta, action.beta_cm())


@register(ProcessType.STRING)
def sample_string_excitation(action, branch: ProcessBranch) -> List[ParticleData]:
    """Hand the pair to the hadronization backend; hadrons form after a fixed delay."""
    hadronizer = action.hadronizer
    if hadronizer is None:
        logger.error(f"String excitation selected for {action.describe()} without a backend")
        raise HadronizationUnavailable(
            f"No hadronization backend available for string excitation in {action.describe()}"
        )
    srts = action.sqrt_s()
    hadrons = hadronizer.hadronize(action.incoming, srts, action.rng)
    if not hadrons:
        raise KinematicsError(f"Hadronization produced no hadrons at sqrt(s)={srts:.4f} GeV")
    pdgs = [pdg for pdg, _ in hadrons]
    out = _make_outgoing(pdgs, [p4 for _, p4 in hadrons], action.beta_cm())
    for p in out:
        p.formation_time = action.time_of_execution + STRING_FORMATION_TIME
        p.xsec_scaling_factor = 0.0
    return out
