"""
Kinematics helpers for the reaction engine.

Units: GeV (natural units c = 1).
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Tuple, List
import numpy as np

from .exceptions import KinematicsError


# -----------------------------
# FourVector
# -----------------------------
@dataclass
class FourVector:
    E: float
    px: float
    py: float
    pz: float

    @classmethod
    def from_mass(cls, mass: float, p: np.ndarray) -> "FourVector":
        """On-shell four-momentum for a given mass and three-momentum."""
        p = np.asarray(p, dtype=float)
        E = math.sqrt(mass * mass + float(np.dot(p, p)))
        return cls(E, float(p[0]), float(p[1]), float(p[2]))

    @property
    def p(self) -> np.ndarray:
        return np.array([self.px, self.py, self.pz], dtype=float)

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.p))

    def sqr(self) -> float:
        """Minkowski square E^2 - |p|^2 (may be slightly negative from rounding)."""
        return self.E * self.E - (self.px * self.px + self.py * self.py + self.pz * self.pz)

    @property
    def mass(self) -> float:
        return math.sqrt(max(self.sqr(), 0.0))

    def beta(self) -> np.ndarray:
        if self.E == 0.0:
            return np.zeros(3, dtype=float)
        return self.p / self.E

    def boost(self, beta: np.ndarray) -> "FourVector":
        p4 = np.array([self.E, self.px, self.py, self.pz], dtype=float)
        boosted = lorentz_boost_array(p4, beta)
        return FourVector(float(boosted[0]), float(boosted[1]), float(boosted[2]), float(boosted[3]))

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.E, self.px, self.py, self.pz)

    def __add__(self, other: "FourVector") -> "FourVector":
        return FourVector(self.E + other.E, self.px + other.px, self.py + other.py, self.pz + other.pz)

    def __sub__(self, other: "FourVector") -> "FourVector":
        return FourVector(self.E - other.E, self.px - other.px, self.py - other.py, self.pz - other.pz)

    def __repr__(self) -> str:
        return f"FourVector(E={self.E:.6f}, px={self.px:.6f}, py={self.py:.6f}, pz={self.pz:.6f})"


def total_momentum(vectors: List[FourVector]) -> FourVector:
    return sum(vectors, FourVector(0.0, 0.0, 0.0, 0.0))


# -----------------------------
# Lorentz boost
# -----------------------------
def lorentz_boost_array(p4: np.ndarray, beta: np.ndarray) -> np.ndarray:
    """
    Boost a four-vector (array of 4) into the frame in which its current
    rest frame moves with velocity ``beta``. Use ``-beta`` for the inverse.
    Works for four-positions (t, x, y, z) as well.
    """
    beta = np.asarray(beta, dtype=float)
    p4 = np.asarray(p4, dtype=float)
    beta2 = float(np.dot(beta, beta))
    if beta2 >= 1.0:
        raise ValueError("beta^2 < 1 required.")
    if beta2 <= 1e-18:
        return p4.copy()
    gamma = 1.0 / math.sqrt(1.0 - beta2)
    bp = float(np.dot(beta, p4[1:]))
    Eprime = gamma * (p4[0] + bp)
    factor = ((gamma - 1.0) * bp / beta2) + gamma * p4[0]
    pprime = p4[1:] + factor * beta
    return np.array([Eprime, pprime[0], pprime[1], pprime[2]], dtype=float)


# -----------------------------
# Isotropic direction
# -----------------------------
def isotropic_direction(rng) -> np.ndarray:
    u = rng.uniform(-1.0, 1.0)
    phi = rng.uniform(0.0, 2.0 * math.pi)
    sint = math.sqrt(max(0.0, 1.0 - u * u))
    return np.array([sint * math.cos(phi), sint * math.sin(phi), u], dtype=float)


# -----------------------------
# Two-body momentum
# -----------------------------
def pcm(srts: float, m1: float, m2: float) -> float:
    """Momentum of either daughter in the rest frame of a system of mass ``srts``."""
    if srts + 1e-12 < m1 + m2:
        raise KinematicsError(
            f"Two-body state forbidden: sqrt(s)={srts:.6f} < m1+m2={m1 + m2:.6f} GeV"
        )
    if srts <= 0.0:
        return 0.0
    term1 = srts * srts - (m1 + m2) ** 2
    term2 = srts * srts - (m1 - m2) ** 2
    return math.sqrt(max(term1 * term2, 0.0)) / (2.0 * srts)


# -----------------------------
# Two-body decay
# -----------------------------
def generate_two_body_decay(parent_mass: float,
                            daughter_masses: Tuple[float, float],
                            rng) -> List[FourVector]:
    """Isotropic 1 -> 2 momenta in the parent rest frame."""
    m0 = float(parent_mass)
    m1, m2 = map(float, daughter_masses)

    p_mag = pcm(m0, m1, m2)
    if p_mag == 0.0:
        # threshold: both at rest
        return [FourVector(m1, 0.0, 0.0, 0.0), FourVector(m2, 0.0, 0.0, 0.0)]

    dirv = isotropic_direction(rng)
    p1 = p_mag * dirv
    return [FourVector.from_mass(m1, p1), FourVector.from_mass(m2, -p1)]


# -----------------------------
# Three-body decay (phase space)
# -----------------------------
def generate_three_body_decay(parent_mass: float,
                              daughter_masses: Tuple[float, float, float],
                              rng,
                              max_tries: int = 10000) -> List[FourVector]:
    """
    Flat Dalitz-plot 1 -> 3 momenta in the parent rest frame.

    m12 is drawn uniformly and accepted with probability proportional to
    p*(M -> m12 m3) * p*(m12 -> m1 m2), which is the phase-space density in m12.
    """
    m0 = float(parent_mass)
    m1, m2, m3 = map(float, daughter_masses)

    if m0 + 1e-12 < (m1 + m2 + m3):
        raise KinematicsError(
            f"Three-body decay forbidden: M={m0:.6f} < sum(m)={m1 + m2 + m3:.6f} GeV"
        )

    m12_min = m1 + m2
    m12_max = max(m0 - m3, m12_min)
    w_max = pcm(m0, m12_min, m3) * pcm(m12_max, m1, m2)

    m12 = m12_min
    if w_max > 0.0:
        for _ in range(max_tries):
            m12 = rng.uniform(m12_min, m12_max)
            w = pcm(m0, m12, m3) * pcm(m12, m1, m2)
            if rng.uniform(0.0, w_max) < w:
                break
        else:
            raise KinematicsError(f"Three-body sampling did not converge for M={m0:.6f} GeV")

    # Parent -> (12) + 3
    p3_mag = pcm(m0, m12, m3)
    p3 = p3_mag * isotropic_direction(rng)
    fv3 = FourVector.from_mass(m3, p3)
    fv12 = FourVector.from_mass(m12, -p3)

    # (12) -> 1 + 2 in (12) RF, then boost into the parent RF
    fv1, fv2 = generate_two_body_decay(m12, (m1, m2), rng)
    beta12 = fv12.beta()
    return [fv1.boost(beta12), fv2.boost(beta12), fv3]
