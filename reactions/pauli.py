"""
Phase-space occupancy estimate for Pauli blocking.

The occupancy of species X at (r, p) is

    f = (2 pi hbar c)^3 / g  *  sum_j  G(r - r_j) * Theta(rp - |p - p_j|) / (4/3 pi rp^3)

over particles j of species X, with G a Gaussian of width sigma cut at rr
and normalised to one inside the cut. g is the spin degeneracy.
"""

import math
from typing import FrozenSet, Iterable

import numpy as np

from .constants import HBARC


class PauliBlocker:
    """
    Occupancy ``blocker(particle) -> f`` of the phase space around
    ``particle`` in ``particles``, for ``Action.is_pauli_blocked``.

    Particles whose ids are in ``disregard`` do not count. Defaults
    (fm, fm, GeV) follow the usual transport-code choices.
    """

    def __init__(self, particles, sigma: float = 1.0, rr: float = 2.0, rp: float = 0.08,
                 disregard: Iterable[int] = ()):
        if sigma <= 0.0 or rr <= 0.0 or rp <= 0.0:
            raise ValueError("sigma, rr and rp must be positive")
        self.particles = particles
        self.sigma = sigma
        self.rr = rr
        self.rp = rp
        self.disregard: FrozenSet[int] = frozenset(disregard)
        self._norm = self._gauss_norm()

    def _gauss_norm(self) -> float:
        """Integral of exp(-r^2 / 2 sigma^2) over the sphere of radius rr."""
        s = self.sigma
        a = self.rr / (math.sqrt(2.0) * s)
        return (2.0 * math.pi * s * s) ** 1.5 * (
            math.erf(a) - 2.0 * a / math.sqrt(math.pi) * math.exp(-a * a)
        )

    def without(self, particles) -> "PauliBlocker":
        """Same blocker, additionally ignoring ``particles`` (matched by id)."""
        return PauliBlocker(self.particles, self.sigma, self.rr, self.rp,
                            self.disregard | {p.id for p in particles})

    def phasespace_density(self, particle) -> float:
        same = [
            q for q in self.particles
            if q.pdgcode == particle.pdgcode and q.id != particle.id and q.id not in self.disregard
        ]
        if not same:
            return 0.0
        r = np.asarray(particle.position[1:], dtype=float)
        p = particle.momentum.p
        positions = np.array([q.position[1:] for q in same], dtype=float)
        momenta = np.array([q.momentum.p for q in same], dtype=float)

        dr2 = np.sum((positions - r) ** 2, axis=1)
        dp2 = np.sum((momenta - p) ** 2, axis=1)
        mask = (dr2 < self.rr * self.rr) & (dp2 < self.rp * self.rp)
        if not np.any(mask):
            return 0.0
        gauss = np.exp(-dr2[mask] / (2.0 * self.sigma * self.sigma)) / self._norm

        momentum_volume = 4.0 / 3.0 * math.pi * self.rp ** 3
        degeneracy = particle.type.spin + 1
        cell = (2.0 * math.pi * HBARC) ** 3
        return float(np.sum(gauss)) / momentum_volume * cell / degeneracy

    def __call__(self, particle) -> float:
        return min(self.phasespace_density(particle), 1.0)

    def __repr__(self) -> str:
        return (f"PauliBlocker(sigma={self.sigma}, rr={self.rr}, rp={self.rp}, "
                f"{len(self.disregard)} disregarded)")
