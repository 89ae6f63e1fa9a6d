# conservation.py
# Conservation bookkeeping shared by the actions and the interaction log.
#
# four_momentum_balance compares summed FourVectors; QuantumNumbers adds
# charge and baryon number for lists of ParticleData and reports through it.
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List

from .constants import CONSERVATION_TOLERANCE
from .kinematics import FourVector, total_momentum

COMPONENTS = ("E", "px", "py", "pz")


def four_momentum_balance(initial_vectors, final_vectors, tol=1e-6):
    """Return the four-momentum difference initial - final of any N -> M process.

    Parameters
    ----------
    initial_vectors, final_vectors : list of FourVector
    tol : float
        Absolute tolerance per component (GeV).

    Returns
    -------
    dict
        'conserved' (all components within tol), the deltas 'dE', 'dpx',
        'dpy', 'dpz' and the summed vectors 'initial' and 'final'.
    """
    Pi = total_momentum(initial_vectors)
    Pf = total_momentum(final_vectors)
    deltas = {f"d{c}": getattr(Pi, c) - getattr(Pf, c) for c in COMPONENTS}
    return {
        'conserved': all(abs(d) < tol for d in deltas.values()),
        **deltas,
        'initial': Pi,
        'final': Pf,
    }


@dataclass
class QuantumNumbers:
    """Summed four-momentum, charge and baryon number of a list of particles."""

    momentum: FourVector
    charge: int
    baryon_number: int

    @classmethod
    def of(cls, particles) -> "QuantumNumbers":
        return cls(
            momentum=total_momentum([p.momentum for p in particles]),
            charge=sum(p.type.charge for p in particles),
            baryon_number=sum(p.type.baryon_number for p in particles),
        )

    def report_deviations(self, other: "QuantumNumbers",
                          tol: float = CONSERVATION_TOLERANCE) -> List[str]:
        """Human-readable list of violated quantities (empty if all conserved)."""
        scale = max(abs(self.momentum.E), 1.0)
        balance = four_momentum_balance([self.momentum], [other.momentum], tol * scale)
        deviations = []
        if not balance['conserved']:
            for c in COMPONENTS:
                delta = balance[f"d{c}"]
                if abs(delta) >= tol * scale:
                    a, b = getattr(self.momentum, c), getattr(other.momentum, c)
                    deviations.append(f"Deviation in {c}: {a:.9f} vs. {b:.9f} (Δ={delta:.3e})")
        if self.charge != other.charge:
            deviations.append(f"Deviation in charge: {self.charge} vs. {other.charge}")
        if self.baryon_number != other.baryon_number:
            deviations.append(
                f"Deviation in baryon number: {self.baryon_number} vs. {other.baryon_number}"
            )
        return deviations

    def as_dict(self) -> Dict[str, float]:
        return {
            "E": self.momentum.E,
            "px": self.momentum.px,
            "py": self.momentum.py,
            "pz": self.momentum.pz,
            "charge": self.charge,
            "baryon_number": self.baryon_number,
        }
