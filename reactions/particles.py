"""
Particle species, particle snapshots and the live particle collection.

Units: GeV, fm.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import numpy as np

from .constants import WIDTH_CUTOFF
from .kinematics import FourVector, lorentz_boost_array
from .processbranch import ProcessType


# pdg -> (name, mass, width, charge, 2J, baryon number, decay modes)
# decay modes: list of (daughter pdg tuple, branching ratio)
_BUILTIN_TYPES = {
    22: ("γ", 0.0, 0.0, 0, 2, 0, []),
    11: ("e⁻", 0.000511, 0.0, -1, 1, 0, []),
    -11: ("e⁺", 0.000511, 0.0, 1, 1, 0, []),
    12: ("νe", 0.0, 0.0, 0, 1, 0, []),
    -12: ("ν̄e", 0.0, 0.0, 0, 1, 0, []),
    13: ("μ⁻", 0.105658, 0.0, -1, 1, 0, []),
    -13: ("μ⁺", 0.105658, 0.0, 1, 1, 0, []),
    14: ("νμ", 0.0, 0.0, 0, 1, 0, []),
    -14: ("ν̄μ", 0.0, 0.0, 0, 1, 0, []),
    # Mesons
    111: ("π⁰", 0.138, 0.0, 0, 0, 0, []),
    211: ("π⁺", 0.138, 0.0, 1, 0, 0, []),
    -211: ("π⁻", 0.138, 0.0, -1, 0, 0, []),
    221: ("η", 0.548, 0.0, 0, 0, 0, []),
    311: ("K⁰", 0.498, 0.0, 0, 0, 0, []),
    -311: ("K̄⁰", 0.498, 0.0, 0, 0, 0, []),
    321: ("K⁺", 0.494, 0.0, 1, 0, 0, []),
    -321: ("K⁻", 0.494, 0.0, -1, 0, 0, []),
    113: ("ρ⁰", 0.776, 0.149, 0, 2, 0, [((211, -211), 1.0)]),
    213: ("ρ⁺", 0.776, 0.149, 1, 2, 0, [((211, 111), 1.0)]),
    -213: ("ρ⁻", 0.776, 0.149, -1, 2, 0, [((-211, 111), 1.0)]),
    223: ("ω", 0.783, 0.0085, 0, 2, 0, [((211, -211, 111), 0.892),
                                         ((111, 22), 0.083),
                                         ((211, -211), 0.025)]),
    # Baryons
    2212: ("p", 0.938, 0.0, 1, 1, 1, []),
    -2212: ("p̄", 0.938, 0.0, -1, 1, -1, []),
    2112: ("n", 0.938, 0.0, 0, 1, 1, []),
    -2112: ("n̄", 0.938, 0.0, 0, 1, -1, []),
    2224: ("Δ⁺⁺", 1.232, 0.117, 2, 3, 1, [((2212, 211), 1.0)]),
    2214: ("Δ⁺", 1.232, 0.117, 1, 3, 1, [((2212, 111), 2.0 / 3.0),
                                          ((2112, 211), 1.0 / 3.0)]),
    2114: ("Δ⁰", 1.232, 0.117, 0, 3, 1, [((2112, 111), 2.0 / 3.0),
                                          ((2212, -211), 1.0 / 3.0)]),
    1114: ("Δ⁻", 1.232, 0.117, -1, 3, 1, [((2112, -211), 1.0)]),
    12212: ("N⁺(1440)", 1.44, 0.35, 1, 1, 1, [((2212, 111), 0.2),
                                               ((2112, 211), 0.4),
                                               ((2224, -211), 0.125),
                                               ((2214, 111), 0.083),
                                               ((2114, 211), 0.042),
                                               ((2212, 113), 0.15)]),
    12112: ("N⁰(1440)", 1.44, 0.35, 0, 1, 1, [((2112, 111), 0.2),
                                               ((2212, -211), 0.4),
                                               ((1114, 211), 0.125),
                                               ((2114, 111), 0.083),
                                               ((2214, -211), 0.042),
                                               ((2112, 113), 0.15)]),
}


@dataclass(frozen=True)
class DecayMode:
    daughters: Tuple[int, ...]
    branching_ratio: float


@dataclass(frozen=True)
class ParticleType:
    """
    Species data: pole mass and total width (GeV), charge (e), spin as 2J,
    baryon number and the list of decay modes.
    """

    pdgcode: int
    name: str
    mass: float
    width: float = 0.0
    charge: int = 0
    spin: int = 0
    baryon_number: int = 0
    decay_modes: Tuple[DecayMode, ...] = ()

    _registry = {}  # pdg -> ParticleType

    # -------------------- Registry --------------------

    @classmethod
    def register(cls, ptype: "ParticleType") -> "ParticleType":
        """Add a species; replacing a registered one drops the cached decay modes."""
        replaced = ptype.pdgcode in cls._registry
        cls._registry[ptype.pdgcode] = ptype
        if replaced:
            from . import decaymodes
            decaymodes.clear_cache()
        return ptype

    @classmethod
    def find(cls, pdgcode: int) -> "ParticleType":
        """Look a species up by PDG code."""
        try:
            return cls._registry[pdgcode]
        except KeyError:
            raise LookupError(f"Particle type with PDG code {pdgcode} is not registered") from None

    @classmethod
    def exists(cls, pdgcode: int) -> bool:
        return pdgcode in cls._registry

    @classmethod
    def list_all(cls) -> List["ParticleType"]:
        return list(cls._registry.values())

    # -------------------- Properties --------------------

    @property
    def is_stable(self) -> bool:
        return self.width < WIDTH_CUTOFF

    @property
    def is_fermion(self) -> bool:
        return self.spin % 2 == 1

    @property
    def is_baryon(self) -> bool:
        return self.baryon_number != 0

    def minimum_mass(self) -> float:
        """Lightest mass at which this species can exist (its lightest decay threshold)."""
        if self.is_stable or not self.decay_modes:
            return self.mass
        return min(
            sum(ParticleType.find(d).minimum_mass() for d in mode.daughters)
            for mode in self.decay_modes
        )

    def spectral_function(self, m: float) -> float:
        """Relativistic Breit-Wigner with constant width, normalised to the pole."""
        if self.is_stable:
            return 1.0
        g = self.width
        M = self.mass
        return (2.0 * m * m * g / math.pi) / ((m * m - M * M) ** 2 + m * m * g * g)

    def sample_mass(self, max_mass: float, rng, safety_factor: float = 1.2) -> float:
        """
        Draw a mass from the spectral function between minimum_mass() and
        max_mass (accept-reject against a grid estimate of the maximum).
        """
        if self.is_stable:
            return self.mass
        lo = self.minimum_mass()
        if max_mass <= lo:
            raise ValueError(
                f"{self.name}: no phase space for mass sampling (max {max_mass:.4f} <= min {lo:.4f} GeV)"
            )
        grid = np.linspace(lo, max_mass, 65)
        candidates = list(grid) + ([self.mass] if lo < self.mass < max_mass else [])
        w_max = safety_factor * max(self.spectral_function(m) for m in candidates)
        while True:
            m = rng.uniform(lo, max_mass)
            if rng.uniform(0.0, w_max) < self.spectral_function(m):
                return m

    def __repr__(self) -> str:
        return (f"ParticleType({self.name}, pdg={self.pdgcode}, m={self.mass:.3f} GeV, "
                f"Γ={self.width:.3f} GeV, q={self.charge:+d})")


def _load_builtin_types():
    for pdg, (name, mass, width, charge, spin, baryon, modes) in _BUILTIN_TYPES.items():
        ParticleType.register(ParticleType(
            pdgcode=pdg,
            name=name,
            mass=mass,
            width=width,
            charge=charge,
            spin=spin,
            baryon_number=baryon,
            decay_modes=tuple(DecayMode(tuple(d), br) for d, br in modes),
        ))


_load_builtin_types()


# -------------------- Particle snapshots --------------------

@dataclass
class History:
    """Provenance of a particle: the process that created it."""

    collisions: int = 0
    id_process: int = 0
    process_type: ProcessType = ProcessType.NONE
    time_last_collision: float = 0.0
    p1: int = 0
    p2: int = 0


@dataclass(eq=False)
class ParticleData:
    """One particle: identity, species, four-momentum, four-position (t, x, y, z)."""

    type: ParticleType
    momentum: FourVector = field(default_factory=lambda: FourVector(0.0, 0.0, 0.0, 0.0))
    position: np.ndarray = field(default_factory=lambda: np.zeros(4, dtype=float))
    id: int = -1
    history: History = field(default_factory=History)
    formation_time: float = 0.0
    xsec_scaling_factor: float = 1.0

    @classmethod
    def create(cls, pdgcode: int, p=(0.0, 0.0, 0.0), position=(0.0, 0.0, 0.0, 0.0),
               mass: Optional[float] = None) -> "ParticleData":
        """On-shell particle of the given species (pole mass unless ``mass`` is given)."""
        ptype = ParticleType.find(pdgcode)
        m = ptype.mass if mass is None else mass
        return cls(type=ptype, momentum=FourVector.from_mass(m, p),
                   position=np.asarray(position, dtype=float).copy())

    @property
    def pdgcode(self) -> int:
        return self.type.pdgcode

    @property
    def effective_mass(self) -> float:
        return self.momentum.mass

    def velocity(self) -> np.ndarray:
        return self.momentum.beta()

    def boost(self, beta: np.ndarray):
        """Boost momentum and position in place (see ``lorentz_boost_array``)."""
        self.momentum = self.momentum.boost(beta)
        self.position = lorentz_boost_array(self.position, beta)

    def copy(self) -> "ParticleData":
        return replace(
            self,
            momentum=replace(self.momentum),
            position=np.array(self.position, dtype=float),
            history=replace(self.history),
        )

    def __repr__(self) -> str:
        return (f"ParticleData(id={self.id}, {self.type.name}, p={self.momentum}, "
                f"x=({', '.join(f'{v:.3f}' for v in self.position)}))")


# -------------------- Live collection --------------------

class ProcessCounter:
    """Monotonic process id handed to performed actions (one per event)."""

    def __init__(self, start: int = 1):
        self.value = start

    def advance(self) -> int:
        self.value += 1
        return self.value

    def __repr__(self) -> str:
        return f"ProcessCounter(value={self.value})"


class Particles:
    """
    The live particle set of one event, keyed by particle id.

    ``replace`` is the only multi-particle mutation and checks every removal
    before touching the collection, so a failed call leaves it unchanged.
    """

    def __init__(self, particles: Iterable[ParticleData] = ()):
        self._data: Dict[int, ParticleData] = {}
        self._id_max = -1
        for p in particles:
            self.insert(p)

    def insert(self, particle: ParticleData) -> ParticleData:
        """Store a copy under a fresh id and return the stored particle."""
        self._id_max += 1
        stored = particle.copy()
        stored.id = self._id_max
        self._data[stored.id] = stored
        return stored

    def remove(self, particle: ParticleData):
        if particle.id not in self._data:
            raise KeyError(f"Particle id {particle.id} is not in the collection")
        del self._data[particle.id]

    def replace(self, to_remove: List[ParticleData], to_add: List[ParticleData]) -> List[ParticleData]:
        missing = [p.id for p in to_remove if p.id not in self._data]
        if missing:
            raise KeyError(f"Cannot replace particles: ids {missing} are not in the collection")
        for p in to_remove:
            del self._data[p.id]
        return [self.insert(p) for p in to_add]

    def is_valid(self, particle: ParticleData) -> bool:
        """True if ``particle`` is still present and has not interacted since the snapshot."""
        current = self._data.get(particle.id)
        if current is None:
            return False
        return current.history.id_process == particle.history.id_process

    def find(self, particle_id: int) -> ParticleData:
        return self._data[particle_id]

    def copy_to_list(self) -> List[ParticleData]:
        return [p.copy() for p in self._data.values()]

    @property
    def id_max(self) -> int:
        return self._id_max

    def __contains__(self, particle_id: int) -> bool:
        return particle_id in self._data

    def __iter__(self) -> Iterator[ParticleData]:
        return iter(list(self._data.values()))

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Particles(n={len(self)}, id_max={self._id_max})"
