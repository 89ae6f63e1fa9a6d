"""
String excitation through Pythia 8.

The ``pythia8`` bindings are an optional extra. Without them a
ScatterAction may still carry string branches; only selecting one fails,
with HadronizationUnavailable.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple

from .exceptions import HadronizationUnavailable, KinematicsError
from .kinematics import FourVector
from .particles import ParticleData, ParticleType

try:
    import pythia8
except ImportError:
    pythia8 = None

logger = logging.getLogger(__name__)

# Pythia accepts seeds in [0, 900000000]
MAX_SEED = 900_000_000

# Pythia emits the mass eigenstates of the neutral kaon
_PDG_ALIASES = {130: 311, 310: 311}

Hadron = Tuple[int, FourVector]


class PythiaHadronizer:
    """
    Soft-QCD inelastic collision of the incoming pair at sqrt(s).

    Registered species are kept stable so the final state only holds
    particles the engine knows; Pythia decays everything else.
    ``backend`` defaults to the ``pythia8`` module.
    """

    def __init__(self, backend=None, quiet: bool = True):
        backend = backend if backend is not None else pythia8
        if backend is None:
            raise HadronizationUnavailable(
                "pythia8 is not installed; install the 'string' extra for string excitation"
            )
        self.backend = backend
        self.quiet = quiet
        self._pythia = None
        self._key: Optional[Tuple[int, int, float]] = None

    def _settings(self, id_a: int, id_b: int, srts: float, seed: int) -> List[str]:
        settings = [
            "SoftQCD:inelastic = on",
            "Beams:frameType = 1",
            f"Beams:idA = {id_a}",
            f"Beams:idB = {id_b}",
            f"Beams:eCM = {srts!r}",
            "Random:setSeed = on",
            f"Random:seed = {seed}",
        ]
        if self.quiet:
            settings += ["Print:quiet = on"]
        settings += [f"{ptype.pdgcode}:mayDecay = off" for ptype in ParticleType.list_all()
                     if ptype.pdgcode > 0]
        return settings

    def _init(self, id_a: int, id_b: int, srts: float, seed: int):
        pythia = self.backend.Pythia()
        for line in self._settings(id_a, id_b, srts, seed):
            pythia.readString(line)
        if not pythia.init():
            logger.error(f"Pythia initialisation failed for {id_a} {id_b} at {srts:.4f} GeV")
            raise HadronizationUnavailable(
                f"Pythia could not be initialised for beams {id_a} {id_b} at sqrt(s)={srts:.4f} GeV"
            )
        self._pythia = pythia
        self._key = (id_a, id_b, srts)

    def hadronize(self, incoming: Sequence[ParticleData], srts: float, rng) -> List[Hadron]:
        """Final-state (pdg, four-momentum in the CM frame) pairs, sorted by p_z."""
        id_a, id_b = (p.pdgcode for p in incoming)
        seed = rng.integer(0, MAX_SEED)
        if self._key != (id_a, id_b, srts):
            self._init(id_a, id_b, srts, seed)
        else:
            self._pythia.rndm.init(seed)

        if not self._pythia.next():
            raise KinematicsError(f"Pythia event generation failed at sqrt(s)={srts:.4f} GeV")

        hadrons = []
        for prt in self._pythia.event:
            if not prt.isFinal():
                continue
            pdg = _PDG_ALIASES.get(prt.id(), prt.id())
            if not ParticleType.exists(pdg):
                raise KinematicsError(f"Pythia produced unknown species {prt.id()}")
            hadrons.append((pdg, FourVector(prt.e(), prt.px(), prt.py(), prt.pz())))
        hadrons.sort(key=lambda h: h[1].pz)
        logger.debug(f"Hadronized {id_a} {id_b} at {srts:.4f} GeV into {len(hadrons)} particles")
        return hadrons


def default_hadronizer() -> Optional[PythiaHadronizer]:
    """A PythiaHadronizer if pythia8 is installed, else None."""
    if pythia8 is None:
        return None
    return PythiaHadronizer()
