"""
Decay branches of a species at a given mass.

Weights are partial widths: total width times branching ratio.
"""

import logging
from typing import Dict, List, Tuple

from .particles import ParticleType
from .processbranch import ProcessBranch, ProcessType

logger = logging.getLogger(__name__)

# Simple in-memory cache: pdg -> List[(daughters, br, threshold)]
_CACHE: Dict[int, List[Tuple[Tuple[int, ...], float, float]]] = {}


def get_decay_modes(ptype: ParticleType) -> List[Tuple[Tuple[int, ...], float, float]]:
    """(daughters, branching ratio, threshold mass) for every mode with a positive ratio."""
    if ptype.pdgcode in _CACHE:
        return _CACHE[ptype.pdgcode]

    modes = []
    for mode in ptype.decay_modes:
        if mode.branching_ratio <= 0.0:
            continue
        threshold = sum(ParticleType.find(d).minimum_mass() for d in mode.daughters)
        modes.append((mode.daughters, mode.branching_ratio, threshold))

    _CACHE[ptype.pdgcode] = modes
    return modes


def clear_cache():
    _CACHE.clear()


def decay_branches(ptype: ParticleType, mass: float) -> List[ProcessBranch]:
    """
    Decay branches open at ``mass``. Stable species and masses below every
    threshold give an empty list.
    """
    if ptype.is_stable:
        return []
    branches = []
    for daughters, br, threshold in get_decay_modes(ptype):
        if mass <= threshold:
            logger.debug(f"{ptype.name} at m={mass:.4f} GeV: {daughters} closed (threshold {threshold:.4f})")
            continue
        branches.append(ProcessBranch(daughters, ptype.width * br, ProcessType.DECAY))
    return branches
