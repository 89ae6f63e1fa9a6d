"""
Batch driver: runs independent single-interaction events through the full
action lifecycle and collects channel statistics.
"""

from __future__ import annotations
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

import numpy as np

from .action import Action, Blocker
from .crosssections import (
    nucleon_delta_final_states,
    two_to_two_cross_section,
)
from .decay_action import DecayAction
from .kinematics import pcm
from .particles import ParticleData, ParticleType, Particles, ProcessCounter
from .pauli import PauliBlocker
from .processbranch import ProcessBranch
from .rng import make_event_sources
from .scatter_action import ScatterAction

logger = logging.getLogger(__name__)

PERFORMED = "performed"
DISCARDED = "discarded"
FAILED = "failed"


def channel_label(branch: ProcessBranch) -> str:
    """Readable name of a branch's final state, e.g. "π+ π-"."""
    if branch.process_type.is_continuum:
        return branch.process_type.name.lower()
    return " ".join(ParticleType.find(pdg).name for pdg in branch.final_state)


def resolve_action(action: Action, particles: Particles, id_process: ProcessCounter,
                   blocker: Optional[Blocker] = None,
                   max_attempts: int = 1) -> Tuple[str, List[ParticleData]]:
    """
    Take one action from proposal to completion.

    Returns (PERFORMED, outgoing), (DISCARDED, []) or (FAILED, []).
    """
    if not action.is_valid(particles):
        return DISCARDED, []
    outcome = action.generate_final_state(max_attempts=max_attempts)
    if not outcome:
        logger.debug(f"{action.describe()}: {outcome.reason}")
        return FAILED, []
    if blocker is not None and action.is_pauli_blocked(particles, blocker):
        return DISCARDED, []
    if not action.is_valid(particles):
        return DISCARDED, []
    return PERFORMED, action.perform(particles, id_process)


def collision_action(a: ParticleData, b: ParticleData, time: float, rng,
                     elastic_xs: float = 10.0, string_xs: float = 0.0,
                     hadronizer=None) -> ScatterAction:
    """ScatterAction with elastic, resonance, N N -> N Δ and string branches added."""
    action = ScatterAction(a, b, time, rng, hadronizer=hadronizer)
    srts = action.sqrt_s()
    action.add_collision(action.elastic_cross_section(elastic_xs))
    action.add_collisions(action.resonance_cross_section())
    action.add_collisions(two_to_two_cross_section(srts, nucleon_delta_final_states(a, b)))
    action.add_collision(action.string_excitation_cross_section(string_xs))
    return action


def _summarize(results: Counter, channels: Counter, ids: List[int], n_events: int,
               label: str) -> Dict:
    stats = {
        "success": results[PERFORMED],
        "failed": results[FAILED],
        "discarded": results[DISCARDED],
        "total": n_events,
        "success_rate": results[PERFORMED] / n_events if n_events > 0 else 0.0,
        "channels": dict(channels),
        "interaction_ids": ids,
    }
    logger.info(f"{label}: {stats['success']}/{n_events} performed, "
                f"{stats['failed']} failed, {stats['discarded']} discarded")
    return stats


def simulate_decays(
    parent_pdg: int,
    n_events: int,
    seed: Optional[int] = None,
    momentum=(0.0, 0.0, 0.0),
    max_attempts: int = 3,
    log=None,
) -> Dict:
    """
    Decay ``n_events`` independent particles of species ``parent_pdg``.

    Args:
        parent_pdg: PDG code of the decaying species
        n_events: Number of events
        seed: Master seed; every event gets its own stream
        momentum: Lab three-momentum of the parent (GeV)
        max_attempts: Channel re-draws before an event counts as failed
        log: Optional InteractionLog receiving every performed interaction

    Returns:
        Dict with keys: success, failed, discarded, total, success_rate,
        channels, interaction_ids
    """
    ptype = ParticleType.find(parent_pdg)
    results: Counter = Counter()
    channels: Counter = Counter()
    ids = []

    for event, rng in enumerate(make_event_sources(seed, n_events)):
        particles = Particles()
        parent = particles.insert(ParticleData.create(parent_pdg, momentum))
        action = DecayAction.from_particle(parent, 0.0, rng)
        status, _ = resolve_action(action, particles, ProcessCounter(), max_attempts=max_attempts)
        results[status] += 1
        if status == PERFORMED:
            channels[channel_label(action.chosen_branch)] += 1
            if log is not None:
                ids.append(log.store_interaction(action.interaction_record(), event=event))
        elif status == FAILED:
            logger.warning(f"Event {event}: {ptype.name} decay failed")

    return _summarize(results, channels, ids, n_events, f"{ptype.name} decays")


def simulate_collisions(
    pdg_a: int,
    pdg_b: int,
    sqrt_s: float,
    n_events: int,
    seed: Optional[int] = None,
    elastic_xs: float = 10.0,
    string_xs: float = 0.0,
    hadronizer=None,
    pauli: bool = False,
    max_attempts: int = 3,
    log=None,
) -> Dict:
    """
    Collide ``n_events`` independent pairs head-on in their centre-of-momentum
    frame at ``sqrt_s`` (GeV). With ``pauli`` the outgoing fermions are
    Pauli-blocked against the particles of their event. Same return format as
    ``simulate_decays``.
    """
    type_a, type_b = ParticleType.find(pdg_a), ParticleType.find(pdg_b)
    p_cm = pcm(sqrt_s, type_a.mass, type_b.mass)
    results: Counter = Counter()
    channels: Counter = Counter()
    ids = []

    for event, rng in enumerate(make_event_sources(seed, n_events)):
        particles = Particles()
        a = particles.insert(ParticleData.create(pdg_a, (0.0, 0.0, p_cm), (0.0, 0.0, 0.0, -0.5)))
        b = particles.insert(ParticleData.create(pdg_b, (0.0, 0.0, -p_cm), (0.0, 0.0, 0.0, 0.5)))
        action = collision_action(a, b, 0.0, rng, elastic_xs, string_xs, hadronizer)
        blocker = PauliBlocker(particles) if pauli else None
        status, _ = resolve_action(action, particles, ProcessCounter(), blocker, max_attempts)
        results[status] += 1
        if status == PERFORMED:
            channels[channel_label(action.chosen_branch)] += 1
            if log is not None:
                ids.append(log.store_interaction(action.interaction_record(), event=event))
        elif status == FAILED:
            logger.warning(f"Event {event}: {type_a.name} {type_b.name} collision failed")

    return _summarize(results, channels, ids, n_events, f"{type_a.name} {type_b.name} collisions")


def expected_fractions(action: Action) -> Dict[str, float]:
    """Selection probability of every channel of ``action`` (weight / total)."""
    fractions: Dict[str, float] = {}
    for branch in action.subprocesses:
        label = channel_label(branch)
        fractions[label] = fractions.get(label, 0.0) + branch.weight / action.total_weight
    return fractions


def observed_fractions(channels: Dict[str, int]) -> Dict[str, float]:
    total = float(np.sum(list(channels.values()))) if channels else 0.0
    return {k: v / total for k, v in channels.items()} if total > 0 else {}
