"""Reaction engine: decays and two-body collisions for hadronic transport."""

from .action import Action, ActionState, InteractionRecord, Outcome, OutcomeStatus
from .decay_action import DecayAction
from .exceptions import (
    ActionStateError,
    ChannelSelectionError,
    ConservationViolation,
    HadronizationUnavailable,
    KinematicsError,
    ReactionError,
)
from .particles import ParticleData, ParticleType, Particles, ProcessCounter
from .processbranch import ProcessBranch, ProcessType
from .rng import RandomSource
from .scatter_action import ScatterAction

__version__ = "0.1.0"

__all__ = [
    "Action",
    "ActionState",
    "ActionStateError",
    "ChannelSelectionError",
    "ConservationViolation",
    "DecayAction",
    "HadronizationUnavailable",
    "InteractionRecord",
    "KinematicsError",
    "Outcome",
    "OutcomeStatus",
    "ParticleData",
    "ParticleType",
    "Particles",
    "ProcessBranch",
    "ProcessCounter",
    "ProcessType",
    "RandomSource",
    "ReactionError",
    "ScatterAction",
]
