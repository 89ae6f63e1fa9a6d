"""
Exception hierarchy of the reaction engine.

Invalid (stale) actions are not errors: ``Action.is_valid`` reports them.
Infeasible kinematics come back as an ``Outcome``; the classes below are
reserved for misuse of the action lifecycle and for violated invariants.
"""


class ReactionError(Exception):
    """Base class for all errors raised by the reaction engine."""


class KinematicsError(ReactionError, ValueError):
    """A final state cannot be realised at the available energy."""


class ActionStateError(ReactionError, RuntimeError):
    """An action was used out of lifecycle order (e.g. performed twice)."""


class ChannelSelectionError(ReactionError, RuntimeError):
    """The weighted walk over the subprocesses did not pick any branch."""


class ConservationViolation(ReactionError, RuntimeError):
    """Outgoing particles do not carry the quantum numbers of the incoming ones."""

    def __init__(self, message, dump=None):
        super().__init__(message)
        self.dump = dump or {}


class HadronizationUnavailable(ReactionError, RuntimeError):
    """A string-excitation channel was selected but no backend is available."""
