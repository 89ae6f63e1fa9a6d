"""
Process branches: one possible final state of an action with its weight.

The weight is a cross section (mb) for scatterings and a partial width (GeV)
for decays.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Tuple


class ProcessType(IntEnum):
    """Kind tag of a branch; selects the final-state sampler."""

    NONE = 0
    ELASTIC = 1
    TWO_TO_ONE = 2
    TWO_TO_TWO = 3
    DECAY = 5
    STRING = 41

    @property
    def is_continuum(self) -> bool:
        """Final-state multiplicity is only known after kinematics sampling."""
        return self is ProcessType.STRING


@dataclass(frozen=True)
class ProcessBranch:
    final_state: Tuple[int, ...]
    weight: float
    process_type: ProcessType = ProcessType.NONE

    def __post_init__(self):
        object.__setattr__(self, "final_state", tuple(self.final_state))
        object.__setattr__(self, "process_type", ProcessType(self.process_type))
        if not self.weight >= 0.0:
            raise ValueError(
                f"ProcessBranch weight must be non-negative, got {self.weight} for {self.final_state}"
            )

    def particle_number(self) -> int:
        return len(self.final_state)

    @property
    def is_selectable(self) -> bool:
        return self.particle_number() >= 1 or self.process_type.is_continuum

    def __repr__(self) -> str:
        return (f"ProcessBranch({self.process_type.name}, "
                f"{' '.join(str(p) for p in self.final_state) or '<continuum>'}, w={self.weight:.6g})")


ProcessBranchList = List[ProcessBranch]
