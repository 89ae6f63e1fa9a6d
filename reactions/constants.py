"""
Physical constants and tunables for the reaction engine.

Units: GeV, fm (natural units c = hbar = 1).
"""

# hbar * c in GeV fm
HBARC = 0.197327053
# GeV^-2 -> mb conversion goes through fm^2: 1 fm^2 = 10 mb
FM2_MB = 10.0

# Branches at or below this weight never enter the channel sum.
WEIGHT_FLOOR = 1e-6

# Types with a smaller total width are treated as stable.
WIDTH_CUTOFF = 1e-5

# Relative tolerance of the four-momentum check (absolute floor is the same value).
CONSERVATION_TOLERANCE = 1e-6

# Formation time (fm/c) assigned to hadrons produced by string fragmentation.
STRING_FORMATION_TIME = 1.0
