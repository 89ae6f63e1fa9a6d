import sys
from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt

sys.path.append(str(Path(__file__).resolve().parents[1]))

from reactions.decay_action import DecayAction
from reactions.particles import ParticleData, ParticleType
from reactions.rng import RandomSource
from reactions.simulation import expected_fractions, observed_fractions, simulate_decays

PARENT = 12212  # N⁺(1440)
N = 20_000


def main():
    name = ParticleType.find(PARENT).name
    stats = simulate_decays(PARENT, N, seed=0)
    observed = observed_fractions(stats["channels"])

    reference = DecayAction.from_particle(ParticleData.create(PARENT), 0.0, RandomSource(0))
    expected = expected_fractions(reference)

    labels = sorted(expected, key=lambda k: -expected[k])
    x = np.arange(len(labels))
    obs = np.array([observed.get(k, 0.0) for k in labels])
    err = np.sqrt(obs * (1.0 - obs) / N)

    plt.figure(figsize=(8, 5))
    plt.bar(x, [expected[k] for k in labels], width=0.6, alpha=0.6, label="Γ_i / Γ")
    plt.errorbar(x, obs, yerr=err, fmt="o", color="k", label=f"{N} decays")
    plt.xticks(x, labels, rotation=30)
    plt.ylabel("Fraction")
    plt.title(f"{name} decay channels: selected vs expected")
    plt.grid(alpha=0.3, axis="y")
    plt.legend()
    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
