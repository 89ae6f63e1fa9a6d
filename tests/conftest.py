import pytest

from reactions.kinematics import pcm
from reactions.particles import ParticleData, ParticleType, Particles
from reactions.rng import RandomSource


def head_on_pair(pdg_a, pdg_b, sqrt_s, impact=0.0):
    """Two particles approaching along z in their CM frame, stored in a fresh collection."""
    m_a, m_b = ParticleType.find(pdg_a).mass, ParticleType.find(pdg_b).mass
    q = pcm(sqrt_s, m_a, m_b)
    world = Particles()
    a = world.insert(ParticleData.create(pdg_a, (0.0, 0.0, q), (0.0, impact, 0.0, -1.0)))
    b = world.insert(ParticleData.create(pdg_b, (0.0, 0.0, -q), (0.0, 0.0, 0.0, 1.0)))
    return world, a, b


@pytest.fixture
def rng():
    return RandomSource(42)


@pytest.fixture
def world():
    return Particles()


@pytest.fixture
def pion_proton():
    """π⁺ p at the Δ pole."""
    return head_on_pair(211, 2212, 1.232)


@pytest.fixture
def proton_proton():
    return head_on_pair(2212, 2212, 2.5)
