import pytest

from reactions.particles import ParticleData, Particles
from reactions.pauli import PauliBlocker


def _proton(p=(0.0, 0.0, 0.3), x=(0.0, 0.0, 0.0, 0.0)):
    return ParticleData.create(2212, p, x)


def test_empty_world_gives_zero():
    blocker = PauliBlocker(Particles())
    assert blocker(_proton()) == 0.0


def test_identical_neighbour_saturates():
    world = Particles([_proton()])
    assert PauliBlocker(world)(_proton()) == 1.0


def test_unclamped_density_exceeds_one():
    world = Particles([_proton()])
    assert PauliBlocker(world).phasespace_density(_proton()) > 1.0


def test_particle_does_not_block_itself():
    world = Particles()
    me = world.insert(_proton())
    assert PauliBlocker(world)(me) == 0.0


def test_disregarded_particles_do_not_count():
    world = Particles()
    neighbour = world.insert(_proton())
    blocker = PauliBlocker(world)
    assert blocker(_proton()) == 1.0
    assert blocker.without([neighbour])(_proton()) == 0.0
    assert PauliBlocker(world, disregard=[neighbour.id])(_proton()) == 0.0
    # the original blocker is unchanged
    assert blocker(_proton()) == 1.0


def test_blocker_sees_later_insertions():
    world = Particles()
    blocker = PauliBlocker(world)
    assert blocker(_proton()) == 0.0
    world.insert(_proton())
    assert blocker(_proton()) == 1.0


def test_neighbour_out_of_range():
    far_away = Particles([_proton(x=(0.0, 3.0, 0.0, 0.0))])
    other_momentum = Particles([_proton(p=(0.0, 0.0, 0.5))])
    assert PauliBlocker(far_away)(_proton()) == 0.0
    assert PauliBlocker(other_momentum)(_proton()) == 0.0


def test_other_species_do_not_count():
    world = Particles([ParticleData.create(2112, (0.0, 0.0, 0.3))])
    assert PauliBlocker(world)(_proton()) == 0.0


def test_density_falls_with_distance():
    near = Particles([_proton(x=(0.0, 0.2, 0.0, 0.0))])
    far = Particles([_proton(x=(0.0, 1.5, 0.0, 0.0))])
    assert PauliBlocker(far, rp=1.0)(_proton()) < PauliBlocker(near, rp=1.0)(_proton())


@pytest.mark.parametrize("kwargs", [{"sigma": 0.0}, {"rr": -1.0}, {"rp": 0.0}])
def test_parameters_must_be_positive(kwargs):
    with pytest.raises(ValueError):
        PauliBlocker(Particles(), **kwargs)
