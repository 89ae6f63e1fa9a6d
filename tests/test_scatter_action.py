import numpy as np
import pytest

from reactions import crosssections
from reactions.action import ActionState
from reactions.conservation import QuantumNumbers
from reactions.exceptions import HadronizationUnavailable
from reactions.particles import ProcessCounter
from reactions.processbranch import ProcessBranch, ProcessType
from reactions.rng import RandomSource
from reactions.scatter_action import ScatterAction

from .conftest import head_on_pair


def _perform(world, action, attempts=3):
    before = QuantumNumbers.of(action.incoming_particles())
    assert action.is_valid(world)
    assert action.generate_final_state(max_attempts=attempts)
    outgoing = action.perform(world, ProcessCounter())
    assert not before.report_deviations(QuantumNumbers.of(outgoing))
    return outgoing


# ---- Kinematics ----
def test_sqrt_s_of_head_on_pair(pion_proton):
    _, a, b = pion_proton
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    assert action.sqrt_s() == pytest.approx(1.232)
    np.testing.assert_allclose(action.beta_cm(), 0.0, atol=1e-12)


def test_particle_distance_is_impact_parameter():
    _, a, b = head_on_pair(2212, 2212, 3.0, impact=1.0)
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    assert action.particle_distance() == pytest.approx(1.0)


def test_particle_distance_is_frame_independent():
    _, a, b = head_on_pair(2212, 2212, 3.0, impact=0.7)
    beta = np.array([0.0, 0.2, 0.5])
    a.boost(beta)
    b.boost(beta)
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    assert action.particle_distance() == pytest.approx(0.49)


def test_interaction_point_is_midpoint(pion_proton):
    _, a, b = pion_proton
    action = ScatterAction(a, b, 0.3, RandomSource(0))
    assert list(action.interaction_point()) == [0.3, 0.0, 0.0, 0.0]


# ---- Cross sections ----
def test_delta_formation_dominates_at_pole(pion_proton):
    _, a, b = pion_proton
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    branches = action.resonance_cross_section()
    assert [br.final_state for br in branches] == [(2224,)]
    assert 150.0 < branches[0].weight < 250.0


def test_resonances_must_match_charge():
    _, a, b = head_on_pair(-211, 2212, 1.44)
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    formed = {br.final_state[0] for br in action.resonance_cross_section()}
    assert formed == {2114, 12112}


def test_no_resonance_below_threshold():
    _, a, b = head_on_pair(211, 211, 0.3)
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    assert action.resonance_cross_section() == []


def test_string_cross_section_threshold():
    assert crosssections.string_excitation_cross_section(2.0, 30.0).weight == 0.0
    branch = crosssections.string_excitation_cross_section(3.0, 30.0)
    assert branch.weight == 30.0
    assert branch.process_type is ProcessType.STRING
    assert branch.final_state == ()


def test_nucleon_delta_final_states_conserve_charge(proton_proton):
    _, a, b = proton_proton
    assert crosssections.nucleon_delta_final_states(a, b) == [(2212, 2214), (2112, 2224)]


def test_two_to_two_closed_below_threshold():
    assert crosssections.two_to_two_cross_section(1.9, [(2212, 2214)]) == []


def test_two_to_two_shared_among_open_states_only():
    # at 2.1 GeV N Δ (threshold 2.014) is open, Δ Δ (2.152) is closed
    both = crosssections.two_to_two_cross_section(2.1, [(2212, 2214), (2224, 2224)])
    alone = crosssections.two_to_two_cross_section(2.1, [(2212, 2214)])
    assert [b.final_state for b in both] == [(2212, 2214)]
    assert both[0].weight == pytest.approx(alone[0].weight)
    x = (2.1 - 2.014) / 0.1
    assert both[0].weight == pytest.approx(20.0 * x * x / (1.0 + x * x))


# ---- Final states ----
def test_elastic_keeps_species_and_momentum(pion_proton):
    world, a, b = pion_proton
    action = ScatterAction(a, b, 0.0, RandomSource(4))
    action.add_collision(action.elastic_cross_section(20.0))
    outgoing = _perform(world, action)
    assert action.is_elastic()
    assert [p.pdgcode for p in outgoing] == [211, 2212]
    for p_in, p_out in zip((a, b), outgoing):
        assert p_out.momentum.magnitude == pytest.approx(p_in.momentum.magnitude)
        assert p_out.history.collisions == 1


def test_resonance_formation(pion_proton):
    world, a, b = pion_proton
    action = ScatterAction(a, b, 0.0, RandomSource(4))
    action.add_collisions(action.resonance_cross_section())
    (delta,) = _perform(world, action)
    assert delta.pdgcode == 2224
    assert delta.effective_mass == pytest.approx(1.232)
    assert action.get_type() is ProcessType.TWO_TO_ONE


def test_resonance_formation_in_moving_frame(pion_proton):
    world, a, b = pion_proton
    for p in world:
        p.boost(np.array([0.3, 0.0, 0.4]))
    a, b = world.copy_to_list()
    action = ScatterAction(a, b, 0.0, RandomSource(4))
    action.add_collisions(action.resonance_cross_section())
    (delta,) = _perform(world, action)
    assert delta.effective_mass == pytest.approx(1.232)


def test_two_to_two_production():
    for seed in range(20):
        world, a, b = head_on_pair(2212, 2212, 2.5)
        action = ScatterAction(a, b, 0.0, RandomSource(seed))
        action.add_collisions(crosssections.two_to_two_cross_section(
            action.sqrt_s(), crosssections.nucleon_delta_final_states(a, b)))
        outgoing = _perform(world, action)
        assert {p.pdgcode for p in outgoing} in ({2212, 2214}, {2112, 2224})


def test_empty_branches_ignored(pion_proton):
    _, a, b = pion_proton
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    action.add_collision(ProcessBranch((), 10.0, ProcessType.TWO_TO_TWO))
    assert action.subprocesses == []


def test_decay_branches_rejected(pion_proton):
    _, a, b = pion_proton
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    with pytest.raises(ValueError):
        action.add_collision(ProcessBranch((2212, 211), 1.0, ProcessType.DECAY))


# ---- String excitation without a backend ----
def test_string_without_backend_fails_loudly():
    world, a, b = head_on_pair(211, 2212, 3.0)
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    action.add_collision(action.string_excitation_cross_section(25.0))
    assert action.is_valid(world)
    with pytest.raises(HadronizationUnavailable):
        action.generate_final_state()
    assert action.state is ActionState.VALIDATED


def test_unselected_string_branch_needs_no_backend():
    world, a, b = head_on_pair(211, 2212, 3.0)
    action = ScatterAction(a, b, 0.0, RandomSource(0))
    action.add_collision(action.elastic_cross_section(1e6))
    action.add_collision(action.string_excitation_cross_section(1e-4))
    outgoing = _perform(world, action)
    assert len(outgoing) == 2
