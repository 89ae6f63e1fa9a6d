import argparse

import pytest

import db
import monte_carlo
from reactions.events import InteractionLog
from reactions.particles import ParticleData, Particles, ProcessCounter
from reactions.decay_action import DecayAction
from reactions.rng import RandomSource
from reactions.simulation import (
    DISCARDED,
    FAILED,
    PERFORMED,
    expected_fractions,
    observed_fractions,
    resolve_action,
    simulate_collisions,
    simulate_decays,
)


# ---- Single actions ----
def test_resolve_performs(world):
    parent = world.insert(ParticleData.create(2224))
    action = DecayAction.from_particle(parent, 0.0, RandomSource(1))
    status, outgoing = resolve_action(action, world, ProcessCounter())
    assert status == PERFORMED
    assert len(outgoing) == 2


def test_resolve_discards_stale(world):
    parent = world.insert(ParticleData.create(2224))
    action = DecayAction.from_particle(parent, 0.0, RandomSource(1))
    status, _ = resolve_action(action, Particles(), ProcessCounter())
    assert status == DISCARDED


def test_resolve_reports_failure(world):
    parent = world.insert(ParticleData.create(2212))
    action = DecayAction.from_particle(parent, 0.0, RandomSource(1))
    assert resolve_action(action, world, ProcessCounter()) == (FAILED, [])


def test_resolve_applies_pauli_blocking(world):
    parent = world.insert(ParticleData.create(2224))
    action = DecayAction.from_particle(parent, 0.0, RandomSource(1))
    status, _ = resolve_action(action, world, ProcessCounter(), blocker=lambda particle: 1.0)
    assert status == DISCARDED
    assert [p.pdgcode for p in world] == [2224]


# ---- Batches ----
def test_delta_decays_all_succeed():
    stats = simulate_decays(2224, 200, seed=1)
    assert stats["success"] == 200
    assert stats["success_rate"] == 1.0
    assert stats["channels"] == {"p π⁺": 200}


def test_batches_replay_with_seed():
    assert simulate_decays(12212, 300, seed=4)["channels"] == simulate_decays(12212, 300, seed=4)["channels"]


def test_omega_channel_fractions():
    n = 4000
    stats = simulate_decays(223, n, seed=2)
    reference = DecayAction.from_particle(ParticleData.create(223), 0.0, RandomSource(0))
    expected = expected_fractions(reference)
    observed = observed_fractions(stats["channels"])
    for label, frac in expected.items():
        sigma = (frac * (1.0 - frac) / n) ** 0.5
        assert abs(observed.get(label, 0.0) - frac) < 5 * sigma + 1e-3


def test_stable_parent_fails_every_event():
    stats = simulate_decays(2212, 10, seed=0)
    assert stats["failed"] == 10
    assert stats["channels"] == {}


def test_pion_proton_collisions():
    stats = simulate_collisions(211, 2212, 1.232, 300, seed=3)
    assert stats["success"] == 300
    assert set(stats["channels"]) <= {"Δ⁺⁺", "π⁺ p"}
    assert stats["channels"]["Δ⁺⁺"] > stats["channels"].get("π⁺ p", 0)


def test_proton_proton_collisions():
    stats = simulate_collisions(2212, 2212, 2.5, 200, seed=3)
    assert stats["success"] == 200
    assert set(stats["channels"]) <= {"p p", "p Δ⁺", "n Δ⁺⁺"}


def test_isolated_elastic_pairs_are_never_pauli_blocked():
    stats = simulate_collisions(2212, 2212, 1.8775, 200, seed=3, pauli=True)
    assert stats["success"] == 200
    assert stats["discarded"] == 0
    assert stats["channels"] == {"p p": 200}


def test_batches_written_to_log(tmp_path):
    log = InteractionLog(tmp_path / "batch.db")
    stats = simulate_decays(113, 25, seed=8, log=log)
    assert len(stats["interaction_ids"]) == 25
    assert log.stats()["total_interactions"] == 25
    assert log.stats()["conservation_rate"] == 1.0


# ---- Configuration and CLI ----
def test_db_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("REACTIONS_DB", str(tmp_path / "env.db"))
    assert db.get_db_path() == tmp_path / "env.db"
    db.get_log()
    assert (tmp_path / "env.db").exists()


def test_db_path_default(monkeypatch):
    monkeypatch.delenv("REACTIONS_DB", raising=False)
    assert db.get_db_path().name == "reactions.db"


@pytest.mark.parametrize("token,pdg", [("2224", 2224), ("ω", 223), ("Δ⁺⁺", 2224), ("-211", -211)])
def test_resolve_pdg(token, pdg):
    assert monte_carlo.resolve_pdg(token) == pdg


def test_resolve_pdg_unknown():
    with pytest.raises(argparse.ArgumentTypeError):
        monte_carlo.resolve_pdg("graviton")


def test_parser_collide_mode():
    args = monte_carlo.build_parser().parse_args(["--collide", "211", "p", "--sqrt-s", "1.3"])
    assert args.collide == [211, 2212]
    assert args.sqrt_s == 1.3
    assert args.decay is None
