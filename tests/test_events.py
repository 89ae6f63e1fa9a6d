import pytest

from reactions.action import InteractionRecord
from reactions.decay_action import DecayAction
from reactions.events import InteractionLog
from reactions.particles import ParticleData, Particles, ProcessCounter
from reactions.processbranch import ProcessType
from reactions.rng import RandomSource


@pytest.fixture
def log(tmp_path):
    return InteractionLog(tmp_path / "interactions.db")


def _performed_decay(pdg=2224, seed=0):
    world = Particles()
    parent = world.insert(ParticleData.create(pdg, (0.0, 0.0, 0.4)))
    action = DecayAction.from_particle(parent, 1.5, RandomSource(seed))
    assert action.generate_final_state()
    action.perform(world, ProcessCounter())
    return action


def test_store_and_parse(log):
    action = _performed_decay()
    iid = log.store_interaction(action.interaction_record(), event=3, density=0.16)
    row = log.parse_interaction(iid)

    assert row["event"] == 3
    assert row["process_type"] == "DECAY"
    assert row["n_in"] == 1 and row["n_out"] == 2
    assert row["density"] == pytest.approx(0.16)
    assert row["conserved"] is True
    assert [p["pdg"] for p in row["incoming"]] == [2224]
    assert sorted(p["pdg"] for p in row["outgoing"]) == [211, 2212]
    out = action.outgoing_particles()
    assert row["outgoing"][0]["momentum"].to_tuple() == pytest.approx(out[0].momentum.to_tuple())
    assert row["outgoing"][0]["position"][0] == pytest.approx(1.5)


def test_particle_history_round_trip(log):
    world = Particles()
    parent = world.insert(ParticleData.create(2224, (0.0, 0.0, 0.4), (0.0, 1.0, 2.0, 3.0)))
    counter = ProcessCounter(start=7)
    action = DecayAction.from_particle(parent, 1.5, RandomSource(0))
    assert action.generate_final_state()
    action.perform(world, counter)

    row = log.parse_interaction(log.store_interaction(action.interaction_record()))
    assert row["id_process"] == 7
    incoming, = row["incoming"]
    assert incoming["id_process"] == 0
    assert incoming["process_type"] == "NONE"
    assert incoming["mass"] == pytest.approx(1.232)
    for out, p in zip(row["outgoing"], action.outgoing_particles()):
        assert out["id"] == p.id
        assert out["id_process"] == 7
        assert out["process_type"] == "DECAY"
        assert out["collisions"] == 1
        assert out["mothers"] == (2224, 0)
        assert out["time_last_collision"] == pytest.approx(1.5)
        assert out["formation_time"] == pytest.approx(p.formation_time)
        assert out["xsec_scaling"] == pytest.approx(1.0)
        assert out["mass"] == pytest.approx(p.effective_mass)


def test_process_ids_distinct_across_interactions(log):
    counter = ProcessCounter(start=1)
    ids = []
    for seed in range(3):
        world = Particles()
        parent = world.insert(ParticleData.create(2224))
        action = DecayAction.from_particle(parent, 0.0, RandomSource(seed))
        assert action.generate_final_state()
        action.perform(world, counter)
        row = log.parse_interaction(log.store_interaction(action.interaction_record()))
        ids.append({p["id_process"] for p in row["outgoing"]})
    assert ids == [{1}, {2}, {3}]


def test_parse_missing_returns_none(log):
    assert log.parse_interaction(12345) is None


def test_violation_flagged(log):
    good = _performed_decay().interaction_record()
    bad = InteractionRecord(
        process_type=ProcessType.DECAY,
        id_process=2,
        time=0.0,
        sqrt_s=good.sqrt_s,
        total_weight=good.total_weight,
        partial_weight=good.partial_weight,
        incoming=good.incoming,
        outgoing=good.outgoing[:1],
    )
    log.store_interaction(good)
    log.store_interaction(bad)

    assert len(log.list_interactions()) == 2
    assert len(log.list_interactions(conserved_only=True)) == 1
    stats = log.stats()
    assert stats["total_interactions"] == 2
    assert stats["conserved"] == 1
    assert stats["conservation_rate"] == pytest.approx(0.5)


def test_filter_by_process_type_and_clear(log):
    for seed in range(3):
        log.store_interaction(_performed_decay(seed=seed).interaction_record())
    assert len(log.list_interactions(process_type="DECAY")) == 3
    assert log.list_interactions(process_type="ELASTIC") == []
    assert log.stats()["by_process_type"] == {"DECAY": 3}

    log.clear_interactions()
    assert log.stats()["total_interactions"] == 0
    assert log.stats()["conservation_rate"] == 0.0
