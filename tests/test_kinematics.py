import math

import numpy as np
import pytest

from reactions.exceptions import KinematicsError
from reactions.kinematics import (
    FourVector,
    generate_three_body_decay,
    generate_two_body_decay,
    isotropic_direction,
    lorentz_boost_array,
    pcm,
    total_momentum,
)
from reactions.rng import RandomSource


def _assert_close(a, b, tol=1e-9, msg=""):
    assert abs(a - b) < tol, msg or f"Values differ: {a} vs {b} (tol={tol})"


# ---- pcm ----
def test_pcm_formula():
    srts, m1, m2 = 1.232, 0.938, 0.138
    expected = math.sqrt((srts**2 - (m1 + m2)**2) * (srts**2 - (m1 - m2)**2)) / (2 * srts)
    _assert_close(pcm(srts, m1, m2), expected)


def test_pcm_at_threshold_is_zero():
    _assert_close(pcm(0.276, 0.138, 0.138), 0.0)


def test_pcm_below_threshold_raises():
    with pytest.raises(KinematicsError):
        pcm(1.0, 0.938, 0.138)


def test_kinematics_error_is_value_error():
    with pytest.raises(ValueError):
        pcm(0.2, 0.138, 0.138)


# ---- FourVector ----
def test_from_mass_is_on_shell():
    v = FourVector.from_mass(0.938, (0.3, -0.2, 1.1))
    _assert_close(v.mass, 0.938)


def test_total_momentum_sums_components():
    total = total_momentum([FourVector(1, 0.1, 0, 0), FourVector(2, -0.1, 0.5, 0)])
    assert total.to_tuple() == pytest.approx((3.0, 0.0, 0.5, 0.0))


def test_boost_round_trip():
    v = FourVector.from_mass(0.5, (0.1, 0.2, 0.3))
    beta = np.array([0.1, -0.3, 0.5])
    back = v.boost(beta).boost(-beta)
    assert back.to_tuple() == pytest.approx(v.to_tuple(), abs=1e-12)


def test_boost_from_rest_frame():
    rest = FourVector(1.0, 0.0, 0.0, 0.0)
    moving = rest.boost(np.array([0.0, 0.0, 0.6]))
    _assert_close(moving.E, 1.25)
    _assert_close(moving.pz, 0.75)
    np.testing.assert_allclose(moving.beta(), [0.0, 0.0, 0.6])


def test_boost_rejects_superluminal():
    with pytest.raises(ValueError):
        lorentz_boost_array(np.array([1.0, 0, 0, 0]), np.array([0.0, 0.0, 1.0]))


def test_isotropic_direction_is_unit(rng):
    for _ in range(100):
        _assert_close(float(np.linalg.norm(isotropic_direction(rng))), 1.0, tol=1e-12)


# ---- Decays ----
@pytest.mark.parametrize("M,m1,m2", [(1.232, 0.938, 0.138), (0.776, 0.138, 0.138), (0.135, 0.0, 0.0)])
def test_two_body_decay_conserves(M, m1, m2, rng):
    d1, d2 = generate_two_body_decay(M, (m1, m2), rng)
    total = d1 + d2
    _assert_close(total.E, M, tol=1e-12)
    _assert_close(total.magnitude, 0.0, tol=1e-12)
    _assert_close(d1.mass, m1, tol=1e-9)
    _assert_close(d2.mass, m2, tol=1e-9)


def test_two_body_decay_at_threshold_at_rest(rng):
    d1, d2 = generate_two_body_decay(0.276, (0.138, 0.138), rng)
    assert d1.magnitude == 0.0
    assert d2.magnitude == 0.0


def test_two_body_decay_forbidden(rng):
    with pytest.raises(KinematicsError):
        generate_two_body_decay(0.2, (0.138, 0.138), rng)


def test_three_body_decay_conserves(rng):
    masses = (0.138, 0.138, 0.138)
    for _ in range(50):
        ds = generate_three_body_decay(0.783, masses, rng)
        total = total_momentum(ds)
        _assert_close(total.E, 0.783, tol=1e-9)
        _assert_close(total.magnitude, 0.0, tol=1e-9)
        for d, m in zip(ds, masses):
            _assert_close(d.mass, m, tol=1e-9)


def test_three_body_decay_forbidden(rng):
    with pytest.raises(KinematicsError):
        generate_three_body_decay(0.4, (0.138, 0.138, 0.138), rng)


def test_decay_kinematics_replay():
    a = generate_three_body_decay(0.783, (0.138, 0.138, 0.138), RandomSource(3))
    b = generate_three_body_decay(0.783, (0.138, 0.138, 0.138), RandomSource(3))
    assert [v.to_tuple() for v in a] == [v.to_tuple() for v in b]
